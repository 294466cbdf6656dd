"""Schemas for analyzed profile records (the ranking population)."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

# Named sub-scores produced by the scorer, each in [0, 100].
CRITERIA_KEYS = (
    "frequency",
    "ctaAndLinks",
    "positioningClarity",
    "socialProof",
    "resultsProof",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileRecord(BaseModel):
    """One analyzed profile, keyed by handle.

    Scores are stored as given: clamping to [0, 100] is done by whoever
    produces the record, not by the store.
    """

    handle: str = Field(min_length=1)
    followers: int = Field(ge=0)
    posts: int = Field(ge=0)
    overall_score: float = Field(alias="overallScore")
    criteria: dict[str, float] | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = {"populate_by_name": True}

    def to_json_dict(self) -> dict:
        """Serialize with the persisted (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProfileListResponse(BaseModel):
    """Response payload for GET /v1/admin/profiles."""

    total_profiles: int = Field(alias="totalProfiles", ge=0)
    profiles: list[ProfileRecord]

    model_config = {"populate_by_name": True}
