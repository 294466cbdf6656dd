"""Schemas for the analysis endpoint (/v1/analyze)."""

from pydantic import BaseModel, Field

from profile_score.schemas.ranking import RankingIndicators, RankingStats


class AnalyzeRequest(BaseModel):
    """Freshly scraped public stats for one handle."""

    handle: str = Field(min_length=1, max_length=100)
    followers: int = Field(ge=0)
    posts: int = Field(ge=0)


class ProfileStats(BaseModel):
    followers: int = Field(ge=0)
    posts: int = Field(ge=0)


class DetailedMetrics(BaseModel):
    """Scores returned by the scorer, clamped to [0, 100]."""

    overall_score: float = Field(alias="overallScore", ge=0, le=100)
    criteria: dict[str, float] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


class AnalysisResponse(BaseModel):
    """Response payload for POST /v1/analyze."""

    handle: str
    stats: ProfileStats
    detailed_metrics: DetailedMetrics = Field(alias="detailedMetrics")
    ranking: RankingStats | None = None
    indicators: RankingIndicators | None = None
    market_context: str = Field(alias="marketContext")

    model_config = {"populate_by_name": True}


class AdminProfileRequest(BaseModel):
    """Pre-scored record submitted by an operator or import job."""

    handle: str = Field(min_length=1, max_length=100)
    followers: int = Field(ge=0)
    posts: int = Field(ge=0)
    overall_score: float = Field(alias="overallScore")
    criteria: dict[str, float] | None = None

    model_config = {"populate_by_name": True}
