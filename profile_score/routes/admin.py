"""Admin endpoints for population management.

These endpoints are intended for manual testing and backfills.
In production, consider adding authentication (API key or admin token).
"""

from fastapi import APIRouter

from profile_score.schemas import AdminProfileRequest, ProfileListResponse, ProfileRecord
from profile_score.services.analysis import record_profile
from profile_score.stores.profiles import get_profile_store

router = APIRouter()


@router.get("/profiles", response_model=ProfileListResponse)
async def list_profiles() -> ProfileListResponse:
    """List the stored population, highest overall score first."""
    profiles = await get_profile_store().load()
    profiles.sort(key=lambda p: p.overall_score, reverse=True)
    return ProfileListResponse(total_profiles=len(profiles), profiles=profiles)


@router.post("/profiles", response_model=ProfileRecord)
async def upsert_profile(request: AdminProfileRequest) -> ProfileRecord:
    """Insert or replace a pre-scored profile (scores are clamped to 0-100).

    Saving is best effort, same as the analysis pipeline: storage failures
    are logged, not returned.
    """
    record = ProfileRecord(
        handle=request.handle,
        followers=request.followers,
        posts=request.posts,
        overall_score=request.overall_score,
        criteria=request.criteria,
    )
    return await record_profile(get_profile_store(), record)
