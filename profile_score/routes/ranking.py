"""Read-only ranking lookups.

GET /v1/ranking/context - market context for given counts (pre-scoring)
GET /v1/ranking/stats   - percentile badges for given counts + score
"""

from fastapi import APIRouter, Query

from profile_score.schemas import MarketContextResponse, RankingStatsResponse
from profile_score.services.analysis import ranking_for
from profile_score.services.ranking import build_pre_context, market_context_text
from profile_score.stores.profiles import get_profile_store

router = APIRouter()


@router.get("/context", response_model=MarketContextResponse)
async def get_market_context(
    followers: int = Query(ge=0, description="Follower count"),
    posts: int = Query(ge=0, description="Post count"),
) -> MarketContextResponse:
    """Compare counts against the stored population."""
    population = await get_profile_store().load()
    context = build_pre_context(population, followers, posts)
    return MarketContextResponse(context=context, text=market_context_text(context))


@router.get("/stats", response_model=RankingStatsResponse)
async def get_ranking_stats(
    followers: int = Query(ge=0, description="Follower count"),
    posts: int = Query(ge=0, description="Post count"),
    overall_score: float = Query(alias="overallScore", ge=0, le=100, description="Overall score (0-100)"),
) -> RankingStatsResponse:
    """Percentiles and averages; `ranking` is null when no profiles are stored."""
    ranking, indicators = await ranking_for(
        get_profile_store(),
        followers=followers,
        posts=posts,
        overall_score=overall_score,
    )
    return RankingStatsResponse(ranking=ranking, indicators=indicators)
