"""Analysis orchestration: rate limit -> market context -> score -> rank -> save.

Flow for one request:
1. Admission control per caller (RateLimitExceeded when over budget)
2. Load population, build the pre-scoring market context
3. Score via the (opaque) scorer, clamp scores to [0, 100]
4. Reload population and compute ranking BEFORE saving this profile
5. Upsert the record (best effort, never fails the request)

Collaborators are passed explicitly; routes use the configured defaults.
"""

from dataclasses import dataclass
import logging

from profile_score.schemas import (
    AnalysisResponse,
    DetailedMetrics,
    ProfileRecord,
    ProfileStats,
    RankingIndicators,
    RankingStats,
)
from profile_score.services.ranking import (
    build_post_stats,
    build_pre_context,
    market_context_text,
    ranking_indicators,
)
from profile_score.services.rate_limit import RateLimiter, RateLimitExceeded, RateLimitResult
from profile_score.services.scorer import ProfileScorer
from profile_score.settings import Settings
from profile_score.stores.profiles import ProfileStore

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class AnalysisOutcome:
    response: AnalysisResponse
    rate_limit: RateLimitResult


def clamp_score(value: float) -> float:
    """Clamp a score to 0-100."""
    return max(0.0, min(100.0, float(value)))


def clamp_criteria(criteria: dict[str, float] | None) -> dict[str, float] | None:
    if criteria is None:
        return None
    return {name: clamp_score(value) for name, value in criteria.items()}


async def ranking_for(
    store: ProfileStore,
    *,
    followers: int,
    posts: int,
    overall_score: float,
) -> tuple[RankingStats | None, RankingIndicators | None]:
    """Ranking and badges against the current population (read only)."""
    population = await store.load()
    ranking = build_post_stats(population, followers, posts, overall_score)
    if ranking is None:
        return None, None
    return ranking, ranking_indicators(ranking, followers, posts, overall_score)


async def record_profile(store: ProfileStore, record: ProfileRecord) -> ProfileRecord:
    """Clamp scores and save. This is the only write path into the store."""
    clamped = record.model_copy(
        update={
            "overall_score": clamp_score(record.overall_score),
            "criteria": clamp_criteria(record.criteria),
        }
    )
    await store.upsert(clamped)
    return clamped


async def analyze_profile(
    *,
    handle: str,
    followers: int,
    posts: int,
    client_key: str,
    store: ProfileStore,
    scorer: ProfileScorer,
    limiter: RateLimiter,
    settings: Settings,
) -> AnalysisOutcome:
    """Run the full scoring pipeline for one handle.

    Raises:
        RateLimitExceeded: caller is over its window budget.
        ScoringError: the scorer failed or returned garbage.
    """
    admission = await limiter.check(
        client_key,
        settings.rate_limit_window_ms,
        settings.rate_limit_max_requests,
    )
    if not admission.allowed:
        logger.info(f"Rate limit exceeded for {client_key} (resets at {admission.reset_at})")
        raise RateLimitExceeded(admission)

    population = await store.load()
    context = build_pre_context(population, followers, posts)
    context_text = market_context_text(context)
    logger.info(f"Scoring @{handle} against {context.total_profiles} stored profiles")

    scores = await scorer.score(
        handle=handle,
        followers=followers,
        posts=posts,
        market_context=context_text,
    )
    overall_score = clamp_score(scores.overall_score)
    criteria = clamp_criteria(scores.criteria) or {}

    # Ranked against the population as it is before this profile is saved.
    ranking, indicators = await ranking_for(
        store,
        followers=followers,
        posts=posts,
        overall_score=overall_score,
    )

    await record_profile(
        store,
        ProfileRecord(
            handle=handle,
            followers=followers,
            posts=posts,
            overall_score=overall_score,
            criteria=criteria or None,
        ),
    )

    response = AnalysisResponse(
        handle=handle,
        stats=ProfileStats(followers=followers, posts=posts),
        detailed_metrics=DetailedMetrics(overall_score=overall_score, criteria=criteria),
        ranking=ranking,
        indicators=indicators,
        market_context=context_text,
    )
    return AnalysisOutcome(response=response, rate_limit=admission)
