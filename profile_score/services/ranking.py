"""Ranking service: position a profile against the stored population.

Ranking logic:
1. Percentile = share of the population STRICTLY below the candidate value
   (ties are not beaten, so an identical peer never lifts the percentile)
2. Averages are plain means over the population
3. Both are rounded half-up to integers

Two entry points:
- build_pre_context: before scoring, market framing for the scorer prompt
- build_post_stats: after scoring, percentile badges for the report

Callers pass the population as it exists BEFORE the candidate's own upsert,
so a profile never competes with itself. Nothing here reads or writes storage.
"""

import math
from collections.abc import Sequence

from profile_score.schemas import MarketContext, ProfileRecord, RankingIndicators, RankingStats
from profile_score.schemas.ranking import Indicator

FIRST_PROFILE_TEXT = "Este é o primeiro perfil analisado na base de dados local."


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (12.5 -> 13, not 12)."""
    return int(math.floor(value + 0.5))


def percentile(value: float, population: Sequence[float]) -> int:
    """Percentage (0-100) of population values strictly less than `value`.

    Args:
        value: Candidate value.
        population: Non-empty sequence of population values.

    Returns:
        Rounded percentile.

    Raises:
        ValueError: If the population is empty.
    """
    if not population:
        raise ValueError("percentile of an empty population")
    beaten = sum(1 for v in population if v < value)
    return round_half_up(100 * beaten / len(population))


def average(population: Sequence[float]) -> int:
    """Rounded mean of a non-empty sequence."""
    if not population:
        raise ValueError("average of an empty population")
    return round_half_up(sum(population) / len(population))


def build_pre_context(
    population: Sequence[ProfileRecord],
    followers: int,
    posts: int,
) -> MarketContext:
    """Compare follower/post counts against the population before scoring.

    Returns the first-profile context when the population is empty.
    """
    if not population:
        return MarketContext(is_first_profile=True, total_profiles=0)

    follower_counts = [p.followers for p in population]
    post_counts = [p.posts for p in population]
    return MarketContext(
        is_first_profile=False,
        total_profiles=len(population),
        followers_percentile=percentile(followers, follower_counts),
        posts_percentile=percentile(posts, post_counts),
        avg_followers=average(follower_counts),
        avg_posts=average(post_counts),
    )


def market_context_text(context: MarketContext) -> str:
    """Render the comparison as prompt text for the scorer."""
    if context.is_first_profile:
        return FIRST_PROFILE_TEXT
    return (
        f"COMPARATIVO DE MERCADO (Baseado em {context.total_profiles} clínicas/dentistas analisados):\n"
        f"- Seguidores: Você tem mais seguidores que {context.followers_percentile}% "
        f"dos perfis analisados (Média da base: {context.avg_followers}).\n"
        f"- Posts: Você tem mais posts que {context.posts_percentile}% "
        f"dos perfis analisados (Média da base: {context.avg_posts})."
    )


def build_post_stats(
    population: Sequence[ProfileRecord],
    followers: int,
    posts: int,
    overall_score: float,
) -> RankingStats | None:
    """Percentiles and averages for the report, once the score is known.

    Returns:
        RankingStats, or None when the population is empty (ranking
        unavailable - not the same as 0th percentile).
    """
    if not population:
        return None

    follower_counts = [p.followers for p in population]
    post_counts = [p.posts for p in population]
    scores = [p.overall_score for p in population]
    return RankingStats(
        followers_percentile=percentile(followers, follower_counts),
        posts_percentile=percentile(posts, post_counts),
        overall_score_percentile=percentile(overall_score, scores),
        avg_followers=average(follower_counts),
        avg_posts=average(post_counts),
        avg_overall_score=average(scores),
        total_profiles=len(population),
    )


def _indicator(value: float, avg: float) -> Indicator:
    return "above" if value > avg else "below"


def ranking_indicators(
    stats: RankingStats,
    followers: int,
    posts: int,
    overall_score: float,
) -> RankingIndicators:
    """Above/below-average badge per metric (equal to average counts as below)."""
    return RankingIndicators(
        followers=_indicator(followers, stats.avg_followers),
        posts=_indicator(posts, stats.avg_posts),
        overall_score=_indicator(overall_score, stats.avg_overall_score),
    )
