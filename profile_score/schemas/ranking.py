"""Schemas for ranking statistics and market context."""

from typing import Literal

from pydantic import BaseModel, Field

Indicator = Literal["above", "below"]


class MarketContext(BaseModel):
    """Pre-scoring comparison of a candidate against the stored population.

    When the population is empty, `is_first_profile` is True and the numeric
    fields are None.
    """

    is_first_profile: bool = Field(alias="isFirstProfile")
    total_profiles: int = Field(alias="totalProfiles", ge=0)
    followers_percentile: int | None = Field(alias="followersPercentile", default=None)
    posts_percentile: int | None = Field(alias="postsPercentile", default=None)
    avg_followers: int | None = Field(alias="avgFollowers", default=None)
    avg_posts: int | None = Field(alias="avgPosts", default=None)

    model_config = {"populate_by_name": True}


class RankingStats(BaseModel):
    """Post-scoring percentile badges shown in the report."""

    followers_percentile: int = Field(alias="followersPercentile", ge=0, le=100)
    posts_percentile: int = Field(alias="postsPercentile", ge=0, le=100)
    overall_score_percentile: int = Field(alias="overallScorePercentile", ge=0, le=100)
    avg_followers: int = Field(alias="avgFollowers", ge=0)
    avg_posts: int = Field(alias="avgPosts", ge=0)
    avg_overall_score: int = Field(alias="avgOverallScore")
    total_profiles: int = Field(alias="totalProfiles", ge=1)

    model_config = {"populate_by_name": True}


class RankingIndicators(BaseModel):
    """Above/below-average badge per metric."""

    followers: Indicator
    posts: Indicator
    overall_score: Indicator = Field(alias="overallScore")

    model_config = {"populate_by_name": True}


class MarketContextResponse(BaseModel):
    """Response payload for GET /v1/ranking/context."""

    context: MarketContext
    text: str


class RankingStatsResponse(BaseModel):
    """Response payload for GET /v1/ranking/stats.

    `ranking` is null when there is nothing to compare against.
    """

    ranking: RankingStats | None = None
    indicators: RankingIndicators | None = None
