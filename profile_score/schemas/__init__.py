"""Pydantic schemas for API request/response validation."""

from profile_score.schemas.analysis import (
    AdminProfileRequest,
    AnalysisResponse,
    AnalyzeRequest,
    DetailedMetrics,
    ProfileStats,
)
from profile_score.schemas.common import ErrorDetail, ErrorResponse
from profile_score.schemas.profile import CRITERIA_KEYS, ProfileListResponse, ProfileRecord
from profile_score.schemas.ranking import (
    MarketContext,
    MarketContextResponse,
    RankingIndicators,
    RankingStats,
    RankingStatsResponse,
)

__all__ = [
    "AdminProfileRequest",
    "AnalysisResponse",
    "AnalyzeRequest",
    "CRITERIA_KEYS",
    "DetailedMetrics",
    "ErrorDetail",
    "ErrorResponse",
    "MarketContext",
    "MarketContextResponse",
    "ProfileListResponse",
    "ProfileRecord",
    "ProfileStats",
    "RankingIndicators",
    "RankingStats",
    "RankingStatsResponse",
]
