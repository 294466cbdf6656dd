"""Analysis endpoint.

POST /v1/analyze - Score a profile and rank it against stored profiles.

Routers are thin: call services for business logic.
"""

import math

from fastapi import APIRouter, HTTPException, Request, Response

from profile_score.schemas import AnalysisResponse, AnalyzeRequest, ErrorResponse
from profile_score.schemas.common import error_body
from profile_score.services.analysis import analyze_profile
from profile_score.services.rate_limit import RateLimitExceeded, get_rate_limiter, now_ms
from profile_score.services.scorer import ScorerDisabledError, ScoringError, get_scorer
from profile_score.settings import get_settings
from profile_score.stores.profiles import get_profile_store

router = APIRouter()


def _client_key(request: Request, trusted_proxies: list[str]) -> str:
    """Caller identity for rate limiting.

    The peer IP, unless the peer is a trusted proxy: then the first
    X-Forwarded-For hop. Anyone else could put any value in that header.
    """
    peer = request.client.host if request.client and request.client.host else "unknown"
    if peer in trusted_proxies:
        forwarded = request.headers.get("x-forwarded-for", "")
        if forwarded.strip():
            return forwarded.split(",")[0].strip()
    return peer


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    responses={
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        502: {"model": ErrorResponse, "description": "Scorer failed"},
        503: {"model": ErrorResponse, "description": "Scorer not configured"},
    },
)
async def analyze(body: AnalyzeRequest, request: Request, response: Response) -> AnalysisResponse:
    """Score a profile, rank it, and add it to the population.

    The ranking compares against profiles stored before this one, so a
    first-ever analysis returns `ranking: null`.

    Raises:
        HTTPException 429: Caller exceeded the rate limit.
        HTTPException 503: No scorer configured.
        HTTPException 502: Scorer failed.
    """
    settings = get_settings()
    client_key = _client_key(request, settings.trusted_proxies)

    try:
        outcome = await analyze_profile(
            handle=body.handle,
            followers=body.followers,
            posts=body.posts,
            client_key=client_key,
            store=get_profile_store(),
            scorer=get_scorer(),
            limiter=get_rate_limiter(),
            settings=settings,
        )
    except RateLimitExceeded as e:
        reset_at = e.result.reset_at or now_ms()
        retry_after = max(0, math.ceil((reset_at - now_ms()) / 1000))
        raise HTTPException(
            status_code=429,
            detail=error_body(
                "RATE_LIMITED",
                "Too many analyses, try again later",
                {"resetAt": reset_at, "remaining": e.result.remaining},
            ),
            headers={"Retry-After": str(retry_after), "X-RateLimit-Remaining": "0"},
        )
    except ScorerDisabledError:
        raise HTTPException(
            status_code=503,
            detail=error_body("SCORER_DISABLED", "Profile scoring is not configured"),
        )
    except ScoringError as e:
        raise HTTPException(
            status_code=502,
            detail=error_body(
                "SCORING_FAILED",
                "Could not score this profile right now",
                {"reason": str(e)} if settings.debug else None,
            ),
        )

    response.headers["X-RateLimit-Remaining"] = str(outcome.rate_limit.remaining)
    return outcome.response
