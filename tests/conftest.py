"""Shared fixtures: isolated profile store and scripted scorer."""

import pytest
from httpx import ASGITransport, AsyncClient

from profile_score.main import app
from profile_score.schemas import ProfileRecord
from profile_score.services.rate_limit import InMemoryRateLimiter
from profile_score.services.scorer import ProfileScores
from profile_score.stores.profiles import JsonFileProfileStore


class FakeScorer:
    """Returns fixed scores and records what it was asked."""

    def __init__(self, overall_score: float = 70.0, criteria: dict[str, float] | None = None) -> None:
        self.scores = ProfileScores(overall_score=overall_score, criteria=criteria or {})
        self.calls: list[dict] = []

    async def score(self, *, handle: str, followers: int, posts: int, market_context: str) -> ProfileScores:
        self.calls.append(
            {"handle": handle, "followers": followers, "posts": posts, "market_context": market_context}
        )
        return self.scores


def make_record(handle: str, followers: int, posts: int, overall_score: float, **kwargs) -> ProfileRecord:
    return ProfileRecord(
        handle=handle,
        followers=followers,
        posts=posts,
        overall_score=overall_score,
        **kwargs,
    )


@pytest.fixture
def store(tmp_path) -> JsonFileProfileStore:
    return JsonFileProfileStore(tmp_path / "profiles.json")


@pytest.fixture
def scorer() -> FakeScorer:
    return FakeScorer()


@pytest.fixture
def limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter()


@pytest.fixture
def patched_routes(monkeypatch: pytest.MonkeyPatch, store, scorer, limiter):
    """Point every router at the test store, scorer and limiter."""
    from profile_score.routes import admin as admin_routes
    from profile_score.routes import analyze as analyze_routes
    from profile_score.routes import ranking as ranking_routes

    for module in (admin_routes, analyze_routes, ranking_routes):
        monkeypatch.setattr(module, "get_profile_store", lambda: store)
    monkeypatch.setattr(analyze_routes, "get_scorer", lambda: scorer)
    monkeypatch.setattr(analyze_routes, "get_rate_limiter", lambda: limiter)
    return analyze_routes


@pytest.fixture
async def client():
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
