"""Tests for HTTP endpoints (health, analyze, ranking, admin)."""

import pytest
from httpx import AsyncClient

from profile_score.settings import get_settings

from conftest import make_record


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_analyze_first_profile(client: AsyncClient, patched_routes, store):
    response = await client.post(
        "/v1/analyze",
        json={"handle": "clinica_sorriso", "followers": 1500, "posts": 120},
    )
    assert response.status_code == 200
    data = response.json()

    assert data["handle"] == "clinica_sorriso"
    assert data["stats"] == {"followers": 1500, "posts": 120}
    assert data["detailedMetrics"]["overallScore"] == 70
    assert data["ranking"] is None
    assert response.headers["X-RateLimit-Remaining"] == str(get_settings().rate_limit_max_requests - 1)
    assert len(await store.load()) == 1


@pytest.mark.asyncio
async def test_analyze_with_population(client: AsyncClient, patched_routes, store):
    await store.upsert(make_record("a", 100, 10, 50))
    await store.upsert(make_record("b", 200, 20, 80))

    response = await client.post("/v1/analyze", json={"handle": "c", "followers": 250, "posts": 5})
    assert response.status_code == 200
    ranking = response.json()["ranking"]
    assert ranking["followersPercentile"] == 100
    assert ranking["postsPercentile"] == 0
    assert ranking["totalProfiles"] == 2
    assert response.json()["indicators"] == {
        "followers": "above",
        "posts": "below",
        "overallScore": "above",
    }


@pytest.mark.asyncio
async def test_analyze_rate_limited(client: AsyncClient, patched_routes, monkeypatch: pytest.MonkeyPatch):
    limited = get_settings().model_copy(update={"rate_limit_max_requests": 1})
    monkeypatch.setattr(patched_routes, "get_settings", lambda: limited)

    ok = await client.post("/v1/analyze", json={"handle": "a", "followers": 1, "posts": 1})
    assert ok.status_code == 200

    denied = await client.post("/v1/analyze", json={"handle": "b", "followers": 1, "posts": 1})
    assert denied.status_code == 429
    error = denied.json()["detail"]["error"]
    assert error["code"] == "RATE_LIMITED"
    assert error["detail"]["remaining"] == 0
    assert "resetAt" in error["detail"]
    assert int(denied.headers["Retry-After"]) >= 0


@pytest.mark.asyncio
async def test_analyze_ignores_forwarded_for_from_untrusted_peer(client: AsyncClient, patched_routes, monkeypatch):
    limited = get_settings().model_copy(update={"rate_limit_max_requests": 1, "trusted_proxies": []})
    monkeypatch.setattr(patched_routes, "get_settings", lambda: limited)

    body = {"handle": "a", "followers": 1, "posts": 1}
    first = await client.post("/v1/analyze", json=body, headers={"X-Forwarded-For": "203.0.113.7"})
    rotated = await client.post("/v1/analyze", json=body, headers={"X-Forwarded-For": "198.51.100.2"})
    bare = await client.post("/v1/analyze", json=body)

    assert first.status_code == 200
    # A new header value does not buy a fresh window.
    assert rotated.status_code == 429
    assert bare.status_code == 429


@pytest.mark.asyncio
async def test_analyze_rate_limit_is_per_forwarded_ip_behind_trusted_proxy(
    client: AsyncClient, patched_routes, monkeypatch
):
    limited = get_settings().model_copy(
        update={"rate_limit_max_requests": 1, "trusted_proxies": ["127.0.0.1"]}
    )
    monkeypatch.setattr(patched_routes, "get_settings", lambda: limited)

    body = {"handle": "a", "followers": 1, "posts": 1}
    first = await client.post("/v1/analyze", json=body, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    other = await client.post("/v1/analyze", json=body, headers={"X-Forwarded-For": "198.51.100.2"})
    again = await client.post("/v1/analyze", json=body, headers={"X-Forwarded-For": "203.0.113.7"})

    assert first.status_code == 200
    assert other.status_code == 200
    assert again.status_code == 429


@pytest.mark.asyncio
async def test_analyze_without_scorer_key(client: AsyncClient, patched_routes, monkeypatch):
    from profile_score.services.scorer import LlmProfileScorer

    disabled = get_settings().model_copy(update={"openai_api_key": ""})
    monkeypatch.setattr(patched_routes, "get_scorer", lambda: LlmProfileScorer(disabled))

    response = await client.post("/v1/analyze", json={"handle": "a", "followers": 1, "posts": 1})
    assert response.status_code == 503
    assert response.json()["detail"]["error"]["code"] == "SCORER_DISABLED"


@pytest.mark.asyncio
async def test_analyze_rejects_negative_counts(client: AsyncClient, patched_routes):
    response = await client.post("/v1/analyze", json={"handle": "a", "followers": -1, "posts": 1})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_ranking_context_endpoint(client: AsyncClient, patched_routes, store):
    empty = await client.get("/v1/ranking/context", params={"followers": 10, "posts": 1})
    assert empty.status_code == 200
    assert empty.json()["context"]["isFirstProfile"] is True

    await store.upsert(make_record("a", 100, 10, 50))
    await store.upsert(make_record("b", 200, 20, 80))
    response = await client.get("/v1/ranking/context", params={"followers": 150, "posts": 15})
    context = response.json()["context"]
    assert context["followersPercentile"] == 50
    assert context["avgFollowers"] == 150
    assert "COMPARATIVO DE MERCADO" in response.json()["text"]


@pytest.mark.asyncio
async def test_ranking_stats_endpoint(client: AsyncClient, patched_routes, store):
    params = {"followers": 150, "posts": 15, "overallScore": 65}
    empty = await client.get("/v1/ranking/stats", params=params)
    assert empty.json() == {"ranking": None, "indicators": None}

    await store.upsert(make_record("a", 100, 10, 50))
    await store.upsert(make_record("b", 200, 20, 80))
    ranking = (await client.get("/v1/ranking/stats", params=params)).json()["ranking"]
    assert ranking["overallScorePercentile"] == 50
    assert ranking["avgOverallScore"] == 65


@pytest.mark.asyncio
async def test_admin_profiles_upsert_and_list(client: AsyncClient, patched_routes):
    created = await client.post(
        "/v1/admin/profiles",
        json={"handle": "dr.ana", "followers": 10, "posts": 2, "overallScore": 140, "criteria": {"frequency": 30}},
    )
    assert created.status_code == 200
    assert created.json()["overallScore"] == 100

    await client.post(
        "/v1/admin/profiles",
        json={"handle": "dr.bruno", "followers": 5, "posts": 1, "overallScore": 20},
    )

    listing = (await client.get("/v1/admin/profiles")).json()
    assert listing["totalProfiles"] == 2
    assert [p["handle"] for p in listing["profiles"]] == ["dr.ana", "dr.bruno"]
