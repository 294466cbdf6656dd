"""Profile scorer backed by an OpenAI-compatible chat completions API.

The scorer is opaque to the rest of the service: it receives a handle, the
public counts and the market-context text, and returns an overall score plus
named criteria. Only the JSON contract is enforced here.

Disabled when OPENAI_API_KEY is empty.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

from profile_score.schemas.profile import CRITERIA_KEYS
from profile_score.settings import Settings, get_settings

logger = logging.getLogger("uvicorn.error")


class ScoringError(RuntimeError):
    pass


class ScorerDisabledError(ScoringError):
    pass


@dataclass(frozen=True)
class ProfileScores:
    overall_score: float
    criteria: dict[str, float] = field(default_factory=dict)


class ProfileScorer(Protocol):
    async def score(
        self,
        *,
        handle: str,
        followers: int,
        posts: int,
        market_context: str,
    ) -> ProfileScores: ...


class LlmScoreResponse(BaseModel):
    overall_score: float = Field(..., alias="overallScore")
    criteria: dict[str, float] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


def _extract_first_json_object(text: str) -> dict[str, Any] | None:
    """Best-effort extraction of the first JSON object from a string."""
    text = text.replace("```json", "").replace("```", "").strip()
    if not text:
        return None
    if text.startswith("{") and text.endswith("}"):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass
    m = re.search(r"\{[\s\S]*\}", text)
    if not m:
        return None
    try:
        return json.loads(m.group(0))
    except json.JSONDecodeError:
        return None


def _parse_scores(payload: dict[str, Any]) -> ProfileScores:
    # The full report nests scores under "detailedMetrics"; accept both shapes.
    data = payload.get("detailedMetrics", payload)
    try:
        parsed = LlmScoreResponse.model_validate(data)
    except ValidationError as e:
        raise ScoringError(f"Scorer returned an invalid payload: {e.error_count()} errors") from e
    criteria = {k: float(v) for k, v in parsed.criteria.items() if k in CRITERIA_KEYS}
    return ProfileScores(overall_score=float(parsed.overall_score), criteria=criteria)


def _chat_content(data: Any) -> str:
    """Extract choices[0].message.content from a chat completions response."""
    if isinstance(data, dict) and isinstance(data.get("choices"), list):
        for choice in data["choices"]:
            if isinstance(choice, dict):
                msg = choice.get("message")
                if isinstance(msg, dict) and isinstance(msg.get("content"), str):
                    return msg["content"]
    return ""


class LlmProfileScorer:
    """Scores a profile with one chat completions call."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    async def score(
        self,
        *,
        handle: str,
        followers: int,
        posts: int,
        market_context: str,
    ) -> ProfileScores:
        settings = self._settings
        if not settings.scorer_enabled:
            raise ScorerDisabledError("OPENAI_API_KEY is not set")

        system_prompt = (
            "Você avalia perfis de Instagram de clínicas odontológicas e dentistas.\n"
            "Retorne APENAS JSON válido no formato:\n"
            '{ "overallScore": number, "criteria": { '
            + ", ".join(f'"{k}": number' for k in CRITERIA_KEYS)
            + " } }\n"
            "Todas as notas vão de 0 a 100."
        )
        user_prompt = (
            f"Perfil: @{handle}\n"
            f"Seguidores: {followers}\n"
            f"Posts: {posts}\n\n"
            f"CONTEXTO DE MERCADO (BASE LOCAL):\n{market_context}"
        )

        url = settings.openai_base_url.rstrip("/") + "/chat/completions"
        headers = {"Authorization": f"Bearer {settings.openai_api_key}", "Content-Type": "application/json"}
        body = {
            "model": settings.openai_model_score,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
        }

        try:
            async with httpx.AsyncClient(timeout=settings.scorer_timeout_seconds) as client:
                r = await client.post(url, headers=headers, json=body)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[scorer] HTTP {e.response.status_code} model={settings.openai_model_score} "
                f"response={e.response.text[:500]}"
            )
            raise ScoringError(f"Scorer HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[scorer] request failed for @{handle}: {e}")
            raise ScoringError("Scorer request failed") from e

        payload = _extract_first_json_object(_chat_content(data))
        if payload is None:
            raise ScoringError("Scorer returned no JSON object")
        return _parse_scores(payload)


def get_scorer() -> ProfileScorer:
    return LlmProfileScorer()
