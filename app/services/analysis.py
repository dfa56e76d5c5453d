"""
Entry analysis: ask the configured provider for emotions and themes, validate
the answer, and fall back to keyword scoring whenever that is not possible.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any

import json_repair
from pydantic import ValidationError

from app.config import get_settings
from app.schemas import Analysis, EmotionScore
from app.services.keyword_analyzer import TOP_N, KeywordAnalyzer
from app.services.llm_errors import ProviderError, ProviderResponseError, ProviderUnavailable
from app.services.llm_provider import TextGenerationProvider, get_text_provider
from app.services.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt

logger = logging.getLogger(__name__)


def strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_json_response(raw: str) -> Any:
    """Decode model output, repairing near-JSON (trailing commas, stray prose)."""
    text = strip_code_fence(raw or "")
    if not text:
        raise ProviderResponseError("empty response")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        repaired = json_repair.loads(text)
        if repaired in ("", None, [], {}):
            raise ProviderResponseError("response is not JSON")
        logger.debug("Repaired malformed JSON from provider")
        return repaired


def validate_analysis(payload: Any) -> Analysis:
    try:
        analysis = Analysis.model_validate(payload, strict=True)
    except ValidationError as exc:
        raise ProviderResponseError(f"analysis does not match schema: {exc.error_count()} errors") from exc

    emotions = [
        EmotionScore(name=e.name.strip(), score=round(e.score))
        for e in analysis.emotions if e.name.strip()
    ][:TOP_N]
    themes = [t.strip() for t in analysis.themes if t.strip()][:TOP_N]
    if not emotions or not themes:
        raise ProviderResponseError("analysis has blank emotion or theme labels")
    return Analysis(emotions=emotions, themes=themes)


class EntryAnalyzer:
    """``analyze(text) -> Analysis``; never returns empty emotions or themes."""

    def __init__(
        self,
        provider: TextGenerationProvider | None,
        fallback: KeywordAnalyzer | None = None,
        min_content_length: int = 50,
        fallback_on_error: bool = True,
    ) -> None:
        self.provider = provider
        self.fallback = fallback or KeywordAnalyzer()
        self.min_content_length = min_content_length
        self.fallback_on_error = fallback_on_error

    async def analyze(self, text: str) -> Analysis:
        if self.provider is None:
            if not self.fallback_on_error:
                raise ProviderUnavailable("no text-generation provider configured")
            return self.fallback.analyze(text)
        if len(text.strip()) < self.min_content_length:
            return self.fallback.analyze(text)

        try:
            raw = await self.provider.complete(
                build_analysis_prompt(text),
                system=ANALYSIS_SYSTEM_PROMPT,
                json_object=True,
            )
            return validate_analysis(parse_json_response(raw))
        except ProviderError as exc:
            if not self.fallback_on_error:
                raise
            logger.warning("Analysis via %s failed (%s), using keyword fallback", self.provider.name, exc)
            return self.fallback.analyze(text)
        except Exception:
            if not self.fallback_on_error:
                raise
            logger.exception("Unexpected error analyzing via %s, using keyword fallback", self.provider.name)
            return self.fallback.analyze(text)


@lru_cache
def get_analyzer() -> EntryAnalyzer:
    settings = get_settings()
    return EntryAnalyzer(
        provider=get_text_provider(),
        min_content_length=settings.analysis_min_content_length,
    )
