"""Cross-entry theme statistics and provider-written insight narratives."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Sequence

from pydantic import TypeAdapter, ValidationError

from app.schemas import EntryWithAnalysis, Insight
from app.services.analysis import parse_json_response
from app.services.llm_errors import ProviderError, ProviderResponseError
from app.services.llm_provider import TextGenerationProvider, get_text_provider
from app.services.prompts import INSIGHT_SYSTEM_PROMPT, build_insight_prompt

logger = logging.getLogger(__name__)

WORK_LIFE_THEMES = frozenset({"Work", "Balance", "Time Management"})

_insight_list = TypeAdapter(list[Insight])


def theme_counts(entries: Sequence[EntryWithAnalysis]) -> dict[str, int]:
    """Occurrences of each theme label, in first-seen order. Labels match exactly."""
    counts: dict[str, int] = {}
    for entry in entries:
        for theme in entry.themes:
            counts[theme.theme] = counts.get(theme.theme, 0) + 1
    return counts


def format_theme_summary(counts: dict[str, int]) -> str:
    return ", ".join(f"{theme} ({count})" for theme, count in counts.items())


def fallback_insights(entries: Sequence[EntryWithAnalysis]) -> list[Insight]:
    work_entries = sum(
        1 for entry in entries
        if any(theme.theme in WORK_LIFE_THEMES for theme in entry.themes)
    )
    return [
        Insight(
            title="Work-Life Balance",
            description=(
                "Your work-related entries show increasing concern about balance. "
                "Consider setting boundaries."
            ),
            suggested_color="blue",
            derived_entry_count=work_entries,
        )
    ]


def validate_insights(payload: Any) -> list[Insight]:
    if isinstance(payload, dict) and isinstance(payload.get("insights"), list):
        payload = payload["insights"]
    try:
        insights = _insight_list.validate_python(payload, strict=True)
    except ValidationError as exc:
        raise ProviderResponseError(f"insights do not match schema: {exc.error_count()} errors") from exc
    if not insights:
        raise ProviderResponseError("provider returned no insights")
    return insights


class InsightAggregator:
    def __init__(self, provider: TextGenerationProvider | None) -> None:
        self.provider = provider

    async def derive_insights(self, entries: Sequence[EntryWithAnalysis]) -> list[Insight]:
        """Never raises and never returns an empty list."""
        if self.provider is None:
            return fallback_insights(entries)

        summary = format_theme_summary(theme_counts(entries))
        try:
            raw = await self.provider.complete(build_insight_prompt(summary), system=INSIGHT_SYSTEM_PROMPT)
            return validate_insights(parse_json_response(raw))
        except ProviderError as exc:
            logger.warning("Insight generation via %s failed (%s), using fallback", self.provider.name, exc)
            return fallback_insights(entries)
        except Exception:
            logger.exception("Unexpected error generating insights via %s, using fallback", self.provider.name)
            return fallback_insights(entries)


@lru_cache
def get_insight_aggregator() -> InsightAggregator:
    return InsightAggregator(get_text_provider())
