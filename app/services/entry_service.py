"""Read model for entries joined with their analysis, and the analysis write path."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from app.repositories.entries import EntryRecord, EntryRepository, NewEmotion, NewTheme
from app.schemas import EmotionResponse, EntryWithAnalysis, Insight, ThemeResponse
from app.services.analysis import EntryAnalyzer
from app.services.insights import InsightAggregator

logger = logging.getLogger(__name__)


class EntryNotFound(Exception):
    pass


class EntryAccessDenied(Exception):
    pass


@dataclass
class EntryListing:
    results: list[EntryWithAnalysis]
    insights: list[Insight]


class EntryService:
    def __init__(
        self,
        repository: EntryRepository,
        analyzer: EntryAnalyzer,
        insight_aggregator: InsightAggregator,
    ) -> None:
        self.repository = repository
        self.analyzer = analyzer
        self.insight_aggregator = insight_aggregator

    # ---- reads ----

    async def _compose(self, entry: EntryRecord) -> EntryWithAnalysis:
        emotions = await self.repository.get_emotions(entry.id)
        themes = await self.repository.get_themes(entry.id)
        return EntryWithAnalysis(
            id=entry.id,
            user_id=entry.user_id,
            title=entry.title,
            content=entry.content,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            is_starred=bool(entry.is_starred),
            clarity_rating=entry.clarity_rating or 0,
            emotions=[EmotionResponse.model_validate(e) for e in emotions],
            themes=[ThemeResponse.model_validate(t) for t in themes],
        )

    async def get_entry_with_analysis(self, entry_id: int) -> EntryWithAnalysis | None:
        entry = await self.repository.get_entry(entry_id)
        if entry is None:
            return None
        return await self._compose(entry)

    async def _compose_all(self, user_id: int, starred_only: bool = False) -> list[EntryWithAnalysis]:
        entries = await self.repository.list_entries(user_id, starred_only=starred_only)
        return [await self._compose(entry) for entry in entries]

    async def get_entries_with_analysis_by_user(self, user_id: int) -> EntryListing:
        results = await self._compose_all(user_id)
        insights = await self.insight_aggregator.derive_insights(results)
        return EntryListing(results=results, insights=insights)

    async def get_starred_entries_with_analysis(self, user_id: int) -> list[EntryWithAnalysis]:
        return await self._compose_all(user_id, starred_only=True)

    async def get_owned_entry(self, entry_id: int, user_id: int) -> EntryRecord:
        """Load an entry for ``user_id``; another user's entry is denied, not hidden."""
        entry = await self.repository.get_entry(entry_id)
        if entry is None:
            raise EntryNotFound(entry_id)
        if entry.user_id != user_id:
            logger.warning("User %s denied access to entry %s", user_id, entry_id)
            raise EntryAccessDenied(entry_id)
        return entry

    # ---- writes ----

    async def _replace_analysis(self, entry_id: int, content: str) -> None:
        # Not transactional: a failure between delete and insert leaves the entry untagged
        await self.repository.delete_emotions(entry_id)
        await self.repository.delete_themes(entry_id)

        analysis = await self.analyzer.analyze(content)

        await self.repository.add_emotions(
            NewEmotion(entry_id=entry_id, emotion=e.name, score=int(round(e.score)))
            for e in analysis.emotions
        )
        await self.repository.add_themes(NewTheme(entry_id=entry_id, theme=t) for t in analysis.themes)

    async def create_entry(self, user_id: int, title: str, content: str) -> EntryWithAnalysis:
        entry = await self.repository.create_entry(user_id=user_id, title=title, content=content)
        await self._replace_analysis(entry.id, content)
        logger.info("Created entry %s for user %s", entry.id, user_id)
        return await self._compose(entry)

    async def update_entry(self, entry: EntryRecord, changes: dict[str, Any]) -> EntryWithAnalysis:
        """Apply a partial update; changed content replaces all tags."""
        content = changes.get("content")
        if content is not None and content != entry.content:
            await self._replace_analysis(entry.id, content)
        if changes:
            entry = await self.repository.update_entry(entry.id, **changes)
        return await self._compose(entry)

    async def toggle_star(self, entry: EntryRecord) -> EntryWithAnalysis:
        updated = await self.repository.update_entry(entry.id, is_starred=not entry.is_starred)
        return await self._compose(updated)

    async def set_clarity(self, entry: EntryRecord, rating: int) -> EntryWithAnalysis:
        updated = await self.repository.update_entry(entry.id, clarity_rating=rating)
        return await self._compose(updated)

    async def delete_entry(self, entry: EntryRecord) -> None:
        await self.repository.delete_entry(entry.id)
        logger.info("Deleted entry %s", entry.id)
