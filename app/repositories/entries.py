"""Entry store: entries plus their emotion and theme rows.

Two interchangeable backends implement :class:`EntryRepository`: the
SQLAlchemy one used by the API and a dict-backed one for tests and demos.
"""
from __future__ import annotations

import abc
import itertools
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Emotion, Entry, Theme

ENTRY_FIELDS = {"title", "content", "is_starred", "clarity_rating"}


@dataclass
class EntryRecord:
    id: int
    user_id: int
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    is_starred: bool | None = False
    clarity_rating: int | None = 0


@dataclass
class EmotionRecord:
    id: int
    entry_id: int
    emotion: str
    score: int


@dataclass
class ThemeRecord:
    id: int
    entry_id: int
    theme: str


@dataclass
class NewEmotion:
    entry_id: int
    emotion: str
    score: int


@dataclass
class NewTheme:
    entry_id: int
    theme: str


class EntryRepository(abc.ABC):
    """CRUD for entries and bulk operations on their tags."""

    @abc.abstractmethod
    async def create_entry(
        self,
        user_id: int,
        title: str,
        content: str,
        is_starred: bool | None = None,
        clarity_rating: int | None = None,
    ) -> EntryRecord: ...

    @abc.abstractmethod
    async def get_entry(self, entry_id: int) -> EntryRecord | None: ...

    @abc.abstractmethod
    async def list_entries(self, user_id: int, starred_only: bool = False) -> list[EntryRecord]:
        """Entries of one user, newest first."""

    @abc.abstractmethod
    async def update_entry(self, entry_id: int, **fields: Any) -> EntryRecord | None: ...

    @abc.abstractmethod
    async def delete_entry(self, entry_id: int) -> bool: ...

    @abc.abstractmethod
    async def add_emotions(self, emotions: Iterable[NewEmotion]) -> list[EmotionRecord]: ...

    @abc.abstractmethod
    async def get_emotions(self, entry_id: int) -> list[EmotionRecord]: ...

    @abc.abstractmethod
    async def delete_emotions(self, entry_id: int) -> None: ...

    @abc.abstractmethod
    async def add_themes(self, themes: Iterable[NewTheme]) -> list[ThemeRecord]: ...

    @abc.abstractmethod
    async def get_themes(self, entry_id: int) -> list[ThemeRecord]: ...

    @abc.abstractmethod
    async def delete_themes(self, entry_id: int) -> None: ...


def _check_fields(fields: dict[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - ENTRY_FIELDS
    if unknown:
        raise ValueError(f"Unknown entry fields: {', '.join(sorted(unknown))}")
    return fields


def _entry_record(row: Entry) -> EntryRecord:
    return EntryRecord(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        content=row.content,
        created_at=row.created_at,
        updated_at=row.updated_at,
        is_starred=row.is_starred,
        clarity_rating=row.clarity_rating,
    )


class SQLAlchemyEntryRepository(EntryRepository):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_entry(self, user_id, title, content, is_starred=None, clarity_rating=None):
        entry = Entry(
            user_id=user_id,
            title=title,
            content=content,
            is_starred=False if is_starred is None else is_starred,
            clarity_rating=0 if clarity_rating is None else clarity_rating,
        )
        self.db.add(entry)
        await self.db.flush()
        await self.db.refresh(entry)
        return _entry_record(entry)

    async def get_entry(self, entry_id):
        entry = await self.db.get(Entry, entry_id)
        return _entry_record(entry) if entry else None

    async def list_entries(self, user_id, starred_only=False):
        query = select(Entry).where(Entry.user_id == user_id)
        if starred_only:
            query = query.where(Entry.is_starred.is_(True))
        query = query.order_by(Entry.created_at.desc(), Entry.id.desc())
        result = await self.db.execute(query)
        return [_entry_record(row) for row in result.scalars().all()]

    async def update_entry(self, entry_id, **fields):
        values = _check_fields(fields)
        values["updated_at"] = datetime.utcnow()
        await self.db.execute(update(Entry).where(Entry.id == entry_id).values(**values))
        entry = await self.db.get(Entry, entry_id, populate_existing=True)
        return _entry_record(entry) if entry else None

    async def delete_entry(self, entry_id):
        await self.delete_emotions(entry_id)
        await self.delete_themes(entry_id)
        result = await self.db.execute(delete(Entry).where(Entry.id == entry_id))
        return result.rowcount > 0

    async def add_emotions(self, emotions):
        rows = [Emotion(entry_id=e.entry_id, emotion=e.emotion, score=e.score) for e in emotions]
        if not rows:
            return []
        self.db.add_all(rows)
        await self.db.flush()
        return [EmotionRecord(id=r.id, entry_id=r.entry_id, emotion=r.emotion, score=r.score) for r in rows]

    async def get_emotions(self, entry_id):
        result = await self.db.execute(
            select(Emotion).where(Emotion.entry_id == entry_id).order_by(Emotion.id)
        )
        return [
            EmotionRecord(id=r.id, entry_id=r.entry_id, emotion=r.emotion, score=r.score)
            for r in result.scalars().all()
        ]

    async def delete_emotions(self, entry_id):
        await self.db.execute(delete(Emotion).where(Emotion.entry_id == entry_id))

    async def add_themes(self, themes):
        rows = [Theme(entry_id=t.entry_id, theme=t.theme) for t in themes]
        if not rows:
            return []
        self.db.add_all(rows)
        await self.db.flush()
        return [ThemeRecord(id=r.id, entry_id=r.entry_id, theme=r.theme) for r in rows]

    async def get_themes(self, entry_id):
        result = await self.db.execute(
            select(Theme).where(Theme.entry_id == entry_id).order_by(Theme.id)
        )
        return [ThemeRecord(id=r.id, entry_id=r.entry_id, theme=r.theme) for r in result.scalars().all()]

    async def delete_themes(self, entry_id):
        await self.db.execute(delete(Theme).where(Theme.entry_id == entry_id))


@dataclass
class InMemoryEntryRepository(EntryRepository):
    """Dict-backed store; run-to-completion on one event loop needs no locking."""

    entries: dict[int, EntryRecord] = field(default_factory=dict)
    emotions: dict[int, EmotionRecord] = field(default_factory=dict)
    themes: dict[int, ThemeRecord] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._entry_ids = itertools.count(1)
        self._emotion_ids = itertools.count(1)
        self._theme_ids = itertools.count(1)

    async def create_entry(self, user_id, title, content, is_starred=None, clarity_rating=None):
        now = datetime.utcnow()
        entry = EntryRecord(
            id=next(self._entry_ids),
            user_id=user_id,
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
            is_starred=False if is_starred is None else is_starred,
            clarity_rating=0 if clarity_rating is None else clarity_rating,
        )
        self.entries[entry.id] = entry
        return replace(entry)

    async def get_entry(self, entry_id):
        entry = self.entries.get(entry_id)
        return replace(entry) if entry else None

    async def list_entries(self, user_id, starred_only=False):
        rows = [
            e for e in self.entries.values()
            if e.user_id == user_id and (not starred_only or e.is_starred)
        ]
        rows.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        return [replace(e) for e in rows]

    async def update_entry(self, entry_id, **fields):
        entry = self.entries.get(entry_id)
        if entry is None:
            return None
        updated = replace(entry, **_check_fields(fields), updated_at=datetime.utcnow())
        self.entries[entry_id] = updated
        return replace(updated)

    async def delete_entry(self, entry_id):
        await self.delete_emotions(entry_id)
        await self.delete_themes(entry_id)
        return self.entries.pop(entry_id, None) is not None

    async def add_emotions(self, emotions):
        created = []
        for new in emotions:
            record = EmotionRecord(id=next(self._emotion_ids), entry_id=new.entry_id, emotion=new.emotion, score=new.score)
            self.emotions[record.id] = record
            created.append(replace(record))
        return created

    async def get_emotions(self, entry_id):
        return [replace(e) for e in self.emotions.values() if e.entry_id == entry_id]

    async def delete_emotions(self, entry_id):
        for emotion_id in [i for i, e in self.emotions.items() if e.entry_id == entry_id]:
            del self.emotions[emotion_id]

    async def add_themes(self, themes):
        created = []
        for new in themes:
            record = ThemeRecord(id=next(self._theme_ids), entry_id=new.entry_id, theme=new.theme)
            self.themes[record.id] = record
            created.append(replace(record))
        return created

    async def get_themes(self, entry_id):
        return [replace(t) for t in self.themes.values() if t.entry_id == entry_id]

    async def delete_themes(self, entry_id):
        for theme_id in [i for i, t in self.themes.items() if t.entry_id == entry_id]:
            del self.themes[theme_id]
