"""Hot, warm and cold memory tiers over project notes."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from ..storage.base import RecordNotFoundError, StoragePort
from ..storage.chroma import ChromaMemoryIndex
from ..storage.models import MemoryNote, utcnow

logger = logging.getLogger(__name__)

WARM_WINDOW = timedelta(days=60)


class MemoryTiers:
    """Classify and retrieve project memory at query time.

    * hot: the most recent notes, always part of the intent prompt
    * warm: notes relevant to a query, by vector similarity when an index is
      configured and by keyword otherwise
    * cold: a full session record, loaded only on request
    """

    def __init__(
        self,
        storage: StoragePort,
        index: ChromaMemoryIndex | None = None,
        *,
        hot_size: int = 5,
        warm_size: int = 3,
    ) -> None:
        self._storage = storage
        self._index = index
        self._hot_size = hot_size
        self._warm_size = warm_size

    @property
    def vector_enabled(self) -> bool:
        return self._index is not None

    def hot(self, project_id: str) -> list[MemoryNote]:
        return self._storage.list_project_memory_notes(project_id, limit=self._hot_size)

    def warm(self, project_id: str, query: str, *, limit: int | None = None) -> list[MemoryNote]:
        limit = limit or self._warm_size
        if self._index is not None and query.strip():
            try:
                scored = self._index.query_notes(project_id, query, limit=limit)
            except Exception as exc:
                logger.warning(
                    "Vector memory query failed, using keyword search",
                    extra={"project_id": project_id, "error": str(exc)},
                )
            else:
                notes = [
                    note
                    for note in (self._storage.get_memory_note(item.id) for item in scored)
                    if note is not None
                ]
                if notes:
                    return notes[:limit]
        return self._storage.search_memory_notes(project_id, query)[:limit]

    def cold(self, project_id: str, session_id: str | None) -> dict[str, Any] | None:
        if not session_id:
            return None
        session = self._storage.get_session(session_id)
        if session is None or session.project_id != project_id:
            raise RecordNotFoundError("Session", session_id)
        return {
            "session": session.to_json(),
            "changes": [change.to_json() for change in self._storage.list_session_file_changes(session_id)],
        }

    def search(
        self,
        project_id: str,
        query: str,
        *,
        include_hot: bool = True,
        include_warm: bool = True,
        max_results: int = 10,
    ) -> list[MemoryNote]:
        results: list[MemoryNote] = []
        if include_hot:
            results.extend(self.hot(project_id))
        if include_warm:
            results.extend(self.warm(project_id, query))

        seen: set[str] = set()
        unique: list[MemoryNote] = []
        for note in results:
            if note.id not in seen:
                seen.add(note.id)
                unique.append(note)
        return unique[:max_results]

    def add_note(
        self,
        project_id: str,
        content: str,
        tags: Iterable[str] = (),
        links: Iterable[str] = (),
    ) -> MemoryNote:
        if not content or not content.strip():
            raise ValueError("Memory note content must not be empty")
        note = self._storage.create_memory_note(
            MemoryNote(project_id=project_id, content=content, tags=list(tags), links=list(links))
        )
        if self._index is not None:
            try:
                self._index.add_note(note)
            except Exception as exc:
                logger.warning(
                    "Failed to index memory note",
                    extra={"note_id": note.id, "error": str(exc)},
                )
        return note

    def add_session_memory(self, session_id: str, summary: str, tags: Iterable[str] = ()) -> MemoryNote:
        session = self._storage.get_session(session_id)
        if session is None:
            raise RecordNotFoundError("Session", session_id)
        return self.add_note(
            session.project_id,
            f"Session {session_id}: {summary}",
            tags=["session", *tags],
            links=[session_id],
        )

    def distill_daily_sessions(self, project_id: str, day: date) -> MemoryNote | None:
        """Record one summary note for the sessions created on ``day`` (UTC)."""

        sessions = [
            session
            for session in self._storage.list_project_sessions(project_id)
            if session.created_at.date() == day
        ]
        if not sessions:
            return None

        files = [path for session in sessions if session.scope for path in session.scope.files]
        stamp = day.isoformat()
        summary = "\n".join(
            [
                f"Daily summary for {stamp}:",
                f"{len(sessions)} sessions completed.",
                "Goals: " + "; ".join(session.prompt[:50] for session in sessions),
                "Files modified: " + ", ".join(files),
            ]
        )
        return self.add_note(
            project_id,
            summary,
            tags=["daily-summary", stamp],
            links=[session.id for session in sessions],
        )

    def stats(self, project_id: str, *, now: datetime | None = None) -> dict[str, Any]:
        notes = self._storage.list_project_memory_notes(project_id)
        now = now or utcnow()
        hot = notes[: self._hot_size]
        rest = notes[self._hot_size :]
        warm = [note for note in rest if now - note.created_at <= WARM_WINDOW]
        tag_counts = Counter(tag for note in notes for tag in note.tags)
        return {
            "total": len(notes),
            "hot": len(hot),
            "warm": len(warm),
            "cold": len(rest) - len(warm),
            "topTags": [{"tag": tag, "count": count} for tag, count in tag_counts.most_common(10)],
            "vectorEnabled": self.vector_enabled,
        }


__all__ = ["MemoryTiers", "WARM_WINDOW"]
