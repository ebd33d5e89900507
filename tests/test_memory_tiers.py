from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from reme.agent import MemoryTiers
from reme.storage import ChromaMemoryIndex, InMemoryStorage, MemoryNote, RecordNotFoundError, Session

from conftest import StubClient

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def add_note(storage: InMemoryStorage, project_id: str, content: str, *, days_ago: int = 0, tags=()) -> MemoryNote:
    return storage.create_memory_note(
        MemoryNote(
            project_id=project_id,
            content=content,
            tags=list(tags),
            created_at=NOW - timedelta(days=days_ago),
        )
    )


def test_hot_tier_returns_most_recent_notes(storage: InMemoryStorage, project) -> None:
    for day in range(7):
        add_note(storage, project.id, f"note {day}", days_ago=day)

    hot = MemoryTiers(storage, hot_size=3).hot(project.id)

    assert [note.content for note in hot] == ["note 0", "note 1", "note 2"]


def test_warm_tier_uses_keyword_search_without_index(storage: InMemoryStorage, project) -> None:
    add_note(storage, project.id, "Button colors are defined in theme.ts", tags=["ui"])
    add_note(storage, project.id, "API uses bearer tokens", tags=["auth"])

    warm = MemoryTiers(storage).warm(project.id, "theme")

    assert [note.content for note in warm] == ["Button colors are defined in theme.ts"]


def test_warm_tier_prefers_vector_index(storage: InMemoryStorage, project, tmp_path: Path) -> None:
    index = ChromaMemoryIndex(tmp_path, client_factory=StubClient)
    tiers = MemoryTiers(storage, index, warm_size=1)
    tiers.add_note(project.id, "Router lives in src/router.ts", tags=["routing"])
    tiers.add_note(project.id, "Database migrations run on boot", tags=["db"])

    warm = tiers.warm(project.id, "database boot")

    assert [note.content for note in warm] == ["Database migrations run on boot"]
    assert tiers.vector_enabled


def test_warm_tier_falls_back_when_index_fails(storage: InMemoryStorage, project, caplog) -> None:
    class FailingIndex:
        def query_notes(self, project_id, query, *, limit=3):
            raise RuntimeError("chroma offline")

    add_note(storage, project.id, "Deploy with make release")
    tiers = MemoryTiers(storage, FailingIndex())

    warm = tiers.warm(project.id, "release")

    assert [note.content for note in warm] == ["Deploy with make release"]
    assert "Vector memory query failed" in caplog.text


def test_search_merges_tiers_without_duplicates(storage: InMemoryStorage, project) -> None:
    add_note(storage, project.id, "shared note about css")
    add_note(storage, project.id, "older css note", days_ago=3)

    results = MemoryTiers(storage, hot_size=1).search(project.id, "css")

    assert [note.content for note in results] == ["shared note about css", "older css note"]


def test_cold_tier_loads_session_record(storage: InMemoryStorage, project) -> None:
    session = storage.create_session(Session(project_id=project.id, prompt="fix footer"))
    tiers = MemoryTiers(storage)

    record = tiers.cold(project.id, session.id)

    assert record["session"]["prompt"] == "fix footer"
    assert record["changes"] == []
    assert tiers.cold(project.id, None) is None
    with pytest.raises(RecordNotFoundError):
        tiers.cold("another-project", session.id)


def test_add_note_rejects_empty_content(storage: InMemoryStorage, project) -> None:
    with pytest.raises(ValueError):
        MemoryTiers(storage).add_note(project.id, "   ")


def test_session_memory_links_back_to_session(storage: InMemoryStorage, project) -> None:
    session = storage.create_session(Session(project_id=project.id, prompt="rename"))

    note = MemoryTiers(storage).add_session_memory(session.id, "Renamed helper", tags=["refactor"])

    assert note.content == f"Session {session.id}: Renamed helper"
    assert note.tags == ["session", "refactor"]
    assert note.links == [session.id]


def test_distill_daily_sessions(storage: InMemoryStorage, project) -> None:
    day = date(2025, 3, 1)
    storage.create_session(Session(project_id=project.id, prompt="Add login button", created_at=NOW))
    storage.create_session(
        Session(project_id=project.id, prompt="Previous day work", created_at=NOW - timedelta(days=1))
    )
    tiers = MemoryTiers(storage)

    note = tiers.distill_daily_sessions(project.id, day)

    assert note is not None
    assert note.tags == ["daily-summary", "2025-03-01"]
    assert "1 sessions completed." in note.content
    assert "Add login button" in note.content
    assert "Previous day work" not in note.content
    assert tiers.distill_daily_sessions(project.id, date(2024, 1, 1)) is None


def test_stats_classify_tiers_and_count_tags(storage: InMemoryStorage, project) -> None:
    add_note(storage, project.id, "a", tags=["ui"])
    add_note(storage, project.id, "b", days_ago=10, tags=["ui", "api"])
    add_note(storage, project.id, "c", days_ago=90, tags=["api"])
    add_note(storage, project.id, "d", days_ago=120, tags=["ui"])

    stats = MemoryTiers(storage, hot_size=1).stats(project.id, now=NOW)

    assert stats["total"] == 4
    assert stats["hot"] == 1
    assert stats["warm"] == 1
    assert stats["cold"] == 2
    assert stats["topTags"][0] == {"tag": "ui", "count": 3}
    assert stats["vectorEnabled"] is False
