from __future__ import annotations

from pathlib import Path

import pytest

from reme.storage import ChromaMemoryIndex, ChromaUnavailableError, MemoryNote

from conftest import StubClient


def test_add_and_query_notes_scoped_to_project(tmp_path: Path) -> None:
    client = StubClient()
    index = ChromaMemoryIndex(tmp_path, client_factory=lambda: client)

    index.add_note(MemoryNote(id="n1", project_id="p1", content="Login form uses JWT", tags=["auth", "ui"]))
    index.add_note(MemoryNote(id="n2", project_id="p2", content="Login page for other project"))

    notes = index.query_notes("p1", "login", limit=5)

    assert [note.id for note in notes] == ["n1"]
    assert notes[0].tags == ["auth", "ui"]
    assert notes[0].relevance == pytest.approx(0.9)
    assert notes[0].created_at is not None
    collection = client.collections["memory_notes"]
    assert collection.queries[0]["where"] == {"project_id": "p1"}
    assert collection.queries[0]["n_results"] == 5
    assert index.count() == 2


def test_ping_reports_unavailable_client(tmp_path: Path) -> None:
    def broken_factory():
        raise OSError("disk full")

    index = ChromaMemoryIndex(tmp_path, client_factory=broken_factory)

    with pytest.raises(ChromaUnavailableError, match="disk full"):
        index.ping()


def test_collection_name_is_configurable(tmp_path: Path) -> None:
    client = StubClient()
    index = ChromaMemoryIndex(tmp_path, collection_name="custom", client_factory=lambda: client)

    assert index.ping() is True
    assert "custom" in client.collections
