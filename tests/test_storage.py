from __future__ import annotations

from datetime import timedelta

import pytest

from reme.storage import (
    FileChange,
    InMemoryStorage,
    MemoryNote,
    ProjectSettings,
    RecordNotFoundError,
    Scope,
    Session,
)
from reme.storage.models import utcnow


def test_project_round_trip_uses_camel_case_on_the_wire(storage: InMemoryStorage) -> None:
    project = storage.create_project(
        name="  Site  ",
        repo_url="https://example.com/site.git",
        settings=ProjectSettings(max_files=3, forbidden_globs="secrets/"),
    )

    payload = project.to_json()

    assert payload["name"] == "Site"
    assert payload["repoUrl"] == "https://example.com/site.git"
    assert payload["defaultBranch"] == "main"
    assert payload["settings"]["maxFiles"] == 3
    assert payload["settings"]["forbiddenGlobs"] == ["secrets/"]
    assert storage.get_project(project.id) == project


def test_update_returns_new_validated_copy(storage: InMemoryStorage, project) -> None:
    updated = storage.update_project(project.id, settings=ProjectSettings(strict_mode=True))

    assert updated.settings.strict_mode is True
    assert project.settings.strict_mode is False
    assert storage.get_project(project.id).settings.strict_mode is True


def test_update_of_missing_record_raises(storage: InMemoryStorage) -> None:
    with pytest.raises(RecordNotFoundError, match="Session 'nope' not found"):
        storage.update_session("nope", status="failed")


def test_sessions_are_listed_per_project(storage: InMemoryStorage, project) -> None:
    other = storage.create_project(name="Other")
    storage.create_session(Session(project_id=project.id, prompt="one"))
    storage.create_session(Session(project_id=other.id, prompt="two"))

    prompts = [session.prompt for session in storage.list_project_sessions(project.id)]

    assert prompts == ["one"]


def test_scope_files_are_deduplicated() -> None:
    scope = Scope(goal="g", files=["a.py", " a.py", "", "b.py"])

    assert scope.files == ["a.py", "b.py"]
    assert scope.budget.max_tokens == 1000


def test_memory_notes_sorted_newest_first_and_searchable(storage: InMemoryStorage, project) -> None:
    now = utcnow()
    storage.create_memory_note(
        MemoryNote(project_id=project.id, content="Old auth note", tags=["auth"], created_at=now - timedelta(days=2))
    )
    storage.create_memory_note(
        MemoryNote(project_id=project.id, content="New css note", tags=["Styles"], created_at=now)
    )

    newest = storage.list_project_memory_notes(project.id, limit=1)
    assert [note.content for note in newest] == ["New css note"]

    assert [note.content for note in storage.search_memory_notes(project.id, "AUTH")] == ["Old auth note"]
    assert [note.content for note in storage.search_memory_notes(project.id, "styles")] == ["New css note"]
    assert len(storage.search_memory_notes(project.id, "")) == 2


def test_file_changes_track_session(storage: InMemoryStorage) -> None:
    change = storage.create_file_change(FileChange(session_id="s1", file_path="a.py", change_type="modify"))

    updated = storage.update_file_change(change.id, applied=True, pre_image="x", pre_image_captured=True)

    assert updated.applied and updated.pre_image == "x"
    assert storage.list_session_file_changes("s1") == [updated]
    assert storage.list_session_file_changes("s2") == []


def test_git_state_created_on_first_update(storage: InMemoryStorage) -> None:
    assert storage.get_git_state("p1") is None

    state = storage.update_git_state("p1", branch="feature", ahead=2)

    assert state.branch == "feature"
    assert state.ahead == 2
    assert storage.get_git_state("p1").behind == 0


def test_file_store_operations(storage: InMemoryStorage) -> None:
    storage.save_file("p1", "src/b.py", "print('b')\n")
    storage.save_file("p1", "README.md", "# hi")

    assert storage.get_file("p1", "README.md") == "# hi"
    assert storage.get_file("p1", "missing") is None
    assert [(entry.path, entry.size) for entry in storage.list_files("p1")] == [
        ("README.md", 4),
        ("src/b.py", 11),
    ]
    assert storage.delete_file("p1", "README.md") is True
    assert storage.delete_file("p1", "README.md") is False
