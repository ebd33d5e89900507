"""Dictionary-backed implementation of the storage port."""

from __future__ import annotations

from typing import Any

from .base import RecordNotFoundError
from .models import (
    FileChange,
    FileEntry,
    GitState,
    MemoryNote,
    Project,
    ProjectSettings,
    Session,
    utcnow,
)


class InMemoryStorage:
    """Keeps every entity in process memory, keyed by id.

    Updates replace the stored model with a validated copy, so readers holding
    an older instance never observe partial writes.
    """

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}
        self._sessions: dict[str, Session] = {}
        self._memory_notes: dict[str, MemoryNote] = {}
        self._file_changes: dict[str, FileChange] = {}
        self._git_states: dict[str, GitState] = {}
        self._files: dict[str, dict[str, str]] = {}

    @staticmethod
    def _apply(record, changes: dict[str, Any]):
        merged = {**record.model_dump(), **changes}
        return type(record).model_validate(merged)

    # Projects

    def get_project(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    def create_project(
        self,
        *,
        name: str,
        repo_url: str | None = None,
        default_branch: str = "main",
        settings: ProjectSettings | None = None,
    ) -> Project:
        project = Project(
            name=name,
            repo_url=repo_url,
            default_branch=default_branch or "main",
            settings=settings or ProjectSettings(),
        )
        self._projects[project.id] = project
        return project

    def update_project(self, project_id: str, **changes: Any) -> Project:
        existing = self._projects.get(project_id)
        if existing is None:
            raise RecordNotFoundError("Project", project_id)
        updated = self._apply(existing, changes)
        self._projects[project_id] = updated
        return updated

    def list_projects(self) -> list[Project]:
        return list(self._projects.values())

    # Sessions

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def create_session(self, session: Session) -> Session:
        self._sessions[session.id] = session
        return session

    def update_session(self, session_id: str, **changes: Any) -> Session:
        existing = self._sessions.get(session_id)
        if existing is None:
            raise RecordNotFoundError("Session", session_id)
        updated = self._apply(existing, changes)
        self._sessions[session_id] = updated
        return updated

    def list_project_sessions(self, project_id: str) -> list[Session]:
        return [session for session in self._sessions.values() if session.project_id == project_id]

    # Memory notes

    def get_memory_note(self, note_id: str) -> MemoryNote | None:
        return self._memory_notes.get(note_id)

    def create_memory_note(self, note: MemoryNote) -> MemoryNote:
        self._memory_notes[note.id] = note
        return note

    def search_memory_notes(self, project_id: str, query: str) -> list[MemoryNote]:
        notes = self.list_project_memory_notes(project_id)
        if not query:
            return notes
        needle = query.lower()
        return [
            note
            for note in notes
            if needle in note.content.lower() or any(needle in tag.lower() for tag in note.tags)
        ]

    def list_project_memory_notes(self, project_id: str, limit: int | None = None) -> list[MemoryNote]:
        notes = sorted(
            (note for note in self._memory_notes.values() if note.project_id == project_id),
            key=lambda note: note.created_at,
            reverse=True,
        )
        return notes[:limit] if limit else notes

    # File changes

    def get_file_change(self, change_id: str) -> FileChange | None:
        return self._file_changes.get(change_id)

    def create_file_change(self, change: FileChange) -> FileChange:
        self._file_changes[change.id] = change
        return change

    def update_file_change(self, change_id: str, **changes: Any) -> FileChange:
        existing = self._file_changes.get(change_id)
        if existing is None:
            raise RecordNotFoundError("FileChange", change_id)
        updated = self._apply(existing, changes)
        self._file_changes[change_id] = updated
        return updated

    def list_session_file_changes(self, session_id: str) -> list[FileChange]:
        return [change for change in self._file_changes.values() if change.session_id == session_id]

    # Git state

    def get_git_state(self, project_id: str) -> GitState | None:
        return self._git_states.get(project_id)

    def update_git_state(self, project_id: str, **changes: Any) -> GitState:
        existing = self._git_states.get(project_id) or GitState(project_id=project_id)
        updated = self._apply(existing, {**changes, "updated_at": utcnow()})
        self._git_states[project_id] = updated
        return updated

    # Raw files

    def save_file(self, project_id: str, path: str, content: str) -> None:
        self._files.setdefault(project_id, {})[path] = content

    def get_file(self, project_id: str, path: str) -> str | None:
        return self._files.get(project_id, {}).get(path)

    def delete_file(self, project_id: str, path: str) -> bool:
        return self._files.get(project_id, {}).pop(path, None) is not None

    def list_files(self, project_id: str) -> list[FileEntry]:
        return [
            FileEntry(path=path, size=len(content))
            for path, content in sorted(self._files.get(project_id, {}).items())
        ]


__all__ = ["InMemoryStorage"]
