"""Storage port used by the orchestrator, memory tiers and HTTP layer."""

from __future__ import annotations

from typing import Any, Protocol

from .models import (
    FileChange,
    FileEntry,
    GitState,
    MemoryNote,
    Project,
    ProjectSettings,
    Session,
)


class RecordNotFoundError(LookupError):
    """Raised when an entity id does not resolve to a stored record."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


class StoragePort(Protocol):
    """Key-based persistence for Reme entities and per-project file content."""

    # Projects
    def get_project(self, project_id: str) -> Project | None:
        ...

    def create_project(
        self,
        *,
        name: str,
        repo_url: str | None = None,
        default_branch: str = "main",
        settings: ProjectSettings | None = None,
    ) -> Project:
        ...

    def update_project(self, project_id: str, **changes: Any) -> Project:
        ...

    def list_projects(self) -> list[Project]:
        ...

    # Sessions
    def get_session(self, session_id: str) -> Session | None:
        ...

    def create_session(self, session: Session) -> Session:
        ...

    def update_session(self, session_id: str, **changes: Any) -> Session:
        ...

    def list_project_sessions(self, project_id: str) -> list[Session]:
        ...

    # Memory notes
    def get_memory_note(self, note_id: str) -> MemoryNote | None:
        ...

    def create_memory_note(self, note: MemoryNote) -> MemoryNote:
        ...

    def search_memory_notes(self, project_id: str, query: str) -> list[MemoryNote]:
        ...

    def list_project_memory_notes(self, project_id: str, limit: int | None = None) -> list[MemoryNote]:
        ...

    # File changes
    def get_file_change(self, change_id: str) -> FileChange | None:
        ...

    def create_file_change(self, change: FileChange) -> FileChange:
        ...

    def update_file_change(self, change_id: str, **changes: Any) -> FileChange:
        ...

    def list_session_file_changes(self, session_id: str) -> list[FileChange]:
        ...

    # Git state
    def get_git_state(self, project_id: str) -> GitState | None:
        ...

    def update_git_state(self, project_id: str, **changes: Any) -> GitState:
        ...

    # Raw files
    def save_file(self, project_id: str, path: str, content: str) -> None:
        ...

    def get_file(self, project_id: str, path: str) -> str | None:
        ...

    def delete_file(self, project_id: str, path: str) -> bool:
        ...

    def list_files(self, project_id: str) -> list[FileEntry]:
        ...


__all__ = ["RecordNotFoundError", "StoragePort"]
