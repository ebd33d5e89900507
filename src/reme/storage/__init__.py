"""Storage abstractions for Reme."""

from .base import RecordNotFoundError, StoragePort
from .chroma import ChromaMemoryIndex, ChromaUnavailableError, ScoredNote
from .memory import InMemoryStorage
from .models import (
    Budget,
    FileChange,
    FileEntry,
    GitState,
    Hunk,
    MemoryNote,
    Message,
    Project,
    ProjectSettings,
    Scope,
    Session,
)

__all__ = [
    "Budget",
    "ChromaMemoryIndex",
    "ChromaUnavailableError",
    "FileChange",
    "FileEntry",
    "GitState",
    "Hunk",
    "InMemoryStorage",
    "MemoryNote",
    "Message",
    "Project",
    "ProjectSettings",
    "RecordNotFoundError",
    "Scope",
    "ScoredNote",
    "Session",
    "StoragePort",
]
