"""Chroma-backed similarity index for project memory notes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from .models import MemoryNote


class ChromaUnavailableError(RuntimeError):
    """Raised when the Chroma client cannot be constructed."""


class CollectionProtocol(Protocol):
    """Protocol for the minimal Chroma collection API used by Reme."""

    def add(
        self,
        *,
        documents: Iterable[str],
        metadatas: Iterable[dict[str, Any]],
        ids: Iterable[str],
    ) -> None:
        ...

    def query(
        self,
        *,
        query_texts: list[str],
        n_results: int,
        where: dict[str, Any] | None = None,
    ) -> dict[str, list[list[Any]]]:
        ...

    def count(self) -> int:
        ...


class ClientProtocol(Protocol):
    """Protocol for the minimal Chroma client API used by Reme."""

    def get_or_create_collection(self, name: str) -> CollectionProtocol:
        ...


@dataclass(slots=True)
class ScoredNote:
    """A note id returned by a similarity query, with its relevance."""

    id: str
    project_id: str
    document: str
    tags: list[str]
    relevance: float
    created_at: datetime | None


class ChromaMemoryIndex:
    """Embed memory notes in a Chroma collection and query them by similarity."""

    def __init__(
        self,
        path: Path,
        *,
        collection_name: str = "memory_notes",
        client_factory: Callable[[], ClientProtocol] | None = None,
    ) -> None:
        self._path = Path(path)
        self._collection_name = collection_name
        self._client_factory = client_factory or self._default_client_factory
        self._client: ClientProtocol | None = None
        self._collection: CollectionProtocol | None = None

    def _default_client_factory(self) -> ClientProtocol:
        try:
            import chromadb
        except ImportError as exc:  # pragma: no cover - depends on environment
            raise ChromaUnavailableError("chromadb package is not installed") from exc

        self._path.mkdir(parents=True, exist_ok=True)
        return chromadb.PersistentClient(path=str(self._path))

    def _ensure_collection(self) -> CollectionProtocol:
        if self._collection is None:
            try:
                client = self._client or self._client_factory()
            except ChromaUnavailableError:
                raise
            except Exception as exc:
                raise ChromaUnavailableError(f"Unable to open Chroma at {self._path}: {exc}") from exc
            self._client = client
            self._collection = client.get_or_create_collection(self._collection_name)
        return self._collection

    def ping(self) -> bool:
        """Verify that the underlying collection can be obtained."""

        self._ensure_collection()
        return True

    def count(self) -> int:
        return self._ensure_collection().count()

    def add_note(self, note: MemoryNote) -> None:
        collection = self._ensure_collection()
        collection.add(
            documents=[note.content],
            metadatas=[
                {
                    "project_id": note.project_id,
                    "tags": ",".join(note.tags),
                    "created_at": note.created_at.isoformat(),
                }
            ],
            ids=[note.id],
        )

    def query_notes(self, project_id: str, query: str, *, limit: int = 3) -> list[ScoredNote]:
        """Return up to ``limit`` notes of ``project_id`` ordered by similarity to ``query``."""

        collection = self._ensure_collection()
        result = collection.query(
            query_texts=[query],
            n_results=limit,
            where={"project_id": project_id},
        )

        # Chroma nests one result list per query text.
        ids = (result.get("ids") or [[]])[0]
        documents = (result.get("documents") or [[]])[0]
        metadatas = (result.get("metadatas") or [[]])[0]
        distances = (result.get("distances") or [[]])[0]

        notes: list[ScoredNote] = []
        for index, note_id in enumerate(ids):
            metadata = metadatas[index] if index < len(metadatas) and metadatas[index] else {}
            distance = distances[index] if index < len(distances) else None
            created_raw = metadata.get("created_at")
            tags_raw = metadata.get("tags") or ""
            notes.append(
                ScoredNote(
                    id=note_id,
                    project_id=metadata.get("project_id", project_id),
                    document=documents[index] if index < len(documents) else "",
                    tags=[tag for tag in tags_raw.split(",") if tag],
                    relevance=1.0 - distance if distance is not None else 0.0,
                    created_at=datetime.fromisoformat(created_raw)
                    if isinstance(created_raw, str)
                    else None,
                )
            )
        return notes


__all__ = [
    "ChromaMemoryIndex",
    "ChromaUnavailableError",
    "ClientProtocol",
    "CollectionProtocol",
    "ScoredNote",
]
