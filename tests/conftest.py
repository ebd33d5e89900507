from __future__ import annotations

import json
from collections import defaultdict
from typing import Any

import pytest

from reme.config import RemeSettings
from reme.routing import Completion, ModelRouter
from reme.storage import InMemoryStorage, ProjectSettings


class ScriptedProvider:
    """Provider double that replays canned completions in order."""

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def complete(self, model, messages, *, max_tokens, temperature, json_mode=False):
        self.calls.append(
            {
                "model": model.key,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "json_mode": json_mode,
            }
        )
        if not self.responses:
            raise RuntimeError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        content = response if isinstance(response, str) else json.dumps(response)
        return Completion(content=content, tokens=10, cost=0.0, model=model.key, provider=model.provider)


class StubCollection:
    def __init__(self) -> None:
        self.records: dict[str, tuple[str, dict[str, Any]]] = {}
        self.queries: list[dict[str, Any]] = []

    def add(self, *, documents, metadatas, ids) -> None:
        for document, metadata, record_id in zip(documents, metadatas, ids):
            self.records[record_id] = (document, dict(metadata))

    def query(self, *, query_texts, n_results, where=None):
        self.queries.append({"query_texts": query_texts, "n_results": n_results, "where": where})
        needle = query_texts[0].lower()
        matches = [
            (record_id, document, metadata)
            for record_id, (document, metadata) in self.records.items()
            if all(metadata.get(key) == value for key, value in (where or {}).items())
        ]
        # Documents sharing a word with the query rank first.
        matches.sort(key=lambda item: 0 if any(word in item[1].lower() for word in needle.split()) else 1)
        matches = matches[:n_results]
        return {
            "ids": [[item[0] for item in matches]],
            "documents": [[item[1] for item in matches]],
            "metadatas": [[item[2] for item in matches]],
            "distances": [[0.1 * (rank + 1) for rank in range(len(matches))]],
        }

    def count(self) -> int:
        return len(self.records)


class StubClient:
    def __init__(self) -> None:
        self.collections: defaultdict[str, StubCollection] = defaultdict(StubCollection)

    def get_or_create_collection(self, name: str) -> StubCollection:
        return self.collections[name]


def intent(files: list[str], goal: str = "Update the greeting", **extra: Any) -> dict[str, Any]:
    return {
        "goal": goal,
        "files": files,
        "symbols": extra.pop("symbols", []),
        "forbidden": extra.pop("forbidden", []),
        "budget": {"maxTokens": 1000, "maxCost": 0.5},
        **extra,
    }


def patch(summary: str, *files: dict[str, Any]) -> dict[str, Any]:
    return {"summary": summary, "files": list(files)}


def hunk(old_start: int, old_lines: int, new_start: int, new_lines: int, content: str) -> dict[str, Any]:
    return {
        "oldStart": old_start,
        "oldLines": old_lines,
        "newStart": new_start,
        "newLines": new_lines,
        "content": content,
        "rationale": "requested change",
    }


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def project(storage: InMemoryStorage):
    return storage.create_project(
        name="Demo",
        settings=ProjectSettings(max_files=5, forbidden_globs=["migrations/"]),
    )


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def router(provider: ScriptedProvider) -> ModelRouter:
    return ModelRouter({"anthropic": provider, "openai": provider}, timeout=5.0)


@pytest.fixture
def settings(tmp_path) -> RemeSettings:
    return RemeSettings(
        REME_PROJECTS_ROOT=tmp_path / "projects",
        CHROMA_PERSIST_PATH=tmp_path / "chroma",
        REME_VECTOR_MEMORY=False,
        REME_TEMPLATE_PATHS=str(tmp_path / "templates"),
        OPENAI_API_KEY="",
        ANTHROPIC_API_KEY="",
    )
