"""Lightweight symbol index and file tree over a project's file store."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any

from ..storage.base import StoragePort
from ..storage.models import utcnow

IGNORED_DIRECTORIES = frozenset({"node_modules", ".git", "dist", "build", "__pycache__"})

_JS_PATTERNS = (
    re.compile(r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)", re.M),
    re.compile(r"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+([A-Za-z_$][\w$]*)", re.M),
    re.compile(r"^\s*(?:export\s+)?(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*[=:]", re.M),
    re.compile(r"^\s*(?:export\s+)?(?:interface|type|enum)\s+([A-Za-z_$][\w$]*)", re.M),
)

SYMBOL_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    ".py": (
        re.compile(r"^\s*(?:async\s+)?def\s+([A-Za-z_]\w*)", re.M),
        re.compile(r"^\s*class\s+([A-Za-z_]\w*)", re.M),
    ),
    ".js": _JS_PATTERNS,
    ".jsx": _JS_PATTERNS,
    ".mjs": _JS_PATTERNS,
    ".cjs": _JS_PATTERNS,
    ".ts": _JS_PATTERNS,
    ".tsx": _JS_PATTERNS,
    ".go": (
        re.compile(r"^func\s+(?:\([^)]*\)\s*)?([A-Za-z_]\w*)", re.M),
        re.compile(r"^type\s+([A-Za-z_]\w*)", re.M),
    ),
    ".rs": (
        re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:async\s+)?fn\s+([A-Za-z_]\w*)", re.M),
        re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:struct|enum|trait)\s+([A-Za-z_]\w*)", re.M),
    ),
}


def extract_symbols(path: str, content: str) -> list[str]:
    patterns = SYMBOL_PATTERNS.get(PurePosixPath(path).suffix.lower())
    if not patterns:
        return []
    found: list[tuple[int, str]] = []
    for pattern in patterns:
        found.extend((match.start(), match.group(1)) for match in pattern.finditer(content))
    return list(dict.fromkeys(name for _, name in sorted(found)))


def _is_ignored(path: str) -> bool:
    return any(part in IGNORED_DIRECTORIES for part in PurePosixPath(path).parts[:-1])


def build_file_tree(entries: list[tuple[str, int]]) -> list[dict[str, Any]]:
    """Nest flat ``(path, size)`` pairs into directories-first sorted nodes."""

    root: dict[str, Any] = {"children": {}}
    for path, size in entries:
        parts = PurePosixPath(path).parts
        node = root
        for depth, part in enumerate(parts[:-1]):
            node = node["children"].setdefault(
                part,
                {"name": part, "path": "/".join(parts[: depth + 1]), "type": "directory", "children": {}},
            )
        node["children"][parts[-1]] = {
            "name": parts[-1],
            "path": path,
            "type": "file",
            "extension": PurePosixPath(path).suffix,
            "size": size,
        }

    def _finalize(children: dict[str, Any]) -> list[dict[str, Any]]:
        nodes = []
        for child in children.values():
            if child["type"] == "directory":
                child = {**child, "children": _finalize(child["children"])}
            nodes.append(child)
        return sorted(nodes, key=lambda item: (item["type"] != "directory", item["name"].lower()))

    return _finalize(root["children"])


@dataclass(slots=True)
class ProjectIndex:
    symbols: dict[str, str] = field(default_factory=dict)
    file_tree: list[dict[str, Any]] = field(default_factory=list)
    updated_at: datetime = field(default_factory=utcnow)


class CodeIndexer:
    """Cache a per-project symbol table built from the file store."""

    def __init__(self, storage: StoragePort) -> None:
        self._storage = storage
        self._indexes: dict[str, ProjectIndex] = {}

    def get_index(self, project_id: str) -> ProjectIndex:
        index = self._indexes.get(project_id)
        if index is None:
            index = self._build(project_id)
            self._indexes[project_id] = index
        return index

    def invalidate(self, project_id: str) -> None:
        self._indexes.pop(project_id, None)

    def symbol_names(self, project_id: str) -> list[str]:
        return list(self.get_index(project_id).symbols)

    def file_tree(self, project_id: str) -> list[dict[str, Any]]:
        return self.get_index(project_id).file_tree

    def _build(self, project_id: str) -> ProjectIndex:
        entries = [entry for entry in self._storage.list_files(project_id) if not _is_ignored(entry.path)]
        symbols: dict[str, str] = {}
        for entry in entries:
            content = self._storage.get_file(project_id, entry.path) or ""
            for name in extract_symbols(entry.path, content):
                symbols.setdefault(name, entry.path)
        return ProjectIndex(
            symbols=symbols,
            file_tree=build_file_tree([(entry.path, entry.size) for entry in entries]),
        )


__all__ = [
    "CodeIndexer",
    "IGNORED_DIRECTORIES",
    "ProjectIndex",
    "build_file_tree",
    "extract_symbols",
]
