"""Scope validation against per-project editing rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..storage.base import RecordNotFoundError, StoragePort
from ..storage.models import ProjectSettings, Scope
from .errors import ScopeRejected


@dataclass(slots=True)
class ScopeCheck:
    """Outcome of a scope validation."""

    needs_permission: bool
    reason: str | None = None
    request: str | None = None

    def to_json(self) -> dict[str, object]:
        payload: dict[str, object] = {"needsPermission": self.needs_permission}
        if self.needs_permission:
            payload["reason"] = self.reason
            payload["request"] = self.request
        return payload

    def raise_for_permission(self) -> None:
        if self.needs_permission:
            raise ScopeRejected(self.reason or "", self.request or "")


class ScopeValidator:
    """Decide whether a proposed scope needs explicit user permission.

    Rules are checked in order and the first violation wins:

    1. the file count exceeds ``max_files``;
    2. a scope file contains one of ``forbidden_globs`` as a substring.

    Forbidden entries are matched by plain substring containment, not glob
    syntax: ``"migrations"`` matches ``"db/migrations/001.sql"`` while
    ``"*.lock"`` only matches paths that literally contain ``*.lock``.
    """

    def __init__(self, storage: StoragePort) -> None:
        self._storage = storage

    def validate(self, scope: Scope, project_id: str) -> ScopeCheck:
        project = self._storage.get_project(project_id)
        if project is None:
            raise RecordNotFoundError("Project", project_id)
        return self.check(scope, project.settings)

    @staticmethod
    def check(scope: Scope, settings: ProjectSettings) -> ScopeCheck:
        file_count = len(scope.files)
        if settings.max_files and file_count > settings.max_files:
            return ScopeCheck(
                needs_permission=True,
                reason=f"Scope exceeds max files limit ({file_count} > {settings.max_files})",
                request=f"Allow editing {file_count} files?",
            )

        if settings.forbidden_globs:
            forbidden = [
                path
                for path in scope.files
                if any(pattern and pattern in path for pattern in settings.forbidden_globs)
            ]
            if forbidden:
                return ScopeCheck(
                    needs_permission=True,
                    reason=f"Attempting to modify forbidden files: {', '.join(forbidden)}",
                    request="Allow modifying these restricted files?",
                )

        return ScopeCheck(needs_permission=False)


def _union(existing: Iterable[str], additions: Iterable[str]) -> list[str]:
    return list(dict.fromkeys([*existing, *(item.strip() for item in additions if item and item.strip())]))


def expand_scope(
    scope: Scope,
    add_files: Iterable[str] | None = None,
    add_symbols: Iterable[str] | None = None,
) -> Scope:
    """Return ``scope`` widened by the approved files and symbols, order preserved."""

    return scope.model_copy(
        update={
            "files": _union(scope.files, add_files or ()),
            "symbols": _union(scope.symbols, add_symbols or ()),
        }
    )


__all__ = ["ScopeCheck", "ScopeValidator", "expand_scope"]
