from __future__ import annotations

import pytest

from reme.agent import ScopeRejected, ScopeValidator, expand_scope
from reme.storage import InMemoryStorage, ProjectSettings, RecordNotFoundError, Scope


def test_scope_over_max_files_needs_permission(storage: InMemoryStorage) -> None:
    project = storage.create_project(name="Limits", settings=ProjectSettings(max_files=2))
    scope = Scope(goal="touch three files", files=["a.ts", "b.ts", "c.ts"])

    check = ScopeValidator(storage).validate(scope, project.id)

    assert check.needs_permission
    assert "3" in check.reason and "2" in check.reason
    assert check.reason == "Scope exceeds max files limit (3 > 2)"
    assert check.request == "Allow editing 3 files?"


def test_forbidden_path_needs_permission(storage: InMemoryStorage) -> None:
    project = storage.create_project(name="Secrets", settings=ProjectSettings(forbidden_globs=["secrets/"]))
    scope = Scope(goal="rotate key", files=["secrets/key.txt", "README.md"])

    check = ScopeValidator(storage).validate(scope, project.id)

    assert check.needs_permission
    assert check.reason == "Attempting to modify forbidden files: secrets/key.txt"
    assert check.request == "Allow modifying these restricted files?"


def test_max_files_rule_wins_over_forbidden() -> None:
    settings = ProjectSettings(max_files=1, forbidden_globs=["secrets/"])
    scope = Scope(goal="both", files=["secrets/a", "b"])

    check = ScopeValidator.check(scope, settings)

    assert check.reason.startswith("Scope exceeds max files limit")


def test_forbidden_entries_match_by_substring_not_glob() -> None:
    settings = ProjectSettings(forbidden_globs=["*.lock", "migrations"])

    assert ScopeValidator.check(Scope(goal="g", files=["db/migrations/001.sql"]), settings).needs_permission
    assert not ScopeValidator.check(Scope(goal="g", files=["package.lock"]), settings).needs_permission


def test_scope_within_limits_passes() -> None:
    settings = ProjectSettings(max_files=3, forbidden_globs=["secrets/"])

    check = ScopeValidator.check(Scope(goal="g", files=["src/app.ts"]), settings)

    assert not check.needs_permission
    assert check.to_json() == {"needsPermission": False}


def test_unlimited_settings_never_ask() -> None:
    scope = Scope(goal="g", files=[f"file{index}.py" for index in range(100)])

    assert not ScopeValidator.check(scope, ProjectSettings()).needs_permission


def test_unknown_project_is_reported(storage: InMemoryStorage) -> None:
    with pytest.raises(RecordNotFoundError):
        ScopeValidator(storage).validate(Scope(goal="g"), "missing")


def test_expand_scope_preserves_order_and_deduplicates() -> None:
    scope = Scope(goal="g", files=["a.py", "b.py"], symbols=["main"])

    expanded = expand_scope(scope, ["b.py", " c.py ", ""], ["main", "helper"])

    assert expanded.files == ["a.py", "b.py", "c.py"]
    assert expanded.symbols == ["main", "helper"]
    assert scope.files == ["a.py", "b.py"]


def test_raise_for_permission_signals_pause() -> None:
    settings = ProjectSettings(max_files=1)

    with pytest.raises(ScopeRejected) as excinfo:
        ScopeValidator.check(Scope(goal="two", files=["a", "b"]), settings).raise_for_permission()

    assert excinfo.value.reason == "Scope exceeds max files limit (2 > 1)"
    assert excinfo.value.request == "Allow editing 2 files?"
    ScopeValidator.check(Scope(goal="one", files=["a"]), settings).raise_for_permission()
