from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import pytest

from reme.git import (
    FakeGitRunner,
    GitAdapter,
    GitExecutionResult,
    GitNotFoundError,
    GitOperationError,
    GitRunner,
    parse_porcelain_status,
)
from reme.git.utils import identity_environment, sanitize_environment
from reme.storage import InMemoryStorage

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not installed")


def ok(stdout: str = "") -> GitExecutionResult:
    return GitExecutionResult(args=(), returncode=0, stdout=stdout, stderr="")


def failed(stderr: str) -> GitExecutionResult:
    return GitExecutionResult(args=(), returncode=1, stdout="", stderr=stderr)


def real_adapter(tmp_path: Path, storage: InMemoryStorage) -> GitAdapter:
    runner = GitRunner(env=identity_environment("Reme Test", "test@reme.dev"))
    return GitAdapter(runner, storage, tmp_path, user_name="Reme Test", user_email="test@reme.dev")


def test_parse_branch_header_with_upstream() -> None:
    status = parse_porcelain_status("## feature...origin/feature [ahead 2, behind 1]\n")

    assert status.branch == "feature"
    assert (status.ahead, status.behind) == (2, 1)
    assert status.clean


def test_parse_file_entries() -> None:
    output = "\n".join(
        [
            "## No commits yet on main",
            "A  src/new.py",
            " M src/app.py",
            "D  old.txt",
            "R  before.txt -> after.txt",
            "UU conflict.txt",
            "?? notes.md",
        ]
    )

    status = parse_porcelain_status(output)

    assert status.branch == "main"
    assert not status.clean
    assert status.staged == ["src/new.py", "old.txt", "after.txt"]
    assert status.created == ["src/new.py", "notes.md"]
    assert status.modified == ["src/app.py"]
    assert status.deleted == ["old.txt"]
    assert status.conflicted == ["conflict.txt"]


def test_status_failure_returns_default_clean_main(tmp_path: Path, storage: InMemoryStorage) -> None:
    runner = FakeGitRunner([failed("fatal: not a git repository")])
    (tmp_path / "p1" / ".git").mkdir(parents=True)
    adapter = GitAdapter(runner, storage, tmp_path)

    status = asyncio.run(adapter.get_status("p1"))

    assert status.to_json() == {
        "branch": "main",
        "ahead": 0,
        "behind": 0,
        "clean": True,
        "staged": [],
        "modified": [],
        "created": [],
        "deleted": [],
        "conflicted": [],
        "lastCommit": None,
    }


def test_status_without_git_binary_is_default(tmp_path: Path, storage: InMemoryStorage) -> None:
    adapter = GitAdapter(None, storage, tmp_path)

    status = asyncio.run(adapter.get_status("p1"))

    assert not adapter.available
    assert (status.branch, status.ahead, status.behind, status.clean) == ("main", 0, 0, True)


def test_invalid_project_id_is_rejected(tmp_path: Path, storage: InMemoryStorage) -> None:
    adapter = GitAdapter(FakeGitRunner(), storage, tmp_path)

    with pytest.raises(ValueError):
        adapter.project_path("../escape")


def test_commit_stages_everything_and_records_state(tmp_path: Path, storage: InMemoryStorage) -> None:
    (tmp_path / "p1" / ".git").mkdir(parents=True)
    runner = FakeGitRunner(
        [
            ok(),
            ok("A  a.txt\nM  b.txt\n"),
            ok("[main abc1234] msg"),
            ok("## main\n"),
            ok("abc1234\n"),
        ]
    )
    adapter = GitAdapter(runner, storage, tmp_path)

    result = asyncio.run(adapter.commit("p1", "Add files"))

    assert result == {"commit": "abc1234", "message": "Add files", "files": 2}
    assert runner.commands[0] == ("add", "-A")
    assert runner.commands[2] == ("commit", "-m", "Add files")
    assert storage.get_git_state("p1").last_commit == "abc1234"


def test_commit_requires_message(tmp_path: Path, storage: InMemoryStorage) -> None:
    adapter = GitAdapter(FakeGitRunner(), storage, tmp_path)

    with pytest.raises(ValueError):
        asyncio.run(adapter.commit("p1", "  "))


def test_push_failure_raises(tmp_path: Path, storage: InMemoryStorage) -> None:
    (tmp_path / "p1" / ".git").mkdir(parents=True)
    adapter = GitAdapter(FakeGitRunner([failed("fatal: no upstream configured")]), storage, tmp_path)

    with pytest.raises(GitOperationError, match="no upstream"):
        asyncio.run(adapter.push("p1"))


def test_branch_names_starting_with_dash_are_rejected(tmp_path: Path, storage: InMemoryStorage) -> None:
    adapter = GitAdapter(FakeGitRunner(), storage, tmp_path)

    with pytest.raises(ValueError):
        asyncio.run(adapter.manage_branch("p1", "create", "--force"))


def test_write_worktree_files_blocks_escape(tmp_path: Path, storage: InMemoryStorage) -> None:
    adapter = GitAdapter(FakeGitRunner(), storage, tmp_path)

    written = adapter.write_worktree_files("p1", {"src/a.txt": "hello", "gone.txt": None})

    assert written == ["src/a.txt", "gone.txt"]
    assert (tmp_path / "p1" / "src" / "a.txt").read_text(encoding="utf-8") == "hello"
    with pytest.raises(ValueError):
        adapter.write_worktree_files("p1", {"../outside.txt": "x"})


def test_sanitize_environment_strips_repository_overrides(monkeypatch) -> None:
    monkeypatch.setenv("GIT_DIR", "/elsewhere/.git")
    monkeypatch.setenv("PYTHONPATH", "/tmp")

    env = sanitize_environment({"GIT_AUTHOR_NAME": "Reme"})

    assert "GIT_DIR" not in env
    assert "PYTHONPATH" not in env
    assert env["GIT_TERMINAL_PROMPT"] == "0"
    assert env["GIT_AUTHOR_NAME"] == "Reme"


def test_missing_git_executable(tmp_path: Path) -> None:
    with pytest.raises(GitNotFoundError):
        GitRunner(tmp_path / "missing-git")


@requires_git
def test_status_of_uninitialized_project_is_clean_main(tmp_path: Path, storage: InMemoryStorage) -> None:
    adapter = real_adapter(tmp_path, storage)

    status = asyncio.run(adapter.get_status("fresh"))

    assert (status.branch, status.ahead, status.behind, status.clean) == ("main", 0, 0, True)
    assert (tmp_path / "fresh" / ".git").is_dir()
    assert storage.get_git_state("fresh").branch == "main"


@requires_git
def test_commit_and_branch_round_trip(tmp_path: Path, storage: InMemoryStorage) -> None:
    adapter = real_adapter(tmp_path, storage)
    adapter.write_worktree_files("repo", {"README.md": "# Demo\n"})

    async def scenario():
        pending = await adapter.get_status("repo")
        commit = await adapter.commit("repo", "Initial commit")
        branch = await adapter.manage_branch("repo", "create", "feature/login")
        after = await adapter.get_status("repo")
        return pending, commit, branch, after

    pending, commit, branch, after = asyncio.run(scenario())

    assert pending.created == ["README.md"]
    assert not pending.clean
    assert commit["files"] == 1
    assert commit["commit"]
    assert branch["currentBranch"] == "feature/login"
    assert after.clean
    assert after.last_commit == commit["commit"]
