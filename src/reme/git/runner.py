"""Async runner for the git CLI."""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from .utils import sanitize_environment


class GitRunnerError(RuntimeError):
    """Base class for git runner errors."""


class GitNotFoundError(GitRunnerError):
    """Raised when the git executable cannot be located."""


class GitOperationError(GitRunnerError):
    """Raised when a git operation fails."""


@dataclass(slots=True)
class GitExecutionResult:
    """Holds the outcome of a git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def message(self) -> str:
        return (self.stderr or self.stdout).strip()


class GitRunner:
    """Execute git commands asynchronously inside a working directory."""

    def __init__(self, executable: Path | None = None, *, env: Mapping[str, str] | None = None) -> None:
        self._executable_path = self._resolve_executable(executable)
        self._env = dict(env or {})

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise GitNotFoundError(f"git executable not found at {candidate}")

        binary = shutil.which("git")
        if binary is None:
            raise GitNotFoundError("git executable not found on PATH")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    async def version(self) -> GitExecutionResult:
        return await self._invoke(None, "--version")

    async def run(self, cwd: Path, *args: str) -> GitExecutionResult:
        """Run ``git *args`` in ``cwd`` and capture its output.

        stdin is closed so a command that would prompt (credentials, editor
        for a merge message) fails instead of hanging the server; the
        sanitized environment also sets ``GIT_TERMINAL_PROMPT=0``.
        A non-zero exit code is returned, not raised.
        """

        return await self._invoke(Path(cwd), *args)

    async def _invoke(self, cwd: Path | None, *args: str) -> GitExecutionResult:
        cmd = [str(self._executable_path), *args]
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=sanitize_environment(self._env),
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return GitExecutionResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


class FakeGitRunner(GitRunner):
    """Test double that replays canned git responses."""

    def __init__(self, responses: Iterable[GitExecutionResult] | None = None) -> None:  # type: ignore[override]
        self._responses = list(responses or [])
        self._invocations: list[tuple[Path | None, tuple[str, ...]]] = []
        self._executable_path = Path("/tmp/fake-git")
        self._env = {}

    async def _invoke(self, cwd: Path | None, *args: str) -> GitExecutionResult:  # type: ignore[override]
        self._invocations.append((cwd, tuple(args)))
        if self._responses:
            return self._responses.pop(0)
        return GitExecutionResult(args=tuple(args), returncode=0, stdout="", stderr="")

    @property
    def invocations(self) -> list[tuple[Path | None, tuple[str, ...]]]:
        return self._invocations

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [args for _, args in self._invocations]


__all__ = [
    "FakeGitRunner",
    "GitExecutionResult",
    "GitNotFoundError",
    "GitOperationError",
    "GitRunner",
    "GitRunnerError",
]
