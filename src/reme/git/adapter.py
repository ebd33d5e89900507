"""Per-project repository operations on top of the git runner."""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import Any, Literal, Mapping

from pydantic import Field

from ..storage.base import StoragePort
from ..storage.models import RemeModel
from .runner import GitExecutionResult, GitOperationError, GitRunner

logger = logging.getLogger(__name__)

BranchAction = Literal["create", "switch", "delete"]
StageMode = Literal["all", "approved_hunks"]

_AHEAD_RE = re.compile(r"ahead (\d+)")
_BEHIND_RE = re.compile(r"behind (\d+)")
_CONFLICT_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}
_PROJECT_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class GitStatus(RemeModel):
    branch: str = "main"
    ahead: int = 0
    behind: int = 0
    clean: bool = True
    staged: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    created: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    conflicted: list[str] = Field(default_factory=list)
    last_commit: str | None = None


def parse_porcelain_status(output: str) -> GitStatus:
    """Parse ``git status --porcelain=v1 --branch`` output."""

    status = GitStatus()
    entries = 0
    for line in output.splitlines():
        if not line:
            continue
        if line.startswith("## "):
            header = line[3:]
            for prefix in ("No commits yet on ", "Initial commit on "):
                if header.startswith(prefix):
                    header = header[len(prefix):]
            status.branch = header.split("...", 1)[0].split(" ", 1)[0] or "main"
            if match := _AHEAD_RE.search(header):
                status.ahead = int(match.group(1))
            if match := _BEHIND_RE.search(header):
                status.behind = int(match.group(1))
            continue

        entries += 1
        code, path = line[:2], line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        path = path.strip('"')

        if code in _CONFLICT_CODES:
            status.conflicted.append(path)
            continue
        if code == "??":
            status.created.append(path)
            continue
        index_code = code[0]
        if index_code in "MADRC":
            status.staged.append(path)
        if index_code == "A":
            status.created.append(path)
        if "M" in code:
            status.modified.append(path)
        if "D" in code:
            status.deleted.append(path)

    status.clean = entries == 0
    return status


class GitAdapter:
    """Wrap git operations for each project's working directory.

    Every operation refreshes the cached ``GitState`` in storage afterwards.
    The repository on disk stays the source of truth.
    """

    def __init__(
        self,
        runner: GitRunner | None,
        storage: StoragePort,
        projects_root: Path,
        *,
        user_name: str = "Reme Bot",
        user_email: str = "bot@reme.dev",
    ) -> None:
        self._runner = runner
        self._storage = storage
        self._projects_root = Path(projects_root)
        self._user_name = user_name
        self._user_email = user_email

    @property
    def available(self) -> bool:
        return self._runner is not None

    def project_path(self, project_id: str) -> Path:
        if not _PROJECT_ID_RE.match(project_id):
            raise ValueError(f"Invalid project id: {project_id!r}")
        return self._projects_root / project_id

    async def _git(self, project_id: str, *args: str, check: bool = True) -> GitExecutionResult:
        if self._runner is None:
            raise GitOperationError("git executable not available")
        result = await self._runner.run(self.project_path(project_id), *args)
        if check and not result.ok:
            raise GitOperationError(f"git {args[0]} failed: {result.message}")
        return result

    async def _ensure_repository(self, project_id: str) -> Path:
        path = self.project_path(project_id)
        path.mkdir(parents=True, exist_ok=True)
        if not (path / ".git").exists():
            await self._git(project_id, "init")
            await self._git(project_id, "symbolic-ref", "HEAD", "refs/heads/main")
            await self._configure_identity(project_id)
            logger.info("Initialized repository", extra={"project_id": project_id})
        return path

    async def _configure_identity(self, project_id: str) -> None:
        await self._git(project_id, "config", "user.name", self._user_name)
        await self._git(project_id, "config", "user.email", self._user_email)

    async def _read_status(self, project_id: str) -> GitStatus:
        result = await self._git(project_id, "status", "--porcelain=v1", "--branch")
        status = parse_porcelain_status(result.stdout)
        head = await self._git(project_id, "rev-parse", "--short", "HEAD", check=False)
        status.last_commit = head.stdout.strip() if head.ok else None
        return status

    def _refresh_state(self, project_id: str, status: GitStatus, **extra: Any) -> None:
        self._storage.update_git_state(
            project_id,
            branch=status.branch,
            ahead=status.ahead,
            behind=status.behind,
            **extra,
        )

    async def get_status(self, project_id: str) -> GitStatus:
        """Return the repository status, initializing the repository if needed.

        Never raises: a failure yields the default clean ``main`` status.
        """

        try:
            await self._ensure_repository(project_id)
            status = await self._read_status(project_id)
        except Exception as exc:
            logger.warning(
                "Git status unavailable, returning default status",
                extra={"project_id": project_id, "error": str(exc)},
            )
            return GitStatus()

        self._refresh_state(project_id, status, last_commit=status.last_commit)
        return status

    async def commit(self, project_id: str, message: str, stage: StageMode = "approved_hunks") -> dict[str, Any]:
        if not message or not message.strip():
            raise ValueError("Commit message must not be empty")
        if stage not in ("all", "approved_hunks"):
            raise ValueError(f"Unsupported stage mode: {stage}")

        await self._ensure_repository(project_id)
        # Selective hunk staging is not implemented; both modes stage the whole tree.
        await self._git(project_id, "add", "-A")
        pending = parse_porcelain_status((await self._git(project_id, "status", "--porcelain=v1")).stdout)
        await self._git(project_id, "commit", "-m", message)

        status = await self._read_status(project_id)
        self._refresh_state(project_id, status, last_commit=status.last_commit)
        return {
            "commit": status.last_commit,
            "message": message,
            "files": len(pending.staged),
        }

    async def pull(self, project_id: str) -> dict[str, Any]:
        await self._ensure_repository(project_id)
        result = await self._git(project_id, "pull", check=False)
        status = await self._read_status(project_id)
        if not result.ok and not status.conflicted:
            raise GitOperationError(f"Pull failed: {result.message}")

        self._refresh_state(project_id, status)
        return {
            "success": not status.conflicted,
            "conflicts": status.conflicted,
            "summary": result.stdout.strip(),
        }

    async def push(self, project_id: str) -> dict[str, Any]:
        await self._ensure_repository(project_id)
        result = await self._git(project_id, "push", check=False)
        if not result.ok:
            raise GitOperationError(f"Push failed: {result.message}")

        status = await self._read_status(project_id)
        self._refresh_state(project_id, status)
        return {
            "success": True,
            "remoteMessages": [line for line in result.stderr.splitlines() if line.strip()],
        }

    async def manage_branch(self, project_id: str, action: BranchAction, name: str) -> dict[str, Any]:
        if not name or name.startswith("-"):
            raise ValueError(f"Invalid branch name: {name!r}")

        if action == "create":
            args = ("checkout", "-b", name)
        elif action == "switch":
            args = ("checkout", name)
        elif action == "delete":
            args = ("branch", "-d", name)
        else:
            raise ValueError(f"Unsupported branch action: {action}")

        await self._ensure_repository(project_id)
        result = await self._git(project_id, *args, check=False)
        if not result.ok:
            raise GitOperationError(f"Branch {action} failed: {result.message}")

        status = await self._read_status(project_id)
        self._refresh_state(project_id, status)
        return {
            "success": True,
            "currentBranch": status.branch,
            "action": action,
            "branchName": name,
        }

    async def initialize_project(self, project_id: str, repo_url: str | None = None) -> GitStatus:
        path = self.project_path(project_id)
        path.mkdir(parents=True, exist_ok=True)
        if repo_url:
            if any(path.iterdir()):
                raise GitOperationError(f"Cannot clone into non-empty directory {path}")
            await self._git(project_id, "clone", repo_url, ".")
            await self._configure_identity(project_id)
        else:
            await self._ensure_repository(project_id)
        return await self.get_status(project_id)

    def write_worktree_files(self, project_id: str, files: Mapping[str, str | None]) -> list[str]:
        """Materialize file contents in the working directory; ``None`` removes the file."""

        root = self.project_path(project_id).resolve()
        root.mkdir(parents=True, exist_ok=True)
        written: list[str] = []
        for relative, content in files.items():
            target = (root / relative).resolve()
            if root not in target.parents:
                raise ValueError(f"Path escapes project directory: {relative}")
            if content is None:
                if target.is_dir():
                    shutil.rmtree(target)
                elif target.exists():
                    target.unlink()
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content, encoding="utf-8")
            written.append(relative)
        return written


__all__ = [
    "BranchAction",
    "GitAdapter",
    "GitStatus",
    "StageMode",
    "parse_porcelain_status",
]
