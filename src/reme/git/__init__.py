"""Git integration for project working directories."""

from .adapter import GitAdapter, GitStatus, parse_porcelain_status
from .runner import (
    FakeGitRunner,
    GitExecutionResult,
    GitNotFoundError,
    GitOperationError,
    GitRunner,
    GitRunnerError,
)

__all__ = [
    "FakeGitRunner",
    "GitAdapter",
    "GitExecutionResult",
    "GitNotFoundError",
    "GitOperationError",
    "GitRunner",
    "GitRunnerError",
    "GitStatus",
    "parse_porcelain_status",
]
