"""Exception taxonomy for the agent session flow."""

from __future__ import annotations


class AgentError(RuntimeError):
    """Base class for agent session failures."""


class IntentCreationError(AgentError):
    """The model call or its parsing failed while extracting a scope."""


class PatchGenerationError(AgentError):
    """The model call or its parsing failed while proposing a patch."""


class ScopeRejected(AgentError):
    """A scope needs explicit permission; the session pauses rather than fails."""

    def __init__(self, reason: str, request: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.request = request


class ParseError(AgentError, ValueError):
    """Model output did not match the expected JSON schema."""


class InvalidSessionStateError(AgentError):
    """An operation was attempted from a session status that does not allow it."""

    def __init__(self, session_id: str, current: str, target: str) -> None:
        super().__init__(f"Session '{session_id}' cannot move from '{current}' to '{target}'")
        self.session_id = session_id
        self.current = current
        self.target = target


class HunkApplyConflictError(AgentError):
    """Stored hunk coordinates or context no longer match the file content."""

    def __init__(self, file_path: str, hunk_id: str, detail: str) -> None:
        super().__init__(f"Hunk '{hunk_id}' does not apply to {file_path}: {detail}")
        self.file_path = file_path
        self.hunk_id = hunk_id
        self.detail = detail


__all__ = [
    "AgentError",
    "HunkApplyConflictError",
    "IntentCreationError",
    "InvalidSessionStateError",
    "ParseError",
    "PatchGenerationError",
    "ScopeRejected",
]
