"""Strict-scope agent: scope validation, session orchestration and memory."""

from .errors import (
    AgentError,
    HunkApplyConflictError,
    IntentCreationError,
    InvalidSessionStateError,
    ParseError,
    PatchGenerationError,
    ScopeRejected,
)
from .events import EventBus
from .indexer import CodeIndexer
from .memory import MemoryTiers
from .orchestrator import PatchPlan, SessionOrchestrator
from .patching import apply_hunks
from .scope import ScopeCheck, ScopeValidator, expand_scope

__all__ = [
    "AgentError",
    "CodeIndexer",
    "EventBus",
    "HunkApplyConflictError",
    "IntentCreationError",
    "InvalidSessionStateError",
    "MemoryTiers",
    "ParseError",
    "PatchGenerationError",
    "PatchPlan",
    "ScopeCheck",
    "ScopeRejected",
    "ScopeValidator",
    "SessionOrchestrator",
    "apply_hunks",
    "expand_scope",
]
