"""Strict-scope session state machine.

A session moves from a user prompt through intent extraction, scope
validation, patch proposal and human approval to applied file content:

    active -> pending_approval -> active -> completed
    active -> failed
    pending_approval -> failed

``completed`` and ``failed`` are terminal. Applying and reverting hunks
happens on completed sessions and does not change their status.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable

from pydantic import ValidationError

from ..git.adapter import GitAdapter
from ..routing.models import ModelConfig, RoutingTask
from ..routing.router import ModelRouter, ModelRouterError
from ..storage.base import RecordNotFoundError, StoragePort
from ..storage.models import ChangeType, FileChange, Hunk, Message, Scope, Session
from .errors import (
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
from .patching import apply_hunks
from .prompts import build_intent_messages, build_patch_messages
from .schemas import parse_patch, parse_scope
from .scope import ScopeCheck, ScopeValidator, expand_scope

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[str, frozenset[str]] = {
    "active": frozenset({"pending_approval", "completed", "failed"}),
    "pending_approval": frozenset({"active", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}

INTENT_TASK = RoutingTask(type="analysis", complexity="medium", urgency="high", tokens=1000)


@dataclass(slots=True)
class PlannedFile:
    path: str
    change_type: ChangeType
    hunks: list[Hunk] = field(default_factory=list)


@dataclass(slots=True)
class PatchPlan:
    """A parsed patch proposal whose hunks carry ids and approval flags."""

    summary: str
    files: list[PlannedFile]

    def to_json(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "files": [
                {
                    "path": planned.path,
                    "changeType": planned.change_type,
                    "hunks": [hunk.to_json() for hunk in planned.hunks],
                }
                for planned in self.files
            ],
        }


class SessionOrchestrator:
    """Drive agent sessions and apply their approved hunks to the file store."""

    def __init__(
        self,
        storage: StoragePort,
        router: ModelRouter,
        *,
        validator: ScopeValidator | None = None,
        memory: MemoryTiers | None = None,
        indexer: CodeIndexer | None = None,
        events: EventBus | None = None,
        git: GitAdapter | None = None,
        agent_model: str | None = None,
    ) -> None:
        self._storage = storage
        self._router = router
        self._validator = validator or ScopeValidator(storage)
        self._memory = memory or MemoryTiers(storage)
        self._indexer = indexer or CodeIndexer(storage)
        self._events = events or EventBus()
        self._git = git
        self._agent_model = agent_model
        self._project_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def events(self) -> EventBus:
        return self._events

    def project_lock(self, project_id: str) -> asyncio.Lock:
        """Lock serializing file-store and worktree writes for one project."""

        return self._project_locks[project_id]

    # Session lifecycle

    def create_session(self, project_id: str, prompt: str) -> Session:
        if self._storage.get_project(project_id) is None:
            raise RecordNotFoundError("Project", project_id)
        if not prompt or not prompt.strip():
            raise ValueError("Prompt must not be empty")
        session = Session(
            project_id=project_id,
            prompt=prompt,
            messages=[Message(role="user", content=prompt)],
        )
        return self._storage.create_session(session)

    def _load(self, session_id: str) -> Session:
        session = self._storage.get_session(session_id)
        if session is None:
            raise RecordNotFoundError("Session", session_id)
        return session

    async def _transition(
        self,
        session_id: str,
        target: str,
        *,
        message: str | None = None,
        **changes: Any,
    ) -> Session:
        session = self._load(session_id)
        if target not in _TRANSITIONS[session.status]:
            raise InvalidSessionStateError(session_id, session.status, target)
        if message:
            changes["messages"] = [*session.messages, Message(role="assistant", content=message)]

        updated = self._storage.update_session(session_id, status=target, **changes)
        logger.info(
            "Session %s: %s -> %s",
            session_id,
            session.status,
            target,
            extra={"session_id": session_id, "project_id": session.project_id},
        )
        await self._events.publish(
            "session.updated",
            {"projectId": updated.project_id, "sessionId": updated.id, "session": updated.to_json()},
        )
        return updated

    async def _fail(self, session_id: str, exc: Exception) -> None:
        session = self._storage.get_session(session_id)
        if session is None or "failed" not in _TRANSITIONS[session.status]:
            return
        await self._transition(session_id, "failed", message=f"Session failed: {exc}")

    async def process_session(self, session: Session) -> dict[str, Any]:
        """Run intent, validation and patch proposal for an ``active`` session.

        Returns the ``ask.permission`` or ``patch.proposed`` event payload.
        Any failure moves the session to ``failed`` before it propagates.
        """

        session = self._load(session.id)
        if session.status != "active":
            raise InvalidSessionStateError(session.id, session.status, "active")

        try:
            scope = await self.create_intent(session.prompt, session.project_id)
            try:
                self.validate_scope(scope, session.project_id).raise_for_permission()
            except ScopeRejected as rejected:
                return await self._pause_for_permission(session, scope, rejected)
            return await self._propose_and_complete(session.id, scope)
        except Exception as exc:
            await self._fail(session.id, exc)
            raise

    async def _pause_for_permission(
        self, session: Session, scope: Scope, rejected: ScopeRejected
    ) -> dict[str, Any]:
        await self._transition(
            session.id,
            "pending_approval",
            scope=scope,
            message=f"{rejected.reason}. {rejected.request}",
        )
        payload = {
            "projectId": session.project_id,
            "sessionId": session.id,
            "reason": rejected.reason,
            "request": rejected.request,
            "scope": scope.to_json(),
        }
        await self._events.publish("ask.permission", payload)
        return {"type": "ask.permission", **payload}

    async def _propose_and_complete(self, session_id: str, scope: Scope) -> dict[str, Any]:
        session = self._load(session_id)
        plan = await self.propose_patch(scope, session.project_id)

        self._record_changes(session_id, plan)
        session = await self._transition(
            session_id,
            "completed",
            scope=scope,
            diff_summary=plan.summary,
            message=plan.summary,
        )

        payload = {
            "projectId": session.project_id,
            "sessionId": session_id,
            "patch": plan.to_json(),
        }
        await self._events.publish("patch.proposed", payload)

        try:
            self._memory.add_session_memory(session_id, plan.summary)
        except Exception as exc:
            logger.warning(
                "Failed to record session memory",
                extra={"session_id": session_id, "error": str(exc)},
            )
        return {"type": "patch.proposed", **payload}

    def _record_changes(self, session_id: str, plan: PatchPlan) -> list[FileChange]:
        merged: dict[str, PlannedFile] = {}
        for planned in plan.files:
            existing = merged.get(planned.path)
            if existing is None:
                merged[planned.path] = PlannedFile(planned.path, planned.change_type, list(planned.hunks))
            else:
                existing.hunks.extend(planned.hunks)

        return [
            self._storage.create_file_change(
                FileChange(
                    session_id=session_id,
                    file_path=planned.path,
                    change_type=planned.change_type,
                    hunks=planned.hunks,
                )
            )
            for planned in merged.values()
        ]

    # Model-backed steps

    def _select_model(self, task: RoutingTask) -> ModelConfig:
        if self._agent_model:
            return self._router.get_model(self._agent_model)
        return self._router.route_request(task)

    async def create_intent(self, prompt: str, project_id: str) -> Scope:
        project = self._storage.get_project(project_id)
        if project is None:
            raise RecordNotFoundError("Project", project_id)

        messages = build_intent_messages(
            prompt,
            project,
            self._memory.hot(project_id),
            self._indexer.symbol_names(project_id),
        )
        try:
            model = self._select_model(INTENT_TASK)
            completion = await self._router.generate_completion(
                model, messages, temperature=0.1, json_mode=True
            )
            return parse_scope(completion.content)
        except (ModelRouterError, ParseError) as exc:
            raise IntentCreationError(f"Intent creation failed: {exc}") from exc

    def validate_scope(self, scope: Scope, project_id: str) -> ScopeCheck:
        return self._validator.validate(scope, project_id)

    def gather_context(self, files: Iterable[str], project_id: str) -> list[tuple[str, str]]:
        """Current content of each scope file; absent files read as empty."""

        return [(path, self._storage.get_file(project_id, path) or "") for path in files]

    async def propose_patch(self, scope: Scope, project_id: str) -> PatchPlan:
        messages = build_patch_messages(
            scope,
            self.gather_context(scope.files, project_id),
            self._memory.warm(project_id, scope.goal),
        )
        try:
            task = RoutingTask(type="code", complexity="high", tokens=scope.budget.max_tokens)
            model = self._select_model(task)
            completion = await self._router.generate_completion(
                model, messages, temperature=0.2, json_mode=True
            )
            proposal = parse_patch(completion.content)
        except (ModelRouterError, ParseError, ValidationError) as exc:
            raise PatchGenerationError(f"Patch generation failed: {exc}") from exc

        outside = [planned.path for planned in proposal.files if planned.path not in scope.files]
        if outside:
            raise PatchGenerationError(
                f"Patch generation failed: files outside scope: {', '.join(outside)}"
            )

        stamp = int(time.time() * 1000)
        files = [
            PlannedFile(
                path=planned.path,
                change_type=planned.change_type,
                hunks=[
                    Hunk(
                        id=f"{planned.path}-{index}-{stamp}",
                        approved=False,
                        **hunk.model_dump(),
                    )
                    for index, hunk in enumerate(planned.hunks)
                ],
            )
            for planned in proposal.files
        ]
        return PatchPlan(summary=proposal.summary, files=files)

    # Permission handling

    async def resolve_permission(
        self,
        session_id: str,
        allow: bool,
        add_files: Iterable[str] | None = None,
        add_symbols: Iterable[str] | None = None,
    ) -> Session:
        """Answer an ``ask.permission`` question.

        Denial fails the session. Approval widens the scope once and moves the
        session back to ``active``; ``resume_session`` then proposes the patch.
        """

        session = self._load(session_id)
        if session.status != "pending_approval":
            raise InvalidSessionStateError(session_id, session.status, "active" if allow else "failed")

        if not allow:
            return await self._transition(session_id, "failed", message="Permission denied by user.")

        scope = expand_scope(session.scope or Scope(goal=session.prompt), add_files, add_symbols)
        return await self._transition(session_id, "active", scope=scope)

    async def resume_session(self, session_id: str) -> dict[str, Any]:
        """Propose and record the patch for an approved session, skipping intent and validation."""

        session = self._load(session_id)
        if session.status != "active" or session.scope is None:
            raise InvalidSessionStateError(session_id, session.status, "completed")
        try:
            return await self._propose_and_complete(session_id, session.scope)
        except Exception as exc:
            await self._fail(session_id, exc)
            raise

    async def continue_session(self, session_id: str, updated_scope: Scope) -> dict[str, Any]:
        session = self._load(session_id)
        if session.status != "pending_approval":
            raise InvalidSessionStateError(session_id, session.status, "active")
        await self._transition(session_id, "active", scope=updated_scope)
        try:
            return await self._propose_and_complete(session_id, updated_scope)
        except Exception as exc:
            await self._fail(session_id, exc)
            raise

    # Applying changes

    def _require_completed(self, session_id: str, action: str) -> Session:
        session = self._load(session_id)
        if session.status != "completed":
            raise InvalidSessionStateError(session_id, session.status, action)
        return session

    async def apply_hunks(
        self,
        session_id: str,
        hunk_ids: Iterable[str] | None = None,
        commit_message: str | None = None,
    ) -> dict[str, Any]:
        """Write the approved hunks of a completed session to the file store.

        With ``hunk_ids`` only those hunks are approved, otherwise all are.
        File content is always recomputed from the captured pre-image, so
        repeating a call leaves the same bytes behind. A file edited since
        this session last wrote it raises ``HunkApplyConflictError``.
        """

        session = self._require_completed(session_id, "apply")
        if commit_message and self._git is None:
            raise ValueError("Git integration is not configured")
        selection = set(hunk_ids) if hunk_ids else None
        project_id = session.project_id
        changes = self._storage.list_session_file_changes(session_id)

        async with self._project_locks[project_id]:
            planned: list[tuple[FileChange, list[Hunk], bool, str | None, str | None]] = []
            for change in changes:
                self._ensure_unchanged(project_id, change)
                hunks = [
                    hunk.model_copy(update={"approved": selection is None or hunk.id in selection})
                    for hunk in change.hunks
                ]
                approved = [hunk for hunk in hunks if hunk.approved]
                applied = bool(approved) or (selection is None and not hunks)
                pre_image = (
                    change.pre_image
                    if change.pre_image_captured
                    else self._storage.get_file(project_id, change.file_path)
                )

                if not applied:
                    content = pre_image
                elif change.change_type == "delete":
                    content = None
                elif approved:
                    content = apply_hunks(change.file_path, pre_image, approved)
                else:
                    content = pre_image if pre_image is not None else ""
                planned.append((change, hunks, applied, pre_image, content))

            for change, hunks, applied, pre_image, content in planned:
                if content is None:
                    self._storage.delete_file(project_id, change.file_path)
                else:
                    self._storage.save_file(project_id, change.file_path, content)
                self._storage.update_file_change(
                    change.id,
                    hunks=hunks,
                    applied=applied,
                    pre_image=pre_image,
                    pre_image_captured=True,
                    post_image=content,
                )
            self._indexer.invalidate(project_id)

            commit = None
            if commit_message:
                commit = await self._commit(
                    project_id, {change.file_path: content for change, _, _, _, content in planned}, commit_message
                )

        applied_ids = [change.id for change, _, applied, _, _ in planned if applied]
        logger.info(
            "Applied %d of %d file changes",
            len(applied_ids),
            len(planned),
            extra={"session_id": session_id, "project_id": project_id},
        )
        result = {
            "projectId": project_id,
            "sessionId": session_id,
            "applied": applied_ids,
            "changes": [change.to_json() for change in self._storage.list_session_file_changes(session_id)],
            "commit": commit,
        }
        await self._events.publish("session.finished", result)
        return result

    def _ensure_unchanged(self, project_id: str, change: FileChange) -> None:
        """Refuse to overwrite a file edited since this session last wrote it."""

        if not change.pre_image_captured:
            return
        if self._storage.get_file(project_id, change.file_path) != change.post_image:
            raise HunkApplyConflictError(
                change.file_path,
                change.hunks[0].id if change.hunks else "",
                "file changed since this session last wrote it",
            )

    async def _commit(self, project_id: str, files: dict[str, str | None], message: str) -> dict[str, Any]:
        self._git.write_worktree_files(project_id, files)
        commit = await self._git.commit(project_id, message, stage="approved_hunks")
        state = self._storage.get_git_state(project_id)
        await self._events.publish(
            "git.updated",
            {"projectId": project_id, "commit": commit, "gitState": state.to_json() if state else None},
        )
        return commit

    async def revert_session(self, session_id: str) -> dict[str, Any]:
        """Restore the pre-image of every applied file change."""

        session = self._require_completed(session_id, "revert")
        project_id = session.project_id
        reverted: list[str] = []

        async with self._project_locks[project_id]:
            changes = self._storage.list_session_file_changes(session_id)
            applied = [change for change in changes if change.applied]
            for change in applied:
                self._ensure_unchanged(project_id, change)

            for change in applied:
                if change.pre_image_captured:
                    if change.pre_image is None:
                        self._storage.delete_file(project_id, change.file_path)
                    else:
                        self._storage.save_file(project_id, change.file_path, change.pre_image)
                self._storage.update_file_change(change.id, applied=False, post_image=change.pre_image)
                reverted.append(change.id)
            self._indexer.invalidate(project_id)

        result = {"projectId": project_id, "sessionId": session_id, "reverted": reverted}
        await self._events.publish(
            "session.updated",
            {**result, "session": self._load(session_id).to_json()},
        )
        return result


__all__ = ["PatchPlan", "PlannedFile", "SessionOrchestrator"]
