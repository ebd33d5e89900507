"""Agent session endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks

from ..storage import RecordNotFoundError
from . import run_logged
from .schemas import ApplyRequest, ApproveRequest, CreateSessionRequest


def build_router(services) -> APIRouter:
    router = APIRouter(prefix="/api/sessions", tags=["sessions"])
    storage = services.storage
    orchestrator = services.orchestrator

    def _session(session_id: str):
        session = storage.get_session(session_id)
        if session is None:
            raise RecordNotFoundError("Session", session_id)
        return session

    @router.post("")
    async def create_session(body: CreateSessionRequest, background: BackgroundTasks) -> dict[str, Any]:
        """Create an ``active`` session and process it after the response is sent."""

        session = orchestrator.create_session(body.project_id, body.prompt)
        background.add_task(run_logged, "session processing", lambda: orchestrator.process_session(session))
        return session.to_json()

    @router.get("/{session_id}")
    async def get_session(session_id: str) -> dict[str, Any]:
        return _session(session_id).to_json()

    @router.get("/{session_id}/changes")
    async def list_changes(session_id: str) -> list[dict[str, Any]]:
        _session(session_id)
        return [change.to_json() for change in storage.list_session_file_changes(session_id)]

    @router.get("/{session_id}/memory")
    async def session_memory(session_id: str) -> dict[str, Any]:
        session = _session(session_id)
        return services.memory.cold(session.project_id, session_id) or {}

    @router.post("/{session_id}/approve")
    async def approve(
        session_id: str,
        background: BackgroundTasks,
        body: ApproveRequest | None = None,
    ) -> dict[str, Any]:
        body = body or ApproveRequest()
        session = await orchestrator.resolve_permission(
            session_id, body.allow, body.add_files, body.add_symbols
        )
        if body.allow:
            background.add_task(
                run_logged, "session resume", lambda: orchestrator.resume_session(session_id)
            )
        return session.to_json()

    @router.post("/{session_id}/apply")
    async def apply(session_id: str, body: ApplyRequest | None = None) -> dict[str, Any]:
        body = body or ApplyRequest()
        return await orchestrator.apply_hunks(session_id, body.hunks, body.commit_message)

    @router.post("/{session_id}/revert")
    async def revert(session_id: str) -> dict[str, Any]:
        return await orchestrator.revert_session(session_id)

    return router


__all__ = ["build_router"]
