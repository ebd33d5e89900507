"""Git endpoints; every mutation broadcasts ``git.updated``."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from ..storage import RecordNotFoundError
from .schemas import BranchRequest, CommitRequest


def build_router(services) -> APIRouter:
    router = APIRouter(prefix="/api/git", tags=["git"])
    adapter = services.git

    def _require_project(project_id: str) -> None:
        if services.storage.get_project(project_id) is None:
            raise RecordNotFoundError("Project", project_id)

    async def _broadcast(project_id: str, operation: str, result: dict[str, Any]) -> dict[str, Any]:
        state = services.storage.get_git_state(project_id)
        await services.events.publish(
            "git.updated",
            {
                "projectId": project_id,
                "operation": operation,
                "result": result,
                "gitState": state.to_json() if state else None,
            },
        )
        return result

    @router.get("/{project_id}/status")
    async def status(project_id: str) -> dict[str, Any]:
        _require_project(project_id)
        return (await adapter.get_status(project_id)).to_json()

    @router.post("/{project_id}/commit")
    async def commit(project_id: str, body: CommitRequest) -> dict[str, Any]:
        _require_project(project_id)
        async with services.orchestrator.project_lock(project_id):
            result = await adapter.commit(project_id, body.message, body.stage)
        return await _broadcast(project_id, "commit", result)

    @router.post("/{project_id}/pull")
    async def pull(project_id: str) -> dict[str, Any]:
        _require_project(project_id)
        async with services.orchestrator.project_lock(project_id):
            result = await adapter.pull(project_id)
        return await _broadcast(project_id, "pull", result)

    @router.post("/{project_id}/push")
    async def push(project_id: str) -> dict[str, Any]:
        _require_project(project_id)
        result = await adapter.push(project_id)
        return await _broadcast(project_id, "push", result)

    @router.post("/{project_id}/branch")
    async def branch(project_id: str, body: BranchRequest) -> dict[str, Any]:
        _require_project(project_id)
        async with services.orchestrator.project_lock(project_id):
            result = await adapter.manage_branch(project_id, body.action, body.name)
        return await _broadcast(project_id, "branch", result)

    return router


__all__ = ["build_router"]
