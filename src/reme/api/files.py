"""Project file store endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from ..storage import RecordNotFoundError
from .schemas import FileContentRequest


def build_router(services) -> APIRouter:
    router = APIRouter(prefix="/api/files", tags=["files"])
    storage = services.storage

    def _require_project(project_id: str) -> None:
        if storage.get_project(project_id) is None:
            raise RecordNotFoundError("Project", project_id)

    @router.get("/{project_id}")
    async def list_files(project_id: str, tree: bool = Query(default=False)) -> Any:
        _require_project(project_id)
        if tree:
            return services.indexer.file_tree(project_id)
        return [entry.to_json() for entry in storage.list_files(project_id)]

    @router.get("/{project_id}/{path:path}")
    async def get_file(project_id: str, path: str) -> dict[str, Any]:
        _require_project(project_id)
        content = storage.get_file(project_id, path)
        if content is None:
            raise RecordNotFoundError("File", path)
        return {"path": path, "content": content}

    @router.put("/{project_id}/{path:path}")
    async def put_file(project_id: str, path: str, body: FileContentRequest) -> dict[str, Any]:
        _require_project(project_id)
        async with services.orchestrator.project_lock(project_id):
            storage.save_file(project_id, path, body.content)
        services.indexer.invalidate(project_id)
        return {"success": True, "path": path}

    return router


__all__ = ["build_router"]
