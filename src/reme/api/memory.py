"""Memory tier endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Query

from ..storage import RecordNotFoundError
from ..storage.models import utcnow
from .schemas import MemoryNoteRequest


def build_router(services) -> APIRouter:
    router = APIRouter(prefix="/api/memory", tags=["memory"])
    tiers = services.memory

    def _require_project(project_id: str) -> None:
        if services.storage.get_project(project_id) is None:
            raise RecordNotFoundError("Project", project_id)

    @router.get("/{project_id}/search")
    async def search(
        project_id: str,
        q: str = Query(default=""),
        include_hot: bool = Query(default=True, alias="includeHot"),
        include_warm: bool = Query(default=True, alias="includeWarm"),
        limit: int = Query(default=10, ge=1, le=100),
    ) -> dict[str, Any]:
        _require_project(project_id)
        notes = tiers.search(
            project_id,
            q,
            include_hot=include_hot,
            include_warm=include_warm,
            max_results=limit,
        )
        return {"notes": [note.to_json() for note in notes], "total": len(notes)}

    @router.post("/{project_id}")
    async def create_note(project_id: str, body: MemoryNoteRequest) -> dict[str, Any]:
        _require_project(project_id)
        return tiers.add_note(project_id, body.content, body.tags, body.links).to_json()

    @router.get("/{project_id}/stats")
    async def stats(project_id: str) -> dict[str, Any]:
        _require_project(project_id)
        return tiers.stats(project_id)

    @router.post("/{project_id}/distill")
    async def distill(project_id: str, day: date | None = None) -> dict[str, Any]:
        _require_project(project_id)
        note = tiers.distill_daily_sessions(project_id, day or utcnow().date())
        return {"note": note.to_json() if note else None}

    return router


__all__ = ["build_router"]
