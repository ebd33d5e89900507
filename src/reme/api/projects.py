"""Project endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from ..storage import ProjectSettings, RecordNotFoundError
from .schemas import CreateProjectRequest, InitializeProjectRequest


def build_router(services) -> APIRouter:
    router = APIRouter(prefix="/api/projects", tags=["projects"])
    storage = services.storage

    def _project(project_id: str):
        project = storage.get_project(project_id)
        if project is None:
            raise RecordNotFoundError("Project", project_id)
        return project

    @router.get("")
    async def list_projects() -> list[dict[str, Any]]:
        return [project.to_json() for project in storage.list_projects()]

    @router.post("")
    async def create_project(body: CreateProjectRequest) -> dict[str, Any]:
        project = storage.create_project(
            name=body.name,
            repo_url=body.repo_url,
            default_branch=body.default_branch,
            settings=body.settings,
        )
        return project.to_json()

    @router.get("/{project_id}")
    async def get_project(project_id: str) -> dict[str, Any]:
        return _project(project_id).to_json()

    @router.post("/{project_id}/settings")
    async def update_settings(project_id: str, body: ProjectSettings) -> dict[str, Any]:
        _project(project_id)
        return storage.update_project(project_id, settings=body).to_json()

    @router.get("/{project_id}/sessions")
    async def list_sessions(project_id: str) -> list[dict[str, Any]]:
        _project(project_id)
        return [session.to_json() for session in storage.list_project_sessions(project_id)]

    @router.post("/{project_id}/initialize")
    async def initialize(project_id: str, body: InitializeProjectRequest | None = None) -> dict[str, Any]:
        project = _project(project_id)
        repo_url = (body.repo_url if body else None) or project.repo_url
        status = await services.git.initialize_project(project_id, repo_url)
        payload = {"projectId": project_id, "status": status.to_json()}
        await services.events.publish("git.updated", payload)
        return payload

    return router


__all__ = ["build_router"]
