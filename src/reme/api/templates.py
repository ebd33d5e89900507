"""Template endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from ..templates import create_project_from_template
from .schemas import CreateFromTemplateRequest


def build_router(services) -> APIRouter:
    router = APIRouter(prefix="/api/templates", tags=["templates"])
    loader = services.templates

    @router.get("")
    async def list_templates(
        category: str | None = Query(default=None),
        search: str | None = Query(default=None),
    ) -> list[dict[str, Any]]:
        return [template.to_json() for template in loader.search(category=category, query=search)]

    @router.get("/{template_id}")
    async def get_template(template_id: str) -> dict[str, Any]:
        return loader.get(template_id).to_json()

    @router.post("/{template_id}/create-project")
    async def create_project(
        template_id: str,
        body: CreateFromTemplateRequest | None = None,
    ) -> dict[str, Any]:
        template = loader.get(template_id)
        project = create_project_from_template(
            services.storage, template, name=body.name if body else None
        )
        return {"project": project.to_json(), "files": [file.path for file in template.files]}

    return router


__all__ = ["build_router"]
