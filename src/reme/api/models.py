"""Model routing endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from .schemas import RouteRequest


def build_router(services) -> APIRouter:
    router = APIRouter(prefix="/api/ai", tags=["models"])
    model_router = services.router

    @router.post("/route")
    async def route(body: RouteRequest) -> dict[str, Any]:
        model = model_router.route_request(body.task)
        options = body.options
        completion = await model_router.generate_completion(
            model,
            body.messages,
            max_tokens=options.get("maxTokens"),
            temperature=options.get("temperature"),
            json_mode=bool(options.get("jsonMode", False)),
        )
        return completion.to_json()

    @router.get("/models")
    async def list_models() -> dict[str, Any]:
        return {
            "available": model_router.describe(),
            "providers": model_router.provider_status(),
            "local": await model_router.list_local_models(),
        }

    return router


__all__ = ["build_router"]
