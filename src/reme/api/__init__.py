"""HTTP and WebSocket surface for Reme."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from fastapi import FastAPI

from ..agent import CodeIndexer, EventBus, MemoryTiers, SessionOrchestrator
from ..config import RemeSettings
from ..git import GitAdapter
from ..routing import ModelRouter
from ..storage import StoragePort
from ..templates import TemplateLoader

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Services:
    """Everything the route handlers need, built once by ``create_app``."""

    settings: RemeSettings
    storage: StoragePort
    router: ModelRouter
    orchestrator: SessionOrchestrator
    memory: MemoryTiers
    indexer: CodeIndexer
    events: EventBus
    git: GitAdapter
    templates: TemplateLoader
    metadata: dict[str, dict[str, Any]] = field(default_factory=dict)
    tasks: set[asyncio.Task] = field(default_factory=set)

    def spawn(self, label: str, factory: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        """Run ``factory()`` as a tracked task whose failure is logged, not raised."""

        task = asyncio.create_task(run_logged(label, factory))
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task


async def run_logged(label: str, factory: Callable[[], Awaitable[Any]]) -> Any:
    """Await a background step; failures are already recorded on the session."""

    try:
        return await factory()
    except Exception as exc:
        logger.warning("Background %s failed: %s", label, exc, extra={"error": str(exc)})
        return None


def register_routes(app: FastAPI, *, services: Services) -> None:
    """Attach every router and the exception handlers to ``app``."""

    from . import files, git, memory, models, projects, sessions, templates, ws
    from .errors import register_exception_handlers

    for module in (projects, sessions, git, memory, files, templates, models, ws):
        app.include_router(module.build_router(services))
    register_exception_handlers(app)


__all__ = ["Services", "register_routes", "run_logged"]
