"""FastAPI application bootstrap for Reme."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Mapping

import uvicorn
from fastapi import FastAPI

from . import __version__
from .agent import CodeIndexer, EventBus, MemoryTiers, ScopeValidator, SessionOrchestrator
from .api import Services, register_routes
from .config import RemeSettings, get_settings
from .git import GitAdapter, GitNotFoundError, GitRunner
from .git.utils import identity_environment
from .routing import ModelRouter, build_providers
from .routing.providers import ProviderClient
from .storage import ChromaMemoryIndex, ChromaUnavailableError, InMemoryStorage, StoragePort
from .templates import TemplateLoader, TemplateLoadError

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for the Reme server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def create_app(
    settings: RemeSettings | None = None,
    *,
    storage: StoragePort | None = None,
    providers: Mapping[str, ProviderClient] | None = None,
    model_router: ModelRouter | None = None,
    git_runner: GitRunner | None = None,
    memory_index: ChromaMemoryIndex | None = None,
) -> FastAPI:
    """Wire storage, routing, git and memory into a FastAPI application."""

    settings = settings or get_settings()
    storage = storage or InMemoryStorage()

    if model_router is None:
        model_router = ModelRouter(
            build_providers(settings) if providers is None else providers,
            timeout=settings.model_timeout,
            primary_model=settings.primary_model,
            default_model=settings.default_model,
            fallback_model=settings.fallback_model,
        )

    git_metadata: dict[str, Any] = {"available": False, "executable": None, "error": None}
    if git_runner is None:
        try:
            git_runner = GitRunner(env=identity_environment(settings.git_user_name, settings.git_user_email))
        except GitNotFoundError as exc:
            git_metadata["error"] = str(exc)
            git_runner = None
    if git_runner is not None:
        git_metadata["available"] = True
        git_metadata["executable"] = str(git_runner.executable)

    chroma_metadata: dict[str, Any] = {
        "available": False,
        "path": str(settings.chroma_persist_path),
        "collection": "memory_notes",
        "error": None,
    }
    if memory_index is None and settings.vector_memory:
        try:
            memory_index = ChromaMemoryIndex(settings.chroma_persist_path)
            memory_index.ping()
        except ChromaUnavailableError as exc:
            logger.warning("Vector memory disabled: %s", exc)
            chroma_metadata["error"] = str(exc)
            memory_index = None
    chroma_metadata["available"] = memory_index is not None

    events = EventBus()
    indexer = CodeIndexer(storage)
    memory = MemoryTiers(
        storage,
        memory_index,
        hot_size=settings.hot_memory_size,
        warm_size=settings.warm_memory_size,
    )
    git = GitAdapter(
        git_runner,
        storage,
        settings.projects_root,
        user_name=settings.git_user_name,
        user_email=settings.git_user_email,
    )
    orchestrator = SessionOrchestrator(
        storage,
        model_router,
        validator=ScopeValidator(storage),
        memory=memory,
        indexer=indexer,
        events=events,
        git=git,
        agent_model=settings.agent_model,
    )
    services = Services(
        settings=settings,
        storage=storage,
        router=model_router,
        orchestrator=orchestrator,
        memory=memory,
        indexer=indexer,
        events=events,
        git=git,
        templates=TemplateLoader(settings.template_paths),
        metadata={"git": git_metadata, "chroma": chroma_metadata},
    )

    app = FastAPI(title="Reme", version=__version__)
    register_routes(app, services=services)

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        """Summarize providers, storage backends and session activity."""

        git_info = dict(git_metadata)
        if git_runner is not None:
            result = await git_runner.version()
            git_info["version"] = result.stdout.strip() if result.ok else None

        try:
            template_ids = sorted(services.templates.load_all())
            template_error: str | None = None
        except TemplateLoadError as exc:
            template_ids = []
            template_error = str(exc)

        projects = storage.list_projects()
        status_counts = Counter(
            session.status for project in projects for session in storage.list_project_sessions(project.id)
        )
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "providers": model_router.provider_status(),
            "git": git_info,
            "chroma": dict(chroma_metadata),
            "templates": {"count": len(template_ids), "ids": template_ids, "error": template_error},
            "projects": len(projects),
            "sessions": dict(status_counts),
            "subscribers": events.subscriber_count(),
        }

    app.state.services = services
    return app


def main() -> None:
    """Entry point for running the Reme server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    app = create_app(settings)
    services: Services = app.state.services
    logger.info(
        "Launching Reme server",
        extra={
            "version": __version__,
            "host": settings.host,
            "port": settings.port,
            "git_available": services.metadata["git"]["available"],
            "chroma_available": services.metadata["chroma"]["available"],
        },
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
