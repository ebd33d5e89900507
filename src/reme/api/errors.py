"""Map domain exceptions onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..agent.errors import HunkApplyConflictError, InvalidSessionStateError
from ..git.runner import GitRunnerError
from ..routing.router import ModelRouterError
from ..storage.base import RecordNotFoundError
from ..templates.loader import TemplateLoadError, TemplateNotFoundError

logger = logging.getLogger(__name__)


def _error(status_code: int, exc: Exception, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), **extra})


def register_exception_handlers(app: FastAPI) -> None:
    """Install the ``{"error": msg}`` handlers for every typed failure."""

    @app.exception_handler(RecordNotFoundError)
    async def _not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(TemplateNotFoundError)
    async def _template_not_found(request: Request, exc: TemplateNotFoundError) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(InvalidSessionStateError)
    async def _invalid_state(request: Request, exc: InvalidSessionStateError) -> JSONResponse:
        return _error(409, exc, status=exc.current)

    @app.exception_handler(HunkApplyConflictError)
    async def _conflict(request: Request, exc: HunkApplyConflictError) -> JSONResponse:
        logger.warning(
            "Hunk apply conflict",
            extra={"file_path": exc.file_path, "hunk_id": exc.hunk_id, "path": request.url.path},
        )
        return _error(409, exc, filePath=exc.file_path, hunkId=exc.hunk_id)

    @app.exception_handler(GitRunnerError)
    async def _git_failed(request: Request, exc: GitRunnerError) -> JSONResponse:
        logger.warning("Git operation failed", extra={"path": request.url.path, "error": str(exc)})
        return _error(400, exc)

    @app.exception_handler(TemplateLoadError)
    async def _template_invalid(request: Request, exc: TemplateLoadError) -> JSONResponse:
        return _error(400, exc)

    @app.exception_handler(ValueError)
    async def _bad_request(request: Request, exc: ValueError) -> JSONResponse:
        return _error(400, exc)

    @app.exception_handler(ModelRouterError)
    async def _model_failed(request: Request, exc: ModelRouterError) -> JSONResponse:
        logger.warning("Model request failed", extra={"path": request.url.path, "error": str(exc)})
        return _error(502, exc)


__all__ = ["register_exception_handlers"]
