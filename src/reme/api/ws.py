"""WebSocket endpoint: project rooms plus agent prompts."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..storage import RecordNotFoundError

logger = logging.getLogger(__name__)


def build_router(services) -> APIRouter:
    router = APIRouter()
    events = services.events
    orchestrator = services.orchestrator

    async def _handle(websocket: WebSocket, message: dict[str, Any]) -> dict[str, Any]:
        kind = message.get("type")
        project_id = message.get("projectId")

        if kind == "join_project":
            if not project_id:
                return {"type": "error", "error": "projectId is required"}
            events.join(websocket, project_id)
            return {"type": "connection_confirmed", "projectId": project_id}

        if kind == "leave_project":
            if project_id:
                events.leave(websocket, project_id)
            return {"type": "left_project", "projectId": project_id}

        if kind == "agent_message":
            try:
                session = orchestrator.create_session(project_id or "", message.get("prompt") or "")
            except (RecordNotFoundError, ValueError) as exc:
                return {"type": "error", "error": str(exc)}
            events.join(websocket, session.project_id)
            services.spawn("session processing", lambda: orchestrator.process_session(session))
            return {"type": "agent_response", "sessionId": session.id, "session": session.to_json()}

        return {"type": "error", "error": f"Unknown message type: {kind}"}

    @router.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        events.connect(websocket)
        logger.info("WebSocket client connected")
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    await websocket.send_json({"type": "error", "error": "Invalid JSON message"})
                    continue
                if not isinstance(message, dict):
                    await websocket.send_json({"type": "error", "error": "Message must be a JSON object"})
                    continue
                await websocket.send_json(await _handle(websocket, message))
        except WebSocketDisconnect:
            logger.info("WebSocket client disconnected")
        finally:
            events.disconnect(websocket)

    return router


__all__ = ["build_router"]
