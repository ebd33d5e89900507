"""Project-scoped event fan-out to connected clients."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

EVENT_TYPES = frozenset(
    {"session.updated", "git.updated", "patch.proposed", "ask.permission", "session.finished"}
)


class Subscriber(Protocol):
    async def send_json(self, data: dict[str, Any]) -> None:
        ...


@dataclass(slots=True, eq=False)
class _Connection:
    subscriber: Subscriber
    projects: set[str] = field(default_factory=set)


class EventBus:
    """Deliver events to subscribers that joined the event's project.

    Events without a ``projectId`` go to every subscriber. A subscriber whose
    send fails is dropped.
    """

    def __init__(self) -> None:
        self._connections: dict[int, _Connection] = {}

    def connect(self, subscriber: Subscriber) -> None:
        self._connections.setdefault(id(subscriber), _Connection(subscriber))

    def disconnect(self, subscriber: Subscriber) -> None:
        self._connections.pop(id(subscriber), None)

    def join(self, subscriber: Subscriber, project_id: str) -> None:
        self.connect(subscriber)
        self._connections[id(subscriber)].projects.add(project_id)

    def leave(self, subscriber: Subscriber, project_id: str) -> None:
        connection = self._connections.get(id(subscriber))
        if connection is not None:
            connection.projects.discard(project_id)

    def subscriber_count(self, project_id: str | None = None) -> int:
        if project_id is None:
            return len(self._connections)
        return sum(1 for connection in self._connections.values() if project_id in connection.projects)

    async def publish(self, event_type: str, payload: dict[str, Any] | None = None) -> int:
        """Send an event and return how many subscribers received it."""

        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}")

        message = {"type": event_type, **(payload or {})}
        project_id = message.get("projectId")
        targets = [
            connection
            for connection in list(self._connections.values())
            if project_id is None or project_id in connection.projects
        ]
        results = await asyncio.gather(
            *(connection.subscriber.send_json(message) for connection in targets),
            return_exceptions=True,
        )

        delivered = 0
        for connection, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Dropping event subscriber after failed send",
                    extra={"event_type": event_type, "error": str(result)},
                )
                self.disconnect(connection.subscriber)
            else:
                delivered += 1
        return delivered


__all__ = ["EVENT_TYPES", "EventBus", "Subscriber"]
