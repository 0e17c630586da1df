"""Event system for streaming deployment progress over Server-Sent Events."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from publisher.models.deployment import StepRecord

# Events after which a subscriber stream can close
TERMINAL_EVENTS = frozenset({"deployment_complete", "error"})


@dataclass
class Event:
    """An SSE event."""

    event_type: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.event_type in TERMINAL_EVENTS

    def to_sse(self) -> str:
        """Convert to SSE format."""
        data_json = json.dumps({**self.data, "timestamp": self.timestamp.isoformat()})
        return f"event: {self.event_type}\ndata: {data_json}\n\n"


class EventBus:
    """Per-project event fan-out. Every subscriber gets its own queue."""

    def __init__(self):
        self._subscribers: dict[str, list[asyncio.Queue[Event]]] = {}

    def subscribe(self, project_id: str) -> asyncio.Queue[Event]:
        """Subscribe to events for a project."""
        queue: asyncio.Queue[Event] = asyncio.Queue()
        self._subscribers.setdefault(project_id, []).append(queue)
        return queue

    def unsubscribe(self, project_id: str, queue: asyncio.Queue[Event]) -> None:
        """Remove one subscriber's queue."""
        queues = self._subscribers.get(project_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(project_id, None)

    def subscriber_count(self, project_id: str) -> int:
        return len(self._subscribers.get(project_id, ()))

    async def publish(self, project_id: str, event: Event) -> None:
        """Publish an event to every subscriber of a project."""
        for queue in list(self._subscribers.get(project_id, ())):
            await queue.put(event)

    async def publish_step(self, project_id: str, record: StepRecord) -> None:
        """Publish a step transition (step_started, step_completed, step_failed)."""
        event_type = {
            "in_progress": "step_started",
            "completed": "step_completed",
            "failed": "step_failed",
        }[record.status.value]
        await self.publish(
            project_id,
            Event(
                event_type=event_type,
                data=record.model_dump(mode="json", exclude_none=True),
            ),
        )

    async def publish_deployment_complete(
        self, project_id: str, url: str | None
    ) -> None:
        """Publish a deployment complete event."""
        await self.publish(
            project_id,
            Event(event_type="deployment_complete", data={"url": url}),
        )

    async def publish_error(
        self, project_id: str, error: str, step: str | None = None
    ) -> None:
        """Publish an error event."""
        await self.publish(
            project_id,
            Event(
                event_type="error",
                data={"error": error, "step": step},
            ),
        )


# Singleton instance
_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the event bus singleton."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus
