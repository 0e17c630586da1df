"""Unit tests for the deployment event bus."""

import json

import pytest

from publisher.core.events import Event
from publisher.models.deployment import DeploymentStep, StepRecord, StepStatus


class TestEventBus:
    """Tests for EventBus."""

    @pytest.mark.asyncio
    async def test_publish_without_subscriber_is_dropped(self, events):
        await events.publish("p1", Event(event_type="step_started", data={}))

        queue = events.subscribe("p1")
        assert queue.empty()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, event_type",
        [
            (StepStatus.IN_PROGRESS, "step_started"),
            (StepStatus.COMPLETED, "step_completed"),
            (StepStatus.FAILED, "step_failed"),
        ],
    )
    async def test_publish_step(self, events, status, event_type):
        queue = events.subscribe("p1")
        record = StepRecord(step=DeploymentStep.PUSH_FILES, message="")
        if status != StepStatus.IN_PROGRESS:
            record.finish(status, error="boom")

        await events.publish_step("p1", record)

        event = queue.get_nowait()
        assert event.event_type == event_type
        assert event.data["step"] == "push_files"
        assert event.data["status"] == status.value
        assert not event.is_terminal

    @pytest.mark.asyncio
    async def test_terminal_events(self, events):
        queue = events.subscribe("p1")

        await events.publish_deployment_complete("p1", "https://todo.vercel.app")
        await events.publish_error("p1", "boom", "validate")

        complete = queue.get_nowait()
        error = queue.get_nowait()
        assert complete.is_terminal and error.is_terminal
        assert complete.data == {"url": "https://todo.vercel.app"}
        assert error.data == {"error": "boom", "step": "validate"}

    @pytest.mark.asyncio
    async def test_unsubscribe(self, events):
        queue = events.subscribe("p1")
        events.unsubscribe("p1", queue)
        events.unsubscribe("p1", queue)

        await events.publish_error("p1", "boom")

        assert queue.empty()
        assert events.subscriber_count("p1") == 0

    @pytest.mark.asyncio
    async def test_every_subscriber_gets_every_event(self, events):
        first = events.subscribe("p1")
        second = events.subscribe("p1")

        await events.publish_deployment_complete("p1", "https://todo.vercel.app")

        assert first.get_nowait().event_type == "deployment_complete"
        assert second.get_nowait().event_type == "deployment_complete"

    @pytest.mark.asyncio
    async def test_unsubscribe_keeps_other_subscribers(self, events):
        leaving = events.subscribe("p1")
        staying = events.subscribe("p1")

        events.unsubscribe("p1", leaving)
        await events.publish_error("p1", "boom", "validate")

        assert leaving.empty()
        assert staying.get_nowait().data == {"error": "boom", "step": "validate"}
        assert events.subscriber_count("p1") == 1


def test_event_to_sse():
    event = Event(event_type="deployment_complete", data={"url": "https://x.vercel.app"})

    lines = event.to_sse().split("\n")

    assert lines[0] == "event: deployment_complete"
    payload = json.loads(lines[1].removeprefix("data: "))
    assert payload["url"] == "https://x.vercel.app"
    assert "timestamp" in payload
