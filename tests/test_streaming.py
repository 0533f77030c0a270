from __future__ import annotations

import asyncio
import json

import pytest

from deepresearch.models.events import ErrorEvent, StatusEvent, ThoughtEvent
from deepresearch.models.research import Phase
from deepresearch.services.streaming import EventChannel


def test_event_format_is_sse_frame():
    frame = StatusEvent(phase=Phase.PLANNING, message="Planning").format()
    header, data_line, *_ = frame.split("\n")
    assert header == "event: status"
    assert json.loads(data_line[len("data: "):]) == {"phase": "planning", "message": "Planning"}
    assert frame.endswith("\n\n")


def test_thought_payload_uses_thought_key():
    assert ThoughtEvent(agent="planner", text="hi").data() == {"agent": "planner", "thought": "hi"}


@pytest.mark.asyncio
async def test_channel_delivers_in_order_then_stops():
    channel = EventChannel(maxsize=4)
    events = [ThoughtEvent(agent="a", text=str(i)) for i in range(3)]

    async def produce():
        for event in events:
            await channel.publish(event)
        await channel.close()

    producer = asyncio.create_task(produce())
    received = [event async for event in channel]
    await producer
    assert received == events


@pytest.mark.asyncio
async def test_publish_waits_when_channel_is_full():
    channel = EventChannel(maxsize=1)
    await channel.publish(ErrorEvent(message="one"))

    blocked = asyncio.create_task(channel.publish(ErrorEvent(message="two")))
    await asyncio.sleep(0.01)
    assert not blocked.done()

    iterator = channel.__aiter__()
    assert (await iterator.__anext__()).message == "one"
    await asyncio.wait_for(blocked, timeout=1)


@pytest.mark.asyncio
async def test_publish_after_close_raises():
    channel = EventChannel()
    await channel.close()
    with pytest.raises(RuntimeError):
        await channel.publish(ErrorEvent(message="late"))


@pytest.mark.asyncio
async def test_close_does_not_wait_on_a_full_channel():
    channel = EventChannel(maxsize=1)
    await channel.publish(ErrorEvent(message="buffered"))

    await asyncio.wait_for(channel.close(), timeout=1)

    received = [event async for event in channel]
    assert [event.message for event in received] == ["buffered"]
