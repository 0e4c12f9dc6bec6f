"""
Tests for the streaming relay and SSE framing.
"""

import asyncio
import json

from conftest import FakeStream

from mindmend_relay.entities import StreamChunk
from mindmend_relay.errors import UpstreamError
from mindmend_relay.services import StreamRelay, format_sse


async def collect(chunks):
    return [chunk async for chunk in chunks]


def test_relays_chunks_in_order_then_full_text():
    stream = FakeStream(["I hear ", "you. ", "Let's breathe."])

    chunks = asyncio.run(collect(StreamRelay().relay(stream)))

    assert [c.text for c in chunks[:-1]] == ["I hear ", "you. ", "Let's breathe."]
    assert [c.sequence_index for c in chunks] == [0, 1, 2, 3]
    assert not any(c.is_final for c in chunks[:-1])
    final = chunks[-1]
    assert final.is_final
    assert final.full_text == "I hear you. Let's breathe."
    assert stream.close_count == 1


def test_empty_stream_sends_only_final_event():
    stream = FakeStream([])

    chunks = asyncio.run(collect(StreamRelay().relay(stream)))

    assert len(chunks) == 1
    assert chunks[0].to_event() == {"chunk": "", "done": True, "fullText": ""}
    assert stream.closed


def test_upstream_failure_ends_with_error_event():
    stream = FakeStream(["partial "], error=UpstreamError("connection reset"))

    chunks = asyncio.run(collect(StreamRelay().relay(stream)))

    assert chunks[0].to_event() == {"chunk": "partial ", "done": False}
    final = chunks[-1]
    assert final.is_final
    assert final.error
    assert final.to_event()["done"] is True
    assert "fullText" not in final.to_event()
    assert stream.close_count == 1


def test_disconnect_stops_without_terminal_event():
    stream = FakeStream(["one", "two", "three"])
    checks = []

    async def is_disconnected():
        checks.append(True)
        return len(checks) > 1

    chunks = asyncio.run(collect(StreamRelay().relay(stream, is_disconnected)))

    assert [c.text for c in chunks] == ["one"]
    assert stream.close_count == 1


def test_consumer_closing_early_closes_upstream():
    stream = FakeStream(["one", "two", "three"])

    async def take_first():
        chunks = StreamRelay().relay(stream)
        first = await chunks.__anext__()
        await chunks.aclose()
        return first

    first = asyncio.run(take_first())

    assert first.text == "one"
    assert stream.close_count == 1


def test_single_marks_fallback():
    chunks = asyncio.run(collect(StreamRelay().single("Take a breath.", fallback=True)))

    assert [c.to_event() for c in chunks] == [
        {"chunk": "Take a breath.", "done": False},
        {"chunk": "", "done": True, "fullText": "Take a breath.", "fallback": True},
    ]


def test_format_sse_frames_json_event():
    frame = format_sse(StreamChunk(text="café", sequence_index=0))

    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame[len("data: "):]) == {"chunk": "café", "done": False}
