import json

import httpx
import pytest

from apertis.events import (
    FinishEvent,
    TextDeltaEvent,
    TextEndEvent,
    ToolCallEvent,
    Usage,
)
from apertis.finish_reason import FinishReason
from apertis.sse import format_event, iter_sse_data, sse_generator
from tests.conftest import aiter_list, collect


@pytest.mark.asyncio
async def test_events_are_serialized_with_type_name():
    frames = await collect(sse_generator(aiter_list([
        TextDeltaEvent(delta="Hi"),
        ToolCallEvent(tool_call_id="c1", tool_name="now", args="{}"),
        FinishEvent(
            finish_reason=FinishReason.TOOL_CALLS,
            usage=Usage(prompt_tokens=1, completion_tokens=2),
            raw_finish_reason="tool_calls",
        ),
    ])))

    assert frames[0] == (
        'event: TextDeltaEvent\ndata: {"delta": "Hi", "id": null}\n\n'
    )
    assert frames[1].startswith("event: ToolCallEvent\n")
    finish = json.loads(frames[2].split("data: ", 1)[1])
    assert finish == {
        "finish_reason": "tool-calls",
        "usage": {"prompt_tokens": 1, "completion_tokens": 2},
        "raw_finish_reason": "tool_calls",
    }
    assert frames[-1] == "event: done\ndata: {}\n\n"


@pytest.mark.asyncio
async def test_empty_stream_still_sends_done():
    assert await collect(sse_generator(aiter_list([]))) == [
        "event: done\ndata: {}\n\n",
    ]


def test_format_event_for_text_span():
    assert format_event(TextEndEvent(id="t1")) == (
        'event: TextEndEvent\ndata: {"id": "t1"}\n\n'
    )


def sse_body(content: bytes) -> httpx.Response:
    return httpx.Response(
        200, headers={"content-type": "text/event-stream"}, content=content,
    )


class TestIterSseData:
    @pytest.mark.asyncio
    async def test_one_payload_per_event(self):
        response = sse_body(b'data: {"a": 1}\n\ndata: {"b": 2}\n\n')
        assert await collect(iter_sse_data(response)) == [
            '{"a": 1}', '{"b": 2}',
        ]

    @pytest.mark.asyncio
    async def test_multi_line_data_is_joined(self):
        response = sse_body(b"data: first\ndata:second\n\n")
        assert await collect(iter_sse_data(response)) == ["first\nsecond"]

    @pytest.mark.asyncio
    async def test_comments_and_other_fields_are_ignored(self):
        response = sse_body(
            b": keep-alive\n\nevent: chunk\nid: 4\ndata: x\n\n"
        )
        assert await collect(iter_sse_data(response)) == ["x"]

    @pytest.mark.asyncio
    async def test_stops_at_done(self):
        response = sse_body(b"data: a\n\ndata: [DONE]\n\ndata: b\n\n")
        assert await collect(iter_sse_data(response)) == ["a"]

    @pytest.mark.asyncio
    async def test_crlf_line_endings(self):
        response = sse_body(b"data: a\r\n\r\ndata: b\r\n\r\n")
        assert await collect(iter_sse_data(response)) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_unterminated_last_event_is_kept(self):
        response = sse_body(b"data: a\n\ndata: b")
        assert await collect(iter_sse_data(response)) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_unterminated_done(self):
        response = sse_body(b"data: a\n\ndata: [DONE]")
        assert await collect(iter_sse_data(response)) == ["a"]
