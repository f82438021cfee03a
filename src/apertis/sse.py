"""Server-Sent Events in both directions.

:func:`iter_sse_data` reads the ``data`` payloads of an upstream
``text/event-stream`` body.  :func:`sse_generator` re-emits normalized
events in the same format.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from dataclasses import asdict

import httpx

from apertis.events import StreamEvent

DONE = "[DONE]"
DONE_FRAME = "event: done\ndata: {}\n\n"


async def iter_sse_data(response: httpx.Response) -> AsyncIterator[str]:
    """Yield the ``data`` of every event in *response*, undecoded.

    Multi-line data is joined with newlines.  Reading stops at the
    ``[DONE]`` sentinel or at the end of the body, whichever comes first.
    Comments and other fields are ignored.
    """
    data_lines: list[str] = []
    async for line in response.aiter_lines():
        line = line.rstrip("\r\n")
        if not line:
            if data_lines:
                data = "\n".join(data_lines)
                data_lines = []
                if data == DONE:
                    return
                yield data
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field == "data":
            data_lines.append(value[1:] if value.startswith(" ") else value)
    if data_lines:
        data = "\n".join(data_lines)
        if data != DONE:
            yield data


def format_event(event: StreamEvent) -> str:
    """One SSE frame; the event name is the event's class name."""
    payload = json.dumps(asdict(event))
    return f"event: {type(event).__name__}\ndata: {payload}\n\n"


async def sse_generator(
    events: AsyncIterator[StreamEvent],
) -> AsyncIterator[str]:
    """Yield a frame per event, then a closing ``done`` frame.

    ``done`` is sent even when the stream ended without a
    :class:`~apertis.events.FinishEvent`.
    """
    async for event in events:
        yield format_event(event)
    yield DONE_FRAME
