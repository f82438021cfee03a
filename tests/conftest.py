import itertools
import json

import httpx
import pytest
from openai import AsyncOpenAI

from apertis.chat_model import ChatLanguageModel
from apertis.completion_model import CompletionLanguageModel
from apertis.message import TextPart, UserMessage
from apertis.options import CallOptions


# ---------------------------------------------------------------------------
# Mock API (real AsyncOpenAI client over httpx.MockTransport)
# ---------------------------------------------------------------------------

class MockAPI:
    """Serves queued responses to every request.  No network calls.

    Sent requests are kept in ``requests`` and served responses in
    ``responses``, so tests can inspect request bodies and check that a
    response was closed.
    """

    def __init__(self):
        self.queue: list[httpx.Response] = []
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response] = []

    def reply(self, response: httpx.Response) -> None:
        self.queue.append(response)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.queue.pop(0)
        self.responses.append(response)
        return response

    @property
    def body(self) -> dict:
        """JSON body of the last request."""
        return json.loads(self.requests[-1].content)


class BrokenStream(httpx.AsyncByteStream):
    """Response body that fails with *error* after sending *data*."""

    def __init__(self, data: bytes, error: Exception):
        self.data = data
        self.error = error

    async def __aiter__(self):
        yield self.data
        raise self.error


def sse_body(*messages, done: bool = True) -> bytes:
    """Encode *messages* as ``data:`` events.

    Dicts are JSON-encoded; strings are sent as-is, so malformed
    payloads can be served.
    """
    frames = [
        f"data: {m if isinstance(m, str) else json.dumps(m)}\n\n"
        for m in messages
    ]
    if done:
        frames.append("data: [DONE]\n\n")
    return "".join(frames).encode()


def sse_response(*messages, done: bool = True) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        content=sse_body(*messages, done=done),
    )


def broken_sse_response(*messages, error: Exception) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        stream=BrokenStream(sse_body(*messages, done=False), error),
    )


def error_response(status: int, message: str, **detail) -> httpx.Response:
    return httpx.Response(
        status, json={"error": {"message": message, **detail}},
    )


async def aiter_list(items):
    for item in items:
        yield item


async def collect(events):
    return [e async for e in events]


# ---------------------------------------------------------------------------
# Chunk builders (raw dicts as the API sends them)
# ---------------------------------------------------------------------------

def chat_chunk(
    content: str | None = None,
    tool_calls: list[dict] | None = None,
    finish_reason: str | None = None,
    usage: dict | None = None,
    choices: bool = True,
) -> dict:
    delta: dict = {}
    if content is not None:
        delta["content"] = content
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    chunk: dict = {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": "mock-model",
        "choices": [],
    }
    if choices:
        chunk["choices"] = [{
            "index": 0, "delta": delta, "finish_reason": finish_reason,
        }]
    if usage is not None:
        chunk["usage"] = usage
    return chunk


def tool_delta(
    index: int,
    id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
) -> dict:
    delta: dict = {"index": index}
    if id is not None:
        delta["id"] = id
        delta["type"] = "function"
    function = {}
    if name is not None:
        function["name"] = name
    if arguments is not None:
        function["arguments"] = arguments
    if function:
        delta["function"] = function
    return delta


def completion_chunk(
    text: str = "",
    finish_reason: str | None = None,
    usage: dict | None = None,
) -> dict:
    return {
        "id": "cmpl-1",
        "object": "text_completion",
        "created": 1700000000,
        "model": "mock-instruct",
        "choices": [{
            "text": text, "index": 0, "logprobs": None,
            "finish_reason": finish_reason,
        }],
        "usage": usage,
    }


def user_prompt(text: str = "hi") -> CallOptions:
    return CallOptions(prompt=[UserMessage(content=[TextPart(text=text)])])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def id_factory():
    """Deterministic ids: ``id-0``, ``id-1``, ..."""
    counter = itertools.count()
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def api():
    return MockAPI()


@pytest.fixture
def client(api):
    return AsyncOpenAI(
        api_key="test-key",
        base_url="http://localhost/v1",
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(api.handler)),
    )


@pytest.fixture
def chat_model(client):
    return ChatLanguageModel("mock-model", client)


@pytest.fixture
def completion_model(client):
    return CompletionLanguageModel("mock-instruct", client)
