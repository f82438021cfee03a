"""Response schemas for the OpenAI-compatible Apertis endpoints.

Each streamed message body is validated against one of the ``*Chunk``
models by :func:`parse_chunk`.  Validation failures do not raise; they
come back as an unsuccessful :class:`ParseResult` so a single malformed
message never aborts a stream.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------

class UsagePayload(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int | None = None


class FunctionPayload(BaseModel):
    name: str
    arguments: str


class ToolCallPayload(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionPayload


# ---------------------------------------------------------------------------
# /chat/completions
# ---------------------------------------------------------------------------

class ChatMessagePayload(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str | None = None
    tool_calls: list[ToolCallPayload] | None = None


class ChatChoice(BaseModel):
    index: int
    message: ChatMessagePayload
    finish_reason: str | None = None
    logprobs: Any = None


class ChatResponse(BaseModel):
    id: str
    object: Literal["chat.completion"] | None = None
    created: int | None = None
    model: str | None = None
    choices: list[ChatChoice]
    usage: UsagePayload | None = None


class FunctionDelta(BaseModel):
    name: str | None = None
    arguments: str | None = None


class ToolCallDelta(BaseModel):
    index: int
    id: str | None = None
    type: Literal["function"] | None = None
    function: FunctionDelta | None = None


class ChatDelta(BaseModel):
    role: Literal["assistant"] | None = None
    content: str | None = None
    tool_calls: list[ToolCallDelta] | None = None


class ChatChunkChoice(BaseModel):
    index: int
    delta: ChatDelta
    finish_reason: str | None = None


class ChatChunk(BaseModel):
    id: str
    object: Literal["chat.completion.chunk"] | None = None
    created: int | None = None
    model: str | None = None
    choices: list[ChatChunkChoice]
    usage: UsagePayload | None = None


# ---------------------------------------------------------------------------
# /completions
# ---------------------------------------------------------------------------

class CompletionLogprobs(BaseModel):
    tokens: list[str] | None = None
    token_logprobs: list[float] | None = None
    top_logprobs: list[dict[str, float]] | None = None
    text_offset: list[int] | None = None


class CompletionChoice(BaseModel):
    text: str
    index: int
    logprobs: CompletionLogprobs | None = None
    finish_reason: str | None = None


class CompletionResponse(BaseModel):
    id: str
    object: Literal["text_completion"]
    created: int
    model: str
    choices: list[CompletionChoice]
    usage: UsagePayload | None = None


class CompletionChunk(CompletionResponse):
    """Streamed ``/completions`` messages share the response shape."""


# ---------------------------------------------------------------------------
# /embeddings
# ---------------------------------------------------------------------------

class EmbeddingItem(BaseModel):
    object: Literal["embedding"]
    embedding: list[float]
    index: int


class EmbeddingUsage(BaseModel):
    prompt_tokens: int
    total_tokens: int


class EmbeddingResponse(BaseModel):
    object: Literal["list"]
    data: list[EmbeddingItem]
    model: str
    usage: EmbeddingUsage | None = None


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ErrorDetail(BaseModel):
    message: str
    type: str | None = None
    code: str | None = None
    param: str | None = None


class ErrorPayload(BaseModel):
    error: ErrorDetail


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

T = TypeVar("T", bound=BaseModel)


@dataclass
class ParseResult(Generic[T]):
    """Outcome of validating one raw message against a schema."""

    success: bool
    value: T | None = None
    error: ValidationError | None = None
    raw: Any = None


def parse_chunk(raw: Any, schema: type[T]) -> ParseResult[T]:
    """Validate *raw* (a decoded dict or a JSON string) against *schema*."""
    try:
        if isinstance(raw, (str, bytes)):
            value = schema.model_validate_json(raw)
        else:
            value = schema.model_validate(raw)
    except ValidationError as e:
        return ParseResult(success=False, error=e, raw=raw)
    return ParseResult(success=True, value=value, raw=raw)


def to_payload(chunk: Any) -> Any:
    if isinstance(chunk, (dict, str, bytes)):
        return chunk
    # openai SDK models; unset fields stay absent so required ones fail
    return chunk.to_dict()


async def decode_stream(
    stream: AsyncIterator[Any], schema: type[T],
) -> AsyncIterator[ParseResult[T]]:
    """Validate every message of an upstream stream against *schema*.

    An error message sent mid-stream fails validation like any other
    malformed message; it is logged here so the reason is not lost.
    """
    async for chunk in stream:
        payload = to_payload(chunk)
        result = parse_chunk(payload, schema)
        if not result.success:
            error = parse_chunk(payload, ErrorPayload)
            if error.success:
                logger.warning(
                    f"Upstream error in stream: {error.value.error.message}"
                )
        yield result
