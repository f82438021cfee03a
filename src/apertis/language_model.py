"""Shared plumbing for the chat and completion language models."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
from openai import AsyncOpenAI
from pydantic import BaseModel

from apertis.errors import api_errors
from apertis.events import FinishEvent, StreamEvent, ToolCallEvent, Usage
from apertis.finish_reason import FinishReason
from apertis.instrumentation import completion_span, record_error, record_usage
from apertis.options import CallOptions
from apertis.schemas import decode_stream
from apertis.sse import iter_sse_data
from apertis.streaming import StreamNormalizer

logger = logging.getLogger(__name__)


@dataclass
class GenerateResult:
    """The terminal state of a single-shot (non-streaming) call."""

    text: str | None
    finish_reason: FinishReason
    usage: Usage
    tool_calls: list[ToolCallEvent] = field(default_factory=list)
    raw_finish_reason: str | None = None
    request_body: dict = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


@dataclass
class StreamResult:
    """A started streaming call.

    ``events`` must be consumed (or closed) by the caller; closing it
    releases the underlying HTTP response.  Closing early discards any
    buffered tool calls: they are only flushed when the upstream ends.
    """

    events: AsyncIterator[StreamEvent]
    request_body: dict
    warnings: list[str] = field(default_factory=list)


class LanguageModel(ABC):
    """Base for models served over an OpenAI-compatible endpoint.

    Args:
        model_id: Upstream model name.
        client: Configured ``AsyncOpenAI`` client.
        provider: Provider id, e.g. ``"apertis.chat"``.
    """

    operation: str = ""
    chunk_schema: type[BaseModel]

    def __init__(self, model_id: str, client: AsyncOpenAI, provider: str):
        self.model_id = model_id
        self.client = client
        self.provider = provider

    @abstractmethod
    def build_request_body(
        self, options: CallOptions, stream: bool,
    ) -> dict[str, Any]:
        ...

    @property
    @abstractmethod
    def resource(self) -> Any:
        """The ``AsyncOpenAI`` resource serving this model."""

    @abstractmethod
    def _to_result(self, response: Any) -> GenerateResult:
        ...

    @abstractmethod
    def new_normalizer(self) -> StreamNormalizer:
        ...

    def warnings(self, options: CallOptions) -> list[str]:
        return []

    async def generate(self, options: CallOptions) -> GenerateResult:
        body = self.build_request_body(options, stream=False)
        logger.info(f"{self.provider}: generate with {self.model_id}")
        async with completion_span(
            self.operation, self.provider, self.model_id,
        ) as span:
            try:
                with api_errors():
                    response = await self.resource.create(**body)
                result = self._to_result(response)
            except Exception as e:
                record_error(span, e)
                raise
            record_usage(span, result.usage, result.finish_reason)
        result.request_body = body
        result.warnings = self.warnings(options)
        return result

    async def stream(self, options: CallOptions) -> StreamResult:
        """Start a streaming call.

        The request is sent before this returns, so HTTP errors surface
        here as :class:`~apertis.errors.APICallError`.  Errors that occur
        after the body has started end the event stream instead.
        """
        body = self.build_request_body(options, stream=True)
        logger.info(f"{self.provider}: stream with {self.model_id}")
        with api_errors():
            # Undecoded SSE body; each message is validated by decode_stream.
            raw = await self.resource.with_raw_response.create(**body)
        return StreamResult(
            events=self._events(raw.http_response),
            request_body=body,
            warnings=self.warnings(options),
        )

    async def _events(
        self, response: httpx.Response,
    ) -> AsyncIterator[StreamEvent]:
        normalizer = self.new_normalizer()
        async with completion_span(
            self.operation, self.provider, self.model_id,
        ) as span:
            try:
                async for event in normalizer.normalize(
                    decode_stream(iter_sse_data(response), self.chunk_schema)
                ):
                    if isinstance(event, FinishEvent):
                        record_usage(span, event.usage, event.finish_reason)
                    yield event
            finally:
                await response.aclose()
