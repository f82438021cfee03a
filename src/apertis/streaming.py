"""Streaming normalization of provider responses.

Providers deliver a response as a sequence of small JSON messages.  The
:class:`StreamNormalizer` turns the classified fragments of those
messages into canonical :mod:`apertis.events`:

* text increments are forwarded one-to-one as they arrive;
* tool-call increments are buffered per positional index by the
  :class:`ToolCallAccumulator` and surfaced only when the message
  completes, in ascending index order;
* completion emits a single :class:`FinishEvent`, while an abrupt end of
  stream is handled by :meth:`StreamNormalizer.flush`, which releases
  buffered work without inventing a finish reason.

A normalizer owns all per-stream state and must not be reused across
streams.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

import httpx
from openai import APIConnectionError

from apertis.events import (
    FinishEvent,
    StreamEvent,
    TextDeltaEvent,
    TextEndEvent,
    TextStartEvent,
    ToolCallEvent,
    Usage,
)
from apertis.finish_reason import (
    FinishReason,
    map_finish_reason,
    map_unified_finish_reason,
)
from apertis.fragments import (
    CompletionFragment,
    Fragment,
    TextFragment,
    ToolCallFragment,
    UnrepresentableFragment,
    UsageFragment,
    classify_chat_chunk,
    classify_completion_chunk,
)
from apertis.schemas import ParseResult

logger = logging.getLogger(__name__)

# Errors raised mid-body when the connection drops.  APITimeoutError is
# a subclass of APIConnectionError.
TRANSPORT_ERRORS = (APIConnectionError, httpx.TransportError)


def generate_id() -> str:
    return uuid.uuid4().hex[:16]


@dataclass
class ToolCallBuffer:
    """Accumulated state of one in-flight tool call."""

    id: str = ""
    name: str = ""
    arguments: str = ""
    has_upstream_id: bool = False

    @property
    def is_complete(self) -> bool:
        """Whether the buffer may be emitted.

        A name is required.  Empty arguments are allowed, since a call
        to a function without parameters is legitimate.
        """
        return bool(self.name)

    def apply(self, fragment: ToolCallFragment) -> None:
        if fragment.call_id is not None:
            if not self.has_upstream_id:
                self.id = fragment.call_id
                self.has_upstream_id = True
            elif fragment.call_id != self.id:
                logger.warning(
                    f"Ignoring id {fragment.call_id!r} for tool call "
                    f"{fragment.index}, already identified as {self.id!r}"
                )
        if fragment.name is not None:
            self.name += fragment.name
        if fragment.arguments_delta is not None:
            self.arguments += fragment.arguments_delta


class ToolCallAccumulator:
    """Assembles complete tool calls from streaming fragments."""

    def __init__(self, id_factory: Callable[[], str] = generate_id) -> None:
        self._pending: dict[int, ToolCallBuffer] = {}
        self._id_factory = id_factory

    def feed(self, fragment: ToolCallFragment) -> None:
        buffer = self._pending.get(fragment.index)
        if buffer is None:
            buffer = ToolCallBuffer(id=self._id_factory())
            self._pending[fragment.index] = buffer
        buffer.apply(fragment)

    def drain(self) -> list[ToolCallBuffer]:
        """Remove every buffer and return the complete ones in index order."""
        completed = []
        for index in sorted(self._pending):
            buffer = self._pending[index]
            if buffer.is_complete:
                completed.append(buffer)
            else:
                logger.warning(
                    f"Dropping tool call {index} ({buffer.id}) with no name; "
                    f"{len(buffer.arguments)} argument characters discarded"
                )
        self._pending.clear()
        return completed


class StreamNormalizer(ABC):
    """Aggregation state machine for one provider stream.

    Subclasses choose how a raw chunk is classified, which finish-reason
    vocabulary applies and whether text is delimited by start/end
    events.

    Args:
        id_factory: Generates text span ids and placeholder tool-call
            ids.
    """

    model_text_spans: bool = False

    def __init__(self, id_factory: Callable[[], str] = generate_id) -> None:
        self._id_factory = id_factory
        self._tool_calls = ToolCallAccumulator(id_factory)
        self._text_id: str | None = None
        self._usage: Usage | None = None
        self._finish: FinishEvent | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def classify(self, result: ParseResult) -> list[Fragment]:
        ...

    @abstractmethod
    def map_finish_reason(self, finish_reason: str | None) -> FinishReason:
        ...

    def feed(self, fragment: Fragment) -> list[StreamEvent]:
        """Consume one fragment and return the events it produces."""
        if isinstance(fragment, UnrepresentableFragment):
            logger.debug(f"Dropping unparseable chunk: {fragment.error}")
            return []
        if isinstance(fragment, UsageFragment):
            return self._handle_usage(fragment.usage)
        if self._closed:
            logger.warning(
                f"Rejecting {type(fragment).__name__} received after the "
                "stream was closed"
            )
            return []

        if isinstance(fragment, TextFragment):
            return self._handle_text(fragment.content)
        if isinstance(fragment, ToolCallFragment):
            self._tool_calls.feed(fragment)
            return []
        if isinstance(fragment, CompletionFragment):
            return self._handle_completion(fragment)
        raise TypeError(f"Unsupported fragment: {type(fragment).__name__}")

    def flush(self) -> list[StreamEvent]:
        """Release buffered work after the stream ended without a reason.

        Closes an open text span and emits the buffered tool calls.  No
        :class:`FinishEvent` is produced.  Safe to call more than once.
        """
        if self._closed:
            return []
        return self._close()

    async def normalize(
        self, results: AsyncIterator[ParseResult],
    ) -> AsyncIterator[StreamEvent]:
        """Drive the state machine over an async stream of parse results.

        A transport failure while reading ends the stream the same way a
        clean close does: buffered work is flushed and no finish event is
        synthesized.

        The finish event is yielded last, once the upstream has ended, so
        that usage sent after the finish reason can still be attached.
        """
        finish = None
        try:
            async for result in results:
                for fragment in self.classify(result):
                    for event in self.feed(fragment):
                        if isinstance(event, FinishEvent):
                            finish = event
                        else:
                            yield event
        except TRANSPORT_ERRORS as e:
            logger.warning(f"Stream ended by transport error: {e!r}")
        for event in self.flush():
            yield event
        if finish is not None:
            yield finish

    # ------------------------------------------------------------------
    # Fragment handlers
    # ------------------------------------------------------------------

    def _handle_text(self, content: str) -> list[StreamEvent]:
        if not content:
            return []
        events: list[StreamEvent] = []
        if self.model_text_spans and self._text_id is None:
            self._text_id = self._id_factory()
            events.append(TextStartEvent(id=self._text_id))
        events.append(TextDeltaEvent(delta=content, id=self._text_id))
        return events

    def _handle_completion(
        self, fragment: CompletionFragment,
    ) -> list[StreamEvent]:
        events = self._close()
        self._finish = FinishEvent(
            finish_reason=self.map_finish_reason(fragment.finish_reason),
            usage=fragment.usage or self._usage or Usage(),
            raw_finish_reason=fragment.finish_reason,
        )
        events.append(self._finish)
        return events

    def _handle_usage(self, usage: Usage) -> list[StreamEvent]:
        # Also accepted after close: it completes the finish event.
        self._usage = usage
        if self._finish is not None:
            self._finish.usage = usage
        return []

    def _close(self) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        if self._text_id is not None:
            events.append(TextEndEvent(id=self._text_id))
        for buffer in self._tool_calls.drain():
            events.append(ToolCallEvent(
                tool_call_id=buffer.id,
                tool_name=buffer.name,
                args=buffer.arguments,
            ))
        self._closed = True
        return events


class ChatStreamNormalizer(StreamNormalizer):
    """Text and tool calls from ``/chat/completions``; no text spans."""

    def classify(self, result: ParseResult) -> list[Fragment]:
        return classify_chat_chunk(result)

    def map_finish_reason(self, finish_reason: str | None) -> FinishReason:
        return map_finish_reason(finish_reason)


class CompletionStreamNormalizer(StreamNormalizer):
    """Text from ``/completions``, delimited by start/end events."""

    model_text_spans = True

    def classify(self, result: ParseResult) -> list[Fragment]:
        return classify_completion_chunk(result)

    def map_finish_reason(self, finish_reason: str | None) -> FinishReason:
        return map_unified_finish_reason(finish_reason)
