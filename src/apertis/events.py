"""Canonical events emitted while normalizing a provider stream."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from apertis.finish_reason import FinishReason


@dataclass
class Usage:
    """Token counters.  Counters the upstream omits are reported as 0."""

    prompt_tokens: int = 0
    completion_tokens: int = 0


@dataclass
class StreamEvent:
    """Base for all streaming events."""


@dataclass
class TextStartEvent(StreamEvent):
    """Opens a text span.  Only emitted by span-modelling streams."""

    id: str = ""


@dataclass
class TextDeltaEvent(StreamEvent):
    """One text increment, forwarded verbatim.

    ``id`` is the enclosing span id for span-modelling streams and
    ``None`` otherwise.
    """

    delta: str = ""
    id: str | None = None


@dataclass
class TextEndEvent(StreamEvent):
    """Closes the text span opened by :class:`TextStartEvent`."""

    id: str = ""


@dataclass
class ToolCallEvent(StreamEvent):
    """A fully reassembled function call.

    ``args`` is the raw argument text exactly as the upstream produced
    it.  Use :meth:`parse_args` to decode it.
    """

    tool_call_id: str = ""
    tool_name: str = ""
    args: str = ""
    tool_call_type: str = "function"

    def parse_args(self) -> Any:
        """Decode ``args`` as JSON.

        Raises:
            json.JSONDecodeError: If the upstream produced malformed
                arguments.
        """
        return json.loads(self.args)


@dataclass
class FinishEvent(StreamEvent):
    """Final event of a stream that ended with an explicit reason."""

    finish_reason: FinishReason = FinishReason.UNKNOWN
    usage: Usage = field(default_factory=Usage)
    raw_finish_reason: str | None = None
