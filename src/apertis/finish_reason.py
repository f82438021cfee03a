"""Canonical finish-reason vocabulary.

Upstream finish reasons are opaque strings.  Both mappings here are
total: ``None`` and unrecognised strings fall through to a default tag.
"""

from __future__ import annotations

from enum import Enum


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool-calls"
    CONTENT_FILTER = "content-filter"
    UNKNOWN = "unknown"
    OTHER = "other"


_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "content_filter": FinishReason.CONTENT_FILTER,
}

_UNIFIED_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
}


def map_finish_reason(finish_reason: str | None) -> FinishReason:
    """Map a chat finish reason onto the full canonical vocabulary."""
    return _FINISH_REASONS.get(finish_reason, FinishReason.UNKNOWN)


def map_unified_finish_reason(finish_reason: str | None) -> FinishReason:
    """Map a text-completion finish reason onto ``stop``/``length``/``other``."""
    return _UNIFIED_FINISH_REASONS.get(finish_reason, FinishReason.OTHER)
