import pytest

from apertis.finish_reason import (
    FinishReason,
    map_finish_reason,
    map_unified_finish_reason,
)


@pytest.mark.parametrize("raw, expected", [
    ("stop", "stop"),
    ("length", "length"),
    ("tool_calls", "tool-calls"),
    ("content_filter", "content-filter"),
    (None, "unknown"),
    ("something_else", "unknown"),
    ("", "unknown"),
    ("STOP", "unknown"),
])
def test_map_finish_reason(raw, expected):
    assert map_finish_reason(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    ("stop", "stop"),
    ("length", "length"),
    ("tool_calls", "other"),
    ("content_filter", "other"),
    (None, "other"),
    ("something_else", "other"),
])
def test_map_unified_finish_reason(raw, expected):
    assert map_unified_finish_reason(raw) == expected


def test_tags_are_plain_strings():
    assert FinishReason.TOOL_CALLS.value == "tool-calls"
    assert isinstance(map_finish_reason("stop"), str)
