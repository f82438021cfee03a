"""Unit tests for chunk decoding and classification."""

import json

from apertis.events import Usage
from apertis.fragments import (
    CompletionFragment,
    TextFragment,
    ToolCallFragment,
    UnrepresentableFragment,
    UsageFragment,
    classify_chat_chunk,
    classify_completion_chunk,
)
from apertis.schemas import ChatChunk, CompletionChunk, parse_chunk
from tests.conftest import chat_chunk, completion_chunk, tool_delta


def classify_chat(raw):
    return classify_chat_chunk(parse_chunk(raw, ChatChunk))


class TestParseChunk:
    def test_valid_dict(self):
        result = parse_chunk(chat_chunk(content="hi"), ChatChunk)
        assert result.success
        assert result.value.choices[0].delta.content == "hi"

    def test_valid_json_text(self):
        result = parse_chunk(json.dumps(chat_chunk(content="hi")), ChatChunk)
        assert result.success

    def test_missing_required_field(self):
        raw = chat_chunk(content="hi")
        del raw["id"]
        result = parse_chunk(raw, ChatChunk)
        assert not result.success
        assert result.error is not None
        assert result.raw is raw

    def test_malformed_json_text(self):
        result = parse_chunk('{"id": "x", "choices": [', ChatChunk)
        assert not result.success


class TestClassifyChatChunk:
    def test_text(self):
        assert classify_chat(chat_chunk(content="Hel")) == [TextFragment("Hel")]

    def test_empty_and_null_content_ignored(self):
        assert classify_chat(chat_chunk(content="")) == []
        raw = chat_chunk()
        raw["choices"][0]["delta"]["content"] = None
        assert classify_chat(raw) == []

    def test_role_only_delta(self):
        raw = chat_chunk()
        raw["choices"][0]["delta"]["role"] = "assistant"
        assert classify_chat(raw) == []

    def test_tool_call_deltas(self):
        fragments = classify_chat(chat_chunk(tool_calls=[
            tool_delta(0, id="call_1", name="get_", arguments=""),
            tool_delta(1, arguments='{"a"'),
        ]))
        assert fragments == [
            ToolCallFragment(index=0, call_id="call_1", name="get_"),
            ToolCallFragment(index=1, arguments_delta='{"a"'),
        ]

    def test_tool_call_without_function(self):
        assert classify_chat(chat_chunk(tool_calls=[tool_delta(2)])) == [
            ToolCallFragment(index=2),
        ]

    def test_order_text_tools_completion(self):
        fragments = classify_chat(chat_chunk(
            content="ok",
            tool_calls=[tool_delta(0, name="f")],
            finish_reason="tool_calls",
            usage={"prompt_tokens": 3, "completion_tokens": 4},
        ))
        assert fragments == [
            TextFragment("ok"),
            ToolCallFragment(index=0, name="f"),
            CompletionFragment(
                finish_reason="tool_calls",
                usage=Usage(prompt_tokens=3, completion_tokens=4),
            ),
        ]

    def test_null_finish_reason_is_not_completion(self):
        assert classify_chat(chat_chunk(content="a", finish_reason=None)) == [
            TextFragment("a"),
        ]

    def test_usage_only_chunk(self):
        raw = chat_chunk(
            choices=False,
            usage={"prompt_tokens": 3, "completion_tokens": 4},
        )
        assert classify_chat(raw) == [
            UsageFragment(usage=Usage(prompt_tokens=3, completion_tokens=4)),
        ]

    def test_empty_chunk_has_no_fragments(self):
        assert classify_chat(chat_chunk(choices=False)) == []

    def test_invalid_chunk_is_unrepresentable(self):
        [fragment] = classify_chat({"choices": "nope"})
        assert isinstance(fragment, UnrepresentableFragment)
        assert fragment.error is not None


class TestClassifyCompletionChunk:
    def classify(self, raw):
        return classify_completion_chunk(parse_chunk(raw, CompletionChunk))

    def test_text_and_finish(self):
        assert self.classify(completion_chunk("end", finish_reason="length")) == [
            TextFragment("end"),
            CompletionFragment(finish_reason="length"),
        ]

    def test_empty_text_ignored(self):
        assert self.classify(completion_chunk("")) == []

    def test_wrong_object_is_unrepresentable(self):
        raw = completion_chunk("x")
        raw["object"] = "chat.completion.chunk"
        [fragment] = self.classify(raw)
        assert isinstance(fragment, UnrepresentableFragment)
