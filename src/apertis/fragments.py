"""Classification of decoded stream chunks into fragments.

A single upstream message may carry text, several tool-call deltas and a
finish reason at once.  The classifiers split it into fragments in that
order so the normalizer only ever handles one kind of increment at a
time.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError

from apertis.events import Usage
from apertis.schemas import ChatChunk, CompletionChunk, ParseResult, UsagePayload


@dataclass
class Fragment:
    """Base for classified stream fragments."""


@dataclass
class TextFragment(Fragment):
    content: str


@dataclass
class ToolCallFragment(Fragment):
    """A fragment of a tool call from a streaming chunk."""

    index: int
    call_id: str | None = None
    name: str | None = None
    arguments_delta: str | None = None


@dataclass
class CompletionFragment(Fragment):
    finish_reason: str | None
    usage: Usage | None = None


@dataclass
class UsageFragment(Fragment):
    """Token counts sent in a message of their own, without choices.

    OpenAI-compatible servers send it after the finish reason when
    ``stream_options.include_usage`` is requested.
    """

    usage: Usage


@dataclass
class UnrepresentableFragment(Fragment):
    """A message that failed schema validation."""

    error: ValidationError | None = None


def _usage(payload: UsagePayload | None) -> Usage | None:
    if payload is None:
        return None
    return Usage(
        prompt_tokens=payload.prompt_tokens,
        completion_tokens=payload.completion_tokens,
    )


def _trailing_usage(chunk) -> list[Fragment]:
    usage = _usage(chunk.usage)
    return [UsageFragment(usage=usage)] if usage else []


def classify_chat_chunk(result: ParseResult[ChatChunk]) -> list[Fragment]:
    if not result.success:
        return [UnrepresentableFragment(error=result.error)]

    chunk = result.value
    if not chunk.choices:
        return _trailing_usage(chunk)
    choice = chunk.choices[0]

    fragments: list[Fragment] = []
    if choice.delta.content:
        fragments.append(TextFragment(content=choice.delta.content))
    for tc in choice.delta.tool_calls or []:
        function = tc.function
        fragments.append(ToolCallFragment(
            index=tc.index,
            call_id=tc.id or None,
            name=(function.name or None) if function else None,
            arguments_delta=(function.arguments or None) if function else None,
        ))
    if choice.finish_reason:
        fragments.append(CompletionFragment(
            finish_reason=choice.finish_reason, usage=_usage(chunk.usage),
        ))
    return fragments


def classify_completion_chunk(
    result: ParseResult[CompletionChunk],
) -> list[Fragment]:
    if not result.success:
        return [UnrepresentableFragment(error=result.error)]

    chunk = result.value
    if not chunk.choices:
        return _trailing_usage(chunk)
    choice = chunk.choices[0]

    fragments: list[Fragment] = []
    if choice.text:
        fragments.append(TextFragment(content=choice.text))
    if choice.finish_reason:
        fragments.append(CompletionFragment(
            finish_reason=choice.finish_reason, usage=_usage(chunk.usage),
        ))
    return fragments
