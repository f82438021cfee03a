from __future__ import annotations

from typing import Any

from openai import AsyncOpenAI

from apertis.events import Usage
from apertis.finish_reason import map_unified_finish_reason
from apertis.language_model import GenerateResult, LanguageModel
from apertis.message import (
    AssistantMessage,
    Message,
    SystemMessage,
    TextPart,
    UserMessage,
)
from apertis.options import CallOptions, RegularMode
from apertis.schemas import CompletionChunk, CompletionResponse, to_payload
from apertis.settings import CompletionSettings
from apertis.streaming import CompletionStreamNormalizer


def convert_prompt_to_text(prompt: list[Message]) -> str:
    """Flatten the text of system, user and assistant messages.

    Non-text parts and tool messages are skipped.
    """
    parts: list[str] = []
    for message in prompt:
        if isinstance(message, SystemMessage):
            parts.append(message.content)
        elif isinstance(message, (UserMessage, AssistantMessage)):
            parts.extend(
                p.text for p in message.content if isinstance(p, TextPart)
            )
    return "\n\n".join(parts)


class CompletionLanguageModel(LanguageModel):
    """Plain text completion over ``/completions``."""

    operation = "text_completion"
    chunk_schema = CompletionChunk

    def __init__(
        self,
        model_id: str,
        client: AsyncOpenAI,
        settings: CompletionSettings | None = None,
        provider: str = "apertis.completion",
    ):
        super().__init__(model_id, client, provider)
        self.settings = settings or CompletionSettings()

    def build_request_body(
        self, options: CallOptions, stream: bool,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model_id,
            "prompt": convert_prompt_to_text(options.prompt),
            "stream": stream,
        }
        if stream:
            body["stream_options"] = {"include_usage": True}

        optional = {
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "top_p": options.top_p,
            "frequency_penalty": options.frequency_penalty,
            "presence_penalty": options.presence_penalty,
            "stop": options.stop_sequences,
            "seed": options.seed,
        }
        body.update({k: v for k, v in optional.items() if v is not None})
        body.update(self.settings.model_dump(exclude_none=True))
        return body

    def warnings(self, options: CallOptions) -> list[str]:
        mode = options.mode
        if isinstance(mode, RegularMode) and mode.tools:
            return ["Tools are not supported by completion models"]
        return []

    def new_normalizer(self) -> CompletionStreamNormalizer:
        return CompletionStreamNormalizer()

    @property
    def resource(self) -> Any:
        return self.client.completions

    def _to_result(self, response: Any) -> GenerateResult:
        parsed = CompletionResponse.model_validate(to_payload(response))
        choice = parsed.choices[0]
        usage = parsed.usage
        return GenerateResult(
            text=choice.text or None,
            finish_reason=map_unified_finish_reason(choice.finish_reason),
            raw_finish_reason=choice.finish_reason,
            usage=Usage(
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
            ) if usage else Usage(),
        )
