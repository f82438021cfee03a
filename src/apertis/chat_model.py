from __future__ import annotations

from typing import Any

from openai import AsyncOpenAI

from apertis.convert import (
    convert_to_openai_messages,
    convert_to_openai_tool_choice,
    convert_to_openai_tools,
)
from apertis.events import ToolCallEvent, Usage
from apertis.finish_reason import map_finish_reason
from apertis.language_model import GenerateResult, LanguageModel
from apertis.options import CallOptions, FunctionTool, ObjectJsonMode, RegularMode
from apertis.schemas import ChatChunk, ChatResponse, to_payload
from apertis.settings import ChatSettings
from apertis.streaming import ChatStreamNormalizer


class ChatLanguageModel(LanguageModel):
    """Text and tool-call generation over ``/chat/completions``."""

    operation = "chat"
    chunk_schema = ChatChunk

    def __init__(
        self,
        model_id: str,
        client: AsyncOpenAI,
        settings: ChatSettings | None = None,
        provider: str = "apertis.chat",
    ):
        super().__init__(model_id, client, provider)
        self.settings = settings or ChatSettings()

    def build_request_body(
        self, options: CallOptions, stream: bool,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model_id,
            "messages": convert_to_openai_messages(options.prompt),
            "stream": stream,
        }
        if stream:
            body["stream_options"] = {"include_usage": True}

        optional = {
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "top_p": options.top_p,
            "frequency_penalty": options.frequency_penalty,
            "presence_penalty": options.presence_penalty,
            "stop": options.stop_sequences,
            "seed": options.seed,
        }
        body.update({k: v for k, v in optional.items() if v is not None})

        mode = options.mode
        if isinstance(mode, RegularMode):
            tools = convert_to_openai_tools(self._function_tools(mode))
            if tools is not None:
                body["tools"] = tools
            tool_choice = convert_to_openai_tool_choice(mode.tool_choice)
            if tool_choice is not None:
                body["tool_choice"] = tool_choice
        elif isinstance(mode, ObjectJsonMode):
            body["response_format"] = {"type": "json_object"}

        body.update(self.settings.model_dump(exclude_none=True))
        return body

    def warnings(self, options: CallOptions) -> list[str]:
        mode = options.mode
        if not isinstance(mode, RegularMode) or not mode.tools:
            return []
        return [
            f"Unsupported tool '{t.name}' of type {t.type} was not sent"
            for t in mode.tools
            if not isinstance(t, FunctionTool)
        ]

    def new_normalizer(self) -> ChatStreamNormalizer:
        return ChatStreamNormalizer()

    @property
    def resource(self) -> Any:
        return self.client.chat.completions

    def _to_result(self, response: Any) -> GenerateResult:
        parsed = ChatResponse.model_validate(to_payload(response))
        choice = parsed.choices[0]
        usage = parsed.usage
        return GenerateResult(
            text=choice.message.content,
            tool_calls=[
                ToolCallEvent(
                    tool_call_id=tc.id,
                    tool_name=tc.function.name,
                    args=tc.function.arguments,
                )
                for tc in choice.message.tool_calls or []
            ],
            finish_reason=map_finish_reason(choice.finish_reason),
            raw_finish_reason=choice.finish_reason,
            usage=Usage(
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
            ) if usage else Usage(),
        )

    @staticmethod
    def _function_tools(mode: RegularMode) -> list[FunctionTool] | None:
        if mode.tools is None:
            return None
        return [t for t in mode.tools if isinstance(t, FunctionTool)]
