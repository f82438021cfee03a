"""Translation of prompts and tools into the OpenAI request vocabulary."""

from __future__ import annotations

import base64
import json
import logging
from typing import Any

from apertis.errors import UnsupportedFunctionalityError
from apertis.message import (
    AssistantMessage,
    ImagePart,
    Message,
    SystemMessage,
    TextPart,
    ToolCallPart,
    ToolMessage,
    ToolResultPart,
    UserMessage,
)
from apertis.options import FunctionTool, ToolChoice

logger = logging.getLogger(__name__)


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not serialize {type(value).__name__}: {e}")
        return "{}"


def _image_url(part: ImagePart) -> str:
    if isinstance(part.image, str):
        return part.image
    mime_type = part.mime_type or "image/png"
    data = base64.b64encode(part.image).decode("ascii")
    return f"data:{mime_type};base64,{data}"


def _user_content(message: UserMessage) -> list[dict]:
    content = []
    for part in message.content:
        if isinstance(part, TextPart):
            content.append({"type": "text", "text": part.text})
        elif isinstance(part, ImagePart):
            content.append({
                "type": "image_url",
                "image_url": {"url": _image_url(part)},
            })
        else:
            raise UnsupportedFunctionalityError(
                f"Unsupported user content part type: {part.type}"
            )
    return content


def convert_to_openai_messages(prompt: list[Message]) -> list[dict]:
    messages: list[dict] = []
    for message in prompt:
        if isinstance(message, SystemMessage):
            messages.append({"role": "system", "content": message.content})

        elif isinstance(message, UserMessage):
            messages.append({
                "role": "user", "content": _user_content(message),
            })

        elif isinstance(message, AssistantMessage):
            text = "".join(
                p.text for p in message.content if isinstance(p, TextPart)
            )
            tool_calls = [
                {
                    "id": p.tool_call_id,
                    "type": "function",
                    "function": {
                        "name": p.tool_name,
                        "arguments": _to_json(p.args),
                    },
                }
                for p in message.content
                if isinstance(p, ToolCallPart)
            ]
            converted: dict[str, Any] = {
                "role": "assistant", "content": text or None,
            }
            if tool_calls:
                converted["tool_calls"] = tool_calls
            messages.append(converted)

        elif isinstance(message, ToolMessage):
            for result in message.content:
                if not isinstance(result, ToolResultPart):
                    raise UnsupportedFunctionalityError(
                        f"Unsupported tool content part type: {result.type}"
                    )
                content = (
                    result.result if isinstance(result.result, str)
                    else _to_json(result.result)
                )
                messages.append({
                    "role": "tool",
                    "tool_call_id": result.tool_call_id,
                    "content": content,
                })
    return messages


def convert_to_openai_tools(
    tools: list[FunctionTool] | None,
) -> list[dict] | None:
    if not tools:
        return None
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.parameters,
            },
        }
        for t in tools
    ]


def convert_to_openai_tool_choice(
    tool_choice: ToolChoice | None,
) -> str | dict | None:
    if tool_choice is None:
        return None
    if tool_choice.type == "tool":
        return {"type": "function", "function": {"name": tool_choice.tool_name}}
    return tool_choice.type
