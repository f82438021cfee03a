"""Provider-neutral prompt messages.

A prompt is a list of messages.  System messages hold plain text; the
other roles hold typed content parts.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """An image given either as a URL string or as raw bytes."""

    type: Literal["image"] = "image"
    image: str | bytes
    mime_type: str | None = None


class ToolCallPart(BaseModel):
    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    args: Any = None


class ToolResultPart(BaseModel):
    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str = ""
    result: Any = None


ContentPart = Annotated[
    Union[TextPart, ImagePart, ToolCallPart, ToolResultPart],
    Field(discriminator="type"),
]


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    content: str


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: list[ContentPart]


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: list[ContentPart]


class ToolMessage(BaseModel):
    role: Literal["tool"] = "tool"
    content: list[ContentPart]


Message = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, ToolMessage],
    Field(discriminator="role"),
]
