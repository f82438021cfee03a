"""Call options shared by the language models."""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from apertis.message import Message


class FunctionTool(BaseModel):
    type: Literal["function"] = "function"
    name: str
    description: str | None = None
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class ProviderDefinedTool(BaseModel):
    """A tool implemented by some other provider.  Never sent to Apertis."""

    type: Literal["provider-defined"] = "provider-defined"
    id: str
    name: str
    args: dict[str, Any] = {}


class ToolChoice(BaseModel):
    type: Literal["auto", "none", "required", "tool"] = "auto"
    tool_name: str | None = None


class RegularMode(BaseModel):
    type: Literal["regular"] = "regular"
    tools: list[
        Annotated[
            Union[FunctionTool, ProviderDefinedTool],
            Field(discriminator="type"),
        ]
    ] | None = None
    tool_choice: ToolChoice | None = None


class ObjectJsonMode(BaseModel):
    type: Literal["object-json"] = "object-json"


class CallOptions(BaseModel):
    """Everything a single generate or stream call needs."""

    prompt: list[Message]
    mode: Annotated[
        Union[RegularMode, ObjectJsonMode], Field(discriminator="type")
    ] = Field(default_factory=RegularMode)
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop_sequences: list[str] | None = None
    seed: int | None = None
