"""Apertis provider client with streaming response normalization."""

from apertis.chat_model import ChatLanguageModel
from apertis.completion_model import CompletionLanguageModel
from apertis.embedding_model import EmbeddingModel, EmbedResult
from apertis.errors import (
    APICallError,
    ApertisError,
    LoadAPIKeyError,
    TooManyEmbeddingValuesError,
    UnsupportedFunctionalityError,
)
from apertis.events import (
    FinishEvent,
    StreamEvent,
    TextDeltaEvent,
    TextEndEvent,
    TextStartEvent,
    ToolCallEvent,
    Usage,
)
from apertis.finish_reason import (
    FinishReason,
    map_finish_reason,
    map_unified_finish_reason,
)
from apertis.instrumentation import instrument, uninstrument
from apertis.language_model import GenerateResult, StreamResult
from apertis.message import (
    AssistantMessage,
    ImagePart,
    SystemMessage,
    TextPart,
    ToolCallPart,
    ToolMessage,
    ToolResultPart,
    UserMessage,
)
from apertis.options import (
    CallOptions,
    FunctionTool,
    ObjectJsonMode,
    RegularMode,
    ToolChoice,
)
from apertis.provider import ApertisProvider, create_apertis
from apertis.settings import (
    ChatSettings,
    CompletionSettings,
    EmbeddingSettings,
    ProviderSettings,
)
from apertis.streaming import (
    ChatStreamNormalizer,
    CompletionStreamNormalizer,
    StreamNormalizer,
)

__all__ = [
    "APICallError",
    "ApertisError",
    "ApertisProvider",
    "AssistantMessage",
    "CallOptions",
    "ChatLanguageModel",
    "ChatSettings",
    "ChatStreamNormalizer",
    "CompletionLanguageModel",
    "CompletionSettings",
    "CompletionStreamNormalizer",
    "EmbedResult",
    "EmbeddingModel",
    "EmbeddingSettings",
    "FinishEvent",
    "FinishReason",
    "FunctionTool",
    "GenerateResult",
    "ImagePart",
    "LoadAPIKeyError",
    "ObjectJsonMode",
    "ProviderSettings",
    "RegularMode",
    "StreamEvent",
    "StreamNormalizer",
    "StreamResult",
    "SystemMessage",
    "TextDeltaEvent",
    "TextEndEvent",
    "TextPart",
    "TextStartEvent",
    "TooManyEmbeddingValuesError",
    "ToolCallEvent",
    "ToolCallPart",
    "ToolChoice",
    "ToolMessage",
    "ToolResultPart",
    "UnsupportedFunctionalityError",
    "Usage",
    "UserMessage",
    "create_apertis",
    "instrument",
    "map_finish_reason",
    "map_unified_finish_reason",
    "uninstrument",
]
