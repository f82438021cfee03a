from functools import cached_property
import logging

from openai import AsyncOpenAI

from apertis.chat_model import ChatLanguageModel
from apertis.completion_model import CompletionLanguageModel
from apertis.embedding_model import EmbeddingModel
from apertis.errors import UnsupportedFunctionalityError
from apertis.settings import (
    ChatSettings,
    CompletionSettings,
    EmbeddingSettings,
    ProviderSettings,
    load_api_key,
)

logger = logging.getLogger(__name__)


class ApertisProvider:
    """Factory for Apertis models.

    Calling the provider directly is the same as calling :meth:`chat`.
    The underlying ``AsyncOpenAI`` client is created when the first model
    is requested, so a provider can be built before the API key is set.

    Args:
        settings: Connection settings.  Defaults read the API key from
            ``APERTIS_API_KEY``.
    """

    def __init__(self, settings: ProviderSettings | None = None):
        self.settings = settings or ProviderSettings()

    @property
    def base_url(self) -> str:
        return self.settings.base_url

    @cached_property
    def client(self) -> AsyncOpenAI:
        logger.debug(f"Creating Apertis client for {self.base_url}")
        return AsyncOpenAI(
            api_key=load_api_key(self.settings.api_key),
            base_url=self.base_url,
            default_headers=self.settings.headers or None,
            max_retries=self.settings.max_retries,
            timeout=self.settings.timeout,
        )

    def __call__(
        self, model_id: str, settings: ChatSettings | None = None,
    ) -> ChatLanguageModel:
        return self.chat(model_id, settings)

    def chat(
        self, model_id: str, settings: ChatSettings | None = None,
    ) -> ChatLanguageModel:
        return ChatLanguageModel(
            model_id, self.client, settings, provider="apertis.chat",
        )

    def language_model(self, model_id: str) -> ChatLanguageModel:
        return self.chat(model_id)

    def completion(
        self, model_id: str, settings: CompletionSettings | None = None,
    ) -> CompletionLanguageModel:
        return CompletionLanguageModel(
            model_id, self.client, settings, provider="apertis.completion",
        )

    def text_embedding_model(
        self, model_id: str, settings: EmbeddingSettings | None = None,
    ) -> EmbeddingModel:
        return EmbeddingModel(
            model_id, self.client, settings, provider="apertis.embedding",
        )

    def embedding_model(self, model_id: str) -> EmbeddingModel:
        return self.text_embedding_model(model_id)

    def image_model(self, model_id: str):
        raise UnsupportedFunctionalityError(
            "Image models are not supported by Apertis"
        )


def create_apertis(settings: ProviderSettings | None = None) -> ApertisProvider:
    return ApertisProvider(settings)
