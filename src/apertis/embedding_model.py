from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from openai import AsyncOpenAI

from apertis.errors import TooManyEmbeddingValuesError, api_errors
from apertis.instrumentation import completion_span, record_error
from apertis.schemas import EmbeddingResponse, to_payload
from apertis.settings import EmbeddingSettings

logger = logging.getLogger(__name__)


@dataclass
class EmbedResult:
    embeddings: list[list[float]]
    usage_tokens: int | None = None
    warnings: list[str] = field(default_factory=list)


class EmbeddingModel:
    """Text embeddings over ``/embeddings``."""

    operation = "embeddings"

    def __init__(
        self,
        model_id: str,
        client: AsyncOpenAI,
        settings: EmbeddingSettings | None = None,
        provider: str = "apertis.embedding",
    ):
        self.model_id = model_id
        self.client = client
        self.provider = provider
        self.settings = settings or EmbeddingSettings()

    @property
    def max_embeddings_per_call(self) -> int:
        return self.settings.max_embeddings_per_call

    @property
    def supports_parallel_calls(self) -> bool:
        return self.settings.supports_parallel_calls

    def build_request_body(self, values: list[str]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model_id,
            "input": values,
            "encoding_format": "float",
        }
        if self.settings.dimensions is not None:
            body["dimensions"] = self.settings.dimensions
        if self.settings.user is not None:
            body["user"] = self.settings.user
        return body

    async def embed(self, values: list[str]) -> EmbedResult:
        if len(values) > self.max_embeddings_per_call:
            raise TooManyEmbeddingValuesError(
                self.model_id, self.max_embeddings_per_call, len(values),
            )
        body = self.build_request_body(values)
        logger.info(f"{self.provider}: embedding {len(values)} values")
        async with completion_span(
            self.operation, self.provider, self.model_id,
        ) as span:
            try:
                with api_errors():
                    response = await self.client.embeddings.create(**body)
                parsed = EmbeddingResponse.model_validate(to_payload(response))
            except Exception as e:
                record_error(span, e)
                raise
        return EmbedResult(
            embeddings=[item.embedding for item in parsed.data],
            usage_tokens=parsed.usage.prompt_tokens if parsed.usage else None,
        )
