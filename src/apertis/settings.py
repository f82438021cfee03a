"""Provider and per-model settings."""

import os

from pydantic import BaseModel, field_validator

from apertis.errors import LoadAPIKeyError

API_KEY_ENV_VAR = "APERTIS_API_KEY"
DEFAULT_BASE_URL = "https://api.apertis.ai/v1"


def load_api_key(api_key: str | None = None) -> str:
    """Return *api_key*, falling back to ``APERTIS_API_KEY``."""
    if api_key:
        return api_key
    api_key = os.getenv(API_KEY_ENV_VAR)
    if not api_key:
        raise LoadAPIKeyError(
            "Apertis API key is missing. Pass it using the 'api_key' "
            f"setting or the {API_KEY_ENV_VAR} environment variable."
        )
    return api_key


class ProviderSettings(BaseModel):
    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    headers: dict[str, str] = {}
    max_retries: int = 2
    timeout: float = 600.0

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, base_url: str) -> str:
        return base_url.rstrip("/")


class ChatSettings(BaseModel):
    """Options sent with every ``/chat/completions`` request.

    Args:
        user: End-user identifier for abuse monitoring.
        logprobs: Return log probabilities of the output tokens.
        top_logprobs: Number of most likely tokens (0-20) to return at
            each position.  Requires ``logprobs``.
    """

    user: str | None = None
    logprobs: bool | None = None
    top_logprobs: int | None = None


class CompletionSettings(BaseModel):
    echo: bool | None = None
    logprobs: int | None = None
    suffix: str | None = None
    user: str | None = None


class EmbeddingSettings(BaseModel):
    max_embeddings_per_call: int = 2048
    supports_parallel_calls: bool = True
    dimensions: int | None = None
    user: str | None = None
