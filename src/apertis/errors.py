"""Exceptions raised by the Apertis client."""

from __future__ import annotations

import logging
from contextlib import contextmanager

from openai import APIStatusError
from pydantic import ValidationError

from apertis.schemas import ErrorPayload

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {408, 409, 429}


class ApertisError(Exception):
    """Base class for every error raised by this package."""


class APICallError(ApertisError):
    """The API answered a request with an error status.

    Args:
        message: Human readable message, taken from the error payload
            when the API sent one.
        status_code: HTTP status of the response.
        url: URL of the failed request.
        error_type: ``error.type`` from the payload, if any.
        code: ``error.code`` from the payload, if any.
        param: ``error.param`` from the payload, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        error_type: str | None = None,
        code: str | None = None,
        param: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.url = url
        self.error_type = error_type
        self.code = code
        self.param = param

    @property
    def is_retryable(self) -> bool:
        if self.status_code is None:
            return False
        return self.status_code in _RETRYABLE_STATUS or self.status_code >= 500

    @classmethod
    def from_status_error(cls, error: APIStatusError) -> APICallError:
        body = error.body
        # The SDK unwraps the top-level "error" key for some responses.
        if isinstance(body, dict) and "error" not in body:
            body = {"error": body}
        try:
            detail = ErrorPayload.model_validate(body).error
        except ValidationError:
            return cls(
                message=error.message,
                status_code=error.status_code,
                url=str(error.request.url),
            )
        return cls(
            message=detail.message,
            status_code=error.status_code,
            url=str(error.request.url),
            error_type=detail.type,
            code=detail.code,
            param=detail.param,
        )


class LoadAPIKeyError(ApertisError):
    """No API key was passed and none is set in the environment."""


class UnsupportedFunctionalityError(ApertisError):
    """The requested feature is not offered by Apertis."""


class TooManyEmbeddingValuesError(ApertisError):
    def __init__(self, model_id: str, max_per_call: int, values: int):
        super().__init__(
            f"Too many values for a single embedding call. {model_id} "
            f"accepts at most {max_per_call} values, got {values}."
        )
        self.model_id = model_id
        self.max_per_call = max_per_call
        self.values = values


@contextmanager
def api_errors():
    """Translate ``openai`` status errors into :class:`APICallError`."""
    try:
        yield
    except APIStatusError as e:
        error = APICallError.from_status_error(e)
        logger.warning(f"Apertis API error {error.status_code}: {error.message}")
        raise error from e
