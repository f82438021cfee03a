"""OpenTelemetry spans for Apertis API calls.

Tracing is off until :func:`instrument` is called.  Every helper here
accepts ``span=None`` and does nothing in that case, so the models can
call them unconditionally.  ``opentelemetry-api`` is only imported once
tracing is enabled.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "apertis") -> None:
    """Start emitting a span for each chat, completion and embedding call.

    Configure the global TracerProvider first::

        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider

        trace.set_tracer_provider(TracerProvider())
        apertis.instrument()

    Raises:
        ImportError: ``opentelemetry-api`` is not installed.  Install the
            ``otel`` extra.
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "Tracing needs opentelemetry-api: pip install apertis[otel]"
        )
    from opentelemetry import trace

    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured, Apertis spans will be dropped"
        )
    else:
        logger.info(f"Apertis tracing enabled ({tracer_name})")


def uninstrument() -> None:
    global _tracer
    _tracer = None


@asynccontextmanager
async def completion_span(operation: str, provider: str, model: str):
    """Span named ``"{operation} {model}"`` around one API call.

    *operation* is a GenAI operation name: ``"chat"``,
    ``"text_completion"`` or ``"embeddings"``.
    """
    if _tracer is None:
        yield None
        return
    from opentelemetry.trace import SpanKind

    attributes = {
        "gen_ai.operation.name": operation,
        "gen_ai.provider.name": provider,
        "gen_ai.request.model": model,
    }
    with _tracer.start_as_current_span(
        f"{operation} {model}", kind=SpanKind.CLIENT, attributes=attributes,
    ) as span:
        yield span


def record_usage(span, usage, finish_reason=None) -> None:
    if span is None:
        return
    if usage is not None:
        span.set_attribute("gen_ai.usage.input_tokens", usage.prompt_tokens)
        span.set_attribute(
            "gen_ai.usage.output_tokens", usage.completion_tokens,
        )
    if finish_reason is not None:
        span.set_attribute(
            "gen_ai.response.finish_reasons", [finish_reason.value],
        )


def record_error(span, exception: BaseException) -> None:
    """Mark *span* failed with *exception*."""
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.record_exception(exception)
    span.set_status(StatusCode.ERROR, str(exception))
    span.set_attribute("error.type", type(exception).__qualname__)
