"""Telemetry service: OpenTelemetry configuration and instrumentation helpers.

Provides a unified way to configure tracing and logging, and a decorator to
wrap each chat-turn stage (classification, retrieval, agent calls) in a span.
"""

from __future__ import annotations

import functools
import inspect
import logging
import os
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.semconv.resource import ResourceAttributes

P = ParamSpec("P")
R = TypeVar("R")

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class TelemetryService:
    """Configures OpenTelemetry tracing and root logging."""

    def __init__(self, service_name: str, version: str = "0.1.0") -> None:
        self.resource = Resource.create(
            {
                ResourceAttributes.SERVICE_NAME: service_name,
                ResourceAttributes.SERVICE_VERSION: version,
            }
        )
        self.provider = TracerProvider(resource=self.resource)

        # OTLP when a collector endpoint is configured, console otherwise
        if os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT"):
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
                OTLPSpanExporter,
            )

            processor = BatchSpanProcessor(OTLPSpanExporter())
        elif os.environ.get("OTEL_CONSOLE_EXPORT"):
            processor = SimpleSpanProcessor(ConsoleSpanExporter())
        else:
            processor = None

        if processor is not None:
            self.provider.add_span_processor(processor)

        trace.set_tracer_provider(self.provider)
        self.tracer = trace.get_tracer(service_name, version)

        self._setup_logging()

    @staticmethod
    def _setup_logging() -> None:
        """Attach a stream handler to the root logger if none is present."""
        root_logger = logging.getLogger()
        if not root_logger.handlers:
            logging.basicConfig(format=_LOG_FORMAT)
        root_logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())

    def shutdown(self) -> None:
        self.provider.shutdown()


def trace_span(
    name: str | None = None, **attributes: str
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator to wrap a coroutine function in an OpenTelemetry span.

    Args:
        name: Optional span name. If not provided, uses the function name.
        attributes: Static span attributes, e.g. ``stage="retrieval"``.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"trace_span expects a coroutine function: {func!r}")
        span_name = name or func.__name__

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(span_name, attributes=attributes) as span:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                    raise

        return wrapper

    return decorator
