"""
Tracing utilities for gas benchmarking.

Wraps OpenTelemetry so deployments and invocations show up as spans with
the variant, operation and gas used attached.
"""

import os
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Iterator, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Status, StatusCode

_TRUTHY = {"1", "true", "yes", "on"}


class TracingConfig:
    """Configuration for tracing setup."""

    def __init__(
        self,
        service_name: str = "gas-bench-lab",
        enable_console_export: Optional[bool] = None,
        set_global_provider: bool = False,
    ):
        self.service_name = service_name
        if enable_console_export is None:
            enable_console_export = os.getenv("GAS_BENCH_TRACE_CONSOLE", "").lower() in _TRUTHY
        self.enable_console_export = enable_console_export
        self.set_global_provider = set_global_provider


def _clean_attributes(attributes: Optional[dict]) -> dict:
    # OpenTelemetry rejects None attribute values.
    return {k: v for k, v in (attributes or {}).items() if v is not None}


class Tracer:
    """OpenTelemetry tracer with its own provider.

    Args:
        config: Tracing configuration.
        exporter: Extra span exporter, e.g. an in-memory exporter in tests.
    """

    def __init__(
        self,
        config: Optional[TracingConfig] = None,
        exporter: Optional[SpanExporter] = None,
    ):
        self.config = config or TracingConfig()
        self._exporter = exporter
        self._provider: Optional[TracerProvider] = None
        self._otel_tracer = None
        self._initialized = False

    def initialize(self) -> "Tracer":
        """Initialize the tracer provider and exporters."""
        if self._initialized:
            return self

        resource = Resource.create({"service.name": self.config.service_name})
        self._provider = TracerProvider(resource=resource)

        if self.config.enable_console_export:
            self._provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        if self._exporter is not None:
            self._provider.add_span_processor(SimpleSpanProcessor(self._exporter))

        if self.config.set_global_provider:
            trace.set_tracer_provider(self._provider)

        self._otel_tracer = self._provider.get_tracer(self.config.service_name)
        self._initialized = True
        return self

    def shutdown(self) -> None:
        """Flush and shut down exporters."""
        if self._provider is not None:
            self._provider.shutdown()
        self._initialized = False

    @contextmanager
    def span(
        self,
        name: str,
        attributes: Optional[dict] = None,
    ) -> Iterator[Any]:
        """Create a traced span for synchronous work.

        Usage:
            with tracer.span("compare", {"bench.scenario": "add_user"}) as span:
                ...
        """
        if not self._initialized:
            self.initialize()

        span_obj = self._otel_tracer.start_span(name, attributes=_clean_attributes(attributes))
        try:
            yield span_obj
        except Exception as e:
            span_obj.set_status(Status(StatusCode.ERROR, str(e)))
            span_obj.record_exception(e)
            raise
        finally:
            span_obj.end()

    @asynccontextmanager
    async def async_span(
        self,
        name: str,
        attributes: Optional[dict] = None,
    ) -> AsyncIterator[Any]:
        """Create a traced span around awaited work.

        Usage:
            async with tracer.async_span("invoke", {"bench.variant": "naive"}) as span:
                receipt = await environment.invoke(...)
                span.set_attribute("bench.gas_used", receipt.gas_used)
        """
        if not self._initialized:
            self.initialize()

        span_obj = self._otel_tracer.start_span(name, attributes=_clean_attributes(attributes))
        try:
            yield span_obj
        except BaseException as e:
            span_obj.set_status(Status(StatusCode.ERROR, str(e) or type(e).__name__))
            span_obj.record_exception(e)
            raise
        finally:
            span_obj.end()


# Global tracer instance
_global_tracer: Optional[Tracer] = None


def get_tracer(config: Optional[TracingConfig] = None) -> Tracer:
    """Get or create the global tracer instance."""
    global _global_tracer
    if _global_tracer is None:
        _global_tracer = Tracer(config)
    return _global_tracer


def init_tracing(config: Optional[TracingConfig] = None) -> Tracer:
    """Initialize global tracing."""
    tracer = get_tracer(config)
    return tracer.initialize()


def shutdown_tracing() -> None:
    """Shutdown global tracing."""
    global _global_tracer
    if _global_tracer:
        _global_tracer.shutdown()
        _global_tracer = None
