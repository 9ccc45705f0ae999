"""OpenTelemetry tracing configuration for objectstore.

Tracing is off unless explicitly enabled; the storage decorators are no-ops
until then.

Environment Variables:
    OBJECTSTORE_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    OBJECTSTORE_REQUIRE_OTEL: Set to "1" to raise if tracing cannot initialize
    OBJECTSTORE_OTEL_SERVICE_NAME: Service name for spans (default: "objectstore")
    OBJECTSTORE_OTEL_EXPORTER: Exporter type - "otlp" or "console" (default: "otlp")
    OBJECTSTORE_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint URL (optional)
    OBJECTSTORE_OTEL_EXPORTER_OTLP_PROTOCOL: "grpc" or "http" (default: "grpc")
    OBJECTSTORE_OTEL_TEST_CAPTURE: Set to "1" to use in-memory exporter for tests
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from objectstore.config import get_env_bool, get_env_str

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
    from opentelemetry.sdk.trace.export import SpanExporter

logger = logging.getLogger(__name__)

OTEL_ENABLED_ENV = "OBJECTSTORE_OTEL_ENABLED"
REQUIRE_OTEL_ENV = "OBJECTSTORE_REQUIRE_OTEL"
OTEL_SERVICE_NAME_ENV = "OBJECTSTORE_OTEL_SERVICE_NAME"
OTEL_EXPORTER_ENV = "OBJECTSTORE_OTEL_EXPORTER"
OTEL_OTLP_ENDPOINT_ENV = "OBJECTSTORE_OTEL_EXPORTER_OTLP_ENDPOINT"
OTEL_OTLP_PROTOCOL_ENV = "OBJECTSTORE_OTEL_EXPORTER_OTLP_PROTOCOL"
OTEL_TEST_CAPTURE_ENV = "OBJECTSTORE_OTEL_TEST_CAPTURE"

_tracer_provider: TracerProvider | None = None
_is_configured: bool = False
_test_exporter: Any = None  # InMemorySpanExporter when test capture is on


class TracingConfigError(Exception):
    """Raised when tracing configuration fails and OBJECTSTORE_REQUIRE_OTEL=1."""

    pass


def is_tracing_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return get_env_bool(OTEL_ENABLED_ENV, False)


def _create_otlp_exporter(protocol: str, endpoint: str | None) -> Any:
    """Create OTLP exporter based on protocol."""
    kwargs: dict[str, Any] = {}
    if endpoint:
        kwargs["endpoint"] = endpoint

    if protocol == "http":
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter as HTTPExporter,
        )

        return HTTPExporter(**kwargs)

    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter as GRPCExporter,
    )

    return GRPCExporter(**kwargs)


def _create_console_exporter() -> SpanExporter:
    """Create console exporter for development."""
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter

    return ConsoleSpanExporter()


def configure_tracing() -> bool:
    """Configure OpenTelemetry tracing.

    Idempotent - safe to call multiple times.

    Returns:
        True if tracing is enabled and configured, False otherwise.

    Raises:
        TracingConfigError: If OBJECTSTORE_REQUIRE_OTEL=1 and configuration fails.
    """
    global _tracer_provider, _is_configured, _test_exporter

    enabled = is_tracing_enabled()
    require_otel = get_env_bool(REQUIRE_OTEL_ENV, False)
    test_capture = get_env_bool(OTEL_TEST_CAPTURE_ENV, False)

    if not enabled:
        _is_configured = True
        logger.debug("OpenTelemetry tracing disabled (%s not set)", OTEL_ENABLED_ENV)
        return False

    # The global TracerProvider can only be set once per process
    if _test_exporter is not None and test_capture:
        return True

    if _is_configured and _tracer_provider is not None:
        return True

    _is_configured = True

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor

        service_name = get_env_str(OTEL_SERVICE_NAME_ENV, "objectstore")
        exporter_type = get_env_str(OTEL_EXPORTER_ENV, "otlp")
        endpoint = get_env_str(OTEL_OTLP_ENDPOINT_ENV, "")
        protocol = get_env_str(OTEL_OTLP_PROTOCOL_ENV, "grpc")

        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

        if test_capture:
            from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
                InMemorySpanExporter,
            )

            _test_exporter = InMemorySpanExporter()
            provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
        elif exporter_type == "console":
            provider.add_span_processor(SimpleSpanProcessor(_create_console_exporter()))
        else:
            otlp_exporter = _create_otlp_exporter(protocol, endpoint or None)
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

        trace.set_tracer_provider(provider)
        _tracer_provider = provider

        logger.info(
            "OpenTelemetry tracing configured: service=%s, exporter=%s",
            service_name,
            exporter_type if not test_capture else "in-memory",
        )
        return True

    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        if require_otel:
            raise TracingConfigError(
                f"OpenTelemetry tracing required but configuration failed: {e}"
            ) from e
        return False


def get_test_spans() -> list[ReadableSpan]:
    """Get captured spans from the in-memory exporter (for testing).

    Returns:
        List of captured spans if OBJECTSTORE_OTEL_TEST_CAPTURE=1, else empty list.
    """
    if _test_exporter is not None and hasattr(_test_exporter, "get_finished_spans"):
        return list(_test_exporter.get_finished_spans())
    return []


def clear_test_spans() -> None:
    """Clear captured spans from the in-memory exporter (for testing)."""
    if _test_exporter is not None and hasattr(_test_exporter, "clear"):
        _test_exporter.clear()


def reset_tracing() -> None:
    """Reset tracing configuration (for testing).

    The TracerProvider cannot be replaced once set, so the test exporter is
    kept and only its spans are cleared.
    """
    global _is_configured

    clear_test_spans()
    _is_configured = False
