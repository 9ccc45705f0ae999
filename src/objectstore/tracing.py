"""OpenTelemetry tracing integration for object store operations.

Provides a decorator for backend coroutines.

Span attributes never carry raw keys or object content: keys and prefixes
are exported as SHA256 digests only.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from objectstore.models import ObjectInfo
from objectstore.observability.tracing import is_tracing_enabled

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TRACER_NAME = "objectstore"


def key_digest(key: str) -> str:
    """Return the SHA256 hex digest used in place of a raw key."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def traced_storage_operation(operation: str, *, key_arg: str | None = "key") -> Callable[[F], F]:
    """Decorator to trace async storage operations with OpenTelemetry.

    Args:
        operation: Operation name (e.g., "put", "get", "delete_recursive").
        key_arg: Name of the parameter holding the key or prefix to digest,
            or None when the operation has no single key.

    Returns:
        Decorated coroutine function that emits a span when tracing is enabled.
    """

    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return await func(self, *args, **kwargs)

            try:
                from opentelemetry import trace
            except ImportError:
                return await func(self, *args, **kwargs)

            tracer = trace.get_tracer(TRACER_NAME)
            with tracer.start_as_current_span(f"objectstore.{operation}") as span:
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))
                key = _bound_argument(signature, key_arg, self, args, kwargs) if key_arg else None
                if isinstance(key, str):
                    span.set_attribute(f"objectstore.{key_arg}_sha256", key_digest(key))

                try:
                    result = await func(self, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                _add_result_attributes(span, result, operation)
                return result

        return cast(F, wrapper)

    return decorator


def _bound_argument(
    signature: inspect.Signature,
    name: str,
    self: Any,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> Any:
    try:
        bound = signature.bind_partial(self, *args, **kwargs)
    except TypeError:
        return None
    return bound.arguments.get(name)


def _add_result_attributes(span: Any, result: Any, operation: str) -> None:
    """Add safe result attributes (sizes and flags only) to the span."""
    try:
        if isinstance(result, ObjectInfo):
            span.set_attribute("objectstore.object_size_bytes", result.size)
        elif isinstance(result, bytes):
            span.set_attribute("objectstore.object_size_bytes", len(result))
        elif isinstance(result, bool):
            span.set_attribute("objectstore.found", result)
        elif result is None and operation in ("get", "head"):
            span.set_attribute("objectstore.found", False)
    except Exception as e:
        logger.debug("Failed to add result attributes to span: %s", e)
