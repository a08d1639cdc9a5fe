"""Utility functions and decorators for distributed tracing"""
import asyncio
from collections.abc import Callable
from functools import wraps

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

# Keyword arguments never copied onto spans
_REDACTED_ARGS = frozenset({"password", "token", "secret"})


def _set_span_attributes(span, attributes: dict | None, kwargs: dict) -> None:
    if attributes:
        for key, value in attributes.items():
            span.set_attribute(key, value)

    for key, value in kwargs.items():
        if key.startswith("_") or key in _REDACTED_ARGS:
            continue
        # Dataclass payloads (check lists, update batches) are not useful as strings
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"arg.{key}", value)


def traced(operation_name: str | None = None, attributes: dict | None = None):
    """
    Decorator to create a span for a function

    Usage:
        @traced("authz.resolve")
        async def resolve(self, user_id: int):
            ...

    Args:
        operation_name: Name of the operation (defaults to module.function)
        attributes: Additional attributes to add to the span
    """

    def decorator(func: Callable) -> Callable:
        span_name = operation_name or f"{func.__module__}.{func.__name__}"

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(span_name) as span:
                _set_span_attributes(span, attributes, kwargs)
                try:
                    result = await func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(span_name) as span:
                _set_span_attributes(span, attributes, kwargs)
                try:
                    result = func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def add_span_attributes(**attributes):
    """
    Add attributes to the current span

    Usage:
        add_span_attributes(user_id=42, role_id=2)
    """
    span = trace.get_current_span()
    if span:
        for key, value in attributes.items():
            span.set_attribute(key, value)
