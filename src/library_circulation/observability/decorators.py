"""Decorators for tracing circulation operations."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire


def trace_operation(operation: str):
    """Decorator to trace a circulation service operation."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with logfire.span(
                "circulation {operation}",
                _span_name=f"circulation.{operation}",
                operation=operation,
                category=_categorize_operation(operation),
            ) as span:
                start_time = datetime.now()
                _add_entity_attributes(span, args[1:])

                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    span.set_attribute("operation.success", False)
                    span.set_attribute("operation.error", str(e))
                    span.set_attribute("operation.error_type", type(e).__name__)
                    raise

                span.set_attribute("operation.success", True)
                span.set_attribute(
                    "operation.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                if isinstance(result, bool):
                    span.set_attribute("operation.result", result)
                return result

        return wrapper

    return decorator


def _categorize_operation(operation: str) -> str:
    """Categorize operations for better organization."""
    if "loan" in operation:
        return "loans"
    if "reservation" in operation:
        return "reservations"
    if "fine" in operation:
        return "fines"
    return "general"


def _add_entity_attributes(span, entities: tuple[Any, ...]):
    """Record the ids of the entities an operation touches."""
    for entity in entities:
        entity_id = getattr(entity, "id", None)
        if isinstance(entity_id, str):
            prefix = entity_id.split("_", 1)[0]
            span.set_attribute(f"{prefix}.id", entity_id)
