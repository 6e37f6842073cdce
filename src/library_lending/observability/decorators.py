"""Decorators for tracing MCP tools."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire


def trace_tool(tool_name: str):
    """Wrap an async tool handler in a Logfire span."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(arguments: dict[str, Any]) -> dict[str, Any]:
            with logfire.span(
                f"tool.execution.{tool_name}",
                tool_name=tool_name,
                tool_category=_categorize_tool(tool_name),
            ) as span:
                start_time = datetime.now()
                _add_attributes(span, "input", arguments)

                try:
                    result = await func(arguments)
                except Exception as e:
                    span.set_attribute("tool.success", False)
                    span.set_attribute("tool.error", str(e))
                    raise

                # Handlers report business failures as isError responses
                span.set_attribute("tool.success", not result.get("isError", False))
                if result.get("code"):
                    span.set_attribute("tool.error_code", result["code"])
                span.set_attribute(
                    "tool.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                return result

        return wrapper

    return decorator


def _categorize_tool(tool_name: str) -> str:
    if tool_name in {"reserve_book", "renew_reservation", "cancel_reservation", "return_book"}:
        return "circulation"
    if tool_name in {"list_my_reservations", "get_dashboard_stats"}:
        return "dashboard"
    return "general"


def _add_attributes(span, prefix: str, data: Any) -> None:
    if not isinstance(data, dict):
        return
    for key, value in data.items():
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)
