"""Reservation Tools - Member Lending Operations

Expose the reservation service to MCP clients. The caller's user id comes
from the already-authenticated session of the client.

Tools:
- reserve_book: Reserve a copy for 7, 14 or 21 days
- renew_reservation: Extend an active reservation by its original period
- cancel_reservation: Give a copy back before the due date
- return_book: Record the return of a borrowed copy
- list_my_reservations: Every reservation of the member, newest first
- get_dashboard_stats: Active / due soon / overdue / total borrowed counts
"""

import logging
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, Field, ValidationError

from ..errors import LendingError
from ..models.reservation import Reservation
from ..observability.decorators import trace_tool
from ..reservations.service import get_reservation_service

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _format_error_response(error_type: str, details: str, code: str) -> dict[str, Any]:
    """Format error responses consistently across all tools."""
    return {
        "isError": True,
        "code": code,
        "content": [{"type": "text", "text": f"{error_type}: {details}"}],
    }


def _log_operation(operation: str, **kwargs) -> None:
    """Log operation details for audit trail."""
    logger.info(
        "Operation: %s | Details: %s", operation, " | ".join(f"{k}={v}" for k, v in kwargs.items())
    )


def _lending_error_response(operation: str, error: LendingError, **details) -> dict[str, Any]:
    _log_operation(f"{operation}_failed", error_code=error.code, error_details=str(error), **details)
    return _format_error_response("Operation failed", str(error), error.code)


def _reservation_data(reservation: Reservation) -> dict[str, Any]:
    return {
        "id": reservation.id,
        "book_id": reservation.book_id,
        "book_title": reservation.book_title,
        "user_id": reservation.user_id,
        "reservation_date": reservation.reservation_date.isoformat(),
        "reservation_days": reservation.reservation_days,
        "due_date": reservation.due_date.isoformat(),
        "return_date": reservation.return_date.isoformat() if reservation.return_date else None,
        "renewal_count": reservation.renewal_count,
        "status": reservation.status.value,
    }


def _describe(reservation: Reservation) -> str:
    title = f"'{reservation.book_title}'" if reservation.book_title else f"book {reservation.book_id}"
    return f"{title} (reservation {reservation.id})"


# === Input schemas ===


class ReserveBookInput(BaseModel):
    """Input schema for reserving a book."""

    user_id: int = Field(..., description="Authenticated member reserving the book", ge=1)
    book_id: int = Field(..., description="Catalog id of the book to reserve", ge=1)
    reservation_days: Literal[7, 14, 21] = Field(
        ..., description="Loan period in days", examples=[7, 14, 21]
    )


class ReservationActionInput(BaseModel):
    """Input schema for acting on one of the member's reservations."""

    user_id: int = Field(..., description="Authenticated member who owns the reservation", ge=1)
    reservation_id: int = Field(..., description="Reservation to act on", ge=1)


class MemberInput(BaseModel):
    """Input schema for the member's own reservation views."""

    user_id: int = Field(..., description="Authenticated member", ge=1)


def _parse(schema: type[M], arguments: dict[str, Any], operation: str):
    try:
        return schema.model_validate(arguments), None
    except ValidationError as e:
        logger.warning("Invalid %s parameters: %s", operation, e)
        code = "validation_error"
        if any(
            err["loc"][:1] == ("reservation_days",) and err["type"] != "missing"
            for err in e.errors()
        ):
            code = "invalid_reservation_period"
        return None, _format_error_response("Invalid parameters", str(e), code)


# === Handlers ===


@trace_tool("reserve_book")
async def reserve_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Reserve one copy of a book for the member.

    Client calls: tool.call("reserve_book", {"user_id": 1, "book_id": 42, "reservation_days": 14})
    """
    params, error = _parse(ReserveBookInput, arguments, "reserve_book")
    if error:
        return error

    try:
        reservation = get_reservation_service().reserve(
            params.user_id, params.book_id, params.reservation_days
        )
    except LendingError as e:
        return _lending_error_response(
            "reserve_book", e, user_id=params.user_id, book_id=params.book_id
        )
    except Exception as e:
        logger.exception("Unexpected error in reserve_book tool")
        return _format_error_response("Unexpected error", str(e), "internal_error")

    _log_operation(
        "reserve_book_success",
        reservation_id=reservation.id,
        user_id=reservation.user_id,
        book_id=reservation.book_id,
        due_date=reservation.due_date.isoformat(),
    )
    message = (
        f"Reserved {_describe(reservation)} for {reservation.reservation_days} days. "
        f"Due date: {reservation.due_date.strftime('%B %d, %Y')}"
    )
    return {
        "content": [{"type": "text", "text": message}],
        "data": {"reservation": _reservation_data(reservation)},
    }


@trace_tool("renew_reservation")
async def renew_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Extend an active reservation by its original period."""
    params, error = _parse(ReservationActionInput, arguments, "renew_reservation")
    if error:
        return error

    try:
        reservation = get_reservation_service().renew(params.user_id, params.reservation_id)
    except LendingError as e:
        return _lending_error_response(
            "renew_reservation", e, user_id=params.user_id, reservation_id=params.reservation_id
        )
    except Exception as e:
        logger.exception("Unexpected error in renew_reservation tool")
        return _format_error_response("Unexpected error", str(e), "internal_error")

    _log_operation(
        "renew_reservation_success",
        reservation_id=reservation.id,
        renewal_count=reservation.renewal_count,
        due_date=reservation.due_date.isoformat(),
    )
    message = (
        f"Renewed {_describe(reservation)}. "
        f"New due date: {reservation.due_date.strftime('%B %d, %Y')}"
    )
    return {
        "content": [{"type": "text", "text": message}],
        "data": {"reservation": _reservation_data(reservation)},
    }


@trace_tool("cancel_reservation")
async def cancel_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Cancel an active reservation; the copy goes back on the shelf."""
    params, error = _parse(ReservationActionInput, arguments, "cancel_reservation")
    if error:
        return error

    try:
        get_reservation_service().cancel(params.user_id, params.reservation_id)
    except LendingError as e:
        return _lending_error_response(
            "cancel_reservation", e, user_id=params.user_id, reservation_id=params.reservation_id
        )
    except Exception as e:
        logger.exception("Unexpected error in cancel_reservation tool")
        return _format_error_response("Unexpected error", str(e), "internal_error")

    _log_operation("cancel_reservation_success", reservation_id=params.reservation_id)
    return {
        "content": [
            {"type": "text", "text": f"Cancelled reservation {params.reservation_id}."}
        ],
        "data": {"reservation_id": params.reservation_id, "status": "CANCELLED"},
    }


@trace_tool("return_book")
async def return_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Record the return of the member's borrowed copy."""
    params, error = _parse(ReservationActionInput, arguments, "return_book")
    if error:
        return error

    try:
        reservation = get_reservation_service().return_reservation(
            params.reservation_id, user_id=params.user_id
        )
    except LendingError as e:
        return _lending_error_response(
            "return_book", e, user_id=params.user_id, reservation_id=params.reservation_id
        )
    except Exception as e:
        logger.exception("Unexpected error in return_book tool")
        return _format_error_response("Unexpected error", str(e), "internal_error")

    _log_operation("return_book_success", reservation_id=reservation.id)
    return {
        "content": [{"type": "text", "text": f"Returned {_describe(reservation)}. Thank you!"}],
        "data": {"reservation": _reservation_data(reservation)},
    }


@trace_tool("list_my_reservations")
async def list_my_reservations_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """List every reservation of the member, newest first."""
    params, error = _parse(MemberInput, arguments, "list_my_reservations")
    if error:
        return error

    try:
        reservations = get_reservation_service().list_mine(params.user_id)
    except LendingError as e:
        return _lending_error_response("list_my_reservations", e, user_id=params.user_id)
    except Exception as e:
        logger.exception("Unexpected error in list_my_reservations tool")
        return _format_error_response("Unexpected error", str(e), "internal_error")

    if not reservations:
        text = "You have no reservations."
    else:
        lines = [f"You have {len(reservations)} reservation(s):"]
        lines.extend(
            f"- {_describe(r)}: {r.status.value}, due {r.due_date.strftime('%B %d, %Y')}"
            for r in reservations
        )
        text = "\n".join(lines)

    return {
        "content": [{"type": "text", "text": text}],
        "data": {"reservations": [_reservation_data(r) for r in reservations]},
    }


@trace_tool("get_dashboard_stats")
async def get_dashboard_stats_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Summarize the member's reservations for the dashboard."""
    params, error = _parse(MemberInput, arguments, "get_dashboard_stats")
    if error:
        return error

    try:
        stats = get_reservation_service().compute_dashboard_stats(params.user_id)
    except LendingError as e:
        return _lending_error_response("get_dashboard_stats", e, user_id=params.user_id)
    except Exception as e:
        logger.exception("Unexpected error in get_dashboard_stats tool")
        return _format_error_response("Unexpected error", str(e), "internal_error")

    text = (
        f"Active: {stats.active} | Due soon: {stats.due_soon} | "
        f"Overdue: {stats.overdue} | Total borrowed: {stats.total_borrowed}"
    )
    return {"content": [{"type": "text", "text": text}], "data": {"stats": stats.model_dump()}}


# Tool definitions

reserve_book = {
    "name": "reserve_book",
    "description": (
        "Reserve one copy of a book for 7, 14 or 21 days. Fails if the member is "
        "blacklisted, already holds the maximum number of reservations, or no copy "
        "is available."
    ),
    "inputSchema": ReserveBookInput.model_json_schema(),
    "handler": reserve_book_handler,
}

renew_reservation = {
    "name": "renew_reservation",
    "description": (
        "Extend an active reservation by its original period. Overdue reservations "
        "cannot be renewed and the number of renewals is limited."
    ),
    "inputSchema": ReservationActionInput.model_json_schema(),
    "handler": renew_reservation_handler,
}

cancel_reservation = {
    "name": "cancel_reservation",
    "description": "Cancel an active reservation and return its copy to the shelf.",
    "inputSchema": ReservationActionInput.model_json_schema(),
    "handler": cancel_reservation_handler,
}

return_book = {
    "name": "return_book",
    "description": "Record the return of a borrowed copy, on time or overdue.",
    "inputSchema": ReservationActionInput.model_json_schema(),
    "handler": return_book_handler,
}

list_my_reservations = {
    "name": "list_my_reservations",
    "description": "List all of the member's reservations, newest first, with current status.",
    "inputSchema": MemberInput.model_json_schema(),
    "handler": list_my_reservations_handler,
}

get_dashboard_stats = {
    "name": "get_dashboard_stats",
    "description": (
        "Count the member's active, due-soon (within the configured window), overdue "
        "and total borrowed reservations."
    ),
    "inputSchema": MemberInput.model_json_schema(),
    "handler": get_dashboard_stats_handler,
}
