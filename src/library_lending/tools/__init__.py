"""
MCP tools for the Library Lending Server.

Each tool is a dictionary with its name, description, JSON input schema and
async handler; the server registers every entry of ``all_tools``.
"""

from .reservations import (
    cancel_reservation,
    get_dashboard_stats,
    list_my_reservations,
    renew_reservation,
    reserve_book,
    return_book,
)

all_tools = [
    reserve_book,
    renew_reservation,
    cancel_reservation,
    return_book,
    list_my_reservations,
    get_dashboard_stats,
]

__all__ = [
    "all_tools",
    "cancel_reservation",
    "get_dashboard_stats",
    "list_my_reservations",
    "renew_reservation",
    "reserve_book",
    "return_book",
]
