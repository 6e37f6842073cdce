"""Reservation lifecycle: state machine and the service built on it."""

from .service import ReservationService, get_reservation_service, reset_reservation_service
from .state_machine import ReservationStateMachine

__all__ = [
    "ReservationService",
    "ReservationStateMachine",
    "get_reservation_service",
    "reset_reservation_service",
]
