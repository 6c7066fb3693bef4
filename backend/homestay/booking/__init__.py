"""Booking engine: date ranges, the availability index and the status machine."""

from homestay.booking.availability import AvailabilityIndex, Reservation
from homestay.booking.dates import DateRange, overlaps, validate
from homestay.booking.state_machine import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    BookingActor,
    BookingStateMachine,
    BookingStatus,
)

__all__ = [
    "ACTIVE_STATUSES",
    "AvailabilityIndex",
    "BookingActor",
    "BookingStateMachine",
    "BookingStatus",
    "DateRange",
    "Reservation",
    "TERMINAL_STATUSES",
    "overlaps",
    "validate",
]
