"""Booking lifecycle: legal status transitions and who may trigger them.

::

    pending ──host──────────▶ confirmed ──host──▶ completed
       │                          │
       └──guest/host──▶ cancelled ◀──guest/host──┘

``cancelled`` and ``completed`` are terminal. Administrators may perform any
legal transition; the table never makes an illegal one legal for them.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from homestay.booking.availability import AvailabilityIndex
from homestay.errors import Conflict, Forbidden, IllegalTransition

logger = logging.getLogger(__name__)


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingActor(str, enum.Enum):
    """The part an actor plays relative to one specific booking."""

    GUEST = "guest"
    HOST = "host"
    ADMIN = "admin"


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})

TRANSITIONS: dict[tuple[BookingStatus, BookingStatus], frozenset[BookingActor]] = {
    (BookingStatus.PENDING, BookingStatus.CONFIRMED): frozenset({BookingActor.HOST}),
    (BookingStatus.PENDING, BookingStatus.CANCELLED): frozenset({BookingActor.GUEST, BookingActor.HOST}),
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED): frozenset({BookingActor.GUEST, BookingActor.HOST}),
    (BookingStatus.CONFIRMED, BookingStatus.COMPLETED): frozenset({BookingActor.HOST}),
}


def allowed_targets(current: BookingStatus) -> list[BookingStatus]:
    """Statuses reachable from ``current`` in one step."""
    return [target for (source, target) in TRANSITIONS if source is current]


def parse_status(value: str | BookingStatus) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise IllegalTransition(f"Unknown booking status {value!r}") from None


class BookingStateMachine:
    """Applies status transitions to bookings.

    Side effects on the availability index happen here: entering
    ``confirmed`` re-checks that nothing overlaps the booking any more, and
    leaving the active set (``cancelled`` or ``completed``) releases the
    range. Callers must hold ``index.lock(booking.listing_id)``.
    """

    def __init__(self, index: AvailabilityIndex) -> None:
        self._index = index

    def check(self, current: BookingStatus, target: BookingStatus, actor: BookingActor) -> None:
        """Raise unless ``actor`` may move a booking from ``current`` to ``target``.

        Reachability is checked before the actor, so a terminal booking
        reports ``IllegalTransition`` to everyone.
        """
        allowed = TRANSITIONS.get((current, target))
        if allowed is None:
            raise IllegalTransition(f"Cannot change booking status from {current.value} to {target.value}")
        if actor is not BookingActor.ADMIN and actor not in allowed:
            raise Forbidden(f"A {actor.value} cannot change booking status from {current.value} to {target.value}")

    async def transition(
        self,
        booking: Any,
        target: BookingStatus,
        actor: BookingActor,
        persist: Callable[[Any], Awaitable[Any]],
    ) -> Any:
        """Move ``booking`` to ``target`` and persist it.

        ``persist`` stores the booking durably; the index is only released
        after it succeeds, and the in-memory status is rolled back if it
        fails.
        """
        current = parse_status(booking.status)
        self.check(current, target, actor)

        if target is BookingStatus.CONFIRMED:
            self._revalidate(booking)

        booking.status = target.value
        try:
            booking = await persist(booking)
        except Exception:
            booking.status = current.value
            raise

        if target in TERMINAL_STATUSES:
            self._index.release_nowait(booking.listing_id, booking.id)

        logger.info(
            "Booking %s: %s -> %s by %s",
            booking.id,
            current.value,
            target.value,
            actor.value,
        )
        return booking

    def _revalidate(self, booking: Any) -> None:
        # The range was claimed at creation; make sure it still is and that
        # nothing else has slipped in since.
        listing_id = booking.listing_id
        dates = booking.date_range
        if self._index.conflicts(listing_id, dates, exclude=booking.id):
            raise Conflict("Dates now conflict with another booking")
        if self._index.get(listing_id, booking.id) is None:
            self._index.reserve_nowait(listing_id, booking.id, dates)
