"""Half-open stay intervals.

A stay from ``start`` to ``end`` occupies the nights ``start`` through
``end - 1 day``; the guest leaves on ``end``. Two stays therefore overlap only
when they share at least one night, so a checkout and a check-in on the same
day do not collide.
"""

from dataclasses import dataclass
from datetime import date

from homestay.errors import InvalidRange


@dataclass(frozen=True, order=True)
class DateRange:
    """An immutable ``[start, end)`` date interval with ``start < end``."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidRange("End date must be after start date")

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    def overlaps(self, other: "DateRange") -> bool:
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


def overlaps(a: DateRange, b: DateRange) -> bool:
    """Return True if the two ranges share at least one night."""
    return a.overlaps(b)


def validate(date_range: DateRange, today: date | None = None) -> DateRange:
    """Check that ``date_range`` is bookable as of ``today``.

    ``start < end`` already holds for any constructed range; this adds the
    rule that a stay cannot begin in the past.

    Raises:
        InvalidRange: If the stay starts before ``today``.
    """
    today = today or date.today()
    if date_range.start < today:
        raise InvalidRange("Start date cannot be in the past")
    return date_range
