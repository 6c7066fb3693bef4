"""Error taxonomy shared by the booking engine and the HTTP layer.

Every error carries the HTTP status and a stable machine-readable ``code``.
The exception handlers in :mod:`homestay.main` turn them into the uniform
``{"success": false, "message": ..., "code": ...}`` envelope, so routers and
services simply raise.
"""

from fastapi import status


class AppError(Exception):
    """Base class for all expected, typed failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Access denied"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Resource not found"


class ListingNotFound(NotFound):
    code = "listing_not_found"
    default_message = "Listing not found"


class BookingNotFound(NotFound):
    code = "booking_not_found"
    default_message = "Booking not found"


class UserNotFound(NotFound):
    code = "user_not_found"
    default_message = "User not found"


class InvalidRange(AppError):
    code = "invalid_range"
    default_message = "Invalid date range"


class CapacityExceeded(AppError):
    code = "capacity_exceeded"
    default_message = "Guest count exceeds the listing capacity"


class Conflict(AppError):
    """The requested dates overlap an active booking.

    Not a transient fault: the client has to pick different dates, so
    ``reselect`` tells the boundary not to advertise a blind retry.
    """

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "Dates conflict with an existing booking"
    reselect = True


class IllegalTransition(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "illegal_transition"
    default_message = "Status change not permitted"


class Unavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "unavailable"
    default_message = "Service temporarily unavailable"


class EmailTaken(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "email_taken"
    default_message = "Email already registered"


class ReviewNotFound(NotFound):
    code = "review_not_found"
    default_message = "Review not found"


class AlreadyReviewed(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_reviewed"
    default_message = "This booking has already been reviewed"


class StayNotCompleted(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "stay_not_completed"
    default_message = "Only completed stays can be reviewed"
