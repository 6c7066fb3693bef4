"""Role and ownership checks, declared per operation.

Each protected operation has a :class:`Capability` naming the roles that may
invoke it and the resource fields that identify an owner. Bookings have two
owners (guest and host), so the field is always spelled out per operation
instead of being guessed from the route.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from homestay.errors import Forbidden, Unauthenticated
from homestay.models.user import ROLE_ADMIN, ROLE_GUEST, ROLE_HOST

TRAVELER_ROLES = frozenset({ROLE_GUEST, ROLE_HOST, ROLE_ADMIN})
HOST_ROLES = frozenset({ROLE_HOST, ROLE_ADMIN})
ADMIN_ROLES = frozenset({ROLE_ADMIN})


@dataclass(frozen=True)
class Principal:
    """An authenticated ``{id, role}`` pair, detached from any user record."""

    id: Any
    role: str


@dataclass(frozen=True)
class Capability:
    name: str
    roles: frozenset[str]
    ownership_fields: tuple[str, ...] = ()


CREATE_BOOKING = Capability("booking.create", TRAVELER_ROLES)
LIST_OWN_BOOKINGS = Capability("booking.list_own", TRAVELER_ROLES)
VIEW_BOOKING = Capability("booking.view", TRAVELER_ROLES, ("guest_id", "host_id"))
CANCEL_BOOKING = Capability("booking.cancel", TRAVELER_ROLES, ("guest_id", "host_id"))
LIST_HOST_BOOKINGS = Capability("booking.list_host", HOST_ROLES)
UPDATE_BOOKING_STATUS = Capability("booking.update_status", HOST_ROLES, ("host_id",))

CREATE_LISTING = Capability("listing.create", HOST_ROLES)
LIST_HOST_LISTINGS = Capability("listing.list_host", HOST_ROLES)
MANAGE_LISTING = Capability("listing.manage", HOST_ROLES, ("host_id",))

CREATE_REVIEW = Capability("review.create", TRAVELER_ROLES)
LIST_OWN_REVIEWS = Capability("review.list_own", TRAVELER_ROLES)
MANAGE_REVIEW = Capability("review.manage", TRAVELER_ROLES, ("guest_id",))
FLAG_REVIEW = Capability("review.flag", TRAVELER_ROLES)
RESPOND_REVIEW = Capability("review.respond", HOST_ROLES, ("host_id",))

MODERATE = Capability("admin.moderate", ADMIN_ROLES)


def has_role(user: Any, roles: Iterable[str]) -> bool:
    return user is not None and user.role in roles


def owns_resource(user: Any, resource: Any, field: str) -> bool:
    """Compare ``resource.<field>`` with ``user.id`` as opaque identifiers.

    Administrators own everything.
    """
    if user is None:
        return False
    if user.role == ROLE_ADMIN:
        return True
    owner = getattr(resource, field, None)
    return owner is not None and str(owner) == str(user.id)


def authorize(user: Any, capability: Capability, resource: Any = None) -> None:
    """Raise unless ``user`` may exercise ``capability`` (on ``resource``).

    Raises:
        Unauthenticated: No principal.
        Forbidden: Wrong role, or not an owner through any declared field.
    """
    if user is None:
        raise Unauthenticated()
    if not has_role(user, capability.roles):
        raise Forbidden(f"Access denied. Required role: {' or '.join(sorted(capability.roles))}")
    if resource is not None and capability.ownership_fields:
        if not any(owns_resource(user, resource, field) for field in capability.ownership_fields):
            raise Forbidden("Access denied. You can only access your own resources.")
