"""FastAPI authentication dependencies for route protection."""

import uuid
from collections.abc import Awaitable, Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from homestay.auth.gate import Capability, Principal, authorize
from homestay.auth.jwt import ACCESS, decode_token
from homestay.errors import Unauthenticated
from homestay.models.user import User
from homestay.repositories.base import Repositories
from homestay.repositories.provider import get_repositories

# auto_error=False so a missing header maps to our own 401 envelope.
_bearer_scheme = HTTPBearer(auto_error=False)


async def _user_from_token(token: str, repos: Repositories) -> User:
    try:
        payload = decode_token(token)
    except JWTError:
        raise Unauthenticated("Could not validate credentials") from None

    # Only accept access tokens, not refresh tokens
    if payload.get("type") != ACCESS:
        raise Unauthenticated("Invalid token type")

    sub: str | None = payload.get("sub")
    if sub is None:
        raise Unauthenticated("Could not validate credentials")
    try:
        user_id = uuid.UUID(sub)
    except ValueError:
        raise Unauthenticated("Could not validate credentials") from None

    user = await repos.users.get(user_id)
    if user is None:
        raise Unauthenticated("Could not validate credentials")
    if not user.is_active:
        raise Unauthenticated("User account is inactive")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    repos: Repositories = Depends(get_repositories),
) -> User:
    """Resolve the Bearer token to an active user.

    Raises:
        Unauthenticated: Missing, invalid, expired or refresh-type token, or
            the user no longer exists or is inactive.
    """
    if credentials is None:
        raise Unauthenticated()
    return await _user_from_token(credentials.credentials, repos)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    repos: Repositories = Depends(get_repositories),
) -> User | None:
    """Like :func:`get_current_user` but returns ``None`` instead of raising."""
    if credentials is None:
        return None
    try:
        return await _user_from_token(credentials.credentials, repos)
    except Unauthenticated:
        return None


def principal_of(user: User) -> Principal:
    return Principal(id=user.id, role=user.role)


def require(capability: Capability) -> Callable[..., Awaitable[User]]:
    """Build a dependency that admits only users holding ``capability``'s role.

    Ownership is checked later by the service, once the resource is loaded::

        @router.patch("/{booking_id}/status")
        async def update(user: User = Depends(require(UPDATE_BOOKING_STATUS))):
            ...
    """

    async def dependency(user: User = Depends(get_current_user)) -> User:
        authorize(user, capability)
        return user

    dependency.__name__ = f"require_{capability.name.replace('.', '_')}"
    return dependency
