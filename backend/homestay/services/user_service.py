"""User moderation for administrators."""

import logging
import uuid

from homestay.auth.gate import MODERATE, Principal, authorize
from homestay.errors import Forbidden, UserNotFound
from homestay.models.user import User
from homestay.repositories.base import Repositories

logger = logging.getLogger(__name__)


async def list_users(
    repos: Repositories,
    principal: Principal,
    *,
    role: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[User], int]:
    authorize(principal, MODERATE)
    return await repos.users.find(role=role, skip=skip, limit=limit)


async def set_user_active(
    repos: Repositories,
    principal: Principal,
    user_id: uuid.UUID,
    is_active: bool,
) -> User:
    """Activate or deactivate an account. Deactivated users can no longer sign in."""
    authorize(principal, MODERATE)
    if str(user_id) == str(principal.id) and not is_active:
        raise Forbidden("Administrators cannot deactivate their own account")

    user = await repos.users.get(user_id)
    if user is None:
        raise UserNotFound()

    user.is_active = is_active
    user = await repos.users.save(user)
    await repos.commit()
    logger.info("Admin %s set user %s is_active=%s", principal.id, user_id, is_active)
    return user
