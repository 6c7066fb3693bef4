"""Auth API router: register, login, refresh, me."""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from jose import JWTError

from homestay.api.deps import get_current_user, get_repositories
from homestay.auth.jwt import REFRESH, create_token_pair, decode_token
from homestay.auth.passwords import hash_password, verify_password
from homestay.errors import EmailTaken, Unauthenticated
from homestay.models.user import User
from homestay.repositories.base import Repositories
from homestay.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from homestay.schemas.common import Envelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _auth_response(user: User) -> Envelope[AuthResponse]:
    tokens = create_token_pair(str(user.id), user.role)
    return Envelope(data=AuthResponse(user=UserResponse.model_validate(user), tokens=TokenResponse(**tokens)))


@router.post("/register", response_model=Envelope[AuthResponse], status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, repos: Repositories = Depends(get_repositories)) -> Envelope[AuthResponse]:
    """Register a traveler or host with email and password."""
    if await repos.users.get_by_email(body.email) is not None:
        raise EmailTaken()

    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        name=body.name,
        role=body.role,
        is_active=True,
    )
    user = await repos.users.add(user)
    await repos.commit()
    logger.info("Registered %s user %s", user.role, user.id)
    return _auth_response(user)


@router.post("/login", response_model=Envelope[AuthResponse])
async def login(body: LoginRequest, repos: Repositories = Depends(get_repositories)) -> Envelope[AuthResponse]:
    user = await repos.users.get_by_email(body.email)

    if user is None or not verify_password(body.password, user.hashed_password):
        raise Unauthenticated("Invalid email or password")
    if not user.is_active:
        raise Unauthenticated("User account is inactive")

    return _auth_response(user)


@router.post("/refresh", response_model=Envelope[TokenResponse])
async def refresh(body: RefreshRequest, repos: Repositories = Depends(get_repositories)) -> Envelope[TokenResponse]:
    """Exchange a valid refresh token for a new token pair."""
    try:
        payload = decode_token(body.refresh_token)
    except JWTError:
        raise Unauthenticated("Invalid or expired refresh token") from None

    if payload.get("type") != REFRESH:
        raise Unauthenticated("Invalid token type")

    try:
        user_id = uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise Unauthenticated("Invalid token payload") from None

    user = await repos.users.get(user_id)
    if user is None or not user.is_active:
        raise Unauthenticated("User not found or inactive")

    return Envelope(data=TokenResponse(**create_token_pair(str(user.id), user.role)))


@router.get("/me", response_model=Envelope[UserResponse])
async def me(current_user: User = Depends(get_current_user)) -> Envelope[UserResponse]:
    return Envelope(data=UserResponse.model_validate(current_user))
