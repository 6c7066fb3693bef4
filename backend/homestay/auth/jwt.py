"""JWT access/refresh tokens carrying the principal's id and role."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from homestay.config import settings

ACCESS = "access"
REFRESH = "refresh"


def _encode(data: dict, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**data, "iat": now, "exp": now + lifetime, "type": token_type}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access token.

    Args:
        data: Claims to embed. Must include ``sub`` (user UUID as string).
        expires_delta: Lifetime override. Defaults to
            ``settings.jwt_access_token_expire_minutes``.
    """
    lifetime = expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    return _encode(data, ACCESS, lifetime)


def create_refresh_token(data: dict, expires_delta: timedelta | None = None) -> str:
    lifetime = expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days)
    return _encode(data, REFRESH, lifetime)


def decode_token(token: str) -> dict:
    """Verify signature and expiry, returning the claims.

    Raises:
        jose.JWTError: If the token is invalid, expired, or malformed.
    """
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def create_token_pair(user_id: str, role: str) -> dict[str, str]:
    """Issue access and refresh tokens for a user.

    The role claim is informational for clients; the server always re-reads
    the role from the user record.
    """
    claims = {"sub": user_id, "role": role}
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer",
    }
