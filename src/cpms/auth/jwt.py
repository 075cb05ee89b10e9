"""
Session token issuing and verification.

Tokens are HS256-signed JWTs naming the account id, role, and campus scope.
`verify_token` raises `jwt.InvalidTokenError` for every kind of failure so
callers only handle one exception type.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import jwt

from cpms.config import get_settings

if TYPE_CHECKING:
    from cpms.db.models import Account


def issue_token(claims: dict[str, Any], ttl: timedelta) -> str:
    """Sign `claims` with the configured key, valid for `ttl` from now."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        **claims,
        "iat": now,
        "exp": now + ttl,
        "iss": settings.jwt_issuer,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(account: Account) -> str:
    """
    Create a session token for an authenticated account.

    Args:
        account: The account that just logged in.

    Returns:
        Encoded JWT string valid for `jwt_access_token_expire_hours`.
    """
    settings = get_settings()
    return issue_token(
        {
            "sub": str(account.id),
            "role": account.role,
            "campus_id": account.campus_id,
            "type": "access",
        },
        timedelta(hours=settings.jwt_access_token_expire_hours),
    )


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: The encoded JWT string.
        expected_type: Expected token type.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)
    if not payload.get("sub") or not payload.get("role"):
        msg = "Token is missing subject or role"
        raise jwt.InvalidTokenError(msg)

    return payload
