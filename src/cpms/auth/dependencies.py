"""FastAPI authentication dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import jwt
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cpms.accounts.store import AccountStore
from cpms.auth.jwt import verify_token
from cpms.auth.lockout import check_lockout
from cpms.config import get_settings
from cpms.db.models import Account
from cpms.dependencies import get_account_store

_bearer = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """Bearer header first, then the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().auth_cookie_name)


async def get_current_account(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    accounts: AccountStore = Depends(get_account_store),
) -> Account:
    """
    Extract and verify the session token, return the Account.

    Raises 401 when the token is missing or invalid, 423 while the account
    is locked, and 403 when the role in the token is stale.
    """
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail="Access token required")

    try:
        payload = verify_token(token, expected_type="access")
        account_id = int(payload["sub"])
    except (jwt.InvalidTokenError, ValueError) as e:
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e

    account = await accounts.find_by_id(account_id)
    if account is None:
        raise HTTPException(status_code=401, detail="Account not found")

    lockout = check_lockout(account, datetime.now(timezone.utc))
    if lockout.locked:
        raise HTTPException(
            status_code=423,
            detail=f"Account is locked. Try again in {lockout.remaining_minutes} minutes.",
        )

    if payload["role"] != account.role:
        raise HTTPException(status_code=403, detail="Role mismatch in token")
    return account


def require_roles(*roles: str) -> Callable[..., Awaitable[Account]]:
    """Dependency factory: the current account's role must be one of `roles` (case-insensitive)."""
    allowed = {r.lower() for r in roles}

    async def _check(account: Account = Depends(get_current_account)) -> Account:
        if (account.role or "").lower() not in allowed:
            raise HTTPException(status_code=403, detail="Access forbidden: insufficient role")
        return account

    return _check


async def require_active_account(
    account: Account = Depends(get_current_account),
) -> Account:
    """Only active accounts may change partnership data."""
    if account.status != "active":
        raise HTTPException(status_code=403, detail="Account is not active")
    return account
