"""Authentication router — all /api/v1/auth/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from cpms.accounts.router import account_response
from cpms.accounts.schemas import AccountResponse
from cpms.accounts.store import AccountStore
from cpms.auth.dependencies import get_current_account
from cpms.auth.password import PasswordStrengthError
from cpms.auth.schemas import LoginRequest, LoginResponse, MessageResponse, ResetPasswordRequest
from cpms.auth.service import (
    AccountLocked,
    LoginSuccess,
    authenticate,
    reset_password,
)
from cpms.config import get_settings
from cpms.database import get_session
from cpms.db.models import Account
from cpms.dependencies import get_account_store

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

# Shared by the unknown-email and wrong-password responses.
INVALID_CREDENTIALS_DETAIL = "Invalid email or password"


def _set_auth_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        settings.auth_cookie_name,
        token,
        max_age=settings.jwt_access_token_expire_hours * 3600,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="strict",
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"description": "Invalid credentials"}, 423: {"description": "Account locked"}},
)
async def login(
    body: LoginRequest,
    response: Response,
    accounts: AccountStore = Depends(get_account_store),
    db: AsyncSession = Depends(get_session),
) -> LoginResponse | JSONResponse:
    """Login with email + password."""
    result = await authenticate(accounts, body.email, body.password)
    # Failure counters are persisted even when the login is rejected
    await db.commit()

    if isinstance(result, LoginSuccess):
        _set_auth_cookie(response, result.token)
        return LoginResponse(
            token=result.token,
            expires_in=get_settings().jwt_access_token_expire_hours * 3600,
            account=account_response(result.account),
        )
    if isinstance(result, AccountLocked):
        return JSONResponse(
            status_code=423,
            content={
                "detail": (
                    "Account is locked due to too many failed login attempts. "
                    f"Please try again in {result.remaining_minutes} minutes."
                ),
                "lockout_remaining": result.remaining_minutes,
            },
        )
    # InvalidCredentials and AccountNotFound
    return JSONResponse(status_code=400, content={"detail": INVALID_CREDENTIALS_DETAIL})


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    """Clear the session cookie."""
    response.delete_cookie(get_settings().auth_cookie_name)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=AccountResponse)
async def me(account: Account = Depends(get_current_account)) -> AccountResponse:
    """Profile of the authenticated account."""
    return account_response(account)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password_endpoint(
    body: ResetPasswordRequest,
    account: Account = Depends(get_current_account),
    accounts: AccountStore = Depends(get_account_store),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Replace the current account's password."""
    try:
        await reset_password(accounts, account, body.new_password, body.confirm_password)
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return MessageResponse(message="Password reset successfully")
