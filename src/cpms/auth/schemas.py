"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from cpms.accounts.schemas import AccountResponse, check_email


class LoginRequest(BaseModel):
    """Login with email + password."""

    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        """Trim surrounding whitespace; lookups match the stored email exactly."""
        return check_email(v)


class LoginResponse(BaseModel):
    """Successful login: session token plus profile."""

    token: str
    token_type: str = "bearer"
    expires_in: int
    account: AccountResponse


class ResetPasswordRequest(BaseModel):
    """Replace the current account's password."""

    new_password: str = Field(..., min_length=1, max_length=128)
    confirm_password: str = Field(..., min_length=1, max_length=128)


class MessageResponse(BaseModel):
    message: str
