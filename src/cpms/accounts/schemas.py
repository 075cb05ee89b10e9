"""Request/response schemas for account endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, field_validator

Role = Literal["Admin", "SuperAdmin"]
Status = Literal["pending", "active", "inactive"]


def check_email(value: str) -> str:
    """Validate an email address and return it stripped but otherwise as entered.

    Accounts are looked up by exact match on the stored address, so the
    normalized form email-validator produces (lowercased domain) is not used.
    """
    value = value.strip()
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(str(e)) from e
    return value


class AccountResponse(BaseModel):
    """Public view of an account."""

    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    campus_id: str | None = None
    status: str
    created_at: datetime | None = None


class AssignAccountRequest(BaseModel):
    """SuperAdmin creates an Admin or SuperAdmin account."""

    email: str = Field(..., max_length=320)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: Role
    campus_id: str | None = Field(None, min_length=1, max_length=64)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        return check_email(v)


class AssignAccountResponse(BaseModel):
    """Created account plus the one-time generated password."""

    account: AccountResponse
    generated_password: str


class UpdateAccountRequest(BaseModel):
    """Partial update by a SuperAdmin; omitted fields keep their value."""

    email: str | None = Field(None, max_length=320)
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    role: Role | None = None
    status: Status | None = None
    campus_id: str | None = Field(None, min_length=1, max_length=64)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v: str | None) -> str | None:
        return None if v is None else check_email(v)


class AccountListResponse(BaseModel):
    accounts: list[AccountResponse]
    count: int
