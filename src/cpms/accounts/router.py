"""Account administration router — /api/v1/accounts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cpms.accounts.schemas import (
    AccountListResponse,
    AccountResponse,
    AssignAccountRequest,
    AssignAccountResponse,
    UpdateAccountRequest,
)
from cpms.accounts.service import assign_account, delete_account, update_account
from cpms.accounts.store import AccountStore
from cpms.auth.dependencies import require_roles
from cpms.auth.schemas import MessageResponse
from cpms.database import get_session
from cpms.db.models import ROLE_SUPERADMIN, Account
from cpms.dependencies import get_account_store, get_dispatcher
from cpms.notifications.dispatcher import NotificationDispatcher

router = APIRouter(prefix="/api/v1/accounts", tags=["Accounts"])


def _validation_error(e: ValueError) -> HTTPException:
    detail = str(e)
    if "already registered" in detail.lower():
        return HTTPException(status_code=409, detail=detail)
    return HTTPException(status_code=400, detail=detail)


def account_response(account: Account) -> AccountResponse:
    """Build an AccountResponse from an Account model."""
    return AccountResponse(
        id=account.id,
        email=account.email,
        first_name=account.first_name,
        last_name=account.last_name,
        role=account.role,
        campus_id=account.campus_id,
        status=account.status,
        created_at=account.created_at,
    )


@router.post("", response_model=AssignAccountResponse, status_code=201)
async def create_account_endpoint(
    body: AssignAccountRequest,
    _admin: Account = Depends(require_roles(ROLE_SUPERADMIN)),
    accounts: AccountStore = Depends(get_account_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    db: AsyncSession = Depends(get_session),
) -> AssignAccountResponse:
    """Create an Admin or SuperAdmin account with a generated password."""
    try:
        account, password = await assign_account(
            accounts,
            dispatcher,
            email=body.email,
            first_name=body.first_name,
            last_name=body.last_name,
            role=body.role,
            campus_id=body.campus_id,
        )
    except ValueError as e:
        raise _validation_error(e) from e

    await db.commit()
    return AssignAccountResponse(account=account_response(account), generated_password=password)


@router.get("", response_model=AccountListResponse)
async def list_accounts(
    _admin: Account = Depends(require_roles(ROLE_SUPERADMIN)),
    accounts: AccountStore = Depends(get_account_store),
) -> AccountListResponse:
    items = await accounts.list_all()
    return AccountListResponse(accounts=[account_response(a) for a in items], count=len(items))


@router.put("/{account_id}", response_model=AccountResponse)
async def update_account_endpoint(
    account_id: int,
    body: UpdateAccountRequest,
    _admin: Account = Depends(require_roles(ROLE_SUPERADMIN)),
    accounts: AccountStore = Depends(get_account_store),
    db: AsyncSession = Depends(get_session),
) -> AccountResponse:
    """Change an account's name, email, role, campus or status."""
    try:
        account = await update_account(accounts, account_id, body.model_dump(exclude_none=True))
    except ValueError as e:
        raise _validation_error(e) from e
    if account is None:
        raise HTTPException(status_code=404, detail="Account not found")

    await db.commit()
    return account_response(account)


@router.delete("/{account_id}", response_model=MessageResponse)
async def delete_account_endpoint(
    account_id: int,
    _admin: Account = Depends(require_roles(ROLE_SUPERADMIN)),
    accounts: AccountStore = Depends(get_account_store),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    if not await delete_account(accounts, account_id):
        raise HTTPException(status_code=404, detail="Account not found")
    await db.commit()
    return MessageResponse(message="Account deleted")
