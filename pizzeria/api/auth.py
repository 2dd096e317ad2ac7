"""
Authentication and account routes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.api.deps import (
    ensure_capability,
    get_current_account,
    get_optional_account,
    get_permission_policy,
    require,
)
from pizzeria.core import permissions
from pizzeria.core.errors import AuthenticationError
from pizzeria.core.permissions import PermissionPolicy
from pizzeria.core.security import create_access_token
from pizzeria.database import get_db
from pizzeria.models import Account
from pizzeria.schemas import (
    AccountCreate,
    AccountEnvelope,
    AccountListEnvelope,
    AccountResponse,
    AccountUpdate,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    PasswordChange,
    PreferencesUpdate,
    TokenResponse,
)
from pizzeria.services import accounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AccountEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="Register Account",
)
async def register(
    data: AccountCreate,
    db: AsyncSession = Depends(get_db),
    current: Optional[Account] = Depends(get_optional_account),
    policy: PermissionPolicy = Depends(get_permission_policy),
) -> AccountEnvelope:
    """
    Create a staff account.

    The very first account can be registered without a token (bootstrap).
    After that the caller needs the ``manage_users`` capability.
    """
    if await accounts.count_accounts(db) > 0:
        if current is None:
            raise AuthenticationError("Access token required")
        ensure_capability(current, permissions.MANAGE_USERS, policy)
    else:
        logger.info("No accounts yet: registering bootstrap account")

    account = await accounts.register(db, data)
    return AccountEnvelope(message="User created successfully", account=AccountResponse.from_model(account))


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Login",
)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    account = await accounts.authenticate(db, data.email, data.password)
    token = create_access_token(account.id, account.email, account.role.value)
    return TokenResponse(token=token, account=AccountResponse.from_model(account))


@router.get("/me", response_model=AccountEnvelope, summary="Current Account")
async def me(account: Account = Depends(get_current_account)) -> AccountEnvelope:
    return AccountEnvelope(account=AccountResponse.from_model(account))


@router.put(
    "/password",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Change Password",
)
async def change_password(
    data: PasswordChange,
    db: AsyncSession = Depends(get_db),
    account: Account = Depends(get_current_account),
) -> MessageResponse:
    await accounts.change_password(db, account, data.current_password, data.new_password)
    return MessageResponse(message="Password changed successfully")


@router.put("/preferences", response_model=AccountEnvelope, summary="Update Preferences")
async def update_preferences(
    data: PreferencesUpdate,
    db: AsyncSession = Depends(get_db),
    account: Account = Depends(get_current_account),
) -> AccountEnvelope:
    account = await accounts.update_preferences(db, account, data)
    return AccountEnvelope(message="Preferences updated", account=AccountResponse.from_model(account))


# =============================================================================
# USER ADMINISTRATION
# =============================================================================

@router.get("/users", response_model=AccountListEnvelope, summary="List Accounts")
async def list_users(
    active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(require(permissions.MANAGE_USERS)),
) -> AccountListEnvelope:
    found = await accounts.list_accounts(db, active=active)
    return AccountListEnvelope(accounts=[AccountResponse.from_model(a) for a in found])


@router.put(
    "/users/{account_id}",
    response_model=AccountEnvelope,
    responses={404: {"model": ErrorResponse}},
    summary="Update Account",
)
async def update_user(
    account_id: int,
    data: AccountUpdate,
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(require(permissions.MANAGE_USERS)),
) -> AccountEnvelope:
    account = await accounts.update_account(db, account_id, data)
    return AccountEnvelope(message="User updated", account=AccountResponse.from_model(account))


@router.delete(
    "/users/{account_id}",
    response_model=AccountEnvelope,
    responses={404: {"model": ErrorResponse}},
    summary="Deactivate Account",
)
async def deactivate_user(
    account_id: int,
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(require(permissions.MANAGE_USERS)),
) -> AccountEnvelope:
    account = await accounts.deactivate_account(db, account_id)
    return AccountEnvelope(message="User deactivated", account=AccountResponse.from_model(account))
