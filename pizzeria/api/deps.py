"""
Request dependencies: bearer-token authentication and capability checks.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.core.errors import AuthenticationError, AuthorizationError
from pizzeria.core.permissions import PermissionPolicy, capabilities_for, has_capability
from pizzeria.core.security import decode_access_token
from pizzeria.database import get_db
from pizzeria.models import Account

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def account_from_token(db: AsyncSession, token: str) -> Account:
    """
    Resolve the account behind an access token.

    Raises:
        AuthenticationError: bad token, unknown or deactivated account
    """
    payload = decode_access_token(token)
    try:
        account_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid token")

    account = await db.get(Account, account_id)
    if account is None or not account.active:
        raise AuthenticationError("User not found or inactive")
    return account


async def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Account:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")
    return await account_from_token(db, credentials.credentials)


async def get_optional_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[Account]:
    """Current account when a token is sent, None otherwise."""
    if credentials is None or not credentials.credentials:
        return None
    return await account_from_token(db, credentials.credentials)


def get_permission_policy() -> PermissionPolicy:
    """Role → capability lookup; overridable through ``app.dependency_overrides``."""
    return capabilities_for


def ensure_capability(account: Account, capability: str, policy: PermissionPolicy) -> None:
    if not has_capability(account.role, capability, policy):
        logger.warning(f"Account #{account.id} ({account.role.value}) denied '{capability}'")
        raise AuthorizationError(f"Permission denied: {capability} required")


def require(capability: str) -> Callable:
    """Dependency factory: the current account, provided it holds ``capability``."""

    async def dependency(
        account: Account = Depends(get_current_account),
        policy: PermissionPolicy = Depends(get_permission_policy),
    ) -> Account:
        ensure_capability(account, capability, policy)
        return account

    return dependency
