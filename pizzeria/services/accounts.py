"""
Account Service

Staff registration, login and self-service settings, plus the
administrative listing and deactivation of accounts.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.core.errors import AuthenticationError, ConflictError, NotFoundError
from pizzeria.core.security import hash_password, verify_password
from pizzeria.models import Account, utcnow
from pizzeria.schemas import AccountCreate, AccountUpdate, PreferencesUpdate

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def count_accounts(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Account.id)))
    return result.scalar() or 0


async def get_account(db: AsyncSession, account_id: int) -> Account:
    account = await db.get(Account, account_id)
    if account is None:
        raise NotFoundError("User not found")
    return account


async def get_account_by_email(db: AsyncSession, email: str) -> Optional[Account]:
    result = await db.execute(select(Account).where(Account.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def register(db: AsyncSession, data: AccountCreate) -> Account:
    """
    Create an account with a hashed credential.

    Raises:
        ConflictError: email already registered
    """
    email = normalize_email(data.email)
    if await get_account_by_email(db, email) is not None:
        raise ConflictError("Email already registered")

    account = Account(
        name=data.name.strip(),
        email=email,
        password_hash=hash_password(data.password),
        role=data.role,
        active=True,
    )
    db.add(account)
    try:
        await db.commit()
    except IntegrityError:
        # registered concurrently between the lookup and the insert
        await db.rollback()
        raise ConflictError("Email already registered")

    logger.info(f"Account #{account.id} registered: {account.email} ({account.role.value})")
    return account


async def authenticate(db: AsyncSession, email: str, password: str) -> Account:
    """
    Check credentials and stamp the login time.

    Unknown, inactive and wrong-password logins all fail the same way.
    """
    account = await get_account_by_email(db, email)
    if account is None or not account.active or not verify_password(password, account.password_hash):
        logger.warning(f"Failed login attempt for {normalize_email(email)}")
        raise AuthenticationError("Invalid credentials")

    account.last_login_at = utcnow()
    await db.commit()
    logger.info(f"Account #{account.id} logged in")
    return account


async def change_password(
    db: AsyncSession,
    account: Account,
    current_password: str,
    new_password: str,
) -> None:
    if not verify_password(current_password, account.password_hash):
        raise AuthenticationError("Current password is incorrect")

    account.password_hash = hash_password(new_password)
    await db.commit()
    logger.info(f"Account #{account.id} changed password")


async def update_preferences(db: AsyncSession, account: Account, data: PreferencesUpdate) -> Account:
    for key, value in data.model_dump(exclude_unset=True).items():
        if key == "sound_notifications" and value is None:
            continue
        setattr(account, key, value)
    await db.commit()
    return account


# =============================================================================
# ADMINISTRATION
# =============================================================================

async def list_accounts(db: AsyncSession, active: Optional[bool] = None) -> list[Account]:
    query = select(Account).order_by(Account.name.asc(), Account.id.asc())
    if active is not None:
        query = query.where(Account.active == active)
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_account(db: AsyncSession, account_id: int, data: AccountUpdate) -> Account:
    account = await get_account(db, account_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    for key, value in changes.items():
        setattr(account, key, value)

    await db.commit()
    logger.info(f"Account #{account.id} updated ({', '.join(sorted(changes)) or 'no changes'})")
    return account


async def deactivate_account(db: AsyncSession, account_id: int) -> Account:
    """Soft delete: the account can no longer log in or use its tokens."""
    account = await get_account(db, account_id)
    account.active = False
    await db.commit()
    logger.info(f"Account #{account.id} deactivated")
    return account
