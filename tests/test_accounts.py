import pytest

from pizzeria.core.errors import AuthenticationError, ConflictError
from pizzeria.models import Role
from pizzeria.schemas import AccountCreate
from pizzeria.services import accounts


def cook(email="cook@pizzeria.com") -> AccountCreate:
    return AccountCreate(name="Cook User", email=email, password="secret123", role=Role.COOK)


async def test_duplicate_email_is_rejected(db):
    await accounts.register(db, cook())

    with pytest.raises(ConflictError):
        await accounts.register(db, cook("COOK@pizzeria.com"))


async def test_concurrent_duplicate_hits_unique_index_as_conflict(db, monkeypatch):
    await accounts.register(db, cook())

    async def not_seen_yet(db, email):
        return None

    monkeypatch.setattr(accounts, "get_account_by_email", not_seen_yet)

    with pytest.raises(ConflictError, match="Email already registered"):
        await accounts.register(db, cook())
    assert await accounts.count_accounts(db) == 1


async def test_authenticate_rejects_deactivated_account(db):
    account = await accounts.register(db, cook())
    await accounts.deactivate_account(db, account.id)

    with pytest.raises(AuthenticationError):
        await accounts.authenticate(db, "cook@pizzeria.com", "secret123")
