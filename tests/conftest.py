"""
Shared fixtures.

The environment is configured before ``pizzeria`` is imported because the
settings and the module-level engine are built at import time. Each test
gets its own SQLite file; API tests swap it in through ``get_db``.
"""

import asyncio
import itertools
import os
import tempfile
from decimal import Decimal

_TMP_DIR = tempfile.mkdtemp(prefix="pizzeria-tests-")
os.environ["ENV_MODE"] = "development"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'app.db')}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["PASSWORD_HASH_ROUNDS"] = "1000"
os.environ["ENFORCE_FORWARD_TRANSITIONS"] = "false"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from pizzeria.core.config import get_settings
from pizzeria.core.security import create_access_token
from pizzeria.database import Base, get_db
from pizzeria.main import app
from pizzeria.models import Account, Product, ProductCategory, Role
from pizzeria.schemas import AccountCreate, PriceOption, ProductCreate
from pizzeria.services import accounts, catalog
from pizzeria.services.notifications import BaseBroadcaster, get_broadcaster, reset_broadcaster

PASSWORD = "secret123"

_emails = itertools.count(1)


def margherita() -> ProductCreate:
    return ProductCreate(
        name="Pizza Margherita",
        category=ProductCategory.PIZZA,
        description="Tomato sauce, mozzarella and basil",
        ingredients=["tomato sauce", "mozzarella", "basil"],
        sizes=[
            PriceOption(name="pequena", price=Decimal("25.90")),
            PriceOption(name="media", price=Decimal("35.90")),
            PriceOption(name="grande", price=Decimal("45.90")),
            PriceOption(name="gigante", price=Decimal("55.90"), available=False),
        ],
        crusts=[
            PriceOption(name="catupiry", price=Decimal("5.00")),
            PriceOption(name="cheddar", price=Decimal("6.00"), available=False),
        ],
        addons=[
            PriceOption(name="olives", price=Decimal("2.00")),
            PriceOption(name="oregano", price=Decimal("1.00")),
            PriceOption(name="bacon", price=Decimal("4.50"), available=False),
        ],
        preparation_minutes=25,
        vegetarian=True,
    )


class RecordingBroadcaster(BaseBroadcaster):
    """Keeps every message instead of delivering it."""

    provider_name = "recording"

    def __init__(self):
        self.messages: list[tuple[dict, object]] = []

    async def _send(self, message, group):
        self.messages.append((message, group))

    async def health_check(self) -> bool:
        return True

    def events(self, group=None) -> list[str]:
        return [m["event"] for m, g in self.messages if g == group]


class Seeder:
    """Synchronous helpers that write fixtures straight into a test database."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def run(self, work):
        async def _go():
            async with self.session_factory() as session:
                return await work(session)
        return asyncio.run(_go())

    def account(self, role: Role = Role.ADMIN, email: str = None, password: str = PASSWORD) -> Account:
        data = AccountCreate(
            name=f"{role.value.replace('_', ' ').title()} User",
            email=email or f"{role.value}{next(_emails)}@pizzeria.com",
            password=password,
            role=role,
        )
        return self.run(lambda session: accounts.register(session, data))

    def product(self, data: ProductCreate = None) -> Product:
        return self.run(lambda session: catalog.create_product(session, data or margherita()))

    @staticmethod
    def headers(account: Account) -> dict[str, str]:
        token = create_access_token(account.id, account.email, account.role.value)
        return {"Authorization": f"Bearer {token}"}


def _engine_for(path):
    return create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)


async def _create_tables(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def _fresh_caches():
    get_settings.cache_clear()
    reset_broadcaster()
    yield
    get_settings.cache_clear()
    reset_broadcaster()


@pytest_asyncio.fixture
async def db(tmp_path):
    """An AsyncSession on an empty database, for service-level tests."""
    engine = _engine_for(tmp_path / "unit.db")
    await _create_tables(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    engine = _engine_for(tmp_path / "api.db")
    asyncio.run(_create_tables(engine))
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def client(session_factory, broadcaster):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    yield TestClient(app)
    app.dependency_overrides.clear()
