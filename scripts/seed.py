"""
Database Seed Script

Creates the tables and loads demo staff accounts and a starter catalog.
Existing accounts and products are left alone, so the script can be run
more than once.

Run from project root: python scripts/seed.py [--reset]

Version: 1.0.0
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from pizzeria.core.config import get_logger, setup_logging
from pizzeria.core.errors import ConflictError
from pizzeria.database import Base, async_session_maker, engine, init_db
from pizzeria.models import ProductCategory, Role
from pizzeria.schemas import AccountCreate, PriceOption, ProductCreate
from pizzeria.services import accounts, catalog

setup_logging()
logger = get_logger("pizzeria.seed")

DEMO_PASSWORD = "123456"

ACCOUNTS = [
    ("Administrator", "admin@pizzeria.com", Role.ADMIN),
    ("Manager", "manager@pizzeria.com", Role.MANAGER),
    ("Counter", "counter@pizzeria.com", Role.COUNTER_STAFF),
    ("Pizza Cook", "cook@pizzeria.com", Role.COOK),
    ("Driver", "driver@pizzeria.com", Role.DRIVER),
]

CRUSTS = [("catupiry", "5.00"), ("cheddar", "6.00")]
ADDONS = [("olives", "2.00"), ("oregano", "1.00")]

# name, description, ingredients, (small, medium, large, giant), minutes, vegetarian
PIZZAS = [
    ("Pizza Margherita", "Tomato sauce, mozzarella, basil and olive oil",
     ["tomato sauce", "mozzarella", "basil", "olive oil"],
     ("25.90", "35.90", "45.90", "55.90"), 25, True),
    ("Pizza Calabresa", "Tomato sauce, mozzarella, calabresa sausage and onion",
     ["tomato sauce", "mozzarella", "calabresa", "onion"],
     ("28.90", "38.90", "48.90", "58.90"), 30, False),
    ("Pizza Portuguesa", "Tomato sauce, mozzarella, ham, eggs, onion and olives",
     ["tomato sauce", "mozzarella", "ham", "eggs", "onion", "olives"],
     ("32.90", "42.90", "52.90", "62.90"), 35, False),
    ("Pizza Four Cheese", "Tomato sauce, mozzarella, catupiry, parmesan and gorgonzola",
     ["tomato sauce", "mozzarella", "catupiry", "parmesan", "gorgonzola"],
     ("35.90", "45.90", "55.90", "65.90"), 30, True),
    ("Pizza Chicken Catupiry", "Tomato sauce, mozzarella, shredded chicken and catupiry",
     ["tomato sauce", "mozzarella", "shredded chicken", "catupiry"],
     ("30.90", "40.90", "50.90", "60.90"), 32, False),
]

SIZE_NAMES = ("pequena", "media", "grande", "gigante")

OTHER_PRODUCTS = [
    ("Coca-Cola", ProductCategory.DRINK, [("lata", "6.00"), ("2l", "14.00")]),
    ("Guaraná", ProductCategory.DRINK, [("lata", "5.50"), ("2l", "12.00")]),
    ("Chocolate Brownie", ProductCategory.DESSERT, [("unidade", "12.90")]),
]


def _options(pairs) -> list[PriceOption]:
    return [PriceOption(name=name, price=price) for name, price in pairs]


def build_catalog() -> list[ProductCreate]:
    products = []
    for position, (name, description, ingredients, prices, minutes, vegetarian) in enumerate(PIZZAS):
        products.append(ProductCreate(
            name=name,
            category=ProductCategory.PIZZA,
            description=description,
            ingredients=ingredients,
            sizes=_options(zip(SIZE_NAMES, prices)),
            crusts=_options(CRUSTS),
            addons=_options(ADDONS),
            preparation_minutes=minutes,
            vegetarian=vegetarian,
            display_order=position,
        ))
    for position, (name, category, sizes) in enumerate(OTHER_PRODUCTS, start=len(PIZZAS)):
        products.append(ProductCreate(
            name=name,
            category=category,
            sizes=_options(sizes),
            preparation_minutes=0,
            display_order=position,
        ))
    return products


async def seed(reset: bool = False) -> None:
    if reset:
        logger.warning("Dropping all tables...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await init_db()

    created_accounts = created_products = 0
    async with async_session_maker() as db:
        for name, email, role in ACCOUNTS:
            try:
                await accounts.register(
                    db, AccountCreate(name=name, email=email, password=DEMO_PASSWORD, role=role)
                )
                created_accounts += 1
            except ConflictError:
                logger.info(f"Account {email} already exists, skipping")

        for product in build_catalog():
            try:
                await catalog.create_product(db, product)
                created_products += 1
            except ConflictError:
                logger.info(f"Product {product.name} already exists, skipping")

    await engine.dispose()

    print("=" * 60)
    print("🌱 SEED COMPLETE")
    print("=" * 60)
    print(f"   Accounts created: {created_accounts}")
    print(f"   Products created: {created_products}")
    print(f"   Demo password: {DEMO_PASSWORD}")
    for _, email, role in ACCOUNTS:
        print(f"   {role.value:<14} {email}")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the pizzeria database")
    parser.add_argument("--reset", action="store_true", help="Drop all tables before seeding")
    args = parser.parse_args()

    asyncio.run(seed(reset=args.reset))
