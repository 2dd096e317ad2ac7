"""
Catalog Service

Product listing and administration. Products are never removed: deleting
one switches ``available`` off so past orders keep their references.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.core.errors import ConflictError, NotFoundError
from pizzeria.models import Product, ProductCategory
from pizzeria.schemas import PriceOption, ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

PRICE_LIST_FIELDS = ("sizes", "crusts", "addons")

# Columns that refuse NULL; an explicit null in an update leaves them unchanged
NON_NULLABLE_FIELDS = {
    "name", "ingredients", "sizes", "preparation_minutes",
    "available", "vegetarian", "display_order",
}


def options_to_json(options: Iterable[PriceOption]) -> list[dict]:
    """Price lists are stored with decimal-string prices."""
    return [
        {"name": option.name, "price": str(option.price), "available": option.available}
        for option in options
    ]


async def list_products(
    db: AsyncSession,
    category: Optional[ProductCategory] = None,
    available: Optional[bool] = True,
    search: Optional[str] = None,
) -> list[Product]:
    query = select(Product)
    if category is not None:
        query = query.where(Product.category == category)
    if available is not None:
        query = query.where(Product.available == available)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(Product.name).like(pattern),
                func.lower(func.coalesce(Product.description, "")).like(pattern),
            )
        )

    result = await db.execute(query.order_by(Product.display_order.asc(), Product.name.asc()))
    return list(result.scalars().all())


async def list_categories(db: AsyncSession) -> list[ProductCategory]:
    """Categories that currently have at least one available product."""
    result = await db.execute(
        select(Product.category).where(Product.available.is_(True)).distinct()
    )
    found = set(result.scalars().all())
    return [category for category in ProductCategory if category in found]


async def get_product(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


async def _ensure_unique_name(
    db: AsyncSession,
    name: str,
    category: ProductCategory,
    exclude_id: Optional[int] = None,
) -> None:
    query = select(Product.id).where(
        func.lower(Product.name) == name.strip().lower(),
        Product.category == category,
    )
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    result = await db.execute(query.limit(1))
    if result.scalar() is not None:
        raise ConflictError("A product with this name already exists in this category")


async def create_product(db: AsyncSession, data: ProductCreate) -> Product:
    """
    Add a product to the catalog.

    Raises:
        ConflictError: same name already used in the category
    """
    await _ensure_unique_name(db, data.name, data.category)

    values = data.model_dump(exclude=set(PRICE_LIST_FIELDS))
    values["name"] = data.name.strip()
    product = Product(
        **values,
        sizes=options_to_json(data.sizes),
        crusts=options_to_json(data.crusts),
        addons=options_to_json(data.addons),
        available=True,
    )
    db.add(product)
    await db.commit()

    logger.info(f"Product #{product.id} created: {product.category.value} - {product.name}")
    return product


async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate) -> Product:
    """Apply the fields present in ``data``; others are left untouched."""
    product = await get_product(db, product_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("name"):
        changes["name"] = changes["name"].strip()
        await _ensure_unique_name(db, changes["name"], product.category, exclude_id=product.id)

    for field_name in PRICE_LIST_FIELDS:
        options = getattr(data, field_name)
        if field_name in changes and options is not None:
            changes[field_name] = options_to_json(options)
        elif field_name in changes:
            changes[field_name] = None if field_name in NON_NULLABLE_FIELDS else []

    for key, value in changes.items():
        if value is None and key in NON_NULLABLE_FIELDS:
            continue
        setattr(product, key, value)

    await db.commit()
    logger.info(f"Product #{product.id} updated ({', '.join(sorted(changes)) or 'no changes'})")
    return product


async def set_availability(db: AsyncSession, product_id: int, available: bool) -> Product:
    product = await get_product(db, product_id)
    product.available = available
    await db.commit()
    logger.info(f"Product #{product.id} {'enabled' if available else 'disabled'}")
    return product


async def delete_product(db: AsyncSession, product_id: int) -> Product:
    """Soft delete."""
    return await set_availability(db, product_id, False)
