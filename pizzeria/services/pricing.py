"""
Order Pricing and Validation

Computes authoritative line and order totals from the catalog. Prices
sent by clients are never used: every size, crust and addon price is
looked up on the product at order-creation time.

Rules per requested line item:
    1. The product must exist and be available   -> ProductUnavailable
    2. The size must exist and be available      -> SizeUnavailable
    3. Line price starts at size price x quantity
    4. A requested crust that exists and is available adds
       crust price x quantity; otherwise it is dropped
    5. Same add-or-drop rule for every requested addon

The order total is the exact Decimal sum of line prices.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.core.errors import ProductUnavailable, SizeUnavailable
from pizzeria.models import Product
from pizzeria.schemas import OrderItemCreate

logger = logging.getLogger(__name__)


@dataclass
class PricedAddon:
    name: str
    price: Decimal

    def to_json(self) -> dict:
        return {"name": self.name, "price": str(self.price)}


@dataclass
class PricedLineItem:
    """A requested line item with every price resolved from the catalog."""
    product_id: int
    product_name: str
    quantity: int
    size: str
    size_price: Decimal
    price: Decimal
    flavors: list[str] = field(default_factory=list)
    crust_name: Optional[str] = None
    crust_price: Optional[Decimal] = None
    addons: list[PricedAddon] = field(default_factory=list)
    note: Optional[str] = None


@dataclass
class PricedOrder:
    items: list[PricedLineItem]
    total: Decimal


def _to_decimal(value) -> Decimal:
    # JSON columns may hand back strings, ints or floats
    return Decimal(str(value))


def find_option(options: Optional[Iterable[dict]], name: str) -> Optional[dict]:
    """Return the first catalog entry called ``name``, or None."""
    for option in options or []:
        if option.get("name") == name:
            return option
    return None


def _is_available(option: Optional[dict]) -> bool:
    return option is not None and option.get("available", True)


def price_line_item(product: Optional[Product], requested: OrderItemCreate) -> PricedLineItem:
    """
    Resolve the price of one requested line item against its product.

    Raises:
        ProductUnavailable: product missing or switched off
        SizeUnavailable: size missing or switched off for this product
    """
    if product is None or not product.available:
        raise ProductUnavailable(
            f"Product not found or unavailable: {requested.product_id}"
        )

    size = find_option(product.sizes, requested.size)
    if not _is_available(size):
        raise SizeUnavailable(f"Size not available: {requested.size}")

    quantity = requested.quantity
    size_price = _to_decimal(size["price"])
    line_price = size_price * quantity

    crust_name = None
    crust_price = None
    if requested.crust is not None:
        crust = find_option(product.crusts, requested.crust.name)
        if _is_available(crust):
            crust_name = crust["name"]
            crust_price = _to_decimal(crust["price"])
            line_price += crust_price * quantity
        else:
            logger.debug(f"Dropping unavailable crust '{requested.crust.name}' on product #{product.id}")

    addons: list[PricedAddon] = []
    for selection in requested.addons:
        addon = find_option(product.addons, selection.name)
        if _is_available(addon):
            addon_price = _to_decimal(addon["price"])
            addons.append(PricedAddon(name=addon["name"], price=addon_price))
            line_price += addon_price * quantity
        else:
            logger.debug(f"Dropping unavailable addon '{selection.name}' on product #{product.id}")

    return PricedLineItem(
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        size=size["name"],
        size_price=size_price,
        price=line_price,
        flavors=list(requested.flavors),
        crust_name=crust_name,
        crust_price=crust_price,
        addons=addons,
        note=requested.note,
    )


def price_items(
    products: dict[int, Product],
    requested_items: Sequence[OrderItemCreate],
) -> PricedOrder:
    """Price every requested item; the first failure aborts the whole order."""
    priced = [price_line_item(products.get(r.product_id), r) for r in requested_items]
    total = sum((item.price for item in priced), Decimal("0"))
    return PricedOrder(items=priced, total=total)


async def price_order(
    session: AsyncSession,
    requested_items: Sequence[OrderItemCreate],
) -> PricedOrder:
    """Load the referenced products and price the requested items."""
    product_ids = {item.product_id for item in requested_items}
    result = await session.execute(select(Product).where(Product.id.in_(product_ids)))
    products = {product.id: product for product in result.scalars().all()}
    return price_items(products, requested_items)
