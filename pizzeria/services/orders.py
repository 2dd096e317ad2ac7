"""
Order Service

Creation, listing, edits, status changes and cancellation of orders.
Every function takes the request's ``AsyncSession`` and commits its own
unit of work; notification is left to the caller so it can run after the
response is sent.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.core.config import get_settings
from pizzeria.core.errors import ConflictError, NotFoundError, ValidationError
from pizzeria.models import Order, OrderItem, OrderStatus, OrderType, utcnow
from pizzeria.schemas import OrderCreate, OrderUpdate
from pizzeria.services import lifecycle
from pizzeria.services.pricing import PricedOrder, price_order

logger = logging.getLogger(__name__)


# =============================================================================
# FILTER HELPERS
# =============================================================================

def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def created_between(date_from: Optional[date], date_to: Optional[date]) -> list:
    """
    Conditions on ``Order.created_at`` for a date range.

    ``date_to`` is inclusive: the whole day is covered.
    """
    if date_from and date_to and date_from > date_to:
        raise ValidationError("date_from must not be after date_to")

    conditions = []
    if date_from:
        conditions.append(Order.created_at >= day_start(date_from))
    if date_to:
        conditions.append(Order.created_at < day_start(date_to + timedelta(days=1)))
    return conditions


def format_number(sequence: int) -> str:
    return f"{sequence:03d}"


# =============================================================================
# CREATION
# =============================================================================

async def _next_sequence(db: AsyncSession) -> int:
    result = await db.execute(select(func.coalesce(func.max(Order.sequence), 0)))
    return int(result.scalar() or 0) + 1


def _build_order(data: OrderCreate, priced: PricedOrder, sequence: int) -> Order:
    customer = data.customer
    return Order(
        sequence=sequence,
        number=format_number(sequence),
        customer_name=customer.name,
        customer_phone=customer.phone,
        customer_address=customer.address.model_dump() if customer.address else None,
        order_type=data.order_type,
        channel=data.channel,
        status=OrderStatus.AWAITING_PREPARATION,
        payment_method=data.payment.method,
        total_amount=priced.total,
        change_due=data.payment.change_due,
        paid=data.payment.paid,
        notes=data.notes,
        active=True,
        items=[
            OrderItem(
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                size=line.size,
                flavors=line.flavors,
                crust_name=line.crust_name,
                crust_price=line.crust_price,
                addons=[addon.to_json() for addon in line.addons],
                note=line.note,
                price=line.price,
            )
            for line in priced.items
        ],
    )


async def create_order(db: AsyncSession, data: OrderCreate) -> Order:
    """
    Price and persist a new order.

    The order number is the next value of the unique ``sequence`` column.
    When a concurrent request claims the same value the insert fails on the
    unique constraint; the transaction is rolled back and a fresh number is
    read, up to ORDER_NUMBER_MAX_RETRIES attempts.

    Raises:
        ProductUnavailable / SizeUnavailable: pricing failed, nothing stored
        ConflictError: no free order number after all retries
    """
    settings = get_settings()
    priced = await price_order(db, data.items)

    for attempt in range(1, settings.order_number_max_retries + 1):
        sequence = await _next_sequence(db)
        order = _build_order(data, priced, sequence)
        db.add(order)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning(
                f"Order number {format_number(sequence)} taken concurrently "
                f"(attempt {attempt}/{settings.order_number_max_retries})"
            )
            continue

        logger.info(
            f"Order #{order.number} created: {len(order.items)} item(s), "
            f"total {priced.total} via {order.channel.value}"
        )
        return order

    raise ConflictError("Could not allocate an order number, please retry")


# =============================================================================
# QUERIES
# =============================================================================

async def list_orders(
    db: AsyncSession,
    status: Optional[OrderStatus] = None,
    order_type: Optional[OrderType] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    active: Optional[bool] = True,
    limit: Optional[int] = None,
) -> tuple[int, list[Order]]:
    """
    Orders matching the filters, newest first.

    Returns:
        (number of matching orders, at most ``limit`` of them)
    """
    settings = get_settings()
    if limit is None:
        limit = settings.order_list_default_limit
    limit = min(limit, settings.order_list_max_limit)

    conditions = created_between(date_from, date_to)
    if status is not None:
        conditions.append(Order.status == status)
    if order_type is not None:
        conditions.append(Order.order_type == order_type)
    if active is not None:
        conditions.append(Order.active == active)

    total_result = await db.execute(select(func.count(Order.id)).where(*conditions))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
    )
    return total, list(result.scalars().all())


async def get_order(db: AsyncSession, order_id: int) -> Order:
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


async def kitchen_orders(
    db: AsyncSession,
    sector: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[tuple[Order, int]]:
    """
    Open orders for a kitchen display, oldest first.

    Each order is paired with the minutes spent in its current phase.
    Without a sector, every open order is returned.
    """
    statuses = lifecycle.SECTOR_STATUSES.get(sector) if sector else lifecycle.OPEN_STATUSES
    if statuses is None:
        raise ValidationError(f"Unknown sector: {sector}")

    result = await db.execute(
        select(Order)
        .where(Order.active.is_(True), Order.status.in_(statuses))
        .order_by(Order.created_at.asc(), Order.id.asc())
    )
    now = now or utcnow()
    return [
        (order, lifecycle.minutes_between(lifecycle.phase_started_at(order), now))
        for order in result.scalars().all()
    ]


# =============================================================================
# MUTATIONS
# =============================================================================

async def update_order(db: AsyncSession, order_id: int, data: OrderUpdate) -> Order:
    """Change customer details or notes on an order still awaiting preparation."""
    order = await get_order(db, order_id)
    lifecycle.ensure_editable(order)

    changes = data.model_dump(exclude_unset=True)
    if "customer" in changes and data.customer is not None:
        order.customer_name = data.customer.name
        order.customer_phone = data.customer.phone
        order.customer_address = data.customer.address.model_dump() if data.customer.address else None
    if "notes" in changes:
        order.notes = data.notes

    await db.commit()
    logger.info(f"Order #{order.number} edited ({', '.join(sorted(changes)) or 'no changes'})")
    return order


async def change_status(db: AsyncSession, order_id: int, status: OrderStatus) -> Order:
    """
    Move an order to ``status``.

    Setting ``cancelled`` behaves like :func:`cancel_order`.

    Raises:
        NotFoundError: unknown order
        InvalidOrderState: rejected by forward-only enforcement
    """
    settings = get_settings()
    order = await get_order(db, order_id)
    previous = order.status
    lifecycle.check_transition(previous, status, settings.enforce_forward_transitions)

    if status == OrderStatus.CANCELLED:
        lifecycle.mark_cancelled(order)
    else:
        lifecycle.apply_status(order, status)

    await db.commit()
    logger.info(f"Order #{order.number}: {previous.value} → {order.status.value}")
    return order


async def cancel_order(db: AsyncSession, order_id: int) -> Order:
    """Soft-cancel: the order stays stored with status cancelled and active off."""
    settings = get_settings()
    order = await get_order(db, order_id)
    lifecycle.check_transition(order.status, OrderStatus.CANCELLED, settings.enforce_forward_transitions)

    lifecycle.mark_cancelled(order)
    await db.commit()
    logger.info(f"Order #{order.number} cancelled")
    return order
