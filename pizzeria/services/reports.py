"""
Reporting Engine

Read-only aggregates over the order store. Only active orders count, and
date filters apply to the order creation time.

Durations are whole minutes rounded to the nearest integer (halves up).
An order missing either endpoint of an interval is left out of that
statistic instead of counting as zero.
"""

import logging
import math
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.core.errors import ValidationError
from pizzeria.models import Order, OrderItem, OrderStatus, Product, utcnow
from pizzeria.schemas import (
    CENT,
    ChannelReport,
    ChannelSales,
    ChannelTotals,
    DashboardReport,
    DurationStats,
    ProductSales,
    SalesBucket,
    SalesReport,
    SalesTotals,
    TimesReport,
)
from pizzeria.services.lifecycle import OPEN_STATUSES, as_utc, minutes_between
from pizzeria.services.orders import created_between, day_start

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

SALES_GROUPINGS = {
    "hour": "%Y-%m-%d %H:00",
    "day": "%Y-%m-%d",
    "month": "%Y-%m",
}

TIMED_STATUSES = (OrderStatus.READY, OrderStatus.DISPATCHED, OrderStatus.DELIVERED)


def _money(value) -> Decimal:
    # SQLite hands back floats for aggregates over Numeric columns
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _average(total: Decimal, count: int) -> Decimal:
    return total / count if count else ZERO


def _round_nearest(value: float) -> int:
    return math.floor(value + 0.5)


def _share(part, whole) -> float:
    if not whole:
        return 0.0
    return round(float(Decimal(part) / Decimal(whole) * 100), 2)


def _delivered_in_range(date_from: Optional[date], date_to: Optional[date]) -> list:
    return [
        Order.active.is_(True),
        Order.status == OrderStatus.DELIVERED,
        *created_between(date_from, date_to),
    ]


# =============================================================================
# DASHBOARD
# =============================================================================

async def dashboard(db: AsyncSession, now: Optional[datetime] = None) -> DashboardReport:
    """Today's activity (UTC day) plus the orders currently in progress."""
    now = now or utcnow()
    start = day_start(as_utc(now).date())
    today = [
        Order.active.is_(True),
        Order.created_at >= start,
        Order.created_at < start + timedelta(days=1),
    ]

    orders_today = (await db.execute(select(func.count(Order.id)).where(*today))).scalar() or 0

    open_orders = (await db.execute(
        select(func.count(Order.id)).where(Order.active.is_(True), Order.status.in_(OPEN_STATUSES))
    )).scalar() or 0

    revenue = (await db.execute(
        select(func.sum(Order.total_amount)).where(*today, Order.status == OrderStatus.DELIVERED)
    )).scalar()

    timed = await db.execute(
        select(Order.preparation_started_at, Order.preparation_finished_at).where(
            *today,
            Order.preparation_started_at.is_not(None),
            Order.preparation_finished_at.is_not(None),
        )
    )
    minutes = [
        (as_utc(finished) - as_utc(started)).total_seconds() / 60
        for started, finished in timed.all()
    ]
    average_preparation = _round_nearest(sum(minutes) / len(minutes)) if minutes else 0

    return DashboardReport(
        orders_today=orders_today,
        open_orders=open_orders,
        revenue_today=_money(revenue),
        average_preparation_minutes=average_preparation,
    )


# =============================================================================
# SALES
# =============================================================================

async def sales_report(
    db: AsyncSession,
    grouping: str = "day",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> SalesReport:
    """Delivered orders bucketed by hour, day or month, oldest bucket first."""
    if grouping not in SALES_GROUPINGS:
        raise ValidationError(f"grouping must be one of: {', '.join(SALES_GROUPINGS)}")
    period_format = SALES_GROUPINGS[grouping]

    result = await db.execute(
        select(Order.created_at, Order.total_amount)
        .where(*_delivered_in_range(date_from, date_to))
        .order_by(Order.created_at.asc())
    )

    buckets: dict[str, list] = {}
    for created_at, amount in result.all():
        period = as_utc(created_at).strftime(period_format)
        bucket = buckets.setdefault(period, [ZERO, 0])
        bucket[0] += _money(amount)
        bucket[1] += 1

    total_revenue = sum((revenue for revenue, _ in buckets.values()), ZERO)
    order_count = sum(count for _, count in buckets.values())

    return SalesReport(
        grouping=grouping,
        buckets=[
            SalesBucket(
                period=period,
                total_revenue=revenue,
                order_count=count,
                average_ticket=_average(revenue, count),
            )
            for period, (revenue, count) in buckets.items()
        ],
        totals=SalesTotals(
            total_revenue=total_revenue,
            order_count=order_count,
            average_ticket=_average(total_revenue, order_count),
        ),
    )


# =============================================================================
# PRODUCTS
# =============================================================================

async def top_products(
    db: AsyncSession,
    limit: int = 10,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[ProductSales]:
    """Best sellers among delivered orders, by quantity sold."""
    quantity = func.sum(OrderItem.quantity).label("quantity_sold")
    result = await db.execute(
        select(
            OrderItem.product_id,
            func.max(OrderItem.product_name),
            Product.name,
            Product.category,
            quantity,
            func.sum(OrderItem.price),
            func.count(OrderItem.id),
        )
        .join(Order, OrderItem.order_id == Order.id)
        .outerjoin(Product, OrderItem.product_id == Product.id)
        .where(*_delivered_in_range(date_from, date_to))
        .group_by(OrderItem.product_id, Product.name, Product.category)
        .order_by(quantity.desc(), OrderItem.product_id.asc())
        .limit(limit)
    )

    return [
        ProductSales(
            product_id=product_id,
            product_name=current_name or snapshot_name,
            category=category,
            quantity_sold=int(sold or 0),
            revenue=_money(revenue),
            average_price=_average(_money(revenue), lines),
        )
        for product_id, snapshot_name, current_name, category, sold, revenue, lines in result.all()
    ]


# =============================================================================
# TIMES
# =============================================================================

def duration_stats(durations: Sequence[int]) -> DurationStats:
    if not durations:
        return DurationStats()
    return DurationStats(
        orders_analyzed=len(durations),
        mean=_round_nearest(sum(durations) / len(durations)),
        min=min(durations),
        max=max(durations),
    )


async def times_report(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> TimesReport:
    """Preparation, delivery and total durations over orders that left the kitchen."""
    result = await db.execute(
        select(
            Order.created_at,
            Order.preparation_started_at,
            Order.preparation_finished_at,
            Order.dispatched_at,
            Order.delivered_at,
        ).where(
            Order.active.is_(True),
            Order.status.in_(TIMED_STATUSES),
            *created_between(date_from, date_to),
        )
    )

    preparation, delivery, total = [], [], []
    for created, started, finished, dispatched, delivered in result.all():
        for bucket, start, end in (
            (preparation, started, finished),
            (delivery, dispatched, delivered),
            (total, created, delivered),
        ):
            minutes = minutes_between(start, end)
            if minutes is not None:
                bucket.append(minutes)

    return TimesReport(
        preparation=duration_stats(preparation),
        delivery=duration_stats(delivery),
        total=duration_stats(total),
    )


# =============================================================================
# CHANNELS
# =============================================================================

async def channels_report(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> ChannelReport:
    """Delivered orders per sales channel, highest revenue first."""
    result = await db.execute(
        select(Order.channel, func.count(Order.id), func.sum(Order.total_amount))
        .where(*_delivered_in_range(date_from, date_to))
        .group_by(Order.channel)
    )
    rows = [(channel, count, _money(revenue)) for channel, count, revenue in result.all()]
    rows.sort(key=lambda row: row[2], reverse=True)

    total_revenue = sum((revenue for _, _, revenue in rows), ZERO)
    total_orders = sum(count for _, count, _ in rows)

    return ChannelReport(
        channels=[
            ChannelSales(
                channel=channel,
                order_count=count,
                revenue=revenue,
                average_ticket=_average(revenue, count),
                revenue_share=_share(revenue, total_revenue),
                order_share=_share(count, total_orders),
            )
            for channel, count, revenue in rows
        ],
        totals=ChannelTotals(revenue=total_revenue, order_count=total_orders),
    )
