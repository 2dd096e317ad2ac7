"""
Order Lifecycle

Status values, the capability each target status requires, and
timestamp bookkeeping. A lifecycle timestamp is written the first time an
order enters the matching status and never overwritten afterwards.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from pizzeria.core import permissions
from pizzeria.core.errors import InvalidOrderState
from pizzeria.models import Order, OrderStatus, utcnow

LIFECYCLE = (
    OrderStatus.AWAITING_PREPARATION,
    OrderStatus.IN_PREPARATION,
    OrderStatus.READY,
    OrderStatus.DISPATCHED,
    OrderStatus.DELIVERED,
)

OPEN_STATUSES = (
    OrderStatus.AWAITING_PREPARATION,
    OrderStatus.IN_PREPARATION,
    OrderStatus.READY,
    OrderStatus.DISPATCHED,
)

TIMESTAMP_FIELDS = {
    OrderStatus.IN_PREPARATION: "preparation_started_at",
    OrderStatus.READY: "preparation_finished_at",
    OrderStatus.DISPATCHED: "dispatched_at",
    OrderStatus.DELIVERED: "delivered_at",
}

STATUS_CAPABILITIES = {
    OrderStatus.AWAITING_PREPARATION: permissions.EDIT_ORDER,
    OrderStatus.IN_PREPARATION: permissions.UPDATE_PREPARATION_STATUS,
    OrderStatus.READY: permissions.UPDATE_PREPARATION_STATUS,
    OrderStatus.DISPATCHED: permissions.UPDATE_DELIVERY_STATUS,
    OrderStatus.DELIVERED: permissions.UPDATE_DELIVERY_STATUS,
    OrderStatus.CANCELLED: permissions.CANCEL_ORDER,
}

# Kitchen display sectors and the statuses each one watches
SECTOR_STATUSES = {
    "preparation": (OrderStatus.AWAITING_PREPARATION, OrderStatus.IN_PREPARATION),
    "expedition": (OrderStatus.READY, OrderStatus.DISPATCHED),
    "delivery": (OrderStatus.DISPATCHED,),
}

STATUS_SECTOR = {
    OrderStatus.AWAITING_PREPARATION: "preparation",
    OrderStatus.IN_PREPARATION: "preparation",
    OrderStatus.READY: "expedition",
    OrderStatus.DISPATCHED: "delivery",
}


def required_capability(status: OrderStatus) -> str:
    return STATUS_CAPABILITIES[OrderStatus(status)]


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Whole minutes from ``start`` to ``end``, halves rounded up; None if either is missing."""
    if start is None or end is None:
        return None
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    return math.floor(seconds / 60 + 0.5)


def check_transition(current: OrderStatus, target: OrderStatus, enforce_forward: bool) -> None:
    """
    Validate a status change.

    Permissive mode accepts any target. Forward-only mode rejects leaving
    ``cancelled`` or ``delivered`` and moving back along the lifecycle.
    """
    if not enforce_forward or current == target:
        return

    if current == OrderStatus.CANCELLED:
        raise InvalidOrderState("Cancelled orders cannot change status")
    if current == OrderStatus.DELIVERED:
        raise InvalidOrderState("Delivered orders cannot change status")
    if target == OrderStatus.CANCELLED:
        return
    if LIFECYCLE.index(target) < LIFECYCLE.index(current):
        raise InvalidOrderState(
            f"Cannot move order from '{current.value}' back to '{target.value}'"
        )


def apply_status(order: Order, status: OrderStatus, now: Optional[datetime] = None) -> bool:
    """
    Set ``order.status`` and stamp the matching lifecycle timestamp if unset.

    Returns:
        True when a timestamp was written
    """
    status = OrderStatus(status)
    order.status = status

    field_name = TIMESTAMP_FIELDS.get(status)
    if field_name is None or getattr(order, field_name) is not None:
        return False

    setattr(order, field_name, now or utcnow())
    return True


def mark_cancelled(order: Order) -> None:
    order.status = OrderStatus.CANCELLED
    order.active = False


def ensure_editable(order: Order) -> None:
    if order.status != OrderStatus.AWAITING_PREPARATION:
        raise InvalidOrderState(
            "Orders can only be edited while awaiting preparation"
        )


def phase_started_at(order: Order) -> datetime:
    """When the order entered its current phase, for kitchen display timers."""
    field_name = TIMESTAMP_FIELDS.get(order.status)
    if field_name and getattr(order, field_name) is not None:
        return getattr(order, field_name)
    return order.created_at
