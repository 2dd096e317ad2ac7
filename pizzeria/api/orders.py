"""
Order routes.

Every mutation schedules its notification as a background task, so the
event goes out after the response and a broadcaster failure never reaches
the caller.
"""

import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pizzeria.api.deps import ensure_capability, get_current_account, get_permission_policy, require
from pizzeria.core import permissions
from pizzeria.core.permissions import PermissionPolicy
from pizzeria.database import get_db
from pizzeria.models import Account, Order, OrderStatus, OrderType
from pizzeria.schemas import (
    ErrorResponse,
    KitchenEnvelope,
    KitchenOrderResponse,
    OrderCreate,
    OrderEnvelope,
    OrderListEnvelope,
    OrderResponse,
    OrderUpdate,
    StatusUpdate,
)
from pizzeria.services import lifecycle, orders
from pizzeria.services.notifications import (
    BaseBroadcaster,
    get_broadcaster,
    new_order_event,
    order_cancelled_event,
    status_updated_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def _payload(order: Order) -> dict:
    return OrderResponse.from_model(order).model_dump(mode="json")


@router.post(
    "",
    response_model=OrderEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="Create Order",
)
async def create_order(
    data: OrderCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    broadcaster: BaseBroadcaster = Depends(get_broadcaster),
    account: Account = Depends(require(permissions.CREATE_ORDER)),
) -> OrderEnvelope:
    """
    Create a new order.

    Prices are resolved from the catalog; any client-side price is ignored.
    An unavailable product or size rejects the whole order.
    """
    logger.info(f"Account #{account.id} creating order for: {data.customer.name}")
    order = await orders.create_order(db, data)

    background_tasks.add_task(broadcaster.publish, new_order_event(order.id, _payload(order)))
    return OrderEnvelope(message="Order created successfully", order=OrderResponse.from_model(order))


@router.get("", response_model=OrderListEnvelope, summary="List Orders")
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    type: Optional[OrderType] = Query(None, description="Fulfillment type"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    active: Optional[bool] = Query(True),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(get_current_account),
) -> OrderListEnvelope:
    """Newest first. ``limit`` defaults to ORDER_LIST_DEFAULT_LIMIT and is capped."""
    total, found = await orders.list_orders(
        db,
        status=status,
        order_type=type,
        date_from=date_from,
        date_to=date_to,
        active=active,
        limit=limit,
    )
    return OrderListEnvelope(total=total, orders=[OrderResponse.from_model(o) for o in found])


@router.get("/kitchen", response_model=KitchenEnvelope, summary="Kitchen Display")
async def kitchen(
    sector: Optional[Literal["preparation", "expedition", "delivery"]] = Query(None),
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(get_current_account),
) -> KitchenEnvelope:
    """Open orders for a display sector, oldest first, with minutes in the current phase."""
    found = await orders.kitchen_orders(db, sector)
    return KitchenEnvelope(
        orders=[
            KitchenOrderResponse(**OrderResponse.from_model(order).model_dump(), elapsed_minutes=elapsed)
            for order, elapsed in found
        ]
    )


@router.get(
    "/{order_id}",
    response_model=OrderEnvelope,
    responses={404: {"model": ErrorResponse}},
    summary="Get Order",
)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(get_current_account),
) -> OrderEnvelope:
    order = await orders.get_order(db, order_id)
    return OrderEnvelope(order=OrderResponse.from_model(order))


@router.put(
    "/{order_id}",
    response_model=OrderEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Edit Order",
)
async def edit_order(
    order_id: int,
    data: OrderUpdate,
    db: AsyncSession = Depends(get_db),
    _: Account = Depends(require(permissions.EDIT_ORDER)),
) -> OrderEnvelope:
    """Customer details and notes can change only while the order awaits preparation."""
    order = await orders.update_order(db, order_id, data)
    return OrderEnvelope(message="Order updated successfully", order=OrderResponse.from_model(order))


@router.put(
    "/{order_id}/status",
    response_model=OrderEnvelope,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update Order Status",
)
async def update_status(
    order_id: int,
    data: StatusUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    broadcaster: BaseBroadcaster = Depends(get_broadcaster),
    account: Account = Depends(get_current_account),
    policy: PermissionPolicy = Depends(get_permission_policy),
) -> OrderEnvelope:
    """The capability required depends on the target status."""
    ensure_capability(account, lifecycle.required_capability(data.status), policy)
    order = await orders.change_status(db, order_id, data.status)

    if order.status == OrderStatus.CANCELLED:
        event = order_cancelled_event(order.id)
    else:
        event = status_updated_event(
            order.id,
            order.status.value,
            _payload(order),
            group=lifecycle.STATUS_SECTOR.get(order.status),
        )
    background_tasks.add_task(broadcaster.publish, event)
    return OrderEnvelope(message="Status updated successfully", order=OrderResponse.from_model(order))


@router.delete(
    "/{order_id}",
    response_model=OrderEnvelope,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Cancel Order",
)
async def cancel_order(
    order_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    broadcaster: BaseBroadcaster = Depends(get_broadcaster),
    _: Account = Depends(require(permissions.CANCEL_ORDER)),
) -> OrderEnvelope:
    """Soft-cancel: the order is kept with status cancelled and active off."""
    order = await orders.cancel_order(db, order_id)
    background_tasks.add_task(broadcaster.publish, order_cancelled_event(order.id))
    return OrderEnvelope(message="Order cancelled successfully", order=OrderResponse.from_model(order))
