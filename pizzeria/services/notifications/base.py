"""
Notification Broadcaster Abstract Base Class

Defines the interface for fanning order events out to connected
listeners. Delivery is fire-and-forget: no acknowledgement, no retry and
no ordering guarantee across listeners. A broadcaster failure is logged
and never propagates to the request that triggered it.

Version: 1.0.0
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

NEW_ORDER = "new_order"
NEW_ORDER_ALERT = "new_order_alert"
STATUS_UPDATED = "status_updated"
ORDER_CANCELLED = "order_cancelled"
ORDER_LATE = "order_late"

PREPARATION_GROUP = "preparation"


@dataclass
class OrderEvent:
    """
    A single order notification.

    Attributes:
        type: Event name sent to listeners
        order_id: Identity of the order the event is about
        data: JSON-safe payload (usually the serialized order)
        group: When set, the event is delivered again to this group's members
        group_type: Event name used for the group delivery (defaults to ``type``)
    """
    type: str
    order_id: int
    data: dict[str, Any] = field(default_factory=dict)
    group: Optional[str] = None
    group_type: Optional[str] = None

    def to_message(self, group: Optional[str] = None) -> dict[str, Any]:
        event_type = self.type
        if group is not None and self.group_type:
            event_type = self.group_type
        return {
            "event": event_type,
            "order_id": self.order_id,
            "data": self.data,
            "group": group,
        }


def new_order_event(order_id: int, data: dict[str, Any]) -> OrderEvent:
    """Broadcast to everyone, plus an alert for the preparation station."""
    return OrderEvent(
        type=NEW_ORDER,
        order_id=order_id,
        data=data,
        group=PREPARATION_GROUP,
        group_type=NEW_ORDER_ALERT,
    )


def status_updated_event(
    order_id: int,
    status: str,
    data: dict[str, Any],
    group: Optional[str] = None,
) -> OrderEvent:
    return OrderEvent(
        type=STATUS_UPDATED,
        order_id=order_id,
        data={"status": status, "order": data},
        group=group,
    )


def order_cancelled_event(order_id: int) -> OrderEvent:
    return OrderEvent(type=ORDER_CANCELLED, order_id=order_id, data={"status": "cancelled"})


def order_late_event(order_id: int, data: dict[str, Any]) -> OrderEvent:
    """Raised by a station when an order is running behind; goes to everyone."""
    return OrderEvent(type=ORDER_LATE, order_id=order_id, data=data)


class BaseBroadcaster(ABC):
    """Abstract base class for notification broadcasters."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def _send(self, message: dict[str, Any], group: Optional[str]) -> None:
        """Hand one message to the transport. ``group=None`` means everyone."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check transport connectivity."""
        pass

    async def start(self) -> None:
        """Open transport resources. Called from the application lifespan."""

    async def stop(self) -> None:
        """Release transport resources."""

    async def publish(self, event: OrderEvent) -> None:
        """
        Deliver ``event`` to every listener, and again to its group if set.

        Never raises: failures are logged and the event is dropped.
        """
        try:
            await self._send(event.to_message(), None)
            if event.group:
                await self._send(event.to_message(event.group), event.group)
        except Exception as e:
            logger.exception(f"Failed to publish {event.type} for order #{event.order_id}: {e}")
