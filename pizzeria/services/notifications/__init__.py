"""
Notification Broadcaster Factory

Returns the in-memory or Redis broadcaster based on ENV_MODE:
    - ENV_MODE=development → InMemoryBroadcaster (single process)
    - ENV_MODE=staging/production → RedisBroadcaster (multi-worker fan-out)
"""

import logging
from functools import lru_cache

from pizzeria.core.config import get_settings
from pizzeria.services.notifications.base import (
    BaseBroadcaster,
    OrderEvent,
    NEW_ORDER,
    NEW_ORDER_ALERT,
    STATUS_UPDATED,
    ORDER_CANCELLED,
    ORDER_LATE,
    PREPARATION_GROUP,
    new_order_event,
    status_updated_event,
    order_cancelled_event,
    order_late_event,
)
from pizzeria.services.notifications.hub import ConnectionHub
from pizzeria.services.notifications.memory import InMemoryBroadcaster
from pizzeria.services.notifications.redis_pubsub import RedisBroadcaster

logger = logging.getLogger(__name__)


@lru_cache()
def get_hub() -> ConnectionHub:
    """Process-wide registry of connected listeners."""
    return ConnectionHub()


@lru_cache()
def get_broadcaster() -> BaseBroadcaster:
    """Get the configured broadcaster."""
    settings = get_settings()

    if settings.use_real_services:
        logger.info(f"Broadcaster: Using RedisBroadcaster ({settings.env_mode.value} mode)")
        return RedisBroadcaster(
            hub=get_hub(),
            redis_url=settings.redis_url,
            channel=settings.notification_channel,
        )

    logger.info("Broadcaster: Using InMemoryBroadcaster (development mode)")
    return InMemoryBroadcaster(get_hub())


def reset_broadcaster() -> None:
    """Clear the cached hub and broadcaster."""
    get_broadcaster.cache_clear()
    get_hub.cache_clear()


__all__ = [
    "get_broadcaster",
    "get_hub",
    "reset_broadcaster",
    "BaseBroadcaster",
    "ConnectionHub",
    "InMemoryBroadcaster",
    "RedisBroadcaster",
    "OrderEvent",
    "NEW_ORDER",
    "NEW_ORDER_ALERT",
    "STATUS_UPDATED",
    "ORDER_CANCELLED",
    "ORDER_LATE",
    "PREPARATION_GROUP",
    "new_order_event",
    "status_updated_event",
    "order_cancelled_event",
    "order_late_event",
]
