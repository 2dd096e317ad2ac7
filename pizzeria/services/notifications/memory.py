"""
In-Memory Broadcaster

Delivers events straight to the listeners connected to this process.
Used in development and tests, where a single worker serves everything.
"""

import logging
from typing import Any, Optional

from pizzeria.services.notifications.base import BaseBroadcaster
from pizzeria.services.notifications.hub import ConnectionHub

logger = logging.getLogger(__name__)


class InMemoryBroadcaster(BaseBroadcaster):
    """Broadcaster backed by the local connection hub only."""

    def __init__(self, hub: ConnectionHub):
        self.hub = hub
        logger.info("InMemoryBroadcaster initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    async def _send(self, message: dict[str, Any], group: Optional[str]) -> None:
        delivered = await self.hub.deliver(message, group)
        logger.debug(f"{message['event']} for order #{message['order_id']} reached {delivered} listener(s)")

    async def health_check(self) -> bool:
        """In-process delivery is always available."""
        return True
