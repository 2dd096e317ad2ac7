"""
Connection Hub

Tracks the listeners connected to this process (WebSocket sessions) and
their group memberships, and delivers messages to them.
"""

import logging
from collections import defaultdict
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


class ConnectionHub:
    """In-process registry of listeners and named groups."""

    def __init__(self):
        self._subscribers: set = set()
        self._groups: dict[str, set] = defaultdict(set)

    @property
    def connection_count(self) -> int:
        return len(self._subscribers)

    def group_size(self, group: str) -> int:
        return len(self._groups.get(group, ()))

    def connect(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)

    def disconnect(self, subscriber: Subscriber) -> None:
        self._subscribers.discard(subscriber)
        for name in list(self._groups):
            members = self._groups[name]
            members.discard(subscriber)
            if not members:
                del self._groups[name]

    def join(self, subscriber: Subscriber, group: str) -> None:
        self._groups[group].add(subscriber)

    def leave(self, subscriber: Subscriber, group: str) -> None:
        members = self._groups.get(group)
        if members is None:
            return
        members.discard(subscriber)
        if not members:
            del self._groups[group]

    async def deliver(self, message: dict[str, Any], group: Optional[str] = None) -> int:
        """
        Send ``message`` to all listeners, or only to ``group``'s members.

        A listener whose send fails is disconnected.

        Returns:
            Number of listeners that received the message
        """
        if group is None:
            targets = list(self._subscribers)
        else:
            targets = list(self._groups.get(group, ()))

        delivered = 0
        for subscriber in targets:
            try:
                await subscriber.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping listener after failed send: {e}")
                self.disconnect(subscriber)
        return delivered
