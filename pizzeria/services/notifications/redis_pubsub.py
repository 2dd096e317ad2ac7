"""
Redis Broadcaster

Production implementation: events are published to a Redis pub/sub
channel, and every worker runs a relay task that feeds received events
into its own connection hub. Listeners attached to any worker therefore
see every event. The relay task survives dropped connections by
resubscribing after a short pause.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from pizzeria.services.notifications.base import BaseBroadcaster
from pizzeria.services.notifications.hub import ConnectionHub

logger = logging.getLogger(__name__)

RECONNECT_DELAY_SECONDS = 1.0


class RedisBroadcaster(BaseBroadcaster):
    """Broadcaster fanning out through a Redis pub/sub channel."""

    def __init__(
        self,
        hub: ConnectionHub,
        redis_url: str,
        channel: str,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
    ):
        self.hub = hub
        self.channel = channel
        self.reconnect_delay = reconnect_delay
        self.client = aioredis.from_url(redis_url, decode_responses=True)
        self._pubsub = None
        self._relay_task: Optional[asyncio.Task] = None
        logger.info(f"RedisBroadcaster initialized (channel={channel})")

    @property
    def provider_name(self) -> str:
        return "redis"

    async def _send(self, message: dict[str, Any], group: Optional[str]) -> None:
        envelope = json.dumps({"message": message, "group": group})
        receivers = await self.client.publish(self.channel, envelope)
        logger.debug(f"{message['event']} for order #{message['order_id']} published to {receivers} worker(s)")

    async def start(self) -> None:
        await self._subscribe()
        self._relay_task = asyncio.create_task(self._relay(), name="order-event-relay")
        logger.info(f"Relaying order events from '{self.channel}'")

    async def stop(self) -> None:
        if self._relay_task is not None:
            self._relay_task.cancel()
            try:
                await self._relay_task
            except asyncio.CancelledError:
                pass
            self._relay_task = None
        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self.channel)
            except RedisError as e:
                logger.warning(f"Could not unsubscribe from '{self.channel}': {e}")
            await self._discard_pubsub()
        try:
            await self.client.aclose()
        except RedisError as e:
            logger.warning(f"Error closing Redis client: {e}")

    async def _subscribe(self) -> None:
        self._pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        await self._pubsub.subscribe(self.channel)

    async def _discard_pubsub(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.aclose()
        except RedisError as e:
            logger.warning(f"Error closing pub/sub connection: {e}")

    async def _relay(self) -> None:
        """Feed channel messages into the hub; resubscribe whenever Redis drops us."""
        while True:
            try:
                if self._pubsub is None:
                    await self._subscribe()
                    logger.info(f"Resubscribed to '{self.channel}'")
                await self._listen()
            except RedisError:
                logger.exception(
                    f"Order event relay on '{self.channel}' lost its connection, "
                    f"resubscribing in {self.reconnect_delay}s"
                )
            await self._discard_pubsub()
            await asyncio.sleep(self.reconnect_delay)

    async def _listen(self) -> None:
        async for raw in self._pubsub.listen():
            if raw.get("type") != "message":
                continue
            try:
                envelope = json.loads(raw["data"])
                await self.hub.deliver(envelope["message"], envelope.get("group"))
            except (ValueError, KeyError) as e:
                logger.warning(f"Ignoring malformed event on '{self.channel}': {e}")

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
