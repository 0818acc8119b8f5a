"""
Forwarding of committed ledger events to RabbitMQ.

Each event is published once, after the ledger call that produced it has
returned, to a durable topic exchange. The routing key is
`<RABBITMQ_ROUTING_PREFIX>.<event name>` (e.g. `ledger.voted`), so consumers
can bind to one kind of event or to `ledger.#`.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import aio_pika
from aio_pika import DeliveryMode, Message, connect_robust
from aio_pika.abc import AbstractChannel, AbstractRobustConnection
from aio_pika.pool import Pool

from voting_ledger import LedgerEvent

from .config import settings

logger = logging.getLogger(__name__)


def event_message(event: LedgerEvent) -> Message:
    """Persistent JSON message carrying `event.to_dict()` plus its emission time."""
    emitted_at = datetime.utcnow()
    payload: Dict[str, Any] = event.to_dict()
    payload["emitted_at"] = emitted_at.isoformat()
    return Message(
        body=json.dumps(payload).encode(),
        content_type="application/json",
        delivery_mode=DeliveryMode.PERSISTENT,
        timestamp=emitted_at,
    )


class EventPublisher:
    """Publishes LedgerEvents over pooled aio-pika channels."""

    def __init__(self):
        self.connection_pool: Optional[Pool] = None
        self.channel_pool: Optional[Pool] = None

    @property
    def initialized(self) -> bool:
        return self.channel_pool is not None

    async def _open_connection(self) -> AbstractRobustConnection:
        return await connect_robust(settings.rabbitmq_url)

    async def _open_channel(self) -> AbstractChannel:
        async with self.connection_pool.acquire() as connection:
            return await connection.channel()

    async def initialize(self):
        """Create the pools and declare the events exchange."""
        self.connection_pool = Pool(self._open_connection, max_size=settings.RABBITMQ_POOL_SIZE)
        self.channel_pool = Pool(self._open_channel, max_size=settings.RABBITMQ_POOL_SIZE)
        try:
            async with self.channel_pool.acquire() as channel:
                await channel.declare_exchange(
                    settings.RABBITMQ_EXCHANGE, aio_pika.ExchangeType.TOPIC, durable=True
                )
        except Exception as e:
            logger.error(f"Cannot declare exchange {settings.RABBITMQ_EXCHANGE}: {e}")
            await self.close()
            raise
        logger.info(f"Publishing ledger events to exchange {settings.RABBITMQ_EXCHANGE}")

    @staticmethod
    def routing_key(event: LedgerEvent) -> str:
        return f"{settings.RABBITMQ_ROUTING_PREFIX}.{event.name}"

    async def publish_event(self, event: LedgerEvent) -> bool:
        """
        Publish one committed event.

        Returns:
            bool: False when the publisher is not initialized or the broker
            rejected the message. The ledger change stands either way.
        """
        if not self.initialized:
            logger.error(f"Publisher not initialized; {event.name} not forwarded")
            return False

        key = self.routing_key(event)
        try:
            async with self.channel_pool.acquire() as channel:
                exchange = await channel.get_exchange(settings.RABBITMQ_EXCHANGE)
                await exchange.publish(event_message(event), routing_key=key)
        except Exception as e:
            logger.error(f"Forwarding {key} failed: {e}")
            return False

        logger.debug(f"Forwarded {key}")
        return True

    async def check_health(self) -> bool:
        """True when a channel can be acquired and used."""
        try:
            async with self.channel_pool.acquire() as channel:
                await channel.declare_queue("health_check", auto_delete=True)
        except Exception as e:
            logger.error(f"RabbitMQ unreachable: {e}")
            return False
        return True

    async def close(self):
        """Close both pools; the publisher is uninitialized afterwards."""
        channel_pool, connection_pool = self.channel_pool, self.connection_pool
        self.channel_pool = None
        self.connection_pool = None
        try:
            if channel_pool:
                await channel_pool.close()
            if connection_pool:
                await connection_pool.close()
        except Exception as e:
            logger.error(f"Error while closing RabbitMQ pools: {e}")


publisher = EventPublisher()
