# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""
Hash Client

Coordinator owning the command connection and, when updates are enabled,
the notification connection. Both are connected and disconnected together.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from .atomic import AtomicOperator
from .codec import JsonCodec
from .config import HashClientConfig
from .connection import StoreConnection
from .exceptions import HashClientError, StoreError, UpdatesDisabledError
from .metrics import HashClientMetrics
from .publisher import UpdatePublisher
from .records import RecordAccessor
from .subscriptions import Listener, SubscriptionManager

logger = logging.getLogger(__name__)


class HashClient:
    """
    Async client for hash records with atomic increments, advisory locks and
    live update subscriptions.

    Example:
        async with HashClient(HashClientConfig(updates=True)) as client:
            await client.set("u:1", "score", 10)
            await client.increment("u:1", "score", increment=5, max_field="high")
    """

    def __init__(self, config: HashClientConfig | None = None, codec: JsonCodec | None = None):
        self.config = config or HashClientConfig()
        self.codec = codec or JsonCodec()
        self._metrics = HashClientMetrics(enabled=self.config.metrics_enabled)

        self.connection = StoreConnection(self.config, name="primary")
        self.publisher = UpdatePublisher(self.config.updates, self._metrics)
        self.records = RecordAccessor(self.connection, self.codec, self.publisher)
        self.atomic = AtomicOperator(self.connection, self.publisher, self.records, self._metrics)
        self.subscriptions = (
            SubscriptionManager(self.config, self.codec, self.connection, self._metrics)
            if self.config.updates
            else None
        )

    @property
    def connected(self) -> bool:
        return self.connection.connected

    # ---------- Lifecycle ----------
    async def connect(self) -> None:
        await self.connection.connect()

        if self.subscriptions is None:
            return

        try:
            await self.subscriptions.start()
        except HashClientError:
            try:
                await self.connection.disconnect()
            except StoreError as e:
                logger.warning(f"Error closing primary client after failed update setup: {e}")
            raise

    async def disconnect(self) -> None:
        """Close both connections.

        With updates enabled, a failure closing the primary connection is
        logged and suppressed; only the notification connection's error is raised.
        """
        if self.subscriptions is None:
            await self.connection.disconnect()
            return

        try:
            await self.connection.disconnect()
        except StoreError as e:
            logger.warning(f"Ignoring primary disconnect error: {e}")

        await self.subscriptions.stop()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    # ---------- Records ----------
    async def get(self, key: str, fields: str | Sequence[str] | None = None) -> Any:
        return await self.records.get(key, fields)

    async def set(self, key: str, field: str | None, value: Any) -> None:
        await self.records.set(key, field, value)

    async def expire(self, key: str, ttl_ms: int) -> bool:
        return await self.records.expire(key, ttl_ms)

    async def drop(self, key: str, field: str | None = None) -> None:
        await self.records.drop(key, field)

    # ---------- Atomic operations ----------
    async def increment(
        self,
        key: str,
        field: str,
        increment: int = 1,
        max_field: str | None = None,
    ) -> int | None:
        return await self.atomic.increment(key, field, increment=increment, max_field=max_field)

    async def lock(self, key: str, ttl_ms: int) -> bool:
        return await self.atomic.lock(key, ttl_ms)

    async def unlock(self, key: str) -> None:
        await self.atomic.unlock(key)

    # ---------- Subscriptions ----------
    async def subscribe(self, key: str, listener: Listener) -> None:
        await self._require_updates().subscribe(key, listener)

    async def unsubscribe(self, key: str, listener: Listener | None = None) -> None:
        await self._require_updates().unsubscribe(key, listener)

    def _require_updates(self) -> SubscriptionManager:
        if self.subscriptions is None:
            raise UpdatesDisabledError()
        return self.subscriptions
