# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""Store connection handle over redis.asyncio."""

from __future__ import annotations

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from .config import HashClientConfig
from .exceptions import ConnectionUnavailableError, StoreError

logger = logging.getLogger(__name__)


class StoreConnection:
    """One live Redis client; ``redis`` is ``None`` while disconnected."""

    def __init__(self, config: HashClientConfig, name: str = "primary"):
        self.config = config
        self.name = name
        self.redis: redis.Redis | None = None

    @property
    def connected(self) -> bool:
        return self.redis is not None

    def require(self) -> redis.Redis:
        """Return the live client or raise without touching the network."""
        if self.redis is None:
            raise ConnectionUnavailableError(details={"connection": self.name})
        return self.redis

    async def connect(self) -> None:
        """Open the client and verify it with a ping."""
        if self.redis is not None:
            return

        client = redis.Redis.from_url(
            self.config.redis_url,
            socket_timeout=self.config.socket_timeout,
            socket_connect_timeout=self.config.socket_connect_timeout,
            decode_responses=True,
        )

        try:
            await client.ping()
        except RedisError as e:
            await client.aclose()
            logger.error(f"Failed to connect {self.name} Redis client: {e}")
            raise StoreError(str(e), {"connection": self.name}) from e

        self.redis = client
        logger.info(f"{self.name.capitalize()} Redis client connected")

    async def disconnect(self) -> None:
        """Close the client; the handle is cleared even when closing fails."""
        client, self.redis = self.redis, None
        if client is None:
            return

        try:
            await client.aclose()
        except RedisError as e:
            raise StoreError(str(e), {"connection": self.name}) from e
        finally:
            logger.info(f"{self.name.capitalize()} Redis client closed")
