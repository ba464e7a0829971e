# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""Best-effort change notifications on per-key application channels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError

from .exceptions import PublishError
from .metrics import HashClientMetrics
from .protocol import delete_message, set_message, update_channel

if TYPE_CHECKING:
    import redis.asyncio as redis

logger = logging.getLogger(__name__)


class UpdatePublisher:
    """Publishes ``hset``/``hdel`` descriptions after committed mutations."""

    def __init__(self, enabled: bool, metrics: HashClientMetrics | None = None):
        self.enabled = enabled
        self._metrics = metrics or HashClientMetrics(enabled=False)

    async def fields_set(self, client: redis.Redis, key: str, changes: dict[str, str], result: Any = None) -> None:
        """Announce written fields; ``changes`` maps field -> encoded value."""
        if not self.enabled:
            return
        await self._publish(client, key, "hset", set_message(changes), result)

    async def field_deleted(self, client: redis.Redis, key: str, field: str, result: Any = None) -> None:
        if not self.enabled:
            return
        await self._publish(client, key, "hdel", delete_message(field), result)

    async def _publish(self, client: redis.Redis, key: str, action: str, message: str, result: Any) -> None:
        try:
            await client.publish(update_channel(key), message)
        except RedisError as e:
            self._metrics.record_publish_error()
            logger.warning(f"Failed to publish {action} update for key {key}: {e}")
            raise PublishError(str(e), key=key, action=action, result=result) from e

        self._metrics.record_published(action)
        logger.debug(f"Published {action} update for key {key}")
