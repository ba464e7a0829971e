# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""Server-side scripted increment-with-max and lock acquisition."""

from __future__ import annotations

import logging

from redis.exceptions import RedisError

from .connection import StoreConnection
from .exceptions import StoreError
from .metrics import HashClientMetrics
from .publisher import UpdatePublisher
from .records import RecordAccessor

logger = logging.getLogger(__name__)

# KEYS[1] record key; ARGV[1] field, ARGV[2] increment, ARGV[3] max field or ''
INCREMENT_SCRIPT = """
if redis.call('hexists', KEYS[1], ARGV[1]) == 0 then
    return nil
end
local value = redis.call('hincrby', KEYS[1], ARGV[1], ARGV[2])
if ARGV[3] ~= '' then
    redis.call('hsetnx', KEYS[1], ARGV[3], 0)
    local max = redis.call('hget', KEYS[1], ARGV[3])
    if tonumber(value) > tonumber(max) then
        redis.call('hset', KEYS[1], ARGV[3], value)
        return { value, 1 }
    end
end
return { value, 0 }
"""

# KEYS[1] lock key; ARGV[1] ttl in milliseconds, ARGV[2] sentinel value
LOCK_SCRIPT = """
if redis.call('exists', KEYS[1]) == 1 then
    return 0
end
redis.call('psetex', KEYS[1], ARGV[1], ARGV[2])
return 1
"""

LOCK_SENTINEL = "1"


class AtomicOperator:
    """Increment and lock operations evaluated atomically on the store."""

    def __init__(
        self,
        connection: StoreConnection,
        publisher: UpdatePublisher,
        records: RecordAccessor,
        metrics: HashClientMetrics | None = None,
    ):
        self._connection = connection
        self._publisher = publisher
        self._records = records
        self._metrics = metrics or HashClientMetrics(enabled=False)

    async def increment(
        self,
        key: str,
        field: str,
        increment: int = 1,
        max_field: str | None = None,
    ) -> int | None:
        """
        Add ``increment`` to an existing integer field.

        Args:
            key: Record key
            field: Field to increment; it must already exist
            increment: Signed integer delta
            max_field: Optional sibling field kept at the running maximum of ``field``

        Returns:
            The new field value, or ``None`` when the field does not exist
        """
        if isinstance(increment, bool) or not isinstance(increment, int):
            raise TypeError("increment must be an integer")
        if max_field == "":
            raise ValueError("max_field must be a non-empty field name")

        client = self._connection.require()

        try:
            updated = await client.eval(INCREMENT_SCRIPT, 1, key, field, increment, max_field or "")
        except RedisError as e:
            self._metrics.record_script("increment", "error")
            raise StoreError(str(e), {"key": key, "field": field}) from e

        if updated is None:
            self._metrics.record_script("increment", "missing")
            logger.debug(f"Increment skipped, no field {field} on key {key}")
            return None

        value = int(updated[0])
        max_changed = bool(int(updated[1]))
        self._metrics.record_script("increment", "applied")

        changes = {field: str(value)}
        if max_changed:
            changes[max_field] = str(value)

        await self._publisher.fields_set(client, key, changes, result=value)
        return value

    async def lock(self, key: str, ttl_ms: int) -> bool:
        """Create ``key`` with a TTL unless it exists; True when this call created it."""
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")

        client = self._connection.require()

        try:
            acquired = bool(await client.eval(LOCK_SCRIPT, 1, key, ttl_ms, LOCK_SENTINEL))
        except RedisError as e:
            self._metrics.record_script("lock", "error")
            raise StoreError(str(e), {"key": key}) from e

        self._metrics.record_script("lock", "acquired" if acquired else "held")
        logger.debug(f"Lock {key} {'acquired' if acquired else 'already held'}")
        return acquired

    async def unlock(self, key: str) -> None:
        await self._records.drop(key)
