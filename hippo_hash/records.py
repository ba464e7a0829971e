# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""Get/set/expire/drop over hash-shaped keys."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from redis.exceptions import RedisError

from .codec import JsonCodec
from .connection import StoreConnection
from .exceptions import StoreError
from .publisher import UpdatePublisher

logger = logging.getLogger(__name__)


class RecordAccessor:
    """Record-level operations with codec round-tripping and change publishing."""

    def __init__(self, connection: StoreConnection, codec: JsonCodec, publisher: UpdatePublisher):
        self._connection = connection
        self._codec = codec
        self._publisher = publisher

    async def get(self, key: str, fields: str | Sequence[str] | None = None) -> Any:
        """
        Read a record, one field, or several fields.

        Args:
            key: Record key
            fields: ``None`` for the whole record, a field name, or a list of names

        Returns:
            The decoded record (``None`` when it has no fields), the decoded field
            value (``None`` when absent), or a mapping with an entry per requested
            field (``None`` for missing ones)
        """
        client = self._connection.require()

        if fields is None:
            try:
                item = await client.hgetall(key)
            except RedisError as e:
                raise StoreError(str(e), {"key": key}) from e
            if not item:
                return None
            return self._codec.decode_fields(item)

        if isinstance(fields, str):
            try:
                raw = await client.hget(key, fields)
            except RedisError as e:
                raise StoreError(str(e), {"key": key, "field": fields}) from e
            if raw is None:
                return None
            return self._codec.decode(raw, field=fields)

        names = list(fields)
        if not names:
            return {}
        try:
            values = await client.hmget(key, names)
        except RedisError as e:
            raise StoreError(str(e), {"key": key}) from e
        return self._codec.decode_fields(dict(zip(names, values)))

    async def set(self, key: str, field: str | None, value: Any) -> None:
        """
        Write one field, or every field of a mapping in one call.

        All values are encoded before any I/O, so an encode failure writes nothing.
        """
        client = self._connection.require()

        if field is not None:
            changes = {field: self._codec.encode(value, field=field)}
        else:
            if not isinstance(value, Mapping):
                raise TypeError("value must be a mapping when no field is given")
            changes = {name: self._codec.encode(item, field=name) for name, item in value.items()}
            if not changes:
                return

        try:
            await client.hset(key, mapping=changes)
        except RedisError as e:
            raise StoreError(str(e), {"key": key}) from e

        logger.debug(f"Set {len(changes)} field(s) on key {key}")
        await self._publisher.fields_set(client, key, changes)

    async def expire(self, key: str, ttl_ms: int) -> bool:
        """Set a millisecond TTL on an existing key; returns False when the key is absent."""
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")

        client = self._connection.require()
        try:
            return bool(await client.pexpire(key, ttl_ms))
        except RedisError as e:
            raise StoreError(str(e), {"key": key}) from e

    async def drop(self, key: str, field: str | None = None) -> None:
        """Delete a whole key, or one field of it."""
        client = self._connection.require()

        if field is None:
            try:
                await client.delete(key)
            except RedisError as e:
                raise StoreError(str(e), {"key": key}) from e
            logger.debug(f"Dropped key {key}")
            return

        try:
            removed = await client.hdel(key, field)
        except RedisError as e:
            raise StoreError(str(e), {"key": key, "field": field}) from e

        if not removed:
            return

        logger.debug(f"Dropped field {field} from key {key}")
        await self._publisher.field_deleted(client, key, field)
