# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""Live per-key update subscriptions over a dedicated notification connection.

Each subscribed key listens on two channels with one subscribe call: the
store's keyspace channel (whole-key deletion and expiry) and the
application channel (field changes published by :mod:`hippo_hash.publisher`).
Removing the last field of a hash makes the store announce a deletion on
the keyspace channel before the application ``hdel`` message for the same
field arrives, so the per-key ``last`` marker suppresses that second event.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from redis.exceptions import RedisError

from .codec import JsonCodec
from .config import HashClientConfig
from .connection import StoreConnection
from .exceptions import ConfigurationError, ConnectionUnavailableError, DecodeError, StoreError
from .metrics import HashClientMetrics
from .protocol import (
    ACTION_DELETE,
    DELETE_NOTIFICATIONS,
    decode_component,
    keyspace_channel,
    parse_changes,
    parse_channel,
    split_message,
    update_channel,
)

logger = logging.getLogger(__name__)


class LastEvent(str, Enum):
    """Most recent event class delivered for a key."""

    NONE = "none"
    DELETE = "delete"
    UPDATE = "update"
    ERROR = "error"


class UpdateKind(str, Enum):
    DELETE = "delete"
    UPDATE = "update"
    FIELD_DELETE = "field_delete"
    ERROR = "error"


@dataclass(frozen=True)
class HashUpdate:
    """One change delivered to subscription listeners.

    ``values`` carries decoded field values for ``update``; ``field`` names the
    removed field for ``field_delete``; ``error`` is set for ``error``. A
    ``delete`` event carries none of them.
    """

    key: str
    kind: UpdateKind
    values: dict[str, Any] | None = None
    field: str | None = None
    error: Exception | None = None


Listener = Callable[[HashUpdate], Any]


@dataclass
class SubscriptionEntry:
    key: str
    listeners: list[Listener] = field(default_factory=list)
    last: LastEvent = LastEvent.NONE


class SubscriptionManager:
    """Multiplexes per-key listeners over one pub/sub connection."""

    def __init__(
        self,
        config: HashClientConfig,
        codec: JsonCodec,
        primary: StoreConnection,
        metrics: HashClientMetrics | None = None,
    ):
        self.config = config
        self.connection = StoreConnection(config, name="notification")
        self._codec = codec
        self._primary = primary
        self._metrics = metrics or HashClientMetrics(enabled=False)
        self._database = config.database

        self._subs: dict[str, SubscriptionEntry] = {}
        self._pending: dict[str, asyncio.Future] = {}
        self._pubsub = None
        self._reader_task: asyncio.Task | None = None
        self._has_channels: asyncio.Event | None = None
        self._listener_tasks: set[asyncio.Task] = set()

    @property
    def keys(self) -> list[str]:
        return list(self._subs)

    def entry(self, key: str) -> SubscriptionEntry | None:
        return self._subs.get(key)

    # ---------- Lifecycle ----------
    async def start(self) -> None:
        """Connect the notification client and start reading messages."""
        if self._reader_task is not None and not self._reader_task.done():
            return

        await self.connection.connect()
        client = self.connection.require()

        if self.config.configure:
            await self._configure_updates(client)

        self._pubsub = client.pubsub(ignore_subscribe_messages=True)
        self._has_channels = asyncio.Event()
        self._reader_task = asyncio.create_task(self._reader_loop())

    async def _configure_updates(self, client) -> None:
        try:
            await client.config_set("notify-keyspace-events", self.config.keyspace_events)
        except RedisError as e:
            logger.error(f"Failed to enable keyspace notifications: {e}")
            try:
                await self.connection.disconnect()
            except StoreError as close_error:
                logger.warning(f"Error closing notification client: {close_error}")
            raise ConfigurationError(
                f"Failed to enable keyspace notifications: {e}",
                {"notify-keyspace-events": self.config.keyspace_events},
            ) from e

        logger.info(f"Keyspace notifications enabled ({self.config.keyspace_events})")

    async def stop(self) -> None:
        """Stop the reader, drop every subscription and close the connection."""
        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._reader_task = None

        for task in list(self._listener_tasks):
            task.cancel()
        self._listener_tasks.clear()

        self._subs.clear()
        self._metrics.set_active_subscriptions(0)

        pubsub, self._pubsub = self._pubsub, None
        try:
            if pubsub is not None:
                await pubsub.aclose()
        except RedisError as e:
            logger.warning(f"Error closing pub/sub channel: {e}")
        finally:
            await self.connection.disconnect()

    async def _reader_loop(self) -> None:
        """Background task feeding pub/sub messages into :meth:`handle_message`."""
        interval = self.config.poll_interval

        while True:
            try:
                await self._has_channels.wait()
                message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=interval)
            except asyncio.CancelledError:
                break
            except RedisError as e:
                logger.error(f"Notification reader error: {e}")
                await asyncio.sleep(interval)
                continue
            except Exception:
                logger.exception("Unexpected notification reader error")
                await asyncio.sleep(interval)
                continue

            if message is None or message.get("type") != "message":
                continue

            try:
                self.handle_message(message["channel"], message["data"])
            except Exception:
                logger.exception(f"Failed to dispatch notification on {message['channel']}")

    # ---------- Registration ----------
    async def subscribe(self, key: str, listener: Listener) -> None:
        """Register ``listener`` for ``key``; the first listener subscribes both channels.

        Callers arriving while the channels for ``key`` are still being
        subscribed wait for that call and share its outcome.
        """
        while True:
            entry = self._subs.get(key)
            if entry is not None:
                entry.listeners.append(listener)
                return

            pending = self._pending.get(key)
            if pending is None:
                break
            error = await asyncio.shield(pending)
            if error is not None:
                raise StoreError(str(error), {"key": key}) from error

        pubsub = self._require_pubsub()
        pending = asyncio.get_running_loop().create_future()
        self._pending[key] = pending

        try:
            await pubsub.subscribe(keyspace_channel(key, self._database), update_channel(key))
        except RedisError as e:
            pending.set_result(e)
            raise StoreError(str(e), {"key": key}) from e
        else:
            self._subs[key] = SubscriptionEntry(key=key, listeners=[listener])
            pending.set_result(None)
        finally:
            if not pending.done():
                pending.set_result(ConnectionUnavailableError("Subscribe interrupted", {"key": key}))
            if self._pending.get(key) is pending:
                del self._pending[key]

        self._has_channels.set()
        self._metrics.set_active_subscriptions(len(self._subs))
        logger.debug(f"Subscribed to updates for key {key}")

    async def unsubscribe(self, key: str, listener: Listener | None = None) -> None:
        """
        Remove one listener, or all listeners when ``listener`` is None.

        Unknown keys and listeners are ignored. The channels are released once
        no listener remains for the key.
        """
        entry = self._subs.get(key)
        if entry is None:
            return

        if listener is not None:
            if listener not in entry.listeners:
                return
            if len(entry.listeners) > 1:
                entry.listeners.remove(listener)
                return

        del self._subs[key]
        self._metrics.set_active_subscriptions(len(self._subs))
        if not self._subs and self._has_channels is not None:
            self._has_channels.clear()

        pubsub = self._require_pubsub()
        try:
            await pubsub.unsubscribe(keyspace_channel(key, self._database), update_channel(key))
        except RedisError as e:
            raise StoreError(str(e), {"key": key}) from e

        logger.debug(f"Unsubscribed from updates for key {key}")

    def _require_pubsub(self):
        if self._pubsub is None:
            raise ConnectionUnavailableError(details={"connection": self.connection.name})
        return self._pubsub

    # ---------- Dispatch ----------
    def handle_message(self, channel: str, message: str) -> None:
        """Normalize one notification and fan it out to the key's listeners."""
        if not self._primary.connected:
            return

        ref = parse_channel(channel, self._database)
        if ref is None:
            return

        entry = self._subs.get(ref.key)
        if entry is None:
            return

        if ref.keyspace:
            if message in DELETE_NOTIFICATIONS:
                entry.last = LastEvent.DELETE
                self._fan_out(entry, HashUpdate(key=entry.key, kind=UpdateKind.DELETE))
            return

        try:
            action, payload = split_message(message)
            if action == ACTION_DELETE:
                if entry.last is LastEvent.DELETE:
                    return
                event = HashUpdate(key=entry.key, kind=UpdateKind.FIELD_DELETE, field=decode_component(payload))
            else:
                values = self._codec.decode_fields(parse_changes(payload))
                event = HashUpdate(key=entry.key, kind=UpdateKind.UPDATE, values=values)
        except DecodeError as e:
            logger.warning(f"Malformed update for key {entry.key}: {e}")
            entry.last = LastEvent.ERROR
            self._fan_out(entry, HashUpdate(key=entry.key, kind=UpdateKind.ERROR, error=e))
            return

        entry.last = LastEvent.UPDATE
        self._fan_out(entry, event)

    def _fan_out(self, entry: SubscriptionEntry, event: HashUpdate) -> None:
        listeners = list(entry.listeners)
        self._metrics.record_event(event.kind.value, len(listeners))
        for listener in listeners:
            self._deliver(listener, event)

    def _deliver(self, listener: Listener, event: HashUpdate) -> None:
        try:
            result = listener(event)
        except Exception:
            logger.exception(f"Update listener failed for key {event.key}")
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._listener_tasks.add(task)
            task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Async update listener failed: {error}")
