"""Tests for hash client connection lifecycle."""

from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from conftest import make_pubsub_mock, make_redis_mock
from hippo_hash import ConfigurationError, HashClient, HashClientConfig, StoreError

pytestmark = pytest.mark.asyncio

FROM_URL = "hippo_hash.connection.redis.Redis.from_url"


def _notification_client(pubsub):
    notification = make_redis_mock()
    notification.pubsub = MagicMock(return_value=pubsub)
    return notification


async def test_connect_without_updates_opens_one_connection():
    primary = make_redis_mock()

    with patch(FROM_URL, return_value=primary) as from_url:
        client = HashClient(HashClientConfig(redis_url="redis://cache:6379/0", metrics_enabled=False))
        await client.connect()

    from_url.assert_called_once()
    assert from_url.call_args.args == ("redis://cache:6379/0",)
    assert from_url.call_args.kwargs["decode_responses"] is True
    primary.ping.assert_awaited_once()
    assert client.connected
    assert client.subscriptions is None

    await client.disconnect()
    primary.aclose.assert_awaited_once()
    assert not client.connected


async def test_connect_with_updates_opens_notification_connection():
    primary = make_redis_mock()
    pubsub = make_pubsub_mock()
    notification = _notification_client(pubsub)

    with patch(FROM_URL, side_effect=[primary, notification]):
        client = HashClient(HashClientConfig(updates=True, metrics_enabled=False))
        await client.connect()

    assert client.subscriptions.connection.redis is notification
    notification.pubsub.assert_called_once_with(ignore_subscribe_messages=True)
    notification.config_set.assert_not_awaited()

    await client.disconnect()

    primary.aclose.assert_awaited_once()
    pubsub.aclose.assert_awaited_once()
    notification.aclose.assert_awaited_once()
    assert not client.subscriptions.connection.connected


async def test_connect_configures_keyspace_notifications():
    primary = make_redis_mock()
    notification = _notification_client(make_pubsub_mock())

    with patch(FROM_URL, side_effect=[primary, notification]):
        client = HashClient(HashClientConfig(updates=True, configure=True, metrics_enabled=False))
        await client.connect()

    notification.config_set.assert_awaited_once_with("notify-keyspace-events", "Kgxe")
    await client.disconnect()


async def test_failed_configuration_tears_down_both_connections():
    primary = make_redis_mock()
    notification = _notification_client(make_pubsub_mock())
    notification.config_set.side_effect = ResponseError("ERR CONFIG SET is disabled")

    with patch(FROM_URL, side_effect=[primary, notification]):
        client = HashClient(HashClientConfig(updates=True, configure=True, metrics_enabled=False))
        with pytest.raises(ConfigurationError):
            await client.connect()

    notification.aclose.assert_awaited_once()
    primary.aclose.assert_awaited_once()
    notification.pubsub.assert_not_called()
    assert not client.connected
    assert not client.subscriptions.connection.connected


async def test_failed_ping_raises_store_error():
    primary = make_redis_mock()
    primary.ping.side_effect = RedisConnectionError("Connection refused")

    with patch(FROM_URL, return_value=primary):
        client = HashClient(HashClientConfig(metrics_enabled=False))
        with pytest.raises(StoreError):
            await client.connect()

    primary.aclose.assert_awaited_once()
    assert not client.connected


async def test_disconnect_ignores_primary_error_when_updates_enabled():
    primary = make_redis_mock()
    primary.aclose.side_effect = RedisConnectionError("already closed")
    notification = _notification_client(make_pubsub_mock())

    with patch(FROM_URL, side_effect=[primary, notification]):
        client = HashClient(HashClientConfig(updates=True, metrics_enabled=False))
        await client.connect()

    await client.disconnect()

    notification.aclose.assert_awaited_once()
    assert not client.connected


async def test_disconnect_reports_notification_error():
    primary = make_redis_mock()
    notification = _notification_client(make_pubsub_mock())
    notification.aclose.side_effect = RedisConnectionError("broken pipe")

    with patch(FROM_URL, side_effect=[primary, notification]):
        client = HashClient(HashClientConfig(updates=True, metrics_enabled=False))
        await client.connect()

    with pytest.raises(StoreError):
        await client.disconnect()
    assert not client.subscriptions.connection.connected


async def test_disconnect_reports_primary_error_without_updates():
    primary = make_redis_mock()
    primary.aclose.side_effect = RedisConnectionError("broken pipe")

    with patch(FROM_URL, return_value=primary):
        client = HashClient(HashClientConfig(metrics_enabled=False))
        await client.connect()

    with pytest.raises(StoreError):
        await client.disconnect()
    assert not client.connected


async def test_disconnect_clears_subscriptions():
    primary = make_redis_mock()
    pubsub = make_pubsub_mock()
    notification = _notification_client(pubsub)

    with patch(FROM_URL, side_effect=[primary, notification]):
        client = HashClient(HashClientConfig(updates=True, metrics_enabled=False))
        await client.connect()

    await client.subscribe("u:1", lambda event: None)
    assert client.subscriptions.keys == ["u:1"]

    await client.disconnect()
    assert client.subscriptions.keys == []


async def test_async_context_manager():
    primary = make_redis_mock()

    with patch(FROM_URL, return_value=primary):
        async with HashClient(HashClientConfig(metrics_enabled=False)) as client:
            assert client.connected

    primary.aclose.assert_awaited_once()


async def test_repeated_connect_keeps_one_reader_and_channel():
    primary = make_redis_mock()
    pubsub = make_pubsub_mock()
    notification = _notification_client(pubsub)

    with patch(FROM_URL, side_effect=[primary, notification]) as from_url:
        client = HashClient(HashClientConfig(updates=True, metrics_enabled=False))
        await client.connect()
        reader = client.subscriptions._reader_task
        await client.connect()

    assert from_url.call_count == 2
    notification.pubsub.assert_called_once()
    assert client.subscriptions._reader_task is reader

    await client.disconnect()

    assert reader.done()
    pubsub.aclose.assert_awaited_once()
    notification.aclose.assert_awaited_once()
