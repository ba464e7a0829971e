"""Pytest configuration for repo-wide test behavior."""

# Ensure project root on sys.path for imports
import asyncio
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

root = os.path.dirname(os.path.abspath(__file__))
proj = os.path.abspath(os.path.join(root, ".."))
if proj not in sys.path:
    sys.path.insert(0, proj)

from hippo_hash import HashClient, HashClientConfig  # noqa: E402

REDIS_COMMANDS = (
    "ping",
    "hgetall",
    "hget",
    "hmget",
    "hset",
    "hdel",
    "delete",
    "pexpire",
    "eval",
    "publish",
    "config_set",
    "aclose",
)


def make_redis_mock() -> MagicMock:
    """Redis client double whose commands are awaitable."""
    redis_mock = MagicMock()
    for name in REDIS_COMMANDS:
        setattr(redis_mock, name, AsyncMock())
    return redis_mock


def make_pubsub_mock() -> MagicMock:
    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock()
    pubsub.unsubscribe = AsyncMock()
    pubsub.get_message = AsyncMock(return_value=None)
    pubsub.aclose = AsyncMock()
    return pubsub


@pytest.fixture
def redis_mock():
    return make_redis_mock()


@pytest.fixture
def client(redis_mock):
    """Client with updates enabled and a mocked primary connection."""
    hash_client = HashClient(HashClientConfig(updates=True, metrics_enabled=False))
    hash_client.connection.redis = redis_mock
    return hash_client


@pytest.fixture
def quiet_client(redis_mock):
    """Client without update propagation."""
    hash_client = HashClient(HashClientConfig(metrics_enabled=False))
    hash_client.connection.redis = redis_mock
    return hash_client


@pytest.fixture
def pubsub_mock():
    return make_pubsub_mock()


@pytest.fixture
def manager(client, pubsub_mock):
    """Subscription manager wired to a mocked pub/sub channel, without a reader task."""
    subscriptions = client.subscriptions
    subscriptions.connection.redis = make_redis_mock()
    subscriptions._pubsub = pubsub_mock
    subscriptions._has_channels = asyncio.Event()
    return subscriptions


@pytest.fixture
def recorder():
    """Listener that records every event it receives."""

    class Recorder:
        def __init__(self):
            self.events = []

        def __call__(self, event):
            self.events.append(event)

    return Recorder
