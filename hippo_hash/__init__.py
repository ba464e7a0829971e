# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""
Hippo Hash

Async Redis hash client with atomic increment-with-max, advisory locks and
live per-key update subscriptions.
"""

from .client import HashClient
from .codec import JsonCodec
from .config import HashClientConfig
from .exceptions import (
    ConfigurationError,
    ConnectionUnavailableError,
    DecodeError,
    EncodeError,
    HashClientError,
    PublishError,
    StoreError,
    UpdatesDisabledError,
)
from .subscriptions import HashUpdate, LastEvent, UpdateKind

__version__ = "1.0.0"

__all__ = [
    # Client
    "HashClient",
    "HashClientConfig",
    "JsonCodec",
    # Events
    "HashUpdate",
    "UpdateKind",
    "LastEvent",
    # Exceptions
    "HashClientError",
    "ConnectionUnavailableError",
    "EncodeError",
    "DecodeError",
    "StoreError",
    "ConfigurationError",
    "PublishError",
    "UpdatesDisabledError",
]
