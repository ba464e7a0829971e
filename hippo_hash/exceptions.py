# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""
Hippo Hash Exceptions

Exception classes raised by the hash client.
"""

from typing import Any, Dict, Optional


class HashClientError(Exception):
    """Base exception for hash client errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConnectionUnavailableError(HashClientError):
    """Raised when an operation is attempted without a live store connection."""

    def __init__(self, message: str = "Redis client disconnected", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class EncodeError(HashClientError):
    """Raised when a value cannot be encoded for storage."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.field = field


class DecodeError(HashClientError):
    """Raised when a stored or published string cannot be decoded."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.field = field


class StoreError(HashClientError):
    """Raised when the store rejects a command or the transport fails."""

    pass


class ConfigurationError(HashClientError):
    """Raised for invalid settings or when keyspace notifications cannot be enabled."""

    pass


class UpdatesDisabledError(HashClientError):
    """Raised when subscribing on a client created without update propagation."""

    def __init__(self, message: str = "Updates disabled", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class PublishError(HashClientError):
    """Raised when a change notification could not be published.

    The mutation that triggered the publish has already been committed;
    ``result`` holds what the mutation would otherwise have returned.
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        action: Optional[str] = None,
        result: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.key = key
        self.action = action
        self.result = result
