# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""Hash client configuration."""

import dataclasses
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class HashClientConfig:
    """Immutable settings for one hash client instance."""

    # Redis Configuration
    redis_url: str = "redis://localhost:6379/0"
    socket_timeout: float | None = 5.0
    socket_connect_timeout: float | None = 5.0

    # Update Propagation
    updates: bool = False  # Publish changes and accept subscriptions
    configure: bool = False  # Enable keyspace notifications on connect
    keyspace_events: str = "Kgxe"
    poll_interval: float = 1.0  # Notification reader wait per poll, in seconds

    # Metrics Configuration
    metrics_enabled: bool = True

    def __post_init__(self):
        self._validate_config()

    def _validate_config(self):
        if not self.redis_url:
            raise ConfigurationError("redis_url is required")

        for name in ("socket_timeout", "socket_connect_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigurationError(f"{name} must be positive", {name: value})

        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be positive", {"poll_interval": self.poll_interval})

        if self.configure and not self.keyspace_events:
            raise ConfigurationError("keyspace_events is required when configure is enabled")

    @property
    def database(self) -> int:
        """Database index selected by ``redis_url`` (0 when absent)."""
        parsed = urlparse(self.redis_url)
        path = parsed.path.lstrip("/")
        if not path:
            return 0
        try:
            return int(path)
        except ValueError as e:
            raise ConfigurationError(f"Invalid database in redis_url: {path}") from e

    def merged(self, **overrides) -> "HashClientConfig":
        """Return a copy with ``overrides`` applied on top of these settings."""
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError("Unknown configuration options", {"options": unknown})
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_environment(cls) -> "HashClientConfig":
        """Create configuration from environment variables."""
        return cls(
            redis_url=os.getenv("HIPPO_HASH_REDIS_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
            socket_timeout=_parse_timeout(os.getenv("HIPPO_HASH_SOCKET_TIMEOUT", "5.0")),
            socket_connect_timeout=_parse_timeout(os.getenv("HIPPO_HASH_SOCKET_CONNECT_TIMEOUT", "5.0")),
            updates=os.getenv("HIPPO_HASH_UPDATES", "false").lower() == "true",
            configure=os.getenv("HIPPO_HASH_CONFIGURE", "false").lower() == "true",
            keyspace_events=os.getenv("HIPPO_HASH_KEYSPACE_EVENTS", "Kgxe"),
            poll_interval=_parse_interval(os.getenv("HIPPO_HASH_POLL_INTERVAL", "1.0")),
            metrics_enabled=os.getenv("HIPPO_HASH_METRICS_ENABLED", "true").lower() == "true",
        )


def _parse_timeout(value: str) -> float | None:
    """Parse a timeout setting; ``none`` or an empty string disables it."""
    if not value or value.lower() == "none":
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid timeout: {value}") from e


def _parse_interval(value: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid poll interval: {value}") from e
