# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""Channel naming and the application update message format.

Application messages are ``"<action> <payload>"`` where the payload is a
URL query string of changed fields for ``hset`` and a single URL-encoded
field name for ``hdel``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import parse_qsl, quote, unquote, urlencode

from .exceptions import DecodeError

UPDATE_CHANNEL_PREFIX = "hippo_hash:"

ACTION_SET = "hset"
ACTION_DELETE = "hdel"

DELETE_NOTIFICATIONS = frozenset({"del", "expired", "evicted"})

# encodeURIComponent leaves these unescaped in addition to quote()'s defaults
_SAFE = "!*'()"

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def keyspace_prefix(database: int = 0) -> str:
    return f"__keyspace@{database}__:"


def keyspace_channel(key: str, database: int = 0) -> str:
    """Store-generated notification channel for ``key``."""
    return f"{keyspace_prefix(database)}{key}"


def update_channel(key: str) -> str:
    """Application channel carrying field-level changes for ``key``."""
    return f"{UPDATE_CHANNEL_PREFIX}{key}"


@dataclass(frozen=True)
class ChannelRef:
    key: str
    keyspace: bool


def parse_channel(channel: str, database: int = 0) -> ChannelRef | None:
    """Map a channel name back to its key; ``None`` for foreign channels."""
    prefix = keyspace_prefix(database)
    if channel.startswith(prefix):
        return ChannelRef(key=channel[len(prefix) :], keyspace=True)
    if channel.startswith(UPDATE_CHANNEL_PREFIX):
        return ChannelRef(key=channel[len(UPDATE_CHANNEL_PREFIX) :], keyspace=False)
    return None


def encode_component(text: str) -> str:
    return quote(text, safe=_SAFE)


def decode_component(text: str) -> str:
    """Strict inverse of :func:`encode_component`."""
    if _MALFORMED_ESCAPE.search(text):
        raise DecodeError(f"Malformed escape sequence in {text!r}")
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Invalid UTF-8 escape in {text!r}") from e


def set_message(changes: dict[str, str]) -> str:
    return f"{ACTION_SET} {urlencode(changes, quote_via=quote, safe=_SAFE)}"


def delete_message(field: str) -> str:
    return f"{ACTION_DELETE} {encode_component(field)}"


def split_message(message: str) -> tuple[str, str]:
    """Split an application message into ``(action, payload)``."""
    action, sep, payload = message.partition(" ")
    if not sep:
        raise DecodeError(f"Update message has no payload: {message!r}")
    if action not in (ACTION_SET, ACTION_DELETE):
        raise DecodeError(f"Unknown update action: {action!r}")
    return action, payload


def parse_changes(payload: str) -> dict[str, str]:
    """Parse an ``hset`` payload into its field -> encoded value pairs."""
    if _MALFORMED_ESCAPE.search(payload):
        raise DecodeError(f"Malformed escape sequence in {payload!r}")
    try:
        return dict(parse_qsl(payload, keep_blank_values=True, errors="strict"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Invalid update payload: {e}") from e
