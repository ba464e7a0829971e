# Copyright 2025 Hippo Hash Contributors
# Licensed under the Apache License, Version 2.0

"""JSON value codec for hash fields."""

import json
from typing import Any

from .exceptions import DecodeError, EncodeError


class JsonCodec:
    """Encodes field values as compact JSON strings and back."""

    def encode(self, value: Any, field: str | None = None) -> str:
        """Serialize value for Redis storage."""
        try:
            return json.dumps(value, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise EncodeError(f"Failed to encode value: {e}", field=field) from e

    def decode(self, data: str | None, field: str | None = None) -> Any:
        """Deserialize value from Redis storage.

        ``None`` (a missing field) decodes to ``None``.
        """
        if data is None:
            return None

        try:
            return json.loads(data)
        except (json.JSONDecodeError, TypeError) as e:
            raise DecodeError(f"Failed to decode value: {e}", field=field) from e

    def decode_fields(self, item: dict[str, str | None]) -> dict[str, Any]:
        """Decode every value of a field mapping; any failure fails the whole mapping."""
        return {name: self.decode(raw, field=name) for name, raw in item.items()}
