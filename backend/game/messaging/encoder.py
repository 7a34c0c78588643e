"""
MessagePack encoder/decoder for wire format communication.

Outgoing messages are pydantic ``model_dump()`` dicts, so they can carry
enums, datetimes and tuples; these are reduced to msgpack-native values
on the way out. Incoming frames must decode to a dict within the size limits.
"""

from datetime import datetime
from enum import Enum
from typing import Any

import msgpack


def _default(obj: object) -> object:
    """Fallback for values msgpack cannot pack natively."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"cannot encode {type(obj).__name__}")


def encode(data: dict[str, Any]) -> bytes:
    """
    Encode a dict to MessagePack bytes.
    """
    return msgpack.packb(data, default=_default)


class DecodeError(Exception):
    """Error raised when MessagePack decoding fails."""


# Size limits to prevent resource exhaustion from malicious payloads.
MAX_BUFFER_LEN = 256 * 1024  # largest server frame is a full leaderboard page
MAX_STR_LEN = 64 * 1024
MAX_BIN_LEN = 64 * 1024
MAX_ARRAY_LEN = 1024
MAX_MAP_LEN = 256
MAX_EXT_LEN = 1024


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode MessagePack bytes to a dict.

    Raises DecodeError if data is invalid, not a dict, or exceeds size limits.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected dict, got {type(result).__name__}")

    return result
