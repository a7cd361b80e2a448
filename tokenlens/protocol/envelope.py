"""JSON control message + binary tree payload in one length-prefixed frame."""

from __future__ import annotations

import json
import struct
from typing import Any, Mapping, NamedTuple

from tokenlens.protocol.codec import ProtocolError

_LENGTH = struct.Struct(">I")


class Envelope(NamedTuple):
    message: Any  # decoded JSON
    payload: bytes  # raw tree bytes, possibly empty


def pack_envelope(message: str | Mapping[str, Any], payload: bytes = b"") -> bytes:
    """u32 JSON length, the UTF-8 JSON, then *payload* with no delimiter."""
    text = message if isinstance(message, str) else json.dumps(message, separators=(",", ":"))
    raw = text.encode("utf-8")
    return _LENGTH.pack(len(raw)) + raw + bytes(payload)


def unpack_envelope(data: bytes) -> Envelope:
    if len(data) < _LENGTH.size:
        raise ProtocolError("envelope shorter than its length header")
    (length,) = _LENGTH.unpack_from(data, 0)
    end = _LENGTH.size + length
    if len(data) < end:
        raise ProtocolError(f"envelope declares {length} JSON bytes but only {len(data) - _LENGTH.size} follow")
    try:
        message = json.loads(data[_LENGTH.size:end].decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"envelope JSON is invalid: {exc}") from exc
    return Envelope(message, bytes(data[end:]))
