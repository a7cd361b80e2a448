from tokenlens.protocol.codec import MAGIC, VERSION, ProtocolError, deserialize, serialize
from tokenlens.protocol.envelope import Envelope, pack_envelope, unpack_envelope

__all__ = [
    "MAGIC",
    "VERSION",
    "Envelope",
    "ProtocolError",
    "deserialize",
    "pack_envelope",
    "serialize",
    "unpack_envelope",
]
