"""MessagePack + gzip codec for columnar batches."""

import gzip
import zlib
from typing import Any

import msgpack

from otelarc.core.errors import DecodeError, EncodeError
from otelarc.core.models import ColumnarBatch

CONTENT_TYPE = "application/msgpack"
CONTENT_ENCODING = "gzip"


def compress(data: bytes) -> bytes:
    return gzip.compress(data)


def decompress(data: bytes) -> bytes:
    return gzip.decompress(data)


def encode_batch(batch: ColumnarBatch) -> bytes:
    """Encode a batch to MessagePack and gzip it.

    Floats are written as 64-bit doubles, NaN and infinities included.

    Args:
        batch: The batch to encode.

    Returns:
        Compressed payload ready for the transport.

    Raises:
        EncodeError: If a column holds a value MessagePack cannot represent,
            e.g. an integer outside the 64-bit range.
    """
    try:
        packed = msgpack.packb(batch.to_payload(), use_bin_type=True)
    except (TypeError, ValueError, OverflowError) as e:
        raise EncodeError(batch.measurement, str(e)) from e
    return compress(packed)


def decode_batch(data: bytes) -> ColumnarBatch:
    """Decompress and decode a payload produced by encode_batch.

    Raises:
        DecodeError: If the payload is not gzip, not MessagePack, or not a
            columnar batch.
    """
    try:
        decoded: Any = msgpack.unpackb(decompress(data), raw=False)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeError(f"Payload is not valid gzip: {e}") from e
    except ValueError as e:
        raise DecodeError(f"Payload is not valid MessagePack: {e}") from e

    if (
        not isinstance(decoded, dict)
        or not isinstance(decoded.get("m"), str)
        or not isinstance(decoded.get("columns"), dict)
    ):
        raise DecodeError("Payload is not a columnar batch")
    return ColumnarBatch(measurement=decoded["m"], columns=decoded["columns"])
