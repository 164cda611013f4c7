"""
Deterministic binary encodings used for hashing and signing.

All integers are little-endian, fixed 8 bytes (Sia encoding). Strings and byte
slices carry an 8-byte little-endian length prefix; no terminator, no padding.
"""

from __future__ import annotations

from ..constants import MAX_REVISION
from ..errors import ValidationError
from ..utils.bytes import BytesLike


def encode_uint64(n: int) -> bytes:
    """
    Encode `n` as an 8-byte little-endian unsigned integer.

    Raises ValidationError (a ValueError) if `n` is negative or exceeds 2^64-1.
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise ValidationError(f"expected an integer, got {type(n).__name__}", name="n", value=n)
    if n < 0:
        raise ValidationError(f"Argument {n} does not fit in a 64-bit unsigned integer; less than 0", name="n", value=n)
    if n > MAX_REVISION:
        raise ValidationError(
            f"Argument {n} does not fit in a 64-bit unsigned integer; exceeds 2^64-1", name="n", value=n
        )
    return n.to_bytes(8, "little", signed=False)


def encode_number(n: int) -> bytes:
    """Alias of encode_uint64 kept for callers encoding plain counters."""
    return encode_uint64(n)


def encode_prefixed_bytes(b: BytesLike) -> bytes:
    """Length-prefixed bytes: 8-byte little-endian length followed by the bytes."""
    raw = bytes(b)
    return encode_uint64(len(raw)) + raw


def encode_string(s: str) -> bytes:
    """UTF-8 encoding of `s` with an 8-byte little-endian byte-length prefix."""
    if not isinstance(s, str):
        raise ValidationError(f"expected a string, got {type(s).__name__}", name="s", value=s)
    return encode_prefixed_bytes(s.encode("utf-8"))


def decode_uint64(b: BytesLike) -> int:
    raw = bytes(b)
    if len(raw) != 8:
        raise ValidationError(f"expected 8 bytes, got {len(raw)}", name="uint64")
    return int.from_bytes(raw, "little", signed=False)


__all__ = [
    "encode_uint64",
    "encode_number",
    "encode_prefixed_bytes",
    "encode_string",
    "decode_uint64",
]
