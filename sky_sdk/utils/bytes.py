"""Hex and base64 helpers that raise ValidationError on malformed input."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Union

from ..errors import ValidationError

BytesLike = Union[bytes, bytearray, memoryview]

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def to_hex(b: BytesLike, prefix: bool = False) -> str:
    """
    Bytes -> hex string (lowercase). Portals expect unprefixed hex, so no '0x' by default.
    """
    s = bytes(b).hex()
    return f"0x{s}" if prefix else s


def is_hex_string(s: object) -> bool:
    return isinstance(s, str) and len(s) % 2 == 0 and bool(_HEX_RE.match(s))


def from_hex(s: str, *, name: str = "hex") -> bytes:
    """
    Hex string (optionally '0x' prefixed) -> bytes.

    Enforces even length and is case agnostic.
    """
    if not isinstance(s, str):
        raise ValidationError(f"expected hex string, got {type(s).__name__}", name=name)
    if s.startswith(("0x", "0X")):
        s = s[2:]
    if len(s) % 2 != 0:
        raise ValidationError("hex string must have even length", name=name, value=s)
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise ValidationError(f"invalid hex string: {e}", name=name, value=s) from e


def validate_hex_string(s: object, *, name: str, length: int | None = None) -> str:
    """Validate an unprefixed hex string, optionally of an exact character length."""
    if not isinstance(s, str):
        raise ValidationError(f"expected hex string, got {type(s).__name__}", name=name, value=s)
    if not is_hex_string(s):
        raise ValidationError("expected an even-length hex string", name=name, value=s)
    if length is not None and len(s) != length:
        raise ValidationError(f"expected {length} hex characters, got {len(s)}", name=name, value=s)
    return s.lower()


# --- base64 -------------------------------------------------------------------


def encode_base64url(b: BytesLike) -> str:
    """URL-safe base64 without '=' padding (skylink form)."""
    return base64.urlsafe_b64encode(bytes(b)).decode("ascii").rstrip("=")


def decode_base64url(s: str, *, name: str = "base64") -> bytes:
    """Decode URL-safe or standard base64, with or without padding."""
    if not isinstance(s, str):
        raise ValidationError(f"expected base64 string, got {type(s).__name__}", name=name)
    t = s.replace("+", "-").replace("/", "_").rstrip("=")
    t += "=" * (-len(t) % 4)
    try:
        return base64.urlsafe_b64decode(t.encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"invalid base64 string: {e}", name=name, value=s) from e


def decode_hex_or_base64(s: str, *, name: str = "data") -> bytes:
    """
    Decode a registry `data` field. Current portals return hex; legacy portals
    returned standard base64 with padding. Hex is tried first.
    """
    if is_hex_string(s):
        return bytes.fromhex(s)
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except (binascii.Error, ValueError, UnicodeEncodeError) as e:
        raise ValidationError("expected hex or base64 encoded data", name=name, value=s) from e


__all__ = [
    "BytesLike",
    "to_hex",
    "from_hex",
    "is_hex_string",
    "validate_hex_string",
    "encode_base64url",
    "decode_base64url",
    "decode_hex_or_base64",
]
