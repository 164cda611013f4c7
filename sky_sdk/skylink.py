"""
Skylink (data link / entry link) encoding.

A raw skylink is 34 bytes: a 2-byte little-endian bitfield followed by a 32-byte
merkle root (v1, content link) or registry entry id (v2, entry link). Skylinks
travel as unpadded base64url (46 chars) or lowercase base32hex (55 chars), and
are displayed with the ``sia:`` URI prefix.
"""

from __future__ import annotations

import base64
import binascii

from .constants import (BASE32_ENCODED_SKYLINK_SIZE,
                        BASE64_ENCODED_SKYLINK_SIZE, HASH_LENGTH,
                        RAW_SKYLINK_SIZE, URI_SKYNET_PREFIX,
                        URI_SKYNET_PREFIX_LONG)
from .errors import ValidationError
from .utils.bytes import BytesLike, decode_base64url, encode_base64url

EMPTY_SKYLINK: bytes = bytes(RAW_SKYLINK_SIZE)

_BITFIELD_V2 = 1


def trim_uri_prefix(skylink: str, prefix: str = URI_SKYNET_PREFIX) -> str:
    """Strip a ``sia://`` or ``sia:`` prefix (case-insensitive)."""
    if not isinstance(skylink, str):
        raise ValidationError(f"expected a string, got {type(skylink).__name__}", name="skylink", value=skylink)
    lower = skylink.lower()
    for p in (URI_SKYNET_PREFIX_LONG, prefix):
        if lower.startswith(p):
            return skylink[len(p):]
    return skylink


def format_skylink(skylink: str) -> str:
    """Add the ``sia:`` prefix unless present. The empty string is returned unchanged."""
    if not isinstance(skylink, str):
        raise ValidationError(f"expected a string, got {type(skylink).__name__}", name="skylink", value=skylink)
    if skylink == "" or skylink.startswith(URI_SKYNET_PREFIX):
        return skylink
    return f"{URI_SKYNET_PREFIX}{skylink}"


def encode_skylink_base64(raw: BytesLike) -> str:
    raw = _check_raw(raw)
    return encode_base64url(raw)


def encode_skylink_base32(raw: BytesLike) -> str:
    raw = _check_raw(raw)
    return base64.b32hexencode(raw).decode("ascii").rstrip("=").lower()


def decode_skylink_base64(skylink: str) -> bytes:
    skylink = trim_uri_prefix(skylink)
    if len(skylink) != BASE64_ENCODED_SKYLINK_SIZE:
        raise ValidationError(
            f"expected {BASE64_ENCODED_SKYLINK_SIZE} characters, got {len(skylink)}", name="skylink", value=skylink
        )
    return _check_raw(decode_base64url(skylink, name="skylink"))


def decode_skylink_base32(skylink: str) -> bytes:
    skylink = trim_uri_prefix(skylink)
    if len(skylink) != BASE32_ENCODED_SKYLINK_SIZE:
        raise ValidationError(
            f"expected {BASE32_ENCODED_SKYLINK_SIZE} characters, got {len(skylink)}", name="skylink", value=skylink
        )
    padded = skylink.upper() + "=" * (-len(skylink) % 8)
    try:
        raw = base64.b32hexdecode(padded)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"invalid base32 skylink: {e}", name="skylink", value=skylink) from e
    return _check_raw(raw)


def decode_skylink(skylink: str) -> bytes:
    """Decode a skylink in either base64 or base32 form (prefix optional)."""
    bare = trim_uri_prefix(skylink)
    if len(bare) == BASE32_ENCODED_SKYLINK_SIZE:
        return decode_skylink_base32(bare)
    return decode_skylink_base64(bare)


def convert_skylink_to_base32(skylink: str) -> str:
    return encode_skylink_base32(decode_skylink_base64(skylink))


def convert_skylink_to_base64(skylink: str) -> str:
    return encode_skylink_base64(decode_skylink_base32(skylink))


def normalize_skylink(skylink: str) -> str:
    """Canonical display form: ``sia:`` + base64url, whatever encoding came in."""
    return format_skylink(encode_skylink_base64(decode_skylink(skylink)))


def skylink_version(raw: BytesLike) -> int:
    bitfield = int.from_bytes(_check_raw(raw)[:2], "little")
    return (bitfield & 0b11) + 1


def is_skylink_v1(skylink: str | BytesLike) -> bool:
    raw = decode_skylink(skylink) if isinstance(skylink, str) else bytes(skylink)
    return skylink_version(raw) == 1


def is_skylink_v2(skylink: str | BytesLike) -> bool:
    raw = decode_skylink(skylink) if isinstance(skylink, str) else bytes(skylink)
    return skylink_version(raw) == 2


def new_skylink_v2(entry_id: BytesLike) -> bytes:
    """Raw v2 skylink (entry link) for a 32-byte registry entry id."""
    entry_id = bytes(entry_id)
    if len(entry_id) != HASH_LENGTH:
        raise ValidationError(f"expected a {HASH_LENGTH}-byte entry id", name="entryId")
    return _BITFIELD_V2.to_bytes(2, "little") + entry_id


def _check_raw(raw: BytesLike) -> bytes:
    raw = bytes(raw)
    if len(raw) != RAW_SKYLINK_SIZE:
        raise ValidationError(f"expected {RAW_SKYLINK_SIZE} bytes, got {len(raw)}", name="skylink")
    return raw


__all__ = [
    "EMPTY_SKYLINK",
    "trim_uri_prefix",
    "format_skylink",
    "encode_skylink_base64",
    "encode_skylink_base32",
    "decode_skylink_base64",
    "decode_skylink_base32",
    "decode_skylink",
    "convert_skylink_to_base32",
    "convert_skylink_to_base64",
    "normalize_skylink",
    "skylink_version",
    "is_skylink_v1",
    "is_skylink_v2",
    "new_skylink_v2",
]
