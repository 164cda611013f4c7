"""Discoverable-file tweaks: deterministic hashed data keys for MySky paths."""

from __future__ import annotations

import re
from typing import List

from ..crypto.hashing import hash_all
from ..errors import ValidationError
from ..utils.bytes import to_hex

DISCOVERABLE_BUCKET_TWEAK_VERSION = 1

_SLASHES = re.compile(r"/+")


def sanitize_path(path: str) -> str:
    """
    Collapse repeated slashes, drop leading/trailing ones and lowercase the
    first component (the app domain).
    """
    if not isinstance(path, str):
        raise ValidationError(f"expected a string, got {type(path).__name__}", name="path", value=path)
    cleaned = _SLASHES.sub("/", path.strip()).strip("/")
    if not cleaned:
        raise ValidationError("path is empty", name="path", value=path)
    domain, sep, rest = cleaned.partition("/")
    return f"{domain.lower()}{sep}{rest}"


def split_path(path: str) -> List[str]:
    return sanitize_path(path).split("/")


def hash_path_component(component: str) -> bytes:
    return hash_all(component.encode("utf-8"))


def encode_discoverable_bucket_tweak(path: str) -> bytes:
    """version byte || blake2b256(component) for every path component."""
    return bytes([DISCOVERABLE_BUCKET_TWEAK_VERSION]) + b"".join(hash_path_component(c) for c in split_path(path))


def derive_discoverable_file_tweak(path: str) -> str:
    """Hex data key for `path`; use it with hashed_data_key_hex=True."""
    return to_hex(hash_all(encode_discoverable_bucket_tweak(path)))


__all__ = [
    "DISCOVERABLE_BUCKET_TWEAK_VERSION",
    "sanitize_path",
    "split_path",
    "hash_path_component",
    "encode_discoverable_bucket_tweak",
    "derive_discoverable_file_tweak",
]
