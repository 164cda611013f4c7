"""BLAKE2b-256 and SHA-512 hashing for data keys, registry entries and the encrypted-file key schedule."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Iterable

from ..constants import HASH_LENGTH
from ..errors import ValidationError
from ..utils.bytes import BytesLike, from_hex, to_hex
from .encoding import encode_prefixed_bytes, encode_string, encode_uint64

if TYPE_CHECKING:  # pragma: no cover
    from ..registry.entry import RegistryEntry


# --- BLAKE2b-256 --------------------------------------------------------------
# Sia hashes everything with unkeyed BLAKE2b truncated to a 32-byte digest.


class Blake2b256:
    """Streaming BLAKE2b-256 hasher with update()/digest()/hexdigest()."""

    __slots__ = ("_h",)

    def __init__(self) -> None:
        self._h = hashlib.blake2b(digest_size=HASH_LENGTH)

    def update(self, data: BytesLike) -> "Blake2b256":
        self._h.update(bytes(data))
        return self

    def digest(self) -> bytes:
        return self._h.digest()

    def hexdigest(self) -> str:
        return self._h.hexdigest()


def hash_all(*parts: BytesLike) -> bytes:
    """BLAKE2b-256 over the concatenation of `parts`."""
    h = Blake2b256()
    for p in parts:
        h.update(p)
    return h.digest()


def hash_data_key(data_key: str) -> bytes:
    """
    Hash a raw data key into the 32-byte tweak used as the on-wire lookup key.

    Golden vectors:
        hash_data_key("")       -> 81e47a19e6b29b0a65b9591762ce5143ed30d0261e5d24a3201752506b20f15c
        hash_data_key("skynet") -> 31c7a4d53ef7bb4c7531181645a0037b9e75c8b1d1285b468ad58bad6262c777
    """
    return hash_all(encode_string(data_key))


def hashed_data_key_bytes(data_key: str, hashed_data_key_hex: bool = False) -> bytes:
    """
    Resolve a caller data key to its 32-byte tweak.

    Raw strings are hashed; pre-hashed hex strings pass through unchanged, so the
    same logical key resolves identically in both forms.
    """
    if not isinstance(data_key, str):
        raise ValidationError(f"expected a string, got {type(data_key).__name__}", name="dataKey", value=data_key)
    if not hashed_data_key_hex:
        return hash_data_key(data_key)
    tweak = from_hex(data_key, name="dataKey")
    if len(tweak) != HASH_LENGTH:
        raise ValidationError(
            f"hashed data key must be {HASH_LENGTH} bytes, got {len(tweak)}", name="dataKey", value=data_key
        )
    return tweak


def hashed_data_key_hex_of(data_key: str, hashed_data_key_hex: bool = False) -> str:
    return to_hex(hashed_data_key_bytes(data_key, hashed_data_key_hex))


def derive_child_seed(master_seed: str, seed: str) -> str:
    """Derive a child seed (hex) from a master seed and a sub-seed string."""
    if not isinstance(master_seed, str) or not isinstance(seed, str):
        raise ValidationError("master seed and seed must be strings", name="seed")
    return to_hex(hash_all(encode_string(master_seed), encode_string(seed)))


def hash_registry_entry(entry: "RegistryEntry", hashed_data_key_hex: bool = False) -> bytes:
    """
    Signing payload for a registry entry:

        blake2b256(tweak || len(data) || data || uint64(revision))

    `tweak` is the hashed data key, so signatures do not depend on how the caller
    supplied the key nor on how transports encode `data` (hex, base64, raw).
    """
    tweak = hashed_data_key_bytes(entry.data_key, hashed_data_key_hex)
    return hash_all(tweak, encode_prefixed_bytes(entry.data), encode_uint64(entry.revision))


# --- SHA-512 ------------------------------------------------------------------
# Used for the encrypted-file key schedule.


def sha512(data: BytesLike | str) -> bytes:
    """SHA-512 digest; strings are hashed as UTF-8."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha512(bytes(data)).digest()


def sha512_all(parts: Iterable[BytesLike | str]) -> bytes:
    """SHA-512 over the concatenation of the SHA-512 digests of each part."""
    return sha512(b"".join(sha512(p) for p in parts))


__all__ = [
    "Blake2b256",
    "hash_all",
    "hash_data_key",
    "hashed_data_key_bytes",
    "hashed_data_key_hex_of",
    "derive_child_seed",
    "hash_registry_entry",
    "sha512",
    "sha512_all",
]
