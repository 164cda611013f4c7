"""
sky_sdk.crypto.signer
=====================

Ed25519 key pairs and registry-entry signatures.

This module is a thin, typed facade over `cryptography`'s Ed25519
implementation, shaped the way the registry expects keys:

- public keys: 32 raw bytes, exchanged as 64-char hex
- private keys: 64 bytes (32-byte seed followed by the public key), 128-char hex
- signatures: 64 raw bytes over `hash_registry_entry(entry)`

Key pairs derived from a seed string are reproducible bit-for-bit:
PBKDF2-HMAC-SHA256(seed, salt="", 1000 iterations) yields the 32-byte Ed25519
seed.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey, Ed25519PublicKey)
from cryptography.hazmat.primitives.serialization import (Encoding,
                                                          PublicFormat)

from ..constants import PRIVATE_KEY_LENGTH, PUBLIC_KEY_LENGTH, SIGNATURE_LENGTH
from ..errors import ValidationError
from ..utils.bytes import from_hex, to_hex, validate_hex_string
from .hashing import hash_registry_entry

if TYPE_CHECKING:  # pragma: no cover
    from ..registry.entry import RegistryEntry

__all__ = [
    "KeyPair",
    "KeyPairAndSeed",
    "Ed25519Signer",
    "gen_key_pair_from_seed",
    "gen_key_pair_and_seed",
    "public_key_from_private_key",
    "verify_signature",
    "sign_entry",
    "verify_entry_signature",
]

_PBKDF2_ITERATIONS = 1000
_SEED_BYTES = 32


@dataclass(frozen=True)
class KeyPair:
    """Hex-encoded Ed25519 key pair."""

    public_key: str
    private_key: str


@dataclass(frozen=True)
class KeyPairAndSeed(KeyPair):
    seed: str = ""


def _raw_public(sk: Ed25519PrivateKey) -> bytes:
    return sk.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


class Ed25519Signer:
    """
    An Ed25519 signer bound to one private key.

    Create instances via:
        - Ed25519Signer.from_seed(...)          (string seed, deterministic)
        - Ed25519Signer.from_private_key_hex(...)
    """

    __slots__ = ("_sk", "_pk")

    def __init__(self, secret_seed: bytes) -> None:
        if len(secret_seed) != _SEED_BYTES:
            raise ValidationError(f"expected a {_SEED_BYTES}-byte Ed25519 seed", name="privateKey")
        self._sk = Ed25519PrivateKey.from_private_bytes(bytes(secret_seed))
        self._pk = _raw_public(self._sk)

    # ---- Constructors ----

    @classmethod
    def from_seed(cls, seed: str) -> "Ed25519Signer":
        if not isinstance(seed, str):
            raise ValidationError(f"expected a string, got {type(seed).__name__}", name="seed")
        derived = hashlib.pbkdf2_hmac("sha256", seed.encode("utf-8"), b"", _PBKDF2_ITERATIONS, _SEED_BYTES)
        return cls(derived)

    @classmethod
    def from_private_key_hex(cls, private_key: str) -> "Ed25519Signer":
        """
        Load a 64-byte private key (seed || public key). The embedded public key
        must match the one derived from the seed.
        """
        validate_hex_string(private_key, name="privateKey", length=PRIVATE_KEY_LENGTH * 2)
        raw = from_hex(private_key, name="privateKey")
        signer = cls(raw[:_SEED_BYTES])
        if signer._pk != raw[_SEED_BYTES:]:
            raise ValidationError("private key does not embed its public key", name="privateKey")
        return signer

    # ---- Properties ----

    @property
    def public_key(self) -> bytes:
        return self._pk

    @property
    def public_key_hex(self) -> str:
        return to_hex(self._pk)

    @property
    def private_key_hex(self) -> str:
        # Callers are responsible for secure storage.
        seed = self._sk.private_bytes_raw()
        return to_hex(seed + self._pk)

    def key_pair(self) -> KeyPair:
        return KeyPair(public_key=self.public_key_hex, private_key=self.private_key_hex)

    # ---- Operations ----

    def sign(self, message: bytes) -> bytes:
        return self._sk.sign(bytes(message))

    def verify(self, message: bytes, signature: bytes) -> bool:
        return verify_signature(self._pk, message, signature)


def gen_key_pair_from_seed(seed: str) -> KeyPair:
    """
    Deterministically derive an Ed25519 key pair from a seed string.

    Same seed, same key pair; the private key is returned as seed || public key.
    """
    return Ed25519Signer.from_seed(seed).key_pair()


def gen_key_pair_and_seed(length: int = 64) -> KeyPairAndSeed:
    """Generate a random hex seed of `length` characters and its key pair."""
    if length <= 0 or length % 2:
        raise ValidationError("seed length must be a positive even number", name="length", value=length)
    seed = secrets.token_hex(length // 2)
    kp = gen_key_pair_from_seed(seed)
    return KeyPairAndSeed(public_key=kp.public_key, private_key=kp.private_key, seed=seed)


def public_key_from_private_key(private_key: str) -> str:
    return Ed25519Signer.from_private_key_hex(private_key).public_key_hex


def verify_signature(public_key: Union[bytes, str], message: bytes, signature: bytes) -> bool:
    """Return True iff `signature` is a valid Ed25519 signature of `message`."""
    pk = from_hex(public_key, name="publicKey") if isinstance(public_key, str) else bytes(public_key)
    if len(pk) != PUBLIC_KEY_LENGTH or len(signature) != SIGNATURE_LENGTH:
        return False
    try:
        Ed25519PublicKey.from_public_bytes(pk).verify(bytes(signature), bytes(message))
    except (InvalidSignature, ValueError):
        return False
    return True


def sign_entry(private_key: str, entry: "RegistryEntry", hashed_data_key_hex: bool = False) -> bytes:
    """Sign the canonical hash of a registry entry."""
    signer = Ed25519Signer.from_private_key_hex(private_key)
    return signer.sign(hash_registry_entry(entry, hashed_data_key_hex))


def verify_entry_signature(
    public_key: Union[bytes, str],
    entry: "RegistryEntry",
    signature: bytes,
    hashed_data_key_hex: bool = False,
) -> bool:
    return verify_signature(public_key, hash_registry_entry(entry, hashed_data_key_hex), signature)
