"""
Registry entry types and the entry codec.

An entry is identified by (owner public key, hashed data key) and carries a
small payload plus a uint64 revision. The codec maps entries to and from the
JSON shape used by the portal's registry endpoint:

    {"datakey": "<tweak hex>", "data": "<hex>", "revision": "<uint64>", "signature": "<hex>", "type": 1}

Decoding validates payload size, revision range and signature length; it
accepts hex or legacy padded-base64 `data`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..constants import (ED25519_SPECIFIER, HASH_LENGTH, MAX_ENTRY_LENGTH,
                         MAX_REVISION, PUBLIC_KEY_LENGTH,
                         REGISTRY_TYPE_WITH_PUBKEY,
                         REGISTRY_TYPE_WITHOUT_PUBKEY, SIGNATURE_LENGTH)
from ..crypto.encoding import encode_prefixed_bytes
from ..crypto.hashing import hash_all, hashed_data_key_bytes
from ..errors import ValidationError, VerificationError
from ..utils.bytes import (decode_hex_or_base64, from_hex, to_hex,
                           validate_hex_string)

JsonDict = Dict[str, Any]

_KNOWN_TYPES = (REGISTRY_TYPE_WITHOUT_PUBKEY, REGISTRY_TYPE_WITH_PUBKEY)


@dataclass(frozen=True)
class RegistryEntry:
    """A registry value before signing. `data_key` is the caller's key (raw or pre-hashed hex)."""

    data_key: str
    data: bytes
    revision: int

    def __post_init__(self) -> None:
        if not isinstance(self.data_key, str):
            raise ValidationError(f"expected a string, got {type(self.data_key).__name__}", name="dataKey")
        if not isinstance(self.data, (bytes, bytearray, memoryview)):
            raise ValidationError(f"expected bytes, got {type(self.data).__name__}", name="data")
        object.__setattr__(self, "data", bytes(self.data))
        if len(self.data) > MAX_ENTRY_LENGTH:
            raise ValidationError(
                f"length {len(self.data)} exceeds maximum of {MAX_ENTRY_LENGTH}", name="data", value=len(self.data)
            )
        validate_revision(self.revision)


@dataclass(frozen=True)
class SignedRegistryEntry:
    """`entry` is None when nothing exists yet at the coordinate; `signature` then is None too."""

    entry: Optional[RegistryEntry]
    signature: Optional[bytes]

    @classmethod
    def absent(cls) -> "SignedRegistryEntry":
        return cls(entry=None, signature=None)

    @property
    def is_absent(self) -> bool:
        return self.entry is None


@dataclass(frozen=True)
class RegistryProofEntry:
    """One hop of a registry resolution proof."""

    public_key: str
    data_key: str  # hashed, hex
    data: bytes
    revision: int
    signature: bytes
    type: int = REGISTRY_TYPE_WITHOUT_PUBKEY

    def as_entry(self) -> RegistryEntry:
        return RegistryEntry(data_key=self.data_key, data=self.data, revision=self.revision)


def validate_revision(revision: Any) -> int:
    if isinstance(revision, bool) or not isinstance(revision, int):
        raise ValidationError(f"expected an integer revision, got {type(revision).__name__}", name="revision")
    if revision < 0 or revision > MAX_REVISION:
        raise ValidationError(f"revision {revision} does not fit in 64 unsigned bits", name="revision", value=revision)
    return revision


def validate_public_key(public_key: str) -> str:
    return validate_hex_string(public_key, name="publicKey", length=PUBLIC_KEY_LENGTH * 2)


def derive_registry_entry_id(public_key: Union[str, bytes], tweak: bytes) -> bytes:
    """
    Registry entry id: blake2b256(sia public key || tweak), where the sia public
    key is the 16-byte "ed25519" specifier followed by the length-prefixed key.
    """
    pk = from_hex(validate_public_key(public_key), name="publicKey") if isinstance(public_key, str) else bytes(public_key)
    if len(pk) != PUBLIC_KEY_LENGTH or len(tweak) != HASH_LENGTH:
        raise ValidationError("invalid public key or tweak length", name="publicKey")
    return hash_all(ED25519_SPECIFIER + encode_prefixed_bytes(pk), tweak)


# --- codec --------------------------------------------------------------------


def encode_entry(entry: RegistryEntry, signature: bytes, hashed_data_key_hex: bool = False) -> JsonDict:
    """Entry plus signature -> registry JSON shape (data and signature as hex)."""
    if len(signature) != SIGNATURE_LENGTH:
        raise ValidationError(f"expected a {SIGNATURE_LENGTH}-byte signature", name="signature")
    tweak = hashed_data_key_bytes(entry.data_key, hashed_data_key_hex)
    return {
        "datakey": to_hex(tweak),
        "data": to_hex(entry.data),
        "revision": entry.revision,
        "signature": to_hex(signature),
    }


def encode_entry_request(
    public_key: str,
    entry: RegistryEntry,
    signature: bytes,
    *,
    hashed_data_key_hex: bool = False,
    entry_type: int = REGISTRY_TYPE_WITHOUT_PUBKEY,
) -> JsonDict:
    """Full POST body for the registry endpoint."""
    pk = from_hex(validate_public_key(public_key), name="publicKey")
    body = encode_entry(entry, signature, hashed_data_key_hex)
    body["publickey"] = {"algorithm": "ed25519", "key": to_hex(pk)}
    body["type"] = entry_type
    return body


def _parse_revision(raw: Any) -> int:
    if isinstance(raw, str):
        if not raw.isdigit():
            raise VerificationError(f"registry revision is not a decimal integer: {raw!r}")
        raw = int(raw, 10)
    try:
        return validate_revision(raw)
    except ValidationError as e:
        raise VerificationError(f"bad registry revision: {e}") from e


def decode_entry(
    body: Mapping[str, Any],
    data_key: str,
) -> Tuple[RegistryEntry, bytes]:
    """
    Registry JSON -> (entry, signature).

    Raises VerificationError for anything that does not decode to a valid entry.
    """
    if not isinstance(body, Mapping):
        raise VerificationError(f"registry response is not an object: {type(body).__name__}")
    try:
        data = decode_hex_or_base64(str(body.get("data", "")), name="data")
        signature = decode_hex_or_base64(str(body.get("signature", "")), name="signature")
    except ValidationError as e:
        raise VerificationError(f"undecodable registry entry: {e}") from e
    if len(data) > MAX_ENTRY_LENGTH:
        raise VerificationError(f"registry data length {len(data)} exceeds maximum of {MAX_ENTRY_LENGTH}")
    if len(signature) != SIGNATURE_LENGTH:
        raise VerificationError(f"registry signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}")
    entry_type = body.get("type", REGISTRY_TYPE_WITHOUT_PUBKEY)
    if entry_type not in _KNOWN_TYPES:
        raise VerificationError(f"unknown registry entry type {entry_type!r}")
    revision = _parse_revision(body.get("revision"))
    return RegistryEntry(data_key=data_key, data=data, revision=revision), signature


def decode_proof_entry(body: Mapping[str, Any]) -> RegistryProofEntry:
    if not isinstance(body, Mapping):
        raise VerificationError("registry proof hop is not an object")
    public_key = body.get("publickey")
    if isinstance(public_key, Mapping):
        public_key = public_key.get("key")
    if isinstance(public_key, str) and public_key.startswith("ed25519:"):
        public_key = public_key[len("ed25519:"):]
    try:
        public_key = validate_public_key(public_key)
        data_key = validate_hex_string(body.get("datakey"), name="datakey", length=HASH_LENGTH * 2)
    except ValidationError as e:
        raise VerificationError(f"malformed registry proof hop: {e}") from e
    entry, signature = decode_entry(body, data_key)
    return RegistryProofEntry(
        public_key=public_key,
        data_key=data_key,
        data=entry.data,
        revision=entry.revision,
        signature=signature,
        type=int(body.get("type", REGISTRY_TYPE_WITHOUT_PUBKEY)),
    )


__all__ = [
    "RegistryEntry",
    "SignedRegistryEntry",
    "RegistryProofEntry",
    "validate_revision",
    "validate_public_key",
    "derive_registry_entry_id",
    "encode_entry",
    "encode_entry_request",
    "decode_entry",
    "decode_proof_entry",
]
