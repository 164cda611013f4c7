"""
Skynet SDK constants.

Protocol-level sizes and bounds shared by the crypto, registry, skylink and
SkyDB modules. No heavy imports; safe to import from anywhere.
"""

from __future__ import annotations

# ------------------------------- crypto sizes --------------------------------

#: BLAKE2b digest size used for data keys, entry hashes and entry ids.
HASH_LENGTH: int = 32
#: Ed25519 public key size.
PUBLIC_KEY_LENGTH: int = 32
#: Ed25519 private key size (32-byte seed followed by the public key).
PRIVATE_KEY_LENGTH: int = 64
#: Ed25519 signature size.
SIGNATURE_LENGTH: int = 64

#: Sia public key specifier for Ed25519 keys, zero padded to 16 bytes.
SPECIFIER_LEN: int = 16
ED25519_SPECIFIER: bytes = b"ed25519".ljust(SPECIFIER_LEN, b"\x00")

# -------------------------------- revisions ----------------------------------

#: Largest value representable on the wire (uint64).
MAX_REVISION: int = 2**64 - 1
#: Largest revision a client may write; the top value is reserved.
MAX_WRITABLE_REVISION: int = MAX_REVISION - 1
#: Revision cache value meaning "unknown, not yet fetched".
UNCACHED_REVISION_NUMBER: int = -1

# --------------------------------- registry ----------------------------------

#: Maximum size of a registry entry's data payload.
MAX_ENTRY_LENGTH: int = 70
#: Registry entry types returned by portals.
REGISTRY_TYPE_WITHOUT_PUBKEY: int = 1
REGISTRY_TYPE_WITH_PUBKEY: int = 2
#: Maximum number of hops accepted in a registry resolution proof.
MAX_PROOF_HOPS: int = 4
#: Bounds for the portal-side registry lookup timeout (seconds).
MIN_REGISTRY_LOOKUP_TIMEOUT: int = 1
MAX_REGISTRY_LOOKUP_TIMEOUT: int = 300
DEFAULT_REGISTRY_LOOKUP_TIMEOUT: int = 5

# --------------------------------- skylinks ----------------------------------

#: Size of a raw (decoded) skylink: 2-byte bitfield + 32-byte merkle root.
RAW_SKYLINK_SIZE: int = 34
BASE64_ENCODED_SKYLINK_SIZE: int = 46
BASE32_ENCODED_SKYLINK_SIZE: int = 55
URI_SKYNET_PREFIX: str = "sia:"
URI_SKYNET_PREFIX_LONG: str = "sia://"

# ---------------------------------- SkyDB ------------------------------------

#: Version written into the JSON envelope ({"_data": ..., "_v": 2}).
JSON_RESPONSE_VERSION: int = 2
#: Tombstone payload written by delete operations.
DELETION_ENTRY_DATA: bytes = bytes(RAW_SKYLINK_SIZE)


__all__ = [
    "HASH_LENGTH",
    "PUBLIC_KEY_LENGTH",
    "PRIVATE_KEY_LENGTH",
    "SIGNATURE_LENGTH",
    "SPECIFIER_LEN",
    "ED25519_SPECIFIER",
    "MAX_REVISION",
    "MAX_WRITABLE_REVISION",
    "UNCACHED_REVISION_NUMBER",
    "MAX_ENTRY_LENGTH",
    "REGISTRY_TYPE_WITHOUT_PUBKEY",
    "REGISTRY_TYPE_WITH_PUBKEY",
    "MAX_PROOF_HOPS",
    "MIN_REGISTRY_LOOKUP_TIMEOUT",
    "MAX_REGISTRY_LOOKUP_TIMEOUT",
    "DEFAULT_REGISTRY_LOOKUP_TIMEOUT",
    "RAW_SKYLINK_SIZE",
    "BASE64_ENCODED_SKYLINK_SIZE",
    "BASE32_ENCODED_SKYLINK_SIZE",
    "URI_SKYNET_PREFIX",
    "URI_SKYNET_PREFIX_LONG",
    "JSON_RESPONSE_VERSION",
    "DELETION_ENTRY_DATA",
]
