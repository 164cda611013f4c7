"""
sky_sdk.crypto
--------------

Cryptographic primitives for the registry:

- encoding: uint64 / length-prefixed string encodings (Sia wire form)
- hashing:  BLAKE2b-256 data-key and entry hashes, SHA-512 helpers
- signer:   deterministic Ed25519 key pairs, entry signing and verification
"""

from __future__ import annotations

from ..constants import (HASH_LENGTH, MAX_REVISION, PRIVATE_KEY_LENGTH,
                         PUBLIC_KEY_LENGTH, SIGNATURE_LENGTH)
from .encoding import (decode_uint64, encode_number, encode_prefixed_bytes,
                       encode_string, encode_uint64)
from .hashing import (derive_child_seed, hash_all, hash_data_key,
                      hash_registry_entry, hashed_data_key_bytes,
                      hashed_data_key_hex_of, sha512)
from .signer import (Ed25519Signer, KeyPair, KeyPairAndSeed,
                     gen_key_pair_and_seed, gen_key_pair_from_seed,
                     public_key_from_private_key, sign_entry,
                     verify_entry_signature, verify_signature)

__all__ = [
    "HASH_LENGTH",
    "MAX_REVISION",
    "PRIVATE_KEY_LENGTH",
    "PUBLIC_KEY_LENGTH",
    "SIGNATURE_LENGTH",
    "encode_uint64",
    "encode_number",
    "encode_prefixed_bytes",
    "encode_string",
    "decode_uint64",
    "hash_all",
    "hash_data_key",
    "hashed_data_key_bytes",
    "hashed_data_key_hex_of",
    "derive_child_seed",
    "hash_registry_entry",
    "sha512",
    "Ed25519Signer",
    "KeyPair",
    "KeyPairAndSeed",
    "gen_key_pair_from_seed",
    "gen_key_pair_and_seed",
    "public_key_from_private_key",
    "verify_signature",
    "sign_entry",
    "verify_entry_signature",
]
