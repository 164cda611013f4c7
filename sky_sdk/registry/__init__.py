"""
sky_sdk.registry
----------------

- entry:  RegistryEntry types and the JSON codec used by the portal
- proof:  validation of multi-hop resolution proofs
- client: RegistryClient (verified get_entry, signed set_entry)
"""

from .client import RegistryClient
from .entry import (RegistryEntry, RegistryProofEntry, SignedRegistryEntry,
                    decode_entry, derive_registry_entry_id, encode_entry,
                    encode_entry_request)
from .proof import decode_proof, validate_registry_proof

__all__ = [
    "RegistryClient",
    "RegistryEntry",
    "RegistryProofEntry",
    "SignedRegistryEntry",
    "decode_entry",
    "encode_entry",
    "encode_entry_request",
    "derive_registry_entry_id",
    "decode_proof",
    "validate_registry_proof",
]
