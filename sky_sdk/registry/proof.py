"""
Validation of registry resolution proofs.

When a looked-up entry's data is itself an entry link (v2 skylink), the portal
may follow it and return the final entry together with a proof: the ordered
list of signed hops, starting at the requested coordinate and ending at the
entry whose data was returned. Every hop must carry a valid signature, each
non-final hop must link to the next one, and the final hop must be the returned
entry. Any deviation fails closed with VerificationError.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from ..constants import MAX_PROOF_HOPS, RAW_SKYLINK_SIZE
from ..crypto.signer import verify_entry_signature
from ..errors import VerificationError
from ..skylink import new_skylink_v2
from ..utils.bytes import from_hex
from .entry import (RegistryEntry, RegistryProofEntry,
                    derive_registry_entry_id, decode_proof_entry)

log = logging.getLogger(__name__)


def decode_proof(raw: Any) -> List[RegistryProofEntry]:
    if not isinstance(raw, (list, tuple)):
        raise VerificationError(f"registry proof must be a list, got {type(raw).__name__}")
    return [decode_proof_entry(hop) for hop in raw]


def _link_to(hop: RegistryProofEntry) -> bytes:
    entry_id = derive_registry_entry_id(hop.public_key, from_hex(hop.data_key, name="datakey"))
    return new_skylink_v2(entry_id)


def validate_registry_proof(
    proof: Sequence[RegistryProofEntry],
    *,
    public_key: str,
    tweak_hex: str,
    entry: Optional[RegistryEntry] = None,
    signature: Optional[bytes] = None,
    max_hops: int = MAX_PROOF_HOPS,
) -> RegistryProofEntry:
    """
    Validate a proof chain anchored at (public_key, tweak_hex).

    Returns the final hop, i.e. the entry that was actually resolved. When
    `entry`/`signature` are given they must match the final hop exactly.
    """
    if not proof:
        raise VerificationError("empty registry proof", public_key=public_key, data_key=tweak_hex)
    if len(proof) > max_hops:
        raise VerificationError(
            f"registry proof has {len(proof)} hops; at most {max_hops} allowed",
            public_key=public_key,
            data_key=tweak_hex,
        )

    first = proof[0]
    if first.public_key != public_key.lower() or first.data_key != tweak_hex.lower():
        raise VerificationError("registry proof does not start at the requested entry", public_key=public_key, data_key=tweak_hex)

    for i, hop in enumerate(proof):
        if not verify_entry_signature(hop.public_key, hop.as_entry(), hop.signature, hashed_data_key_hex=True):
            raise VerificationError(f"invalid signature in registry proof hop {i}", public_key=hop.public_key, data_key=hop.data_key)
        if i + 1 < len(proof):
            nxt = proof[i + 1]
            if len(hop.data) != RAW_SKYLINK_SIZE or hop.data != _link_to(nxt):
                raise VerificationError(
                    f"registry proof hop {i} does not link to hop {i + 1}", public_key=hop.public_key, data_key=hop.data_key
                )

    last = proof[-1]
    if entry is not None and (entry.data != last.data or entry.revision != last.revision):
        raise VerificationError("returned entry does not match the end of the registry proof", public_key=public_key, data_key=tweak_hex)
    if signature is not None and bytes(signature) != last.signature:
        raise VerificationError("returned signature does not match the end of the registry proof", public_key=public_key, data_key=tweak_hex)

    log.debug("registry proof ok: %d hop(s) from %s/%s", len(proof), public_key, tweak_hex)
    return last


__all__ = ["decode_proof", "validate_registry_proof"]
