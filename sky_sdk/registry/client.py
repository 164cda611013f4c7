"""
Registry resolver: verified reads and signed writes of registry entries.

Typical usage
-------------
    registry = RegistryClient(HttpPortalTransport(config))
    signed = await registry.get_entry(public_key_hex, "app.json")
    if not signed.is_absent:
        print(signed.entry.revision)

    entry = RegistryEntry(data_key="app.json", data=raw_link, revision=signed.entry.revision + 1)
    await registry.set_entry(private_key_hex, entry)

Notes
-----
* Every returned entry is signature-checked against the requested owner, or,
  when the portal followed entry links, validated hop by hop against the proof.
* Not-found is not an error: `get_entry` returns `SignedRegistryEntry.absent()`.
* Write rejections surface as RegistryUpdateError; nothing here retries.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlencode

from ..config import RequestOptions
from ..constants import DEFAULT_REGISTRY_LOOKUP_TIMEOUT, REGISTRY_TYPE_WITHOUT_PUBKEY
from ..crypto.hashing import hashed_data_key_bytes
from ..crypto.signer import public_key_from_private_key, sign_entry, verify_entry_signature
from ..errors import ValidationError, VerificationError
from ..skylink import encode_skylink_base64, format_skylink, new_skylink_v2
from ..transport.base import PortalTransport
from ..utils.bytes import to_hex
from .entry import (RegistryEntry, SignedRegistryEntry, decode_entry,
                    derive_registry_entry_id, encode_entry_request,
                    validate_public_key)
from .proof import decode_proof, validate_registry_proof

log = logging.getLogger(__name__)


class RegistryClient:
    def __init__(self, transport: PortalTransport, options: Optional[RequestOptions] = None) -> None:
        self.transport = transport
        self.options = options or RequestOptions()

    def _opts(self, options: Optional[RequestOptions], overrides: dict[str, Any]) -> RequestOptions:
        return RequestOptions.merge(self.options, options, **overrides)

    # --- reads -----------------------------------------------------------

    async def get_entry(
        self,
        public_key: str,
        data_key: str,
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> SignedRegistryEntry:
        """
        Look up the entry at (public_key, data_key).

        Raises VerificationError when the signature or the resolution proof
        does not check out.
        """
        opts = self._opts(options, overrides)
        public_key = validate_public_key(public_key)
        tweak_hex = to_hex(hashed_data_key_bytes(data_key, opts.hashed_data_key_hex))

        body = await self.transport.get_registry_entry(public_key, tweak_hex, opts)
        if body is None:
            log.debug("registry entry %s/%s not found", public_key, tweak_hex)
            return SignedRegistryEntry.absent()

        entry, signature = decode_entry(body, data_key)
        proof = body.get("proof")
        if proof:
            validate_registry_proof(
                decode_proof(proof),
                public_key=public_key,
                tweak_hex=tweak_hex,
                entry=entry,
                signature=signature,
            )
        elif not verify_entry_signature(public_key, entry, signature, opts.hashed_data_key_hex):
            raise VerificationError(
                "could not verify signature from retrieved, signed registry entry",
                public_key=public_key,
                data_key=tweak_hex,
            )
        return SignedRegistryEntry(entry=entry, signature=signature)

    def get_entry_url(
        self,
        public_key: str,
        data_key: str,
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> str:
        """Portal URL that resolves the entry (useful for debugging and caching layers)."""
        opts = self._opts(options, overrides)
        public_key = validate_public_key(public_key)
        tweak_hex = to_hex(hashed_data_key_bytes(data_key, opts.hashed_data_key_hex))
        query = urlencode(
            {
                "publickey": f"ed25519:{public_key}",
                "datakey": tweak_hex,
                "timeout": opts.registry_lookup_timeout or DEFAULT_REGISTRY_LOOKUP_TIMEOUT,
            }
        )
        return f"{self.transport.portal_url.rstrip('/')}/skynet/registry?{query}"

    def get_entry_link(
        self,
        public_key: str,
        data_key: str,
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> str:
        """Entry link (v2 skylink) that always resolves to the entry's current data."""
        opts = self._opts(options, overrides)
        tweak = hashed_data_key_bytes(data_key, opts.hashed_data_key_hex)
        entry_id = derive_registry_entry_id(validate_public_key(public_key), tweak)
        return format_skylink(encode_skylink_base64(new_skylink_v2(entry_id)))

    # --- writes ----------------------------------------------------------

    async def set_entry(
        self,
        private_key: str,
        entry: RegistryEntry,
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> None:
        """Sign `entry` with `private_key` and publish it."""
        opts = self._opts(options, overrides)
        if not isinstance(entry, RegistryEntry):
            raise ValidationError(f"expected a RegistryEntry, got {type(entry).__name__}", name="entry")
        public_key = public_key_from_private_key(private_key)
        signature = sign_entry(private_key, entry, opts.hashed_data_key_hex)
        await self.post_signed_entry(public_key, entry, signature, opts)

    async def post_signed_entry(
        self,
        public_key: str,
        entry: RegistryEntry,
        signature: bytes,
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> None:
        """Publish an already signed entry. Rejections raise RegistryUpdateError."""
        opts = self._opts(options, overrides)
        body = encode_entry_request(
            public_key,
            entry,
            bytes(signature),
            hashed_data_key_hex=opts.hashed_data_key_hex,
            entry_type=REGISTRY_TYPE_WITHOUT_PUBKEY,
        )
        log.debug("posting registry entry %s/%s rev=%d", body["publickey"]["key"], body["datakey"], entry.revision)
        await self.transport.post_registry_entry(body, opts)


__all__ = ["RegistryClient"]
