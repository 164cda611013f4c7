"""
SkyDB: mutable JSON and raw data on top of the registry.

An entry's data holds a 34-byte data link pointing at uploaded content. Writes
upload the content and fetch the current entry concurrently, pick the next
revision from the client's revision cache and publish a signed entry. Reads
resolve the entry, then download and decode the content.

Typical usage
-------------
    db = SkyDB(RegistryClient(HttpPortalTransport(config)))
    await db.set_json(private_key, "profile", {"name": "ada"})
    resp = await db.get_json(public_key, "profile")
    resp.data        # {"name": "ada"}
    resp.data_link   # "sia:..."

Result semantics
----------------
* JSONResponse(None, None)      entry absent or deleted          (ABSENT)
* JSONResponse(None, link)      link equals `cached_data_link`   (UNCHANGED)
* JSONResponse(data, link)      content downloaded and decoded   (PRESENT)

Concurrency
-----------
Each operation runs its registry round-trips under the entry's revision-cache
mutex, which is only tried: an overlapping operation on the same entry of the
same client fails fast with ConcurrentAccessError. A read that returns an older
revision than this client already knows also raises ConcurrentAccessError.
Writers in other clients are arbitrated by the registry itself; the loser gets
RegistryUpdateError.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from ..config import RequestOptions
from ..constants import (BASE32_ENCODED_SKYLINK_SIZE,
                         BASE64_ENCODED_SKYLINK_SIZE, DELETION_ENTRY_DATA,
                         JSON_RESPONSE_VERSION, MAX_ENTRY_LENGTH,
                         RAW_SKYLINK_SIZE, UNCACHED_REVISION_NUMBER)
from ..crypto.hashing import hashed_data_key_hex_of
from ..crypto.signer import public_key_from_private_key
from ..errors import (ConcurrentAccessError, ExecuteRequestError,
                      ValidationError, VerificationError)
from ..registry.client import RegistryClient
from ..registry.entry import RegistryEntry, SignedRegistryEntry
from ..skylink import (decode_skylink, encode_skylink_base64,
                       format_skylink, normalize_skylink)
from ..utils.bytes import BytesLike
from .revision_cache import (CachedRevisionEntry, RevisionNumberCache,
                             next_revision)

log = logging.getLogger(__name__)

JsonDict = Dict[str, Any]


class EntryStatus(str, enum.Enum):
    ABSENT = "absent"
    UNCHANGED = "unchanged"
    PRESENT = "present"


@dataclass(frozen=True)
class JSONResponse:
    data: Optional[JsonDict]
    data_link: Optional[str]

    @property
    def status(self) -> EntryStatus:
        if self.data_link is None:
            return EntryStatus.ABSENT
        if self.data is None:
            return EntryStatus.UNCHANGED
        return EntryStatus.PRESENT


@dataclass(frozen=True)
class RawBytesResponse:
    data: Optional[bytes]
    data_link: Optional[str]

    @property
    def status(self) -> EntryStatus:
        if self.data_link is None:
            return EntryStatus.ABSENT
        if self.data is None:
            return EntryStatus.UNCHANGED
        return EntryStatus.PRESENT


@dataclass(frozen=True)
class EntryData:
    data: Optional[bytes]


# --- helpers ------------------------------------------------------------------


def _check_data_key(data_key: Any) -> str:
    if not isinstance(data_key, str):
        raise ValidationError(f"expected a string, got {type(data_key).__name__}", name="dataKey", value=data_key)
    return data_key


def build_json_envelope(data: Mapping[str, Any]) -> bytes:
    """Serialize `data` inside the versioned SkyDB envelope."""
    if not isinstance(data, Mapping):
        raise ValidationError(f"expected a JSON object, got {type(data).__name__}", name="json", value=data)
    try:
        body = json.dumps({"_data": data, "_v": JSON_RESPONSE_VERSION}, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"not JSON serializable: {e}", name="json") from e
    return body.encode("utf-8")


def parse_json_content(raw: bytes) -> JsonDict:
    """Decode downloaded content; unwrap the envelope, pass legacy objects through."""
    try:
        parsed = json.loads(bytes(raw).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise VerificationError(f"content is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise VerificationError(f"content is not a JSON object: {type(parsed).__name__}")
    if "_data" in parsed and "_v" in parsed:
        parsed = parsed["_data"]
        if not isinstance(parsed, dict):
            raise VerificationError(f"enveloped data is not a JSON object: {type(parsed).__name__}")
    return parsed


def _format_data_link(raw: bytes) -> str:
    return format_skylink(encode_skylink_base64(raw))


def data_link_from_entry_data(data: bytes) -> Optional[str]:
    """
    Entry payload -> canonical ``sia:`` data link, or None for the deletion
    tombstone. Legacy entries store the skylink as text in either encoding.
    """
    if data == DELETION_ENTRY_DATA:
        return None
    if len(data) == RAW_SKYLINK_SIZE:
        return _format_data_link(data)
    if len(data) in (BASE64_ENCODED_SKYLINK_SIZE, BASE32_ENCODED_SKYLINK_SIZE):
        try:
            return normalize_skylink(data.decode("ascii"))
        except (UnicodeDecodeError, ValidationError) as e:
            raise VerificationError(f"entry data is not a data link: {e}") from e
    raise VerificationError(f"entry data of length {len(data)} is not a data link")


def _normalize_cached_link(link: Optional[str]) -> Optional[str]:
    if link is None:
        return None
    return normalize_skylink(link)


async def get_or_create_skydb_registry_entry(
    registry: RegistryClient,
    public_key: str,
    data_key: str,
    payload: Callable[[], Awaitable[bytes]],
    cached: CachedRevisionEntry,
    options: RequestOptions,
) -> Tuple[RegistryEntry, SignedRegistryEntry]:
    """
    Produce the next entry for (public_key, data_key).

    `payload` (typically an upload) runs concurrently with the lookup of the
    current entry. The revision comes from the cache once resolved, so a
    lagging or foreign read can never make this client write backwards.
    """
    upload = asyncio.ensure_future(payload())
    lookup = asyncio.ensure_future(registry.get_entry(public_key, data_key, options))
    try:
        data, current = await asyncio.gather(upload, lookup)
    finally:
        # one side failed; do not leave the other running
        for task in (upload, lookup):
            if not task.done():
                task.cancel()
    fetched = UNCACHED_REVISION_NUMBER if current.is_absent else current.entry.revision
    if cached.is_resolved and fetched > cached.revision:
        log.info("registry is ahead of the cached revision (%d > %d); the write may be rejected", fetched, cached.revision)
    revision = next_revision(cached.revision, fetched)
    return RegistryEntry(data_key=data_key, data=data, revision=revision), current


class SkyDB:
    def __init__(
        self,
        registry: RegistryClient,
        *,
        revision_number_cache: Optional[RevisionNumberCache] = None,
        options: Optional[RequestOptions] = None,
    ) -> None:
        self.registry = registry
        self.transport = registry.transport
        self.revision_number_cache = RevisionNumberCache() if revision_number_cache is None else revision_number_cache
        self.options = options or registry.options

    def _opts(self, options: Optional[RequestOptions], overrides: Dict[str, Any]) -> RequestOptions:
        return RequestOptions.merge(self.options, options, **overrides)

    # --- reads -----------------------------------------------------------

    async def get_json(
        self, public_key: str, data_key: str, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> JSONResponse:
        opts = self._opts(options, overrides)
        cached_link = _normalize_cached_link(opts.cached_data_link)
        data_link = await self._resolve_data_link(public_key, data_key, opts)
        if data_link is None:
            return JSONResponse(data=None, data_link=None)
        if cached_link == data_link:
            return JSONResponse(data=None, data_link=data_link)
        raw = await self._download(data_link, opts)
        return JSONResponse(data=parse_json_content(raw), data_link=data_link)

    async def get_raw_bytes(
        self, public_key: str, data_key: str, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> RawBytesResponse:
        opts = self._opts(options, overrides)
        cached_link = _normalize_cached_link(opts.cached_data_link)
        data_link = await self._resolve_data_link(public_key, data_key, opts)
        if data_link is None:
            return RawBytesResponse(data=None, data_link=None)
        if cached_link == data_link:
            return RawBytesResponse(data=None, data_link=data_link)
        raw = await self._download(data_link, opts)
        return RawBytesResponse(data=raw, data_link=data_link)

    async def get_entry_data(
        self, public_key: str, data_key: str, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> EntryData:
        opts = self._opts(options, overrides)
        signed = await self._get_entry_tracked(public_key, data_key, opts)
        if signed.is_absent or signed.entry.data == DELETION_ENTRY_DATA:
            return EntryData(data=None)
        return EntryData(data=signed.entry.data)

    # --- writes ----------------------------------------------------------

    async def set_json(
        self,
        private_key: str,
        data_key: str,
        data: Mapping[str, Any],
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> JSONResponse:
        opts = self._opts(options, overrides)
        _check_data_key(data_key)
        body = build_json_envelope(data)
        filename = f"dk:{hashed_data_key_hex_of(data_key, opts.hashed_data_key_hex)}"

        async def upload() -> bytes:
            skylink = await self.transport.upload(body, filename, "application/json", opts)
            return decode_skylink(skylink)

        entry = await self._write(private_key, data_key, upload, opts)
        return JSONResponse(data=dict(data), data_link=_format_data_link(entry.data))

    async def set_raw_bytes(
        self,
        private_key: str,
        data_key: str,
        data: BytesLike,
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> RawBytesResponse:
        opts = self._opts(options, overrides)
        _check_data_key(data_key)
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise ValidationError(f"expected bytes, got {type(data).__name__}", name="data")
        content = bytes(data)
        filename = f"dk:{hashed_data_key_hex_of(data_key, opts.hashed_data_key_hex)}"

        async def upload() -> bytes:
            skylink = await self.transport.upload(content, filename, "application/octet-stream", opts)
            return decode_skylink(skylink)

        entry = await self._write(private_key, data_key, upload, opts)
        return RawBytesResponse(data=content, data_link=_format_data_link(entry.data))

    async def delete_json(
        self, private_key: str, data_key: str, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> None:
        opts = self._opts(options, overrides)
        await self._write_bytes(private_key, data_key, DELETION_ENTRY_DATA, opts)

    async def set_data_link(
        self,
        private_key: str,
        data_key: str,
        data_link: str,
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> None:
        opts = self._opts(options, overrides)
        raw = decode_skylink(data_link)
        await self._write_bytes(private_key, data_key, raw, opts)

    async def set_entry_data(
        self,
        private_key: str,
        data_key: str,
        data: BytesLike,
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> EntryData:
        opts = self._opts(options, overrides)
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise ValidationError(f"expected bytes, got {type(data).__name__}", name="data")
        data = bytes(data)
        if len(data) > MAX_ENTRY_LENGTH:
            raise ValidationError(f"length {len(data)} exceeds maximum of {MAX_ENTRY_LENGTH}", name="data")
        if data == DELETION_ENTRY_DATA and not opts.allow_deletion_entry_data:
            raise ValidationError(
                "tried to set the deletion sentinel as entry data; use delete_entry_data or allow_deletion_entry_data",
                name="data",
            )
        await self._write_bytes(private_key, data_key, data, opts)
        return EntryData(data=data)

    async def delete_entry_data(
        self, private_key: str, data_key: str, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> None:
        opts = self._opts(options, overrides)
        await self._write_bytes(private_key, data_key, DELETION_ENTRY_DATA, opts)

    # --- internals -------------------------------------------------------

    async def _get_entry_tracked(self, public_key: str, data_key: str, opts: RequestOptions) -> SignedRegistryEntry:
        _check_data_key(data_key)
        key = RevisionNumberCache.key_for(public_key, data_key, opts.hashed_data_key_hex)

        async def fetch(cached: CachedRevisionEntry) -> SignedRegistryEntry:
            signed = await self.registry.get_entry(public_key, data_key, opts)
            fetched = UNCACHED_REVISION_NUMBER if signed.is_absent else signed.entry.revision
            if cached.is_resolved and fetched < cached.revision:
                raise ConcurrentAccessError(key, cached.revision, fetched, reason="registry returned an older revision")
            if not signed.is_absent:
                cached.revision = fetched
            return signed

        return await self.revision_number_cache.with_cached_entry_lock(
            public_key, data_key, fetch, opts.hashed_data_key_hex
        )

    async def _resolve_data_link(self, public_key: str, data_key: str, opts: RequestOptions) -> Optional[str]:
        signed = await self._get_entry_tracked(public_key, data_key, opts)
        if signed.is_absent:
            return None
        return data_link_from_entry_data(signed.entry.data)

    async def _download(self, data_link: str, opts: RequestOptions) -> bytes:
        raw = await self.transport.download(data_link, opts)
        if raw is None:
            raise ExecuteRequestError("content for data link not found", url=data_link, status=404, method="GET")
        return raw

    async def _write_bytes(self, private_key: str, data_key: str, data: bytes, opts: RequestOptions) -> RegistryEntry:
        async def payload() -> bytes:
            return data

        return await self._write(private_key, data_key, payload, opts)

    async def _write(
        self,
        private_key: str,
        data_key: str,
        payload: Callable[[], Awaitable[bytes]],
        opts: RequestOptions,
    ) -> RegistryEntry:
        _check_data_key(data_key)
        public_key = public_key_from_private_key(private_key)

        async def write(cached: CachedRevisionEntry) -> RegistryEntry:
            entry, _ = await get_or_create_skydb_registry_entry(
                self.registry, public_key, data_key, payload, cached, opts
            )
            await self.registry.set_entry(private_key, entry, opts)
            cached.revision = entry.revision
            log.debug("skydb wrote %s rev=%d", data_key, entry.revision)
            return entry

        return await self.revision_number_cache.with_cached_entry_lock(
            public_key, data_key, write, opts.hashed_data_key_hex
        )


__all__ = [
    "SkyDB",
    "JSONResponse",
    "RawBytesResponse",
    "EntryData",
    "EntryStatus",
    "build_json_envelope",
    "parse_json_content",
    "data_link_from_entry_data",
    "get_or_create_skydb_registry_entry",
]
