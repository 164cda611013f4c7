"""
Shared fixtures: an in-memory portal that behaves like the real registry.

FakePortal enforces registry rules server-side (signature must verify,
revision must be strictly greater than the stored one), stores uploads by a
content-derived skylink, and can serve stale registry reads or inject latency
so tests can provoke the interleavings SkyDB has to survive.
"""

from __future__ import annotations

import asyncio
import hashlib
from typing import Any, Dict, List, Optional, Tuple

import pytest

from sky_sdk.client import SkynetClient
from sky_sdk.crypto import gen_key_pair_and_seed, verify_entry_signature
from sky_sdk.errors import RegistryUpdateError
from sky_sdk.registry.entry import RegistryEntry
from sky_sdk.skylink import encode_skylink_base64, trim_uri_prefix

PORTAL_URL = "https://portal.test"


class FakePortal:
    def __init__(self, *, latency: float = 0.0) -> None:
        self.portal_url = PORTAL_URL
        self.latency = latency
        self.entries: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.content: Dict[str, bytes] = {}
        self.stale: Dict[Tuple[str, str], Optional[Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, Any]] = []
        self.closed = False

    async def _tick(self) -> None:
        await asyncio.sleep(self.latency)

    # --- registry ---------------------------------------------------------

    def body_for(self, key: Tuple[str, str]) -> Optional[Dict[str, Any]]:
        stored = self.entries.get(key)
        if stored is None:
            return None
        return {
            "data": stored["data"],
            "revision": str(stored["revision"]),
            "signature": stored["signature"],
            "type": 1,
        }

    async def get_registry_entry(self, public_key: str, data_key_hex: str, options: Any = None) -> Optional[Dict[str, Any]]:
        self.calls.append(("get", (public_key, data_key_hex)))
        await self._tick()
        key = (public_key, data_key_hex)
        if key in self.stale:
            return self.stale.pop(key)
        return self.body_for(key)

    async def post_registry_entry(self, body: Dict[str, Any], options: Any = None) -> None:
        self.calls.append(("post", body))
        await self._tick()
        public_key = body["publickey"]["key"]
        key = (public_key, body["datakey"])
        entry = RegistryEntry(data_key=body["datakey"], data=bytes.fromhex(body["data"]), revision=body["revision"])
        if not verify_entry_signature(public_key, entry, bytes.fromhex(body["signature"]), hashed_data_key_hex=True):
            raise RegistryUpdateError("invalid signature", status=400, public_key=public_key)
        existing = self.entries.get(key)
        if existing is not None and body["revision"] <= existing["revision"]:
            raise RegistryUpdateError(
                "provided revision number is already registered",
                status=400,
                public_key=public_key,
                data_key=body["datakey"],
                revision=body["revision"],
            )
        self.entries[key] = {"data": body["data"], "revision": body["revision"], "signature": body["signature"]}

    # --- content ------------------------------------------------------------

    async def upload(self, data: bytes, filename: str = "dk:data", mime_type: str = "application/octet-stream", options: Any = None) -> str:
        self.calls.append(("upload", filename))
        await self._tick()
        raw = (0).to_bytes(2, "little") + hashlib.blake2b(bytes(data), digest_size=32).digest()
        skylink = encode_skylink_base64(raw)
        self.content[skylink] = bytes(data)
        return skylink

    async def download(self, skylink: str, options: Any = None) -> Optional[bytes]:
        self.calls.append(("download", skylink))
        await self._tick()
        return self.content.get(trim_uri_prefix(skylink))

    async def aclose(self) -> None:
        self.closed = True

    # --- helpers ------------------------------------------------------------

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)


@pytest.fixture
def portal() -> FakePortal:
    return FakePortal()


@pytest.fixture
def client(portal: FakePortal) -> SkynetClient:
    return SkynetClient(transport=portal)


@pytest.fixture
def key_pair():
    return gen_key_pair_and_seed()


@pytest.fixture
def slow_portal() -> FakePortal:
    return FakePortal(latency=0.005)
