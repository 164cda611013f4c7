"""
Portal collaborator contract.

The registry client and SkyDB talk to the network only through an object that
satisfies `PortalTransport`. `HttpPortalTransport` is the real implementation;
tests plug in in-memory fakes with the same methods.

Contract
--------
- get_registry_entry -> decoded JSON body, or None when the portal answers 404
- post_registry_entry -> None on success; raises RegistryUpdateError when the
  registry rejects the entry
- upload -> skylink of the stored content
- download -> content bytes, or None when the portal answers 404
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..config import RequestOptions

JsonDict = Dict[str, Any]


@runtime_checkable
class PortalTransport(Protocol):
    portal_url: str

    async def get_registry_entry(
        self, public_key: str, data_key_hex: str, options: Optional[RequestOptions] = None
    ) -> Optional[JsonDict]: ...

    async def post_registry_entry(self, body: JsonDict, options: Optional[RequestOptions] = None) -> None: ...

    async def upload(
        self,
        data: bytes,
        filename: str = "dk:data",
        mime_type: str = "application/octet-stream",
        options: Optional[RequestOptions] = None,
    ) -> str: ...

    async def download(self, skylink: str, options: Optional[RequestOptions] = None) -> Optional[bytes]: ...

    async def aclose(self) -> None: ...


__all__ = ["PortalTransport", "JsonDict"]
