"""
SkynetClient: one portal connection plus the registry, SkyDB and file APIs.

Example:
    async with SkynetClient("https://siasky.net") as client:
        await client.db.set_json(private_key, "profile", {"name": "ada"})
        resp = await client.db.get_json(public_key, "profile")

Every client owns its own revision cache, so two clients writing the same
entry are only arbitrated by the registry.
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import ClientConfig, RequestOptions
from .file import FileClient
from .registry.client import RegistryClient
from .skydb.db import SkyDB
from .skydb.revision_cache import RevisionNumberCache
from .transport.base import PortalTransport
from .transport.http import HttpPortalTransport

log = logging.getLogger(__name__)


class SkynetClient:
    def __init__(
        self,
        portal_url: Optional[str] = None,
        *,
        config: Optional[ClientConfig] = None,
        transport: Optional[PortalTransport] = None,
        options: Optional[RequestOptions] = None,
    ) -> None:
        if config is None:
            config = ClientConfig.with_overrides(portal_url=portal_url)
        elif portal_url is not None:
            config = ClientConfig.with_overrides(config, portal_url=portal_url)
        self.config = config
        self.options = options or RequestOptions()
        self.transport: PortalTransport = transport if transport is not None else HttpPortalTransport(config)
        self.revision_number_cache = RevisionNumberCache()
        self.registry = RegistryClient(self.transport, self.options)
        self.db = SkyDB(self.registry, revision_number_cache=self.revision_number_cache, options=self.options)
        self.file = FileClient(self.db)
        log.debug("skynet client for %s", self.transport.portal_url)

    @property
    def portal_url(self) -> str:
        return self.transport.portal_url

    async def __aenter__(self) -> "SkynetClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        await self.transport.aclose()


__all__ = ["SkynetClient"]
