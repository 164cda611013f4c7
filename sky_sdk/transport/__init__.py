"""
sky_sdk.transport
-----------------

- base: the PortalTransport protocol consumed by the registry client and SkyDB
- http: HttpPortalTransport on httpx.AsyncClient with retries
"""

from .base import PortalTransport
from .http import HttpPortalTransport

__all__ = ["PortalTransport", "HttpPortalTransport"]
