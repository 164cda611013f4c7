"""
Version of the Skynet Python SDK and the User-Agent it sends to portals.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"


def user_agent() -> str:
    """Default User-Agent sent to portals, e.g. 'sky-sdk-py/0.1.0'."""
    return f"sky-sdk-py/{__version__}"


__all__ = ["__version__", "user_agent"]
