"""
sky_sdk.skydb
-------------

- revision_cache: per-client revision numbers and per-entry mutexes
- db:             SkyDB (get/set/delete JSON, entry data and raw bytes)
"""

from .db import (EntryData, EntryStatus, JSONResponse, RawBytesResponse,
                 SkyDB)
from .revision_cache import (CachedRevisionEntry, RevisionNumberCache,
                             check_next_revision, increment_revision,
                             next_revision)

__all__ = [
    "SkyDB",
    "JSONResponse",
    "RawBytesResponse",
    "EntryData",
    "EntryStatus",
    "CachedRevisionEntry",
    "RevisionNumberCache",
    "check_next_revision",
    "increment_revision",
    "next_revision",
]
