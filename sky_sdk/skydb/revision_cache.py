"""
Per-client revision number cache.

Each (public key, hashed data key) pair gets one `CachedRevisionEntry` holding
the last revision this client saw or wrote, plus an `asyncio.Lock` that
serializes the revision-assignment critical section of overlapping operations.
SkyDB holds the lock across the registry round-trips of an operation and only
tries to take it, so of two overlapping operations on the same entry the second
fails with ConcurrentAccessError instead of computing the same next revision.

Lookup-or-create of cache entries is guarded by one coarse creation lock, so
two callers never end up with divergent entries for the same key.

Revision -1 means "not resolved yet".
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from ..constants import MAX_WRITABLE_REVISION, UNCACHED_REVISION_NUMBER
from ..crypto.hashing import hashed_data_key_hex_of
from ..errors import ConcurrentAccessError, RevisionOverflowError
from ..registry.entry import validate_public_key

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CachedRevisionEntry:
    revision: int = UNCACHED_REVISION_NUMBER
    mutex: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def is_resolved(self) -> bool:
        return self.revision != UNCACHED_REVISION_NUMBER


# --- pure helpers ---------------------------------------------------------------


def increment_revision(revision: int) -> int:
    """Next revision; never wraps, the top value stays reserved."""
    new = revision + 1
    if new > MAX_WRITABLE_REVISION:
        raise RevisionOverflowError(revision)
    return new


def next_revision(cached: int, fetched: int) -> int:
    """
    Revision for the next write: one past the cached revision, or one past the
    fetched revision (0 for an absent entry) while the cache is unresolved.
    """
    base = fetched if cached == UNCACHED_REVISION_NUMBER else cached
    return increment_revision(base)


def check_next_revision(cached: int, proposed: Optional[int], key: str) -> int:
    """
    Validate a proposed revision against the cached one and return the revision
    to write. Without an explicit proposal the cache must be resolved.
    """
    if proposed is None:
        if cached == UNCACHED_REVISION_NUMBER:
            raise ConcurrentAccessError(key, cached, None, reason="revision not resolved")
        return increment_revision(cached)
    if proposed != cached + 1:
        raise ConcurrentAccessError(key, cached, proposed)
    if proposed > MAX_WRITABLE_REVISION:
        raise RevisionOverflowError(cached)
    return proposed


# --- cache ------------------------------------------------------------------------


class RevisionNumberCache:
    """Owned by a single client; never shared across clients."""

    def __init__(self) -> None:
        self._entries: Dict[str, CachedRevisionEntry] = {}
        self._creation_lock = asyncio.Lock()

    @staticmethod
    def key_for(public_key: str, data_key: str, hashed_data_key_hex: bool = False) -> str:
        return f"{validate_public_key(public_key)}:{hashed_data_key_hex_of(data_key, hashed_data_key_hex)}"

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def clear(self) -> None:
        self._entries.clear()

    async def get_revision_and_mutex_for_entry(
        self, public_key: str, data_key: str, hashed_data_key_hex: bool = False
    ) -> CachedRevisionEntry:
        key = self.key_for(public_key, data_key, hashed_data_key_hex)
        async with self._creation_lock:
            cached = self._entries.get(key)
            if cached is None:
                cached = self._entries[key] = CachedRevisionEntry()
            return cached

    async def with_cached_entry_lock(
        self,
        public_key: str,
        data_key: str,
        fn: Callable[[CachedRevisionEntry], Awaitable[T]],
        hashed_data_key_hex: bool = False,
    ) -> T:
        """
        Run `fn(cached_entry)` while holding that entry's mutex.

        The mutex is only tried, never waited for: if another operation on this
        client holds it, ConcurrentAccessError is raised immediately.
        """
        key = self.key_for(public_key, data_key, hashed_data_key_hex)
        cached = await self.get_revision_and_mutex_for_entry(public_key, data_key, hashed_data_key_hex)
        if cached.mutex.locked():
            raise ConcurrentAccessError(key, cached.revision, None, reason="entry is in use by another operation")
        async with cached.mutex:
            return await fn(cached)

    async def update_revision_and_mutex_for_entry(
        self,
        public_key: str,
        data_key: str,
        new_revision: Optional[int] = None,
        hashed_data_key_hex: bool = False,
    ) -> int:
        """
        Atomically advance the cached revision.

        `new_revision` must be exactly cached + 1; without it the cached revision
        must be resolved and is incremented. The cache is untouched on failure.
        """
        key = self.key_for(public_key, data_key, hashed_data_key_hex)
        cached = await self.get_revision_and_mutex_for_entry(public_key, data_key, hashed_data_key_hex)
        async with cached.mutex:
            revision = check_next_revision(cached.revision, new_revision, key)
            cached.revision = revision
        log.debug("revision cache %s -> %d", key, revision)
        return revision

    def peek_revision(self, public_key: str, data_key: str, hashed_data_key_hex: bool = False) -> int:
        """Last known revision without locking; -1 when unknown."""
        cached = self._entries.get(self.key_for(public_key, data_key, hashed_data_key_hex))
        return UNCACHED_REVISION_NUMBER if cached is None else cached.revision


__all__ = [
    "CachedRevisionEntry",
    "RevisionNumberCache",
    "check_next_revision",
    "increment_revision",
    "next_revision",
]
