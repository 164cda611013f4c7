"""
Typed error classes for the Skynet SDK.

These are raised by the registry client, the revision cache, SkyDB and the
portal transport so callers can catch specific failure modes while still being
able to catch the base `SkyError`.

Not-found is never an error: absent registry entries and missing content
resolve to ``None`` payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

__all__ = [
    "SkyError",
    "ValidationError",
    "RevisionOverflowError",
    "ConcurrentAccessError",
    "RegistryUpdateError",
    "VerificationError",
    "ExecuteRequestError",
    "CONCURRENT_ACCESS_MESSAGE",
    "REGISTRY_UPDATE_MESSAGE",
]

CONCURRENT_ACCESS_MESSAGE = "Concurrent access prevented in SkyDB"
REGISTRY_UPDATE_MESSAGE = "Unable to update the registry"


class SkyError(Exception):
    """Base class for all SDK errors."""


class ValidationError(SkyError, ValueError):
    """
    Raised on caller misuse (wrong type, length or format) before any network
    call is made.
    """

    def __init__(self, message: str, *, name: Optional[str] = None, value: Any = None) -> None:
        self.name = name
        self.value = value
        prefix = f"{name}: " if name else ""
        super().__init__(f"{prefix}{message}")


class RevisionOverflowError(ValidationError):
    """The next revision would exceed the maximum allowed revision."""

    def __init__(self, revision: int) -> None:
        self.revision = revision
        super().__init__(
            f"revision {revision} cannot be incremented; the maximum revision is reserved",
            name="revision",
            value=revision,
        )


@dataclass(eq=False, slots=True)
class ConcurrentAccessError(SkyError):
    """
    Raised when the revision cache detects an out-of-order write or a stale read
    for an entry on the same client instance.

    Fields:
      - key: revision cache key ("<public key>:<hashed data key>")
      - cached_revision: revision held by the cache when the check failed
      - proposed_revision: revision the operation tried to use (if any)
    """

    key: str
    cached_revision: int
    proposed_revision: Optional[int] = None
    reason: str = "revision mismatch"

    def __str__(self) -> str:  # pragma: no cover - trivial
        proposed = "-" if self.proposed_revision is None else str(self.proposed_revision)
        return (
            f"{CONCURRENT_ACCESS_MESSAGE}, try again later. "
            f"key={self.key} cached={self.cached_revision} proposed={proposed}: {self.reason}"
        )


@dataclass(eq=False, slots=True)
class RegistryUpdateError(SkyError):
    """Raised when the registry service rejects a write (stale or duplicate revision)."""

    message: str
    status: Optional[int] = None
    public_key: Optional[str] = None
    data_key: Optional[str] = None
    revision: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        bits = [f"{REGISTRY_UPDATE_MESSAGE}: {self.message}"]
        if self.status is not None:
            bits.append(f"http={self.status}")
        if self.revision is not None:
            bits.append(f"revision={self.revision}")
        return " ".join(bits)


@dataclass(eq=False, slots=True)
class VerificationError(SkyError):
    """
    Raised when a signature does not match, a proof chain is invalid, or a
    response/content cannot be decoded. Indicates tampering or a protocol mismatch.
    """

    message: str
    public_key: Optional[str] = None
    data_key: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = []
        if self.public_key:
            where.append(f"pk={self.public_key}")
        if self.data_key:
            where.append(f"dk={self.data_key}")
        where_s = (" [" + ", ".join(where) + "]") if where else ""
        return f"VerificationError{where_s}: {self.message}"


@dataclass(eq=False, slots=True)
class ExecuteRequestError(SkyError):
    """Raised by the portal transport on network failure or an unexpected HTTP status."""

    message: str
    url: Optional[str] = None
    status: Optional[int] = None
    method: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        target = f"{self.method or '-'} {self.url or '-'}"
        code = f" -> {self.status}" if self.status is not None else ""
        return f"Request {target}{code}: {self.message}"
