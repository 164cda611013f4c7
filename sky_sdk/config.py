"""
SDK configuration: portal endpoint, timeouts and retries, plus per-call options.

- `ClientConfig` loads sane defaults and supports overrides via environment
  variables (SKYNET_*).
- `RequestOptions` is the configuration object accepted by every registry and
  SkyDB operation; defaults < client options < call options.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .constants import (DEFAULT_REGISTRY_LOOKUP_TIMEOUT,
                        MAX_REGISTRY_LOOKUP_TIMEOUT,
                        MIN_REGISTRY_LOOKUP_TIMEOUT)
from .errors import ValidationError
from .version import user_agent

_DEFAULT_PORTAL = "https://siasky.net"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValidationError(f"URL must start with {allowed}, got: {url!r}", name="portal_url", value=url)
    return url


def validate_registry_lookup_timeout(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("expected an integer number of seconds", name="registry_lookup_timeout", value=value)
    if not MIN_REGISTRY_LOOKUP_TIMEOUT <= value <= MAX_REGISTRY_LOOKUP_TIMEOUT:
        raise ValidationError(
            f"must be between {MIN_REGISTRY_LOOKUP_TIMEOUT} and {MAX_REGISTRY_LOOKUP_TIMEOUT}",
            name="registry_lookup_timeout",
            value=value,
        )
    return value


@dataclass(slots=True)
class ClientConfig:
    # Core
    portal_url: str = field(default_factory=lambda: _DEFAULT_PORTAL)
    # HTTP behavior
    request_timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 0.25
    backoff_max: float = 3.0
    registry_lookup_timeout: int = DEFAULT_REGISTRY_LOOKUP_TIMEOUT
    # Headers / identity
    user_agent: str = field(default_factory=user_agent)
    api_key: Optional[str] = None
    custom_headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _ensure_scheme(self.portal_url, ("http", "https"))
        validate_registry_lookup_timeout(self.registry_lookup_timeout)
        if self.max_retries < 0:
            raise ValidationError("must be non-negative", name="max_retries", value=self.max_retries)

    @classmethod
    def from_env(cls, prefix: str = "SKYNET_") -> "ClientConfig":
        """
        Create config from environment variables:

        SKYNET_PORTAL_URL        (http/https)
        SKYNET_TIMEOUT           (float seconds, HTTP)
        SKYNET_MAX_RETRIES       (int)
        SKYNET_BACKOFF           (float seconds, first retry delay)
        SKYNET_REGISTRY_TIMEOUT  (int seconds, portal-side registry lookup)
        SKYNET_USER_AGENT        (str)
        SKYNET_API_KEY           (str) optional
        """
        portal = _env(f"{prefix}PORTAL_URL", _DEFAULT_PORTAL)
        timeout = float(_env(f"{prefix}TIMEOUT", "30.0"))
        retries = int(_env(f"{prefix}MAX_RETRIES", "3"))
        backoff = float(_env(f"{prefix}BACKOFF", "0.25"))
        lookup = int(_env(f"{prefix}REGISTRY_TIMEOUT", str(DEFAULT_REGISTRY_LOOKUP_TIMEOUT)))
        ua = _env(f"{prefix}USER_AGENT", user_agent())
        api_key = _env(f"{prefix}API_KEY", None)

        return cls(
            portal_url=portal or _DEFAULT_PORTAL,
            request_timeout=timeout,
            max_retries=retries,
            backoff_base=backoff,
            registry_lookup_timeout=lookup,
            user_agent=ua or user_agent(),
            api_key=api_key or None,
        )

    @classmethod
    def with_overrides(cls, base: Optional["ClientConfig"] = None, **overrides: Any) -> "ClientConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data and v is not None})
        return cls(**data)

    def http_headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if self.api_key:
            headers["Skynet-Api-Key"] = self.api_key
        headers.update(self.custom_headers)
        return headers

    def to_dict(self) -> Dict[str, Any]:
        return {
            "portal_url": self.portal_url,
            "request_timeout": float(self.request_timeout),
            "max_retries": int(self.max_retries),
            "backoff_base": float(self.backoff_base),
            "backoff_max": float(self.backoff_max),
            "registry_lookup_timeout": int(self.registry_lookup_timeout),
            "user_agent": self.user_agent,
            "api_key": self.api_key,
            "custom_headers": dict(self.custom_headers),
        }


@dataclass(frozen=True, init=False)
class RequestOptions:
    """
    Per-call options for registry and SkyDB operations.

    - hashed_data_key_hex: the data key is already a hex-encoded hashed key
    - cached_data_link: skip the content download when the entry still points here
    - allow_deletion_entry_data: permit writing the tombstone value via set_entry_data
    - timeout / max_retries: passed through to the transport
    - registry_lookup_timeout: seconds the portal may spend resolving an entry

    Options are keyword-only. The names passed to the constructor are kept in
    `explicit`; only those take part in `merge`, so a layer can set a value
    back to its default.
    """

    hashed_data_key_hex: bool = False
    cached_data_link: Optional[str] = None
    allow_deletion_entry_data: bool = False
    timeout: Optional[float] = None
    max_retries: Optional[int] = None
    registry_lookup_timeout: Optional[int] = None

    def __init__(self, **options: Any) -> None:
        known = {f.name for f in fields(self)}
        unknown = set(options) - known
        if unknown:
            raise ValidationError(f"unknown option(s): {sorted(unknown)}", name="options")
        for f in fields(self):
            object.__setattr__(self, f.name, options.get(f.name, f.default))
        object.__setattr__(self, "_explicit", frozenset(options))
        self._validate()

    def _validate(self) -> None:
        if self.registry_lookup_timeout is not None:
            validate_registry_lookup_timeout(self.registry_lookup_timeout)
        if self.cached_data_link is not None and not isinstance(self.cached_data_link, str):
            raise ValidationError("expected a string", name="cached_data_link", value=self.cached_data_link)

    @property
    def explicit(self) -> FrozenSet[str]:
        return self._explicit  # type: ignore[attr-defined]

    @classmethod
    def merge(
        cls,
        *layers: "Optional[RequestOptions | Mapping[str, Any]]",
        **overrides: Any,
    ) -> "RequestOptions":
        """
        Layer options left to right, then apply keyword overrides.

        A RequestOptions layer contributes the fields it was built with; a
        mapping layer contributes all of its keys. Unknown names are rejected.
        """
        values: Dict[str, Any] = {}
        for layer in layers:
            if layer is None:
                continue
            if isinstance(layer, RequestOptions):
                values.update({name: getattr(layer, name) for name in layer.explicit})
            elif isinstance(layer, Mapping):
                values.update(layer)
            else:
                raise ValidationError(f"expected RequestOptions or a mapping, got {type(layer).__name__}", name="options")
        values.update(overrides)
        return cls(**values)


# Convenience singleton (safe to use for simple scripts)
DEFAULT_OPTIONS = RequestOptions()

__all__ = ["ClientConfig", "RequestOptions", "DEFAULT_OPTIONS", "validate_registry_lookup_timeout"]
