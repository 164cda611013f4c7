"""
Skynet Python SDK.
Convenience exports for the registry, SkyDB and MySky file APIs.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import ClientConfig, RequestOptions  # noqa: F401
from .errors import (  # noqa: F401
    ConcurrentAccessError,
    ExecuteRequestError,
    RegistryUpdateError,
    RevisionOverflowError,
    SkyError,
    ValidationError,
    VerificationError,
)

# Client
from .client import SkynetClient  # noqa: F401
from .transport import HttpPortalTransport, PortalTransport  # noqa: F401

# Crypto
from .crypto import (  # noqa: F401
    KeyPair,
    KeyPairAndSeed,
    derive_child_seed,
    gen_key_pair_and_seed,
    gen_key_pair_from_seed,
    hash_data_key,
    hash_registry_entry,
)

# Registry
from .registry import RegistryClient, RegistryEntry, SignedRegistryEntry  # noqa: F401

# SkyDB
from .skydb import (  # noqa: F401
    EntryData,
    EntryStatus,
    JSONResponse,
    RawBytesResponse,
    RevisionNumberCache,
    SkyDB,
)

# MySky files
from .file import FileClient  # noqa: F401
from .mysky import (  # noqa: F401
    EncryptedJSONResponse,
    derive_discoverable_file_tweak,
    derive_encrypted_file_key_entropy,
    derive_encrypted_file_tweak,
)

# Skylinks
from .skylink import format_skylink, trim_uri_prefix  # noqa: F401

__all__ = [
    "__version__",
    # Core
    "ClientConfig", "RequestOptions",
    "SkyError", "ValidationError", "ConcurrentAccessError", "RegistryUpdateError",
    "VerificationError", "ExecuteRequestError", "RevisionOverflowError",
    # Client
    "SkynetClient", "HttpPortalTransport", "PortalTransport",
    # Crypto
    "KeyPair", "KeyPairAndSeed", "gen_key_pair_from_seed", "gen_key_pair_and_seed",
    "derive_child_seed", "hash_data_key", "hash_registry_entry",
    # Registry
    "RegistryClient", "RegistryEntry", "SignedRegistryEntry",
    # SkyDB
    "SkyDB", "JSONResponse", "RawBytesResponse", "EntryData", "EntryStatus", "RevisionNumberCache",
    # Files
    "FileClient", "EncryptedJSONResponse",
    "derive_discoverable_file_tweak", "derive_encrypted_file_key_entropy", "derive_encrypted_file_tweak",
    # Skylinks
    "format_skylink", "trim_uri_prefix",
]
