"""
Utility helpers for the Python SDK.

Re-exports:
- bytes: hex and base64 helpers
- retry: async retry with backoff, used by the portal transport
"""

from .bytes import (decode_base64url, decode_hex_or_base64, encode_base64url,
                    from_hex, is_hex_string, to_hex, validate_hex_string)
from .retry import RetryError, aretry_call, backoff_delay

__all__ = [
    # bytes
    "to_hex",
    "from_hex",
    "is_hex_string",
    "validate_hex_string",
    "encode_base64url",
    "decode_base64url",
    "decode_hex_or_base64",
    # retry
    "RetryError",
    "aretry_call",
    "backoff_delay",
]
