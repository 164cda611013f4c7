"""
sky_sdk.mysky
-------------

- encrypted_files: path-seed key schedule and the encrypted JSON file format
- tweak:           discoverable-file tweaks for MySky paths
"""

from .encrypted_files import (EncryptedFileMetadata, EncryptedJSONResponse,
                              decrypt_json_file,
                              derive_encrypted_file_key_entropy,
                              derive_encrypted_file_tweak,
                              derive_encrypted_path_seed, encrypt_json_file,
                              pad_file_size)
from .tweak import derive_discoverable_file_tweak, sanitize_path

__all__ = [
    "EncryptedFileMetadata",
    "EncryptedJSONResponse",
    "encrypt_json_file",
    "decrypt_json_file",
    "derive_encrypted_file_key_entropy",
    "derive_encrypted_file_tweak",
    "derive_encrypted_path_seed",
    "pad_file_size",
    "derive_discoverable_file_tweak",
    "sanitize_path",
]
