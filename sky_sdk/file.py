"""
MySky file API: discoverable and encrypted files by user id and path.

Discoverable files live at a data key derived from the path
(`derive_discoverable_file_tweak`); encrypted files at a data key derived from
a secret path seed (`derive_encrypted_file_tweak`). Either way the derived key
is already hashed, so every call forces ``hashed_data_key_hex=True``.

Example:
    resp = await client.file.get_json(user_id, "app.hns/profile.json")
    enc = await client.file.get_json_encrypted(user_id, path_seed)
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .config import RequestOptions
from .mysky.encrypted_files import (EncryptedFileMetadata,
                                    EncryptedJSONResponse, decrypt_json_file,
                                    derive_encrypted_file_key_entropy,
                                    derive_encrypted_file_tweak,
                                    encrypt_json_file)
from .mysky.tweak import derive_discoverable_file_tweak
from .registry.entry import validate_public_key
from .skydb.db import EntryData, JSONResponse, SkyDB


class FileClient:
    def __init__(self, db: SkyDB) -> None:
        self.db = db

    # --- discoverable ----------------------------------------------------

    async def get_json(
        self, user_id: str, path: str, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> JSONResponse:
        validate_public_key(user_id)
        data_key = derive_discoverable_file_tweak(path)
        return await self.db.get_json(user_id, data_key, options, **{**overrides, "hashed_data_key_hex": True})

    def get_entry_link(self, user_id: str, path: str) -> str:
        """Entry link (v2 skylink) of the discoverable file at `path`."""
        data_key = derive_discoverable_file_tweak(path)
        return self.db.registry.get_entry_link(user_id, data_key, hashed_data_key_hex=True)

    async def get_entry_data(
        self, user_id: str, path: str, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> EntryData:
        validate_public_key(user_id)
        data_key = derive_discoverable_file_tweak(path)
        return await self.db.get_entry_data(user_id, data_key, options, **{**overrides, "hashed_data_key_hex": True})

    # --- encrypted -------------------------------------------------------

    async def get_json_encrypted(
        self, user_id: str, path_seed: str, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> EncryptedJSONResponse:
        """Absent entries yield ``data=None`` without attempting decryption."""
        validate_public_key(user_id)
        key = derive_encrypted_file_key_entropy(path_seed)
        data_key = derive_encrypted_file_tweak(path_seed)
        resp = await self.db.get_raw_bytes(user_id, data_key, options, **{**overrides, "hashed_data_key_hex": True})
        if resp.data is None:
            return EncryptedJSONResponse(data=None)
        return EncryptedJSONResponse(data=decrypt_json_file(resp.data, key))

    async def set_json_encrypted(
        self,
        private_key: str,
        path_seed: str,
        data: Mapping[str, Any],
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> EncryptedJSONResponse:
        key = derive_encrypted_file_key_entropy(path_seed)
        data_key = derive_encrypted_file_tweak(path_seed)
        encrypted = encrypt_json_file(data, EncryptedFileMetadata(), key)
        await self.db.set_raw_bytes(private_key, data_key, encrypted, options, **{**overrides, "hashed_data_key_hex": True})
        return EncryptedJSONResponse(data=dict(data))


__all__ = ["FileClient"]
