"""
Encrypted JSON files addressed by a shareable path seed.

A path seed is a hex secret: 64 characters for a file, 128 for a directory.
From it two independent values are derived with salted SHA-512:

- the symmetric key (``derive_encrypted_file_key_entropy``)
- the registry tweak used as hashed data key (``derive_encrypted_file_tweak``)

so that knowing where a file lives does not reveal how to read it.

File format
-----------
    nonce (24) || secretbox( metadata (16) || utf-8 JSON || zero padding )

The metadata block starts with the format version (1); the rest is reserved.
The total size is padded up with `pad_file_size` so ciphertext length leaks
only a coarse size bucket.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import nacl.exceptions
import nacl.secret
import nacl.utils

from ..crypto.hashing import sha512, sha512_all
from ..errors import ValidationError, VerificationError
from ..utils.bytes import BytesLike, from_hex, is_hex_string, to_hex

ENCRYPTED_JSON_RESPONSE_VERSION = 1

ENCRYPTION_KEY_LENGTH = nacl.secret.SecretBox.KEY_SIZE  # 32
ENCRYPTION_NONCE_LENGTH = nacl.secret.SecretBox.NONCE_SIZE  # 24
ENCRYPTION_OVERHEAD_LENGTH = nacl.secret.SecretBox.MACBYTES  # 16
ENCRYPTION_HIDDEN_FIELD_METADATA_LENGTH = 16

ENCRYPTION_PATH_SEED_FILE_LENGTH = 64
ENCRYPTION_PATH_SEED_DIRECTORY_LENGTH = 128

SALT_ENCRYPTION = "encryption"
SALT_ENCRYPTED_TWEAK = "encrypted filesystem tweak"
SALT_ENCRYPTED_CHILD = "encrypted filesystem child"

_DATA_KEY_LENGTH = 32
_KIB = 1 << 10
_MAX_PADDING_POWER = 53

JsonDict = Dict[str, Any]


@dataclass(frozen=True)
class EncryptedFileMetadata:
    version: int = ENCRYPTED_JSON_RESPONSE_VERSION

    def encode(self) -> bytes:
        if not 0 <= self.version <= 255:
            raise ValidationError("metadata version must fit in one byte", name="metadata.version", value=self.version)
        return bytes([self.version]) + bytes(ENCRYPTION_HIDDEN_FIELD_METADATA_LENGTH - 1)

    @classmethod
    def decode(cls, raw: bytes) -> "EncryptedFileMetadata":
        if len(raw) != ENCRYPTION_HIDDEN_FIELD_METADATA_LENGTH:
            raise VerificationError(f"metadata must be {ENCRYPTION_HIDDEN_FIELD_METADATA_LENGTH} bytes, got {len(raw)}")
        return cls(version=raw[0])


@dataclass(frozen=True)
class EncryptedJSONResponse:
    data: Optional[JsonDict]


# --- padding ----------------------------------------------------------------------


def pad_file_size(initial_size: int) -> int:
    """
    Round `initial_size` up to its padding block.

    Files up to 80 KiB pad to 4 KiB blocks, up to 160 KiB to 8 KiB blocks,
    and so on, doubling both bounds at every step.
    """
    for n in range(_MAX_PADDING_POWER):
        if initial_size <= (1 << n) * 80 * _KIB:
            block = (1 << n) * 4 * _KIB
            if initial_size % block:
                return initial_size - (initial_size % block) + block
            return initial_size
    raise ValidationError("could not pad file size, overflow detected", name="size", value=initial_size)


def check_padded_block(size: int) -> bool:
    for n in range(_MAX_PADDING_POWER):
        if size <= (1 << n) * 80 * _KIB:
            return size % ((1 << n) * 4 * _KIB) == 0
    raise ValidationError("could not check padded file size, overflow detected", name="size", value=size)


# --- key schedule -------------------------------------------------------------------


def validate_path_seed(path_seed: str, *, directory: Optional[bool] = None) -> str:
    """`directory` None accepts either length."""
    if not isinstance(path_seed, str):
        raise ValidationError(f"expected a string, got {type(path_seed).__name__}", name="pathSeed")
    if directory is None:
        allowed = (ENCRYPTION_PATH_SEED_FILE_LENGTH, ENCRYPTION_PATH_SEED_DIRECTORY_LENGTH)
    elif directory:
        allowed = (ENCRYPTION_PATH_SEED_DIRECTORY_LENGTH,)
    else:
        allowed = (ENCRYPTION_PATH_SEED_FILE_LENGTH,)
    if len(path_seed) not in allowed or not is_hex_string(path_seed):
        raise ValidationError(
            f"expected a hex path seed of length {' or '.join(map(str, allowed))}, got length {len(path_seed)}",
            name="pathSeed",
        )
    return path_seed


def derive_encrypted_file_key_entropy(path_seed: str) -> bytes:
    validate_path_seed(path_seed)
    entropy = sha512_all([SALT_ENCRYPTION, path_seed])
    return entropy[:ENCRYPTION_KEY_LENGTH]


def derive_encrypted_file_tweak(path_seed: str) -> str:
    """Hex tweak, used as a pre-hashed data key."""
    validate_path_seed(path_seed)
    hashed_path_seed = sha512(path_seed)[:_DATA_KEY_LENGTH]
    tweak = sha512_all([SALT_ENCRYPTED_TWEAK, hashed_path_seed])
    return to_hex(tweak[:_DATA_KEY_LENGTH])


def _sanitize_sub_path(sub_path: str) -> str:
    if not isinstance(sub_path, str):
        raise ValidationError(f"expected a string, got {type(sub_path).__name__}", name="subPath")
    parts = [p for p in sub_path.split("/") if p]
    if not parts:
        raise ValidationError("empty sub path", name="subPath", value=sub_path)
    return "/".join(parts)


def derive_encrypted_path_seed(path_seed: str, sub_path: str, is_directory: bool) -> str:
    """
    Seed of a descendant of directory `path_seed`. Every component except the
    last is a directory; file seeds are truncated to 32 bytes.
    """
    validate_path_seed(path_seed, directory=True)
    names = _sanitize_sub_path(sub_path).split("/")
    seed = from_hex(path_seed, name="pathSeed")
    child_salt = sha512(SALT_ENCRYPTED_CHILD)
    for i, name in enumerate(names):
        directory = is_directory if i == len(names) - 1 else True
        derivation_path = sha512(seed + (b"\x01" if directory else b"\x00") + name.encode("utf-8"))
        seed = sha512(child_salt + derivation_path)
    if not is_directory:
        seed = seed[: ENCRYPTION_PATH_SEED_FILE_LENGTH // 2]
    return to_hex(seed)


# --- file codec ----------------------------------------------------------------------


def _check_key(key: BytesLike) -> bytes:
    key = bytes(key)
    if len(key) != ENCRYPTION_KEY_LENGTH:
        raise ValidationError(f"expected a {ENCRYPTION_KEY_LENGTH}-byte key, got {len(key)}", name="key")
    return key


def encrypt_json_file(data: Mapping[str, Any], metadata: EncryptedFileMetadata, key: BytesLike) -> bytes:
    if not isinstance(data, Mapping):
        raise ValidationError(f"expected a JSON object, got {type(data).__name__}", name="json")
    box = nacl.secret.SecretBox(_check_key(key))
    body = json.dumps(dict(data), separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    overhead = ENCRYPTION_NONCE_LENGTH + ENCRYPTION_OVERHEAD_LENGTH + ENCRYPTION_HIDDEN_FIELD_METADATA_LENGTH
    final_size = pad_file_size(len(body) + overhead) - overhead
    plaintext = metadata.encode() + body + bytes(final_size - len(body))

    nonce = nacl.utils.random(ENCRYPTION_NONCE_LENGTH)
    # EncryptedMessage is nonce || ciphertext
    return bytes(box.encrypt(plaintext, nonce))


def decrypt_json_file(data: BytesLike, key: BytesLike) -> JsonDict:
    data = bytes(data)
    box = nacl.secret.SecretBox(_check_key(key))
    if not check_padded_block(len(data)):
        raise VerificationError(
            f"expected padded encrypted data, length was {len(data)}, nearest padded block is {pad_file_size(len(data))}"
        )
    nonce, ciphertext = data[:ENCRYPTION_NONCE_LENGTH], data[ENCRYPTION_NONCE_LENGTH:]
    try:
        plaintext = box.decrypt(ciphertext, nonce)
    except nacl.exceptions.CryptoError as e:
        raise VerificationError("could not decrypt given encrypted JSON file") from e

    metadata = EncryptedFileMetadata.decode(plaintext[:ENCRYPTION_HIDDEN_FIELD_METADATA_LENGTH])
    if metadata.version != ENCRYPTED_JSON_RESPONSE_VERSION:
        raise VerificationError(f"unsupported encrypted JSON version {metadata.version}")

    body = plaintext[ENCRYPTION_HIDDEN_FIELD_METADATA_LENGTH:].rstrip(b"\x00")
    try:
        parsed = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise VerificationError(f"decrypted content is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise VerificationError(f"decrypted content is not a JSON object: {type(parsed).__name__}")
    return parsed


__all__ = [
    "ENCRYPTED_JSON_RESPONSE_VERSION",
    "ENCRYPTION_KEY_LENGTH",
    "ENCRYPTION_NONCE_LENGTH",
    "ENCRYPTION_OVERHEAD_LENGTH",
    "ENCRYPTION_HIDDEN_FIELD_METADATA_LENGTH",
    "ENCRYPTION_PATH_SEED_FILE_LENGTH",
    "ENCRYPTION_PATH_SEED_DIRECTORY_LENGTH",
    "EncryptedFileMetadata",
    "EncryptedJSONResponse",
    "pad_file_size",
    "check_padded_block",
    "validate_path_seed",
    "derive_encrypted_file_key_entropy",
    "derive_encrypted_file_tweak",
    "derive_encrypted_path_seed",
    "encrypt_json_file",
    "decrypt_json_file",
]
