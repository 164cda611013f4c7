import json

import pytest

from sky_sdk.errors import ValidationError, VerificationError
from sky_sdk.mysky.encrypted_files import (ENCRYPTION_KEY_LENGTH,
                                           EncryptedFileMetadata,
                                           check_padded_block,
                                           decrypt_json_file,
                                           derive_encrypted_file_key_entropy,
                                           derive_encrypted_file_tweak,
                                           derive_encrypted_path_seed,
                                           encrypt_json_file, pad_file_size,
                                           validate_path_seed)

FILE_SEED = "ab" * 32
DIR_SEED = "0f" * 64
KIB = 1 << 10


@pytest.mark.parametrize(
    "size,padded",
    [
        (0, 0),
        (1, 4 * KIB),
        (4 * KIB, 4 * KIB),
        (4 * KIB + 1, 8 * KIB),
        (80 * KIB, 80 * KIB),
        (80 * KIB + 1, 88 * KIB),
        (160 * KIB + 1, 176 * KIB),
    ],
)
def test_pad_file_size(size, padded):
    assert pad_file_size(size) == padded
    assert check_padded_block(padded)


def test_check_padded_block():
    assert not check_padded_block(4 * KIB + 1)
    assert not check_padded_block(84 * KIB)
    assert check_padded_block(88 * KIB)


def test_encrypt_decrypt_roundtrip():
    key = derive_encrypted_file_key_entropy(FILE_SEED)
    data = {"name": "ada", "tags": ["π", "✓"], "n": 3}
    encrypted = encrypt_json_file(data, EncryptedFileMetadata(), key)
    assert len(encrypted) == 4 * KIB
    assert json.dumps(data).encode() not in encrypted
    assert decrypt_json_file(encrypted, key) == data

    # Fresh nonce every time
    assert encrypt_json_file(data, EncryptedFileMetadata(), key) != encrypted


def test_large_file_is_padded_to_the_next_block():
    key = derive_encrypted_file_key_entropy(FILE_SEED)
    data = {"blob": "x" * (100 * KIB)}
    encrypted = encrypt_json_file(data, EncryptedFileMetadata(), key)
    assert len(encrypted) == 104 * KIB
    assert decrypt_json_file(encrypted, key) == data


def test_decrypt_failures():
    key = derive_encrypted_file_key_entropy(FILE_SEED)
    encrypted = encrypt_json_file({"a": 1}, EncryptedFileMetadata(), key)

    other = derive_encrypted_file_key_entropy("cd" * 32)
    with pytest.raises(VerificationError):
        decrypt_json_file(encrypted, other)

    tampered = bytearray(encrypted)
    tampered[100] ^= 0x01
    with pytest.raises(VerificationError):
        decrypt_json_file(bytes(tampered), key)

    with pytest.raises(VerificationError, match="padded"):
        decrypt_json_file(encrypted[:-1], key)

    future = encrypt_json_file({"a": 1}, EncryptedFileMetadata(version=2), key)
    with pytest.raises(VerificationError, match="version"):
        decrypt_json_file(future, key)


def test_encrypt_validation():
    key = derive_encrypted_file_key_entropy(FILE_SEED)
    with pytest.raises(ValidationError):
        encrypt_json_file([1, 2], EncryptedFileMetadata(), key)  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        encrypt_json_file({"a": 1}, EncryptedFileMetadata(), key[:16])
    with pytest.raises(ValidationError):
        EncryptedFileMetadata(version=256).encode()
    with pytest.raises(VerificationError):
        EncryptedFileMetadata.decode(bytes(15))


def test_metadata_layout():
    raw = EncryptedFileMetadata().encode()
    assert raw == b"\x01" + bytes(15)
    assert EncryptedFileMetadata.decode(raw).version == 1


def test_validate_path_seed():
    assert validate_path_seed(FILE_SEED) == FILE_SEED
    assert validate_path_seed(DIR_SEED, directory=True) == DIR_SEED
    for bad in ("ab" * 31, "zz" * 32, "ab" * 48, 7):
        with pytest.raises(ValidationError):
            validate_path_seed(bad)  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        validate_path_seed(FILE_SEED, directory=True)
    with pytest.raises(ValidationError):
        validate_path_seed(DIR_SEED, directory=False)


def test_key_and_tweak_are_independent():
    key = derive_encrypted_file_key_entropy(FILE_SEED)
    tweak = derive_encrypted_file_tweak(FILE_SEED)
    assert len(key) == ENCRYPTION_KEY_LENGTH
    assert len(tweak) == 64
    assert bytes.fromhex(tweak) != key
    assert derive_encrypted_file_tweak(FILE_SEED) == tweak
    assert derive_encrypted_file_tweak("cd" * 32) != tweak


def test_derive_encrypted_path_seed():
    file_seed = derive_encrypted_path_seed(DIR_SEED, "docs/notes.json", False)
    dir_seed = derive_encrypted_path_seed(DIR_SEED, "docs", True)
    assert len(file_seed) == 64
    assert len(dir_seed) == 128

    # Deriving step by step matches deriving the whole sub path
    assert derive_encrypted_path_seed(dir_seed, "notes.json", False) == file_seed
    assert derive_encrypted_path_seed(DIR_SEED, "/docs//notes.json/", False) == file_seed

    # The directory flag is part of the derivation
    assert derive_encrypted_path_seed(DIR_SEED, "docs", False) != dir_seed[:64]

    with pytest.raises(ValidationError):
        derive_encrypted_path_seed(file_seed, "x", False)
    with pytest.raises(ValidationError):
        derive_encrypted_path_seed(DIR_SEED, "//", False)
