"""
Symmetric primitives behind the secret storage format.

PBKDF2-HMAC-SHA256 key derivation, AES-128-CTR and the BLAKE2b record MAC,
wrapped so that callers only ever see CCKey errors.
"""

from __future__ import annotations
import hashlib
import os
from typing import Callable, Optional, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..runtime.errors import CryptoDependencyError, ErrorCode, InvalidKeyMaterial

AES_KEY_LENGTH = 16
IV_LENGTH = 16
MAC_LENGTH = 32


class RandomSource:
    """
    Source of random bytes for salts, IVs and key generation.

    Defaults to os.urandom. Tests inject a deterministic source so that
    encrypted records can be compared byte for byte.
    """

    def __init__(self, generator: Optional[Callable[[int], bytes]] = None):
        self._generator = generator or os.urandom

    def random_bytes(self, length: int) -> bytes:
        """Return `length` random bytes."""
        data = self._generator(length)
        if len(data) != length:
            raise CryptoDependencyError(
                f"Random source returned {len(data)} bytes, expected {length}"
            )
        return data


DEFAULT_RANDOM = RandomSource()


def passphrase_bytes(passphrase: Union[str, bytes]) -> bytes:
    """
    Encode a passphrase as UTF-8.

    Raises:
        InvalidKeyMaterial: If passphrase is neither str nor bytes
    """
    if isinstance(passphrase, str):
        return passphrase.encode("utf-8")
    if isinstance(passphrase, (bytes, bytearray)):
        return bytes(passphrase)
    raise InvalidKeyMaterial(
        f"Passphrase must be str or bytes, got {type(passphrase).__name__}",
        code=ErrorCode.INVALID_PASSPHRASE,
    )


def derive_key(passphrase: Union[str, bytes], salt: bytes, iterations: int, length: int = 32) -> bytes:
    """
    Derive a key from a passphrase with PBKDF2-HMAC-SHA256.

    Args:
        passphrase: User passphrase; the empty string is allowed
        salt: Random salt
        iterations: PBKDF2 iteration count
        length: Derived key length in bytes

    Returns:
        Derived key bytes
    """
    if iterations < 1:
        raise InvalidKeyMaterial(f"PBKDF2 iteration count must be positive, got {iterations}")
    if length < 1:
        raise InvalidKeyMaterial(f"Derived key length must be positive, got {length}")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase_bytes(passphrase))


def _aes_ctr(key: bytes, iv: bytes) -> Cipher:
    if len(key) != AES_KEY_LENGTH:
        raise InvalidKeyMaterial(f"AES-128 key must be {AES_KEY_LENGTH} bytes, got {len(key)}")
    if len(iv) != IV_LENGTH:
        raise InvalidKeyMaterial(f"IV must be {IV_LENGTH} bytes, got {len(iv)}")
    return Cipher(algorithms.AES(key), modes.CTR(iv))


def encrypt(plaintext: bytes, key: bytes, iv: bytes) -> bytes:
    """Encrypt with AES-128-CTR. Output has the same length as the input."""
    encryptor = _aes_ctr(key, iv).encryptor()
    return encryptor.update(plaintext) + encryptor.finalize()


def decrypt(ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
    """Decrypt with AES-128-CTR. Performs no authentication."""
    decryptor = _aes_ctr(key, iv).decryptor()
    return decryptor.update(ciphertext) + decryptor.finalize()


def keyed_digest(message: bytes, key: bytes) -> bytes:
    """
    Compute the record MAC: 32-byte BLAKE2b over key || message.

    Raises:
        CryptoDependencyError: If the hash primitive fails
    """
    try:
        digest = hashlib.blake2b(digest_size=MAC_LENGTH)
        digest.update(key)
        digest.update(message)
        return digest.digest()
    except (TypeError, ValueError) as e:
        raise CryptoDependencyError("BLAKE2b digest failed", cause=e) from e


__all__ = [
    "RandomSource",
    "DEFAULT_RANDOM",
    "passphrase_bytes",
    "derive_key",
    "encrypt",
    "decrypt",
    "keyed_digest",
    "AES_KEY_LENGTH",
    "IV_LENGTH",
    "MAC_LENGTH",
]
