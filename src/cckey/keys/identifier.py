"""
Key identifiers.

A key identifier is the 20-byte BLAKE2b digest of a 64-byte public key, keyed
with the tag of the key type it belongs to. The same public key therefore
maps to different identifiers in different namespaces.
"""

from __future__ import annotations
import hashlib
import re
from enum import Enum
from typing import Union

from ..crypto.secp256k1 import PUBLIC_KEY_LENGTH
from ..runtime.errors import ErrorCode, InvalidKeyMaterial

IDENTIFIER_LENGTH = 20

_IDENTIFIER_RE = re.compile(r"^[0-9a-f]{40}$")


class KeyType(Enum):
    """Key namespaces."""
    PLATFORM = "platform"
    ASSET = "asset"

    @property
    def tag(self) -> bytes:
        """Digest key separating this namespace from the others."""
        return f"cckey/{self.value}".encode("ascii")


def derive_identifier(key_type: KeyType, public_key: Union[bytes, str]) -> str:
    """
    Derive the 40-character hex identifier of a public key.

    Args:
        key_type: Namespace the key belongs to
        public_key: 64-byte public key, as bytes or hex

    Returns:
        Lowercase hex identifier
    """
    if isinstance(public_key, str):
        try:
            public_key = bytes.fromhex(public_key)
        except ValueError as e:
            raise InvalidKeyMaterial(f"Invalid public key hex: {e}",
                                     code=ErrorCode.INVALID_PUBLIC_KEY, cause=e) from e
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise InvalidKeyMaterial(
            f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}",
            code=ErrorCode.INVALID_PUBLIC_KEY,
        )
    digest = hashlib.blake2b(public_key, digest_size=IDENTIFIER_LENGTH, key=key_type.tag)
    return digest.hexdigest()


def is_key_identifier(value: object) -> bool:
    """Check that a value has the shape of a key identifier."""
    return isinstance(value, str) and _IDENTIFIER_RE.match(value) is not None


__all__ = ["KeyType", "derive_identifier", "is_key_identifier", "IDENTIFIER_LENGTH"]
