"""
Key management infrastructure.

Provides the secret storage codec, key identifiers and the key store.
"""

from .identifier import KeyType, derive_identifier, is_key_identifier
from .secret import (
    SecretStorage,
    KdfOptions,
    parse_record,
    encrypt_to_record,
    decrypt_from_record,
)
from .keystore import KeyStore, KeyEntry

__all__ = [
    "KeyType",
    "derive_identifier",
    "is_key_identifier",
    "SecretStorage",
    "KdfOptions",
    "parse_record",
    "encrypt_to_record",
    "decrypt_from_record",
    "KeyStore",
    "KeyEntry",
]
