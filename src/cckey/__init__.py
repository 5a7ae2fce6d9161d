"""
CCKey - encrypted keystore for platform and asset keys

Generates, imports, exports and deletes secp256k1 key pairs, persisting
private keys only as version 3 secret storage records.
"""

from .facade import CCKey, KeyManager
from .config import KeystoreConfig, ReimportPolicy, configure_logging
from .keys import (
    KeyType,
    SecretStorage,
    KdfOptions,
    KeyStore,
    derive_identifier,
    encrypt_to_record,
    decrypt_from_record,
    parse_record,
)
from .crypto import RandomSource, Secp256k1KeyPair, public_key_from_private_key
from .storage import StorageBackend, MemoryStorage, FileStorage, SQLiteStorage, open_storage
from .runtime.errors import *

__version__ = "1.0.0"
__all__ = [
    "CCKey",
    "KeyManager",
    "KeystoreConfig",
    "ReimportPolicy",
    "configure_logging",
    "KeyType",
    "SecretStorage",
    "KdfOptions",
    "KeyStore",
    "derive_identifier",
    "encrypt_to_record",
    "decrypt_from_record",
    "parse_record",
    "RandomSource",
    "Secp256k1KeyPair",
    "public_key_from_private_key",
    "StorageBackend",
    "MemoryStorage",
    "FileStorage",
    "SQLiteStorage",
    "open_storage",
    "ErrorCode",
    "CCKeyError",
    "InvalidKeyMaterial",
    "WrongPassphraseOrCorruptRecord",
    "UnsupportedRecordVersion",
    "UnknownKeyIdentifier",
    "StorageUnavailable",
    "CryptoDependencyError",
]
