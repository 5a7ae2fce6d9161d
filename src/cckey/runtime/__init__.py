"""
Runtime support for the keystore engine.
"""

from .errors import (
    ErrorCode,
    CCKeyError,
    InvalidKeyMaterial,
    WrongPassphraseOrCorruptRecord,
    UnsupportedRecordVersion,
    UnknownKeyIdentifier,
    StorageUnavailable,
    CryptoDependencyError,
)

__all__ = [
    "ErrorCode",
    "CCKeyError",
    "InvalidKeyMaterial",
    "WrongPassphraseOrCorruptRecord",
    "UnsupportedRecordVersion",
    "UnknownKeyIdentifier",
    "StorageUnavailable",
    "CryptoDependencyError",
]
