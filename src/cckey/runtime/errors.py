"""
CCKey Error Model

Structured errors raised by the keystore engine. Every failure that crosses the
public API is a CCKeyError subclass carrying an ErrorCode, optional details and
the underlying cause.
"""

from __future__ import annotations
from typing import Optional, Dict, Any
from enum import IntEnum


class ErrorCode(IntEnum):
    """Keystore error codes."""

    # Success
    OK = 0

    # General errors (1-99)
    UNKNOWN = 1
    INTERNAL = 2

    # Key material errors (100-199)
    INVALID_KEY_MATERIAL = 100
    INVALID_PRIVATE_KEY = 101
    INVALID_PUBLIC_KEY = 102
    INVALID_RECORD = 103
    INVALID_PASSPHRASE = 104

    # Secret storage errors (200-299)
    WRONG_PASSPHRASE_OR_CORRUPT_RECORD = 200
    UNSUPPORTED_RECORD_VERSION = 201

    # Lookup errors (300-399)
    UNKNOWN_KEY_IDENTIFIER = 300

    # Storage errors (400-499)
    STORAGE_UNAVAILABLE = 400

    # Crypto dependency errors (500-599)
    CRYPTO_DEPENDENCY_FAILURE = 500


class CCKeyError(Exception):
    """
    Base class for all keystore errors.

    Subclasses pick their code and default message through the class
    attributes; `code` may still be narrowed per instance, e.g. an
    InvalidKeyMaterial raised for a bad public key.
    """

    default_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "Keystore error"

    def __init__(self, message: Optional[str] = None, code: Optional[ErrorCode] = None,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[BaseException] = None):
        self.message = message or self.default_message
        self.code = code if code is not None else self.default_code
        self.details = dict(details) if details else {}
        self.cause = cause
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        """Failure kind, the error code name."""
        return self.code.name

    def __str__(self) -> str:
        text = f"[{self.kind}] {self.message}"
        if self.details:
            text += f" | Details: {self.details}"
        if self.cause is not None:
            text += f" | Caused by: {self.cause}"
        return text

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.kind}, message={self.message!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form; the cause is reduced to its message."""
        result: Dict[str, Any] = {"code": int(self.code), "kind": self.kind, "message": self.message}
        if self.details:
            result["details"] = self.details
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result


class InvalidKeyMaterial(CCKeyError):
    """Malformed private key, public key, passphrase or record field."""
    default_code = ErrorCode.INVALID_KEY_MATERIAL
    default_message = "Invalid key material"


class WrongPassphraseOrCorruptRecord(CCKeyError):
    """MAC verification failed while opening a secret storage record."""
    default_code = ErrorCode.WRONG_PASSPHRASE_OR_CORRUPT_RECORD
    default_message = "Wrong passphrase or corrupt record"


class UnsupportedRecordVersion(CCKeyError):
    """Record uses a version, cipher, KDF or KDF cost outside the supported set."""
    default_code = ErrorCode.UNSUPPORTED_RECORD_VERSION
    default_message = "Unsupported record version"


class UnknownKeyIdentifier(CCKeyError):
    """No record is stored under the requested identifier."""
    default_code = ErrorCode.UNKNOWN_KEY_IDENTIFIER
    default_message = "Unknown key identifier"


class StorageUnavailable(CCKeyError):
    """The storage backend failed."""
    default_code = ErrorCode.STORAGE_UNAVAILABLE
    default_message = "Storage unavailable"


class CryptoDependencyError(CCKeyError):
    """A cryptographic primitive failed unexpectedly. Never recoverable."""
    default_code = ErrorCode.CRYPTO_DEPENDENCY_FAILURE
    default_message = "Cryptographic dependency failure"


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
