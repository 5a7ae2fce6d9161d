"""
Tests for the error model.
"""

from cckey.runtime.errors import (
    CCKeyError,
    ErrorCode,
    InvalidKeyMaterial,
    StorageUnavailable,
    UnknownKeyIdentifier,
    UnsupportedRecordVersion,
    WrongPassphraseOrCorruptRecord,
)


def test_subclasses_carry_codes():
    assert WrongPassphraseOrCorruptRecord().code == ErrorCode.WRONG_PASSPHRASE_OR_CORRUPT_RECORD
    assert UnsupportedRecordVersion().code == ErrorCode.UNSUPPORTED_RECORD_VERSION
    assert UnknownKeyIdentifier().code == ErrorCode.UNKNOWN_KEY_IDENTIFIER
    assert StorageUnavailable().code == ErrorCode.STORAGE_UNAVAILABLE
    assert InvalidKeyMaterial().code == ErrorCode.INVALID_KEY_MATERIAL
    assert InvalidKeyMaterial(code=ErrorCode.INVALID_PUBLIC_KEY).code == ErrorCode.INVALID_PUBLIC_KEY


def test_all_errors_share_base():
    for error in (InvalidKeyMaterial(), WrongPassphraseOrCorruptRecord(), UnknownKeyIdentifier(),
                  StorageUnavailable(), UnsupportedRecordVersion()):
        assert isinstance(error, CCKeyError)


def test_str_includes_details_and_cause():
    error = StorageUnavailable("write failed", details={"key": "a"}, cause=OSError("disk full"))
    text = str(error)
    assert text.startswith("[STORAGE_UNAVAILABLE] write failed")
    assert "Details: {'key': 'a'}" in text
    assert "Caused by: disk full" in text


def test_to_dict():
    error = UnknownKeyIdentifier("missing", details={"key": "ab"})
    assert error.to_dict() == {
        "code": 300,
        "kind": "UNKNOWN_KEY_IDENTIFIER",
        "message": "missing",
        "details": {"key": "ab"},
    }


def test_to_dict_includes_cause():
    error = StorageUnavailable(cause=OSError("disk full"))
    assert error.to_dict() == {
        "code": 400,
        "kind": "STORAGE_UNAVAILABLE",
        "message": "Storage unavailable",
        "cause": "disk full",
    }


def test_default_message_and_repr():
    error = WrongPassphraseOrCorruptRecord()
    assert error.message == "Wrong passphrase or corrupt record"
    assert str(error) == "[WRONG_PASSPHRASE_OR_CORRUPT_RECORD] Wrong passphrase or corrupt record"
    assert repr(error) == (
        "WrongPassphraseOrCorruptRecord(code=WRONG_PASSPHRASE_OR_CORRUPT_RECORD, "
        "message='Wrong passphrase or corrupt record')"
    )
