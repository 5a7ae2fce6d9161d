"""
Secret storage codec.

Converts a raw private key plus passphrase into a version 3 secret storage
record and back. The record layout is the JSON interchange format shared with
external keystore tooling:

    {
      "crypto": {
        "cipher": "aes-128-ctr",
        "cipherparams": {"iv": <hex>},
        "ciphertext": <hex>,
        "kdf": "pbkdf2",
        "kdfparams": {"dklen": 32, "salt": <hex>, "c": 262144, "prf": "hmac-sha256"},
        "mac": <hex>
      },
      "id": <uuid>,
      "version": 3
    }

The MAC over derived_key[16:32] || ciphertext is the only integrity gate; a
record is never decrypted before its MAC checks out.
"""

from __future__ import annotations
import hmac
import json
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..crypto.primitives import (
    DEFAULT_RANDOM,
    IV_LENGTH,
    MAC_LENGTH,
    RandomSource,
    decrypt,
    derive_key,
    encrypt,
    keyed_digest,
)
from ..crypto.secp256k1 import PRIVATE_KEY_LENGTH
from ..runtime.errors import (
    ErrorCode,
    InvalidKeyMaterial,
    UnsupportedRecordVersion,
    WrongPassphraseOrCorruptRecord,
)

logger = logging.getLogger(__name__)

SECRET_STORAGE_VERSION = 3
DEFAULT_KDF_ITERATIONS = 262144
MAX_KDF_ITERATIONS = 1 << 24
DERIVED_KEY_LENGTH = 32
SALT_LENGTH = 32


class CipherKind(str, Enum):
    """Supported symmetric ciphers."""
    AES_128_CTR = "aes-128-ctr"


class KdfKind(str, Enum):
    """Supported key derivation functions."""
    PBKDF2 = "pbkdf2"


class PrfKind(str, Enum):
    """Supported PBKDF2 pseudo-random functions."""
    HMAC_SHA256 = "hmac-sha256"


# (cipher, kdf) combinations this codec can open
SUPPORTED_SCHEMES = frozenset({(CipherKind.AES_128_CTR, KdfKind.PBKDF2)})


def _hex_field(value: str, length: Optional[int] = None) -> str:
    if not isinstance(value, str):
        raise ValueError("expected a hex string")
    try:
        raw = bytes.fromhex(value)
    except ValueError as e:
        raise ValueError(f"invalid hex: {e}") from e
    if length is not None and len(raw) != length:
        raise ValueError(f"expected {length} bytes, got {len(raw)}")
    if not raw:
        raise ValueError("must not be empty")
    return value.lower()


class CipherParams(BaseModel):
    """Cipher parameters: the CTR initialization vector."""
    iv: str

    @field_validator("iv")
    @classmethod
    def validate_iv(cls, v: str) -> str:
        return _hex_field(v, IV_LENGTH)


class KdfParams(BaseModel):
    """PBKDF2 parameters."""
    dklen: int = Field(default=DERIVED_KEY_LENGTH)
    salt: str
    c: int = Field(default=DEFAULT_KDF_ITERATIONS, ge=1, le=MAX_KDF_ITERATIONS)
    prf: PrfKind = PrfKind.HMAC_SHA256

    @field_validator("dklen")
    @classmethod
    def validate_dklen(cls, v: int) -> int:
        if v != DERIVED_KEY_LENGTH:
            raise ValueError(f"dklen must be {DERIVED_KEY_LENGTH}")
        return v

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: str) -> str:
        return _hex_field(v)


class CryptoSection(BaseModel):
    """The `crypto` object of a secret storage record."""
    ciphertext: str
    cipherparams: CipherParams
    cipher: CipherKind
    kdf: KdfKind
    kdfparams: KdfParams
    mac: str

    @field_validator("ciphertext")
    @classmethod
    def validate_ciphertext(cls, v: str) -> str:
        return _hex_field(v, PRIVATE_KEY_LENGTH)

    @field_validator("mac")
    @classmethod
    def validate_mac(cls, v: str) -> str:
        return _hex_field(v, MAC_LENGTH)


class SecretStorage(BaseModel):
    """
    Encrypted private key record.

    `id` is cosmetic; records are looked up by their key identifier, not by
    this value. `meta` is an optional opaque string carried along unchanged.
    """
    crypto: CryptoSection
    id: str
    version: int = SECRET_STORAGE_VERSION
    meta: Optional[str] = None

    @property
    def iv(self) -> bytes:
        return bytes.fromhex(self.crypto.cipherparams.iv)

    @property
    def salt(self) -> bytes:
        return bytes.fromhex(self.crypto.kdfparams.salt)

    @property
    def ciphertext(self) -> bytes:
        return bytes.fromhex(self.crypto.ciphertext)

    @property
    def mac(self) -> str:
        return self.crypto.mac

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the interchange dictionary."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self) -> str:
        """Serialize to interchange JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


@dataclass
class KdfOptions:
    """Tunable key derivation settings for new records."""
    iterations: int = DEFAULT_KDF_ITERATIONS


def _check_scheme(data: Dict[str, Any]) -> None:
    """Reject records outside the supported version/cipher/kdf set or KDF cost."""
    version = data.get("version")
    if version != SECRET_STORAGE_VERSION:
        raise UnsupportedRecordVersion(
            f"Unsupported secret storage version: {version!r}",
            details={"version": version},
        )

    crypto = data.get("crypto")
    if not isinstance(crypto, dict):
        raise InvalidKeyMaterial("Secret storage is missing the crypto section",
                                 code=ErrorCode.INVALID_RECORD)

    try:
        cipher = CipherKind(crypto.get("cipher"))
        kdf = KdfKind(crypto.get("kdf"))
    except ValueError as e:
        raise UnsupportedRecordVersion(
            f"Unsupported cipher/kdf: {crypto.get('cipher')!r}/{crypto.get('kdf')!r}",
            details={"cipher": crypto.get("cipher"), "kdf": crypto.get("kdf")},
            cause=e,
        ) from e
    if (cipher, kdf) not in SUPPORTED_SCHEMES:
        raise UnsupportedRecordVersion(f"Unsupported scheme: {cipher.value}/{kdf.value}")

    kdfparams = crypto.get("kdfparams")
    if isinstance(kdfparams, dict) and "prf" in kdfparams:
        try:
            PrfKind(kdfparams["prf"])
        except ValueError as e:
            raise UnsupportedRecordVersion(f"Unsupported prf: {kdfparams['prf']!r}",
                                           details={"prf": kdfparams["prf"]}, cause=e) from e

    iterations = kdfparams.get("c") if isinstance(kdfparams, dict) else None
    if isinstance(iterations, int) and iterations > MAX_KDF_ITERATIONS:
        raise UnsupportedRecordVersion(
            f"PBKDF2 iteration count {iterations} exceeds the supported maximum {MAX_KDF_ITERATIONS}",
            details={"c": iterations},
        )


def parse_record(data: Union[SecretStorage, Dict[str, Any], str, bytes]) -> SecretStorage:
    """
    Parse secret storage from a dict, JSON text or an existing record.

    Raises:
        UnsupportedRecordVersion: For an unknown version, cipher, kdf or prf
        InvalidKeyMaterial: For any other malformed field
    """
    if isinstance(data, SecretStorage):
        return data

    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise InvalidKeyMaterial("Secret storage is not valid JSON",
                                     code=ErrorCode.INVALID_RECORD, cause=e) from e

    if not isinstance(data, dict):
        raise InvalidKeyMaterial(f"Secret storage must be an object, got {type(data).__name__}",
                                 code=ErrorCode.INVALID_RECORD)

    try:
        _check_scheme(data)
    except UnsupportedRecordVersion:
        logger.warning("Rejected secret storage with unsupported scheme")
        raise

    try:
        return SecretStorage.model_validate(data)
    except ValidationError as e:
        raise InvalidKeyMaterial("Malformed secret storage", code=ErrorCode.INVALID_RECORD,
                                 details={"errors": e.error_count()}, cause=e) from e


def _mac(derived_key: bytes, ciphertext: bytes) -> str:
    return keyed_digest(ciphertext, derived_key[16:32]).hex()


def encrypt_to_record(
    private_key: bytes,
    passphrase: str,
    kdf_options: Optional[KdfOptions] = None,
    meta: Optional[str] = None,
    random_source: Optional[RandomSource] = None,
) -> SecretStorage:
    """
    Encrypt a private key into a fresh secret storage record.

    Every call draws a new salt, IV and record id, so encrypting the same key
    twice gives two different records that open to the same key.

    Args:
        private_key: 32-byte private key
        passphrase: Passphrase; may be empty
        kdf_options: PBKDF2 settings (defaults to 262144 iterations)
        meta: Optional opaque metadata string
        random_source: Randomness for salt, IV and id

    Returns:
        Encrypted record
    """
    if len(private_key) != PRIVATE_KEY_LENGTH:
        raise InvalidKeyMaterial(
            f"Private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(private_key)}",
            code=ErrorCode.INVALID_PRIVATE_KEY,
        )
    options = kdf_options or KdfOptions()
    if not 1 <= options.iterations <= MAX_KDF_ITERATIONS:
        raise InvalidKeyMaterial(
            f"PBKDF2 iteration count must be between 1 and {MAX_KDF_ITERATIONS}, got {options.iterations}"
        )
    source = random_source or DEFAULT_RANDOM

    salt = source.random_bytes(SALT_LENGTH)
    iv = source.random_bytes(IV_LENGTH)
    record_id = uuid.UUID(bytes=source.random_bytes(16), version=4)

    derived_key = derive_key(passphrase, salt, options.iterations, DERIVED_KEY_LENGTH)
    ciphertext = encrypt(private_key, derived_key[0:16], iv)

    return SecretStorage(
        crypto=CryptoSection(
            ciphertext=ciphertext.hex(),
            cipherparams=CipherParams(iv=iv.hex()),
            cipher=CipherKind.AES_128_CTR,
            kdf=KdfKind.PBKDF2,
            kdfparams=KdfParams(
                dklen=DERIVED_KEY_LENGTH,
                salt=salt.hex(),
                c=options.iterations,
                prf=PrfKind.HMAC_SHA256,
            ),
            mac=_mac(derived_key, ciphertext),
        ),
        id=str(record_id),
        version=SECRET_STORAGE_VERSION,
        meta=meta,
    )


def decrypt_from_record(record: Union[SecretStorage, Dict[str, Any], str, bytes], passphrase: str) -> bytes:
    """
    Open a secret storage record.

    Raises:
        WrongPassphraseOrCorruptRecord: If the MAC does not match
    """
    record = parse_record(record)
    params = record.crypto.kdfparams

    derived_key = derive_key(passphrase, record.salt, params.c, params.dklen)
    ciphertext = record.ciphertext
    expected_mac = _mac(derived_key, ciphertext)

    if not hmac.compare_digest(expected_mac, record.mac):
        raise WrongPassphraseOrCorruptRecord()

    return decrypt(ciphertext, derived_key[0:16], record.iv)


__all__ = [
    "SecretStorage",
    "CryptoSection",
    "CipherParams",
    "KdfParams",
    "CipherKind",
    "KdfKind",
    "PrfKind",
    "KdfOptions",
    "SUPPORTED_SCHEMES",
    "SECRET_STORAGE_VERSION",
    "DEFAULT_KDF_ITERATIONS",
    "MAX_KDF_ITERATIONS",
    "parse_record",
    "encrypt_to_record",
    "decrypt_from_record",
]
