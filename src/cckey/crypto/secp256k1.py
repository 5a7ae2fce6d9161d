"""
SECP256K1 key pairs for the platform keystore.

Generation, public key derivation and recoverable ECDSA signatures on top of
the `ecdsa` library. Public keys are always the 64-byte uncompressed point
X || Y without the 0x04 prefix.
"""

from __future__ import annotations
import hashlib
from typing import Optional

from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError
from ecdsa.keys import BadSignatureError
from ecdsa.numbertheory import SquareRootError
from ecdsa.util import sigdecode_string, sigencode_string_canonize

from ..runtime.errors import ErrorCode, InvalidKeyMaterial
from .primitives import DEFAULT_RANDOM, RandomSource

PRIVATE_KEY_LENGTH = 32
PUBLIC_KEY_LENGTH = 64
SIGNATURE_LENGTH = 65
DIGEST_LENGTH = 32

CURVE_ORDER = SECP256k1.order


def _check_private_key(private_key_bytes: bytes) -> None:
    if len(private_key_bytes) != PRIVATE_KEY_LENGTH:
        raise InvalidKeyMaterial(
            f"Private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(private_key_bytes)}",
            code=ErrorCode.INVALID_PRIVATE_KEY,
        )
    scalar = int.from_bytes(private_key_bytes, "big")
    if not 0 < scalar < CURVE_ORDER:
        raise InvalidKeyMaterial(
            "Private key scalar is outside the curve order",
            code=ErrorCode.INVALID_PRIVATE_KEY,
        )


def _check_digest(digest: bytes) -> None:
    if len(digest) != DIGEST_LENGTH:
        raise InvalidKeyMaterial(f"Message digest must be {DIGEST_LENGTH} bytes, got {len(digest)}")


def _verifying_key(public_key_bytes: bytes) -> VerifyingKey:
    if len(public_key_bytes) != PUBLIC_KEY_LENGTH:
        raise InvalidKeyMaterial(
            f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key_bytes)}",
            code=ErrorCode.INVALID_PUBLIC_KEY,
        )
    try:
        return VerifyingKey.from_string(public_key_bytes, curve=SECP256k1)
    except MalformedPointError as e:
        raise InvalidKeyMaterial("Public key is not a point on secp256k1",
                                 code=ErrorCode.INVALID_PUBLIC_KEY, cause=e) from e


def public_key_from_private_key(private_key_bytes: bytes) -> bytes:
    """
    Derive the 64-byte public key for a 32-byte private key.

    Both key generation and raw import go through this function.
    """
    _check_private_key(private_key_bytes)
    signing_key = SigningKey.from_string(private_key_bytes, curve=SECP256k1)
    return signing_key.get_verifying_key().to_string()


class Secp256k1KeyPair:
    """
    SECP256K1 key pair.

    Lives only for the duration of a keystore call; the private scalar is
    never written anywhere except into an encrypted record.
    """

    def __init__(self, private_key_bytes: bytes):
        """
        Initialize key pair.

        Args:
            private_key_bytes: 32-byte private key

        Raises:
            InvalidKeyMaterial: If the key is not a valid secp256k1 scalar
        """
        self.public_key_bytes = public_key_from_private_key(private_key_bytes)
        self._private_key_bytes = bytes(private_key_bytes)

    @classmethod
    def generate(cls, random_source: Optional[RandomSource] = None) -> Secp256k1KeyPair:
        """Generate a key pair with a uniformly random scalar in [1, n-1]."""
        source = random_source or DEFAULT_RANDOM
        while True:
            candidate = source.random_bytes(PRIVATE_KEY_LENGTH)
            if 0 < int.from_bytes(candidate, "big") < CURVE_ORDER:
                return cls(candidate)

    @classmethod
    def from_hex(cls, private_key_hex: str) -> Secp256k1KeyPair:
        """Create key pair from private key hex string."""
        try:
            private_key_bytes = bytes.fromhex(private_key_hex)
        except ValueError as e:
            raise InvalidKeyMaterial(f"Invalid hex string: {e}",
                                     code=ErrorCode.INVALID_PRIVATE_KEY, cause=e) from e
        return cls(private_key_bytes)

    def sign(self, digest: bytes) -> bytes:
        """
        Sign a 32-byte message digest.

        Returns:
            65 bytes: r || s || recovery id. The nonce follows RFC 6979 and s
            is normalised to the lower half of the curve order.
        """
        _check_digest(digest)
        signing_key = SigningKey.from_string(self._private_key_bytes, curve=SECP256k1)
        signature = signing_key.sign_digest_deterministic(
            digest, hashfunc=hashlib.sha256, sigencode=sigencode_string_canonize
        )
        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            signature, digest, SECP256k1, hashfunc=hashlib.sha256, sigdecode=sigdecode_string
        )
        for recovery_id, candidate in enumerate(candidates):
            if candidate.to_string() == self.public_key_bytes:
                return signature + bytes([recovery_id])
        raise InvalidKeyMaterial("Could not determine signature recovery id")

    def public_key_hex(self) -> str:
        """Get public key as hex string."""
        return self.public_key_bytes.hex()

    def to_hex(self) -> str:
        """Get private key as hex string."""
        return self._private_key_bytes.hex()

    def to_bytes(self) -> bytes:
        """Get private key as bytes."""
        return self._private_key_bytes

    def __repr__(self) -> str:
        return f"Secp256k1KeyPair(public={self.public_key_bytes.hex()[:16]}...)"


def verify_signature(public_key_bytes: bytes, digest: bytes, signature: bytes) -> bool:
    """Check a 64- or 65-byte signature over a 32-byte digest."""
    _check_digest(digest)
    if len(signature) not in (SIGNATURE_LENGTH - 1, SIGNATURE_LENGTH):
        return False
    verifying_key = _verifying_key(public_key_bytes)
    try:
        return verifying_key.verify_digest(signature[:64], digest, sigdecode=sigdecode_string)
    except BadSignatureError:
        return False


def recover_public_key(digest: bytes, signature: bytes) -> bytes:
    """Recover the signer's 64-byte public key from a 65-byte signature."""
    _check_digest(digest)
    if len(signature) != SIGNATURE_LENGTH:
        raise InvalidKeyMaterial(f"Recoverable signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}")
    recovery_id = signature[64]
    try:
        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            signature[:64], digest, SECP256k1, hashfunc=hashlib.sha256, sigdecode=sigdecode_string
        )
    except (SquareRootError, MalformedPointError) as e:
        raise InvalidKeyMaterial("Signature does not recover to a curve point", cause=e) from e
    if recovery_id >= len(candidates):
        raise InvalidKeyMaterial(f"Invalid recovery id: {recovery_id}")
    return candidates[recovery_id].to_string()


__all__ = [
    "Secp256k1KeyPair",
    "public_key_from_private_key",
    "verify_signature",
    "recover_public_key",
    "PRIVATE_KEY_LENGTH",
    "PUBLIC_KEY_LENGTH",
    "SIGNATURE_LENGTH",
]
