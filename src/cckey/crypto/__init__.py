"""
Cryptographic primitives for the keystore.

Provides PBKDF2, AES-128-CTR, the record MAC and secp256k1 key pairs behind a
small, stable interface.
"""

from .primitives import RandomSource, DEFAULT_RANDOM, derive_key, encrypt, decrypt, keyed_digest
from .secp256k1 import (
    Secp256k1KeyPair,
    public_key_from_private_key,
    verify_signature,
    recover_public_key,
)

__all__ = [
    "RandomSource",
    "DEFAULT_RANDOM",
    "derive_key",
    "encrypt",
    "decrypt",
    "keyed_digest",
    "Secp256k1KeyPair",
    "public_key_from_private_key",
    "verify_signature",
    "recover_public_key",
]
