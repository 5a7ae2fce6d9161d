"""
Tests for secp256k1 key pairs, public key derivation and recoverable signatures.
"""

import hashlib
import pytest

from cckey.crypto.primitives import RandomSource
from cckey.crypto.secp256k1 import (
    CURVE_ORDER,
    Secp256k1KeyPair,
    public_key_from_private_key,
    recover_public_key,
    verify_signature,
)
from cckey.runtime.errors import ErrorCode, InvalidKeyMaterial

from conftest import SATOSHI_PRIVATE_KEY, SATOSHI_PUBLIC_KEY


def test_public_key_vector():
    """Known private key derives the known 64-byte public key."""
    public_key = public_key_from_private_key(bytes.fromhex(SATOSHI_PRIVATE_KEY))
    assert len(public_key) == 64
    assert public_key.hex() == SATOSHI_PUBLIC_KEY


def test_key_pair_and_derivation_agree():
    key_pair = Secp256k1KeyPair.from_hex(SATOSHI_PRIVATE_KEY)
    assert key_pair.public_key_bytes == public_key_from_private_key(key_pair.to_bytes())
    assert key_pair.to_hex() == SATOSHI_PRIVATE_KEY
    assert key_pair.public_key_hex() == SATOSHI_PUBLIC_KEY


def test_generate_uses_random_source():
    fixed = bytes.fromhex(SATOSHI_PRIVATE_KEY)
    key_pair = Secp256k1KeyPair.generate(RandomSource(lambda n: fixed))
    assert key_pair.public_key_hex() == SATOSHI_PUBLIC_KEY


def test_generate_rejects_out_of_range_scalars():
    """Zero and the curve order are skipped; the next valid draw is used."""
    draws = [bytes(32), CURVE_ORDER.to_bytes(32, "big"), bytes.fromhex(SATOSHI_PRIVATE_KEY)]
    key_pair = Secp256k1KeyPair.generate(RandomSource(lambda n: draws.pop(0)))
    assert key_pair.to_hex() == SATOSHI_PRIVATE_KEY


def test_generate_random_keys_differ():
    assert Secp256k1KeyPair.generate().to_bytes() != Secp256k1KeyPair.generate().to_bytes()


@pytest.mark.parametrize("private_key", [bytes(31), bytes(33), b""])
def test_wrong_length_private_key(private_key):
    with pytest.raises(InvalidKeyMaterial) as exc_info:
        public_key_from_private_key(private_key)
    assert exc_info.value.code == ErrorCode.INVALID_PRIVATE_KEY


@pytest.mark.parametrize("scalar", [0, CURVE_ORDER, CURVE_ORDER + 1])
def test_out_of_range_private_key(scalar):
    with pytest.raises(InvalidKeyMaterial):
        Secp256k1KeyPair(scalar.to_bytes(32, "big"))


def test_invalid_hex_private_key():
    with pytest.raises(InvalidKeyMaterial):
        Secp256k1KeyPair.from_hex("zz" * 32)


class TestSignatures:
    """Recoverable ECDSA signatures."""

    digest = hashlib.sha256(b"transfer 10 CCC").digest()

    def test_sign_verify_recover(self):
        key_pair = Secp256k1KeyPair.from_hex(SATOSHI_PRIVATE_KEY)
        signature = key_pair.sign(self.digest)
        assert len(signature) == 65
        assert signature[64] in (0, 1)
        assert verify_signature(key_pair.public_key_bytes, self.digest, signature)
        assert recover_public_key(self.digest, signature) == key_pair.public_key_bytes

    def test_signing_is_deterministic(self):
        key_pair = Secp256k1KeyPair.from_hex(SATOSHI_PRIVATE_KEY)
        assert key_pair.sign(self.digest) == key_pair.sign(self.digest)

    def test_s_is_low(self):
        key_pair = Secp256k1KeyPair.generate()
        s = int.from_bytes(key_pair.sign(self.digest)[32:64], "big")
        assert s <= CURVE_ORDER // 2

    def test_verify_rejects_other_digest(self):
        key_pair = Secp256k1KeyPair.from_hex(SATOSHI_PRIVATE_KEY)
        signature = key_pair.sign(self.digest)
        other = hashlib.sha256(b"transfer 11 CCC").digest()
        assert not verify_signature(key_pair.public_key_bytes, other, signature)

    def test_verify_rejects_other_key(self):
        signature = Secp256k1KeyPair.from_hex(SATOSHI_PRIVATE_KEY).sign(self.digest)
        other = Secp256k1KeyPair.generate()
        assert not verify_signature(other.public_key_bytes, self.digest, signature)

    def test_sign_requires_32_byte_digest(self):
        key_pair = Secp256k1KeyPair.from_hex(SATOSHI_PRIVATE_KEY)
        with pytest.raises(InvalidKeyMaterial):
            key_pair.sign(b"short")

    def test_verify_rejects_malformed_public_key(self):
        with pytest.raises(InvalidKeyMaterial):
            verify_signature(bytes(63), self.digest, bytes(65))
