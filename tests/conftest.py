"""
Test bootstrap:
- Deterministic randomness for reproducible records
- Low-iteration keystore configuration so PBKDF2 stays fast
- CCKey instances on in-memory storage
"""
import pytest
import pytest_asyncio

from cckey import CCKey, KeystoreConfig, RandomSource

# Fixed interop vector: this key and passphrase produce the public key below
SATOSHI_PRIVATE_KEY = "a05f81608217738d99da8fd227897b87e8890d3c9159b559c7c8bbd408e5fb6e"
SATOSHI_PUBLIC_KEY = (
    "0eb7cad828f1b48c97571ac5fde6add42a7f9285a204291cdc2a03007480dc70"
    "639d80c57d80ba6bb02fc2237fec1bb357e405e13b7fb8ed4f947fd8f4900abd"
)

TEST_KDF_ITERATIONS = 1024


class CountingRandom:
    """Returns consecutive byte values: 00 01 02 ... wrapping at 256."""

    def __init__(self, start: int = 0):
        self.position = start

    def __call__(self, length: int) -> bytes:
        data = bytes((self.position + i) % 256 for i in range(length))
        self.position += length
        return data


@pytest.fixture
def counting_random():
    """RandomSource drawing 00 01 02 ... so salt/iv/id are predictable."""
    return RandomSource(CountingRandom())


@pytest.fixture
def fast_config():
    """Keystore configuration with a cheap KDF."""
    return KeystoreConfig(kdf_iterations=TEST_KDF_ITERATIONS)


@pytest_asyncio.fixture
async def cckey(fast_config):
    """CCKey on in-memory storage."""
    instance = await CCKey.create(fast_config, use_memory_db=True)
    yield instance
    await instance.close()


# Record produced by external tooling for SATOSHI_PRIVATE_KEY / "satoshi"
EXTERNAL_SECRET = {
    "crypto": {
        "ciphertext": "4f870523e834408c08ace7df91671a2b603761f0dbbfd93fa31a5dcda9947515",
        "cipherparams": {"iv": "c47d44a36824ee5207cf435795e7e583"},
        "cipher": "aes-128-ctr",
        "kdf": "pbkdf2",
        "kdfparams": {
            "dklen": 32,
            "salt": "d187b8eaacbed337261728f33d1dbd51f9532dda82d8c7b8abe4860d2505c43f",
            "c": 262144,
            "prf": "hmac-sha256",
        },
        "mac": "d75a7c45d4c2c4fa4a7b81319e94e27848b188cfed949524f9e6f3b83c66d518",
    },
    "id": "31ea5ae9-dad4-4a5a-9a8e-9a9de80d619e",
    "version": 3,
}
