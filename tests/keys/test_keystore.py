"""
Tests for the namespace-partitioned key store.
"""

import asyncio
import pytest

from cckey.crypto.secp256k1 import Secp256k1KeyPair
from cckey.keys.identifier import KeyType, derive_identifier
from cckey.keys.keystore import KeyEntry, KeyStore
from cckey.keys.secret import KdfOptions, encrypt_to_record
from cckey.runtime.errors import InvalidKeyMaterial, StorageUnavailable
from cckey.storage import MemoryStorage


def make_entry():
    key_pair = Secp256k1KeyPair.generate()
    secret = encrypt_to_record(key_pair.to_bytes(), "pw", KdfOptions(iterations=1))
    return derive_identifier(KeyType.PLATFORM, key_pair.public_key_bytes), KeyEntry(secret, key_pair.public_key_bytes)


class BrokenStorage(MemoryStorage):
    """Backend whose every operation fails."""

    async def get(self, key):
        raise OSError("disk gone")

    async def put(self, key, value):
        raise OSError("disk gone")

    async def delete(self, key):
        raise OSError("disk gone")

    async def list_keys(self, prefix=""):
        raise OSError("disk gone")


@pytest.mark.asyncio
async def test_put_get_round_trip():
    store = KeyStore(MemoryStorage())
    key_id, entry = make_entry()
    await store.put(KeyType.PLATFORM, key_id, entry)

    fetched = await store.get(KeyType.PLATFORM, key_id)
    assert fetched.public_key == entry.public_key
    assert fetched.secret == entry.secret


@pytest.mark.asyncio
async def test_get_missing_returns_none():
    store = KeyStore(MemoryStorage())
    assert await store.get(KeyType.PLATFORM, "00" * 20) is None


@pytest.mark.asyncio
async def test_list_keeps_insertion_order_across_overwrite_and_delete():
    store = KeyStore(MemoryStorage())
    entries = [make_entry() for _ in range(3)]
    for key_id, entry in entries:
        await store.put(KeyType.PLATFORM, key_id, entry)
    ids = [key_id for key_id, _ in entries]

    # overwrite keeps position
    await store.put(KeyType.PLATFORM, ids[0], entries[0][1])
    assert await store.list(KeyType.PLATFORM) == ids

    assert await store.delete(KeyType.PLATFORM, ids[1]) is True
    assert await store.list(KeyType.PLATFORM) == [ids[0], ids[2]]


@pytest.mark.asyncio
async def test_delete_missing_is_noop():
    store = KeyStore(MemoryStorage())
    assert await store.delete(KeyType.PLATFORM, "00" * 20) is False


@pytest.mark.asyncio
async def test_namespaces_are_separate():
    store = KeyStore(MemoryStorage())
    key_id, entry = make_entry()
    await store.put(KeyType.PLATFORM, key_id, entry)

    assert await store.list(KeyType.ASSET) == []
    assert await store.get(KeyType.ASSET, key_id) is None
    assert await store.delete(KeyType.ASSET, key_id) is False
    assert await store.list(KeyType.PLATFORM) == [key_id]


@pytest.mark.asyncio
async def test_put_if_absent():
    store = KeyStore(MemoryStorage())
    key_id, entry = make_entry()
    _, replacement = make_entry()

    assert await store.put_if_absent(KeyType.PLATFORM, key_id, entry) is True
    assert await store.put_if_absent(KeyType.PLATFORM, key_id, replacement) is False
    assert (await store.get(KeyType.PLATFORM, key_id)).public_key == entry.public_key


@pytest.mark.asyncio
async def test_concurrent_put_if_absent_writes_once():
    store = KeyStore(MemoryStorage())
    key_id, entry = make_entry()
    results = await asyncio.gather(*[
        store.put_if_absent(KeyType.PLATFORM, key_id, entry) for _ in range(10)
    ])
    assert results.count(True) == 1
    assert await store.list(KeyType.PLATFORM) == [key_id]


@pytest.mark.asyncio
async def test_clear_only_touches_one_namespace():
    store = KeyStore(MemoryStorage())
    for _ in range(2):
        key_id, entry = make_entry()
        await store.put(KeyType.PLATFORM, key_id, entry)
    asset_id, asset_entry = make_entry()
    await store.put(KeyType.ASSET, asset_id, asset_entry)

    assert await store.clear(KeyType.PLATFORM) == 2
    assert await store.list(KeyType.PLATFORM) == []
    assert await store.list(KeyType.ASSET) == [asset_id]


@pytest.mark.asyncio
async def test_backend_failures_become_storage_unavailable():
    store = KeyStore(BrokenStorage())
    key_id, entry = make_entry()

    with pytest.raises(StorageUnavailable) as exc_info:
        await store.put(KeyType.PLATFORM, key_id, entry)
    assert isinstance(exc_info.value.cause, OSError)

    with pytest.raises(StorageUnavailable):
        await store.get(KeyType.PLATFORM, key_id)
    with pytest.raises(StorageUnavailable):
        await store.list(KeyType.PLATFORM)
    with pytest.raises(StorageUnavailable):
        await store.delete(KeyType.PLATFORM, key_id)


@pytest.mark.asyncio
async def test_corrupt_entry_is_reported():
    backend = MemoryStorage()
    await backend.put("platform/" + "00" * 20, "{not json")
    store = KeyStore(backend)
    with pytest.raises(InvalidKeyMaterial):
        await store.get(KeyType.PLATFORM, "00" * 20)


def test_entry_dict_round_trip():
    _, entry = make_entry()
    restored = KeyEntry.from_dict(entry.to_dict())
    assert restored.public_key == entry.public_key
    assert restored.secret == entry.secret


def test_entry_from_malformed_dict():
    with pytest.raises(InvalidKeyMaterial):
        KeyEntry.from_dict({"publicKey": "00"})
