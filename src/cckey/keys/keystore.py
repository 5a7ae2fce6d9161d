"""
Key store.

Maps (key type, key identifier) to an encrypted key entry on top of a storage
backend. Each namespace lives under its own key prefix and has its own write
lock, so mutations within a namespace never interleave while reads run
freely.
"""

from __future__ import annotations
import asyncio
import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..runtime.errors import CCKeyError, ErrorCode, InvalidKeyMaterial, StorageUnavailable
from ..storage.backend import StorageBackend
from .identifier import KeyType
from .secret import SecretStorage, parse_record

logger = logging.getLogger(__name__)


class KeyEntry:
    """
    A stored key: its encrypted record plus the public key.

    The public key is kept next to the record so that it can be served
    without a passphrase. Nothing in an entry is secret in the clear.
    """

    def __init__(self, secret: SecretStorage, public_key: bytes):
        """
        Initialize key entry.

        Args:
            secret: Encrypted private key record
            public_key: 64-byte public key
        """
        self.secret = secret
        self.public_key = public_key

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "secret": self.secret.to_dict(),
            "publicKey": self.public_key.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> KeyEntry:
        """Create from dictionary representation."""
        try:
            public_key = bytes.fromhex(data["publicKey"])
            secret = data["secret"]
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidKeyMaterial("Malformed key entry", code=ErrorCode.INVALID_RECORD, cause=e) from e
        return cls(secret=parse_record(secret), public_key=public_key)

    def __repr__(self) -> str:
        return f"KeyEntry(public_key='{self.public_key.hex()[:16]}...')"


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Report backend failures as StorageUnavailable."""
    try:
        yield
    except CCKeyError:
        raise
    except Exception as e:
        raise StorageUnavailable(f"Storage {operation} failed", cause=e) from e


class KeyStore:
    """
    Namespace-partitioned store of key entries.

    Listing follows insertion order. Overwriting an entry keeps its position
    and deleting one leaves the order of the others unchanged.
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend
        self._locks: Dict[KeyType, asyncio.Lock] = {}

    @staticmethod
    def _prefix(key_type: KeyType) -> str:
        return f"{key_type.value}/"

    def _storage_key(self, key_type: KeyType, key_id: str) -> str:
        return self._prefix(key_type) + key_id

    def write_lock(self, key_type: KeyType) -> asyncio.Lock:
        """Lock serializing mutations of one namespace."""
        lock = self._locks.get(key_type)
        if lock is None:
            lock = self._locks[key_type] = asyncio.Lock()
        return lock

    async def _write(self, key_type: KeyType, key_id: str, entry: KeyEntry) -> None:
        value = json.dumps(entry.to_dict(), separators=(",", ":"))
        with _storage_errors("write"):
            await self.backend.put(self._storage_key(key_type, key_id), value)
        logger.debug(f"Stored key {key_id} in {key_type.value} namespace")

    async def put(self, key_type: KeyType, key_id: str, entry: KeyEntry) -> None:
        """Insert or overwrite an entry."""
        async with self.write_lock(key_type):
            await self._write(key_type, key_id, entry)

    async def put_if_absent(self, key_type: KeyType, key_id: str, entry: KeyEntry) -> bool:
        """
        Insert an entry unless the identifier is already stored.

        Returns:
            True if the entry was written
        """
        async with self.write_lock(key_type):
            if await self.contains(key_type, key_id):
                logger.debug(f"Key {key_id} already present in {key_type.value} namespace")
                return False
            await self._write(key_type, key_id, entry)
            return True

    async def get(self, key_type: KeyType, key_id: str) -> Optional[KeyEntry]:
        """Fetch an entry, or None if the identifier is not stored."""
        with _storage_errors("read"):
            value = await self.backend.get(self._storage_key(key_type, key_id))
        if value is None:
            return None
        try:
            data = json.loads(value)
        except ValueError as e:
            raise InvalidKeyMaterial(f"Stored entry {key_id} is not valid JSON",
                                     code=ErrorCode.INVALID_RECORD, cause=e) from e
        return KeyEntry.from_dict(data)

    async def contains(self, key_type: KeyType, key_id: str) -> bool:
        with _storage_errors("read"):
            return await self.backend.get(self._storage_key(key_type, key_id)) is not None

    async def list(self, key_type: KeyType) -> List[str]:
        """List identifiers of a namespace in insertion order."""
        prefix = self._prefix(key_type)
        with _storage_errors("read"):
            keys = await self.backend.list_keys(prefix)
        return [key[len(prefix):] for key in keys]

    async def delete(self, key_type: KeyType, key_id: str) -> bool:
        """Remove an entry. Unknown identifiers are a no-op returning False."""
        async with self.write_lock(key_type):
            with _storage_errors("delete"):
                deleted = await self.backend.delete(self._storage_key(key_type, key_id))
        if deleted:
            logger.debug(f"Deleted key {key_id} from {key_type.value} namespace")
        return deleted

    async def clear(self, key_type: KeyType) -> int:
        """Delete every entry of a namespace and return how many were removed."""
        prefix = self._prefix(key_type)
        deleted_count = 0
        async with self.write_lock(key_type):
            with _storage_errors("delete"):
                for key in await self.backend.list_keys(prefix):
                    if await self.backend.delete(key):
                        deleted_count += 1
        logger.debug(f"Cleared {deleted_count} keys from {key_type.value} namespace")
        return deleted_count

    async def close(self) -> None:
        with _storage_errors("close"):
            await self.backend.close()

    def __repr__(self) -> str:
        return f"KeyStore(backend={self.backend!r})"


__all__ = ["KeyStore", "KeyEntry"]
