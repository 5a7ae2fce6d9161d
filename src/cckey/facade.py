"""
CCKey Facade.

Provides the key management API: one KeyManager per key type, all backed by a
single KeyStore that the CCKey instance owns.

Example:
    ```python
    from cckey import CCKey

    async with await CCKey.create(use_memory_db=True) as cckey:
        key = await cckey.platform.create_key("satoshi")
        public_key = await cckey.platform.get_public_key(key)
        secret = await cckey.platform.export_key(key, "satoshi")
    ```

Key derivation (PBKDF2 with hundreds of thousands of iterations), AES and
curve arithmetic run in the loop's default executor, so a slow derivation
never stalls unrelated coroutines.
"""

from __future__ import annotations
import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from .config import KeystoreConfig, ReimportPolicy, configure_logging
from .crypto.primitives import DEFAULT_RANDOM, RandomSource, passphrase_bytes
from .crypto.secp256k1 import Secp256k1KeyPair
from .keys.identifier import KeyType, derive_identifier, is_key_identifier
from .keys.keystore import KeyEntry, KeyStore
from .keys.secret import KdfOptions, SecretStorage, decrypt_from_record, encrypt_to_record, parse_record
from .runtime.errors import ErrorCode, InvalidKeyMaterial, UnknownKeyIdentifier
from .storage import MemoryStorage, StorageBackend, open_storage

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _hex_bytes(value: Union[str, bytes], what: str, code: ErrorCode) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise InvalidKeyMaterial(f"{what} must be hex or bytes", code=code)
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise InvalidKeyMaterial(f"Invalid {what} hex: {e}", code=code, cause=e) from e


def _check_passphrase(passphrase: Union[str, bytes]) -> None:
    # checked before any store lookup
    passphrase_bytes(passphrase)


class KeyManager:
    """
    Key operations for one key type.

    Obtained from CCKey.platform, CCKey.asset or CCKey.manager(); not meant
    to be constructed directly.
    """

    def __init__(self, key_type: KeyType, store: KeyStore, config: KeystoreConfig,
                 random_source: RandomSource):
        self.key_type = key_type
        self._store = store
        self._config = config
        self._random = random_source
        self._kdf_options = KdfOptions(iterations=config.kdf_iterations)

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        """Run CPU-bound crypto work off the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args))

    def _seal(self, key_pair: Secp256k1KeyPair, passphrase: str, meta: Optional[str]) -> Tuple[str, KeyEntry]:
        secret = encrypt_to_record(key_pair.to_bytes(), passphrase, self._kdf_options, meta, self._random)
        key_id = derive_identifier(self.key_type, key_pair.public_key_bytes)
        return key_id, KeyEntry(secret, key_pair.public_key_bytes)

    async def _save(self, key_pair: Secp256k1KeyPair, passphrase: str, meta: Optional[str]) -> str:
        key_id = derive_identifier(self.key_type, key_pair.public_key_bytes)
        keep_existing = self._config.reimport_policy is ReimportPolicy.KEEP_EXISTING

        # skip the expensive encryption when the stored record will be kept anyway
        if keep_existing and await self._store.contains(self.key_type, key_id):
            logger.debug(f"Key {key_id} already stored, keeping existing record")
            return key_id

        key_id, entry = await self._run(self._seal, key_pair, passphrase, meta)
        if keep_existing:
            await self._store.put_if_absent(self.key_type, key_id, entry)
        else:
            await self._store.put(self.key_type, key_id, entry)
        return key_id

    async def _require(self, key: str) -> KeyEntry:
        entry = await self._store.get(self.key_type, key) if is_key_identifier(key) else None
        if entry is None:
            raise UnknownKeyIdentifier(f"Unknown {self.key_type.value} key: {key}",
                                       details={"key": key, "keyType": self.key_type.value})
        return entry

    async def create_key(self, passphrase: str, meta: Optional[str] = None) -> str:
        """
        Generate a new key pair and store it encrypted under passphrase.

        An empty passphrase is accepted and yields a valid, weakly protected
        record.

        Returns:
            Key identifier
        """
        _check_passphrase(passphrase)
        key_pair = await self._run(Secp256k1KeyPair.generate, self._random)
        return await self._save(key_pair, passphrase, meta)

    async def import_raw(self, private_key: Union[str, bytes], passphrase: str,
                         meta: Optional[str] = None) -> str:
        """
        Store an existing raw private key.

        Args:
            private_key: 32-byte private key, hex or bytes
            passphrase: Passphrase to encrypt it with
            meta: Optional opaque metadata string

        Returns:
            Key identifier; the same key always yields the same identifier
        """
        _check_passphrase(passphrase)
        raw = _hex_bytes(private_key, "private key", ErrorCode.INVALID_PRIVATE_KEY)
        key_pair = await self._run(Secp256k1KeyPair, raw)
        return await self._save(key_pair, passphrase, meta)

    async def import_key(self, secret: Union[SecretStorage, Dict[str, Any], str, bytes],
                         passphrase: str) -> str:
        """
        Import a secret storage record produced elsewhere.

        The record is opened with passphrase and the key is stored under a
        fresh encryption (new salt and IV) with the same passphrase. The
        record's meta string is carried over.

        Returns:
            Key identifier
        """
        _check_passphrase(passphrase)
        record = parse_record(secret)
        raw = await self._run(decrypt_from_record, record, passphrase)
        key_pair = await self._run(Secp256k1KeyPair, raw)
        return await self._save(key_pair, passphrase, record.meta)

    async def export_key(self, key: str, passphrase: str) -> Dict[str, Any]:
        """
        Return the stored secret storage record after checking passphrase.

        The record is returned as stored, not re-encrypted.
        """
        _check_passphrase(passphrase)
        entry = await self._require(key)
        await self._run(decrypt_from_record, entry.secret, passphrase)
        return entry.secret.to_dict()

    async def export_raw_key(self, key: str, passphrase: str) -> str:
        """Decrypt a stored key and return the private key as hex."""
        _check_passphrase(passphrase)
        entry = await self._require(key)
        raw = await self._run(decrypt_from_record, entry.secret, passphrase)
        return raw.hex()

    async def get_public_key(self, key: str) -> Optional[str]:
        """Return the public key as hex, or None if the key is not stored."""
        if not is_key_identifier(key):
            return None
        entry = await self._store.get(self.key_type, key)
        return entry.public_key.hex() if entry else None

    async def get_keys(self) -> List[str]:
        """List stored key identifiers in creation order."""
        return await self._store.list(self.key_type)

    async def delete_key(self, key: str) -> bool:
        """
        Delete a stored key.

        Returns:
            True if a key was removed; False if it was not stored
        """
        if not is_key_identifier(key):
            return False
        return await self._store.delete(self.key_type, key)

    async def sign(self, key: str, message: Union[str, bytes], passphrase: str) -> str:
        """
        Sign a 32-byte message digest with a stored key.

        Returns:
            65-byte recoverable signature (r || s || recovery id) as hex
        """
        digest = _hex_bytes(message, "message", ErrorCode.INVALID_KEY_MATERIAL)
        _check_passphrase(passphrase)
        entry = await self._require(key)
        raw = await self._run(decrypt_from_record, entry.secret, passphrase)
        key_pair = await self._run(Secp256k1KeyPair, raw)
        signature = await self._run(key_pair.sign, digest)
        return signature.hex()

    async def get_meta(self, key: str) -> Optional[str]:
        """Return the meta string of a stored key, or None."""
        entry = await self._store.get(self.key_type, key) if is_key_identifier(key) else None
        return entry.secret.meta if entry else None

    async def clear(self) -> int:
        """Delete every key of this type and return how many were removed."""
        return await self._store.clear(self.key_type)

    def __repr__(self) -> str:
        return f"KeyManager(key_type='{self.key_type.value}')"


class CCKey:
    """
    Keystore facade.

    Owns the key store and exposes one KeyManager per key type.

    Attributes:
        platform: KeyManager for platform keys
        asset: KeyManager for asset keys
    """

    def __init__(self, store: KeyStore, config: Optional[KeystoreConfig] = None,
                 random_source: Optional[RandomSource] = None):
        """
        Initialize the facade around an existing key store.

        Args:
            store: Key store to manage
            config: Keystore configuration
            random_source: Randomness for key generation, salts and IVs
        """
        self.config = config or KeystoreConfig()
        self.store = store
        random_source = random_source or DEFAULT_RANDOM
        self._managers: Dict[KeyType, KeyManager] = {
            key_type: KeyManager(key_type, store, self.config, random_source)
            for key_type in KeyType
        }
        self._closed = False

    @classmethod
    async def create(
        cls,
        config: Optional[KeystoreConfig] = None,
        *,
        use_memory_db: Optional[bool] = None,
        storage: Optional[StorageBackend] = None,
        random_source: Optional[RandomSource] = None,
    ) -> CCKey:
        """
        Open a keystore.

        Args:
            config: Configuration; defaults to in-memory storage
            use_memory_db: Force in-memory storage regardless of config
            storage: Explicit storage backend, overriding config
            random_source: Randomness override, mainly for tests

        Returns:
            CCKey instance
        """
        config = config or KeystoreConfig()
        configure_logging(config.log_level)
        if storage is None:
            storage = MemoryStorage() if use_memory_db else open_storage(config)
        logger.info(f"Opened keystore on {storage!r}")
        return cls(KeyStore(storage), config, random_source)

    @property
    def platform(self) -> KeyManager:
        return self._managers[KeyType.PLATFORM]

    @property
    def asset(self) -> KeyManager:
        return self._managers[KeyType.ASSET]

    def manager(self, key_type: KeyType) -> KeyManager:
        """Get the KeyManager for a key type."""
        return self._managers[key_type]

    async def close(self) -> None:
        """Close the underlying storage."""
        if self._closed:
            return
        self._closed = True
        await self.store.close()
        logger.info("Closed keystore")

    async def __aenter__(self) -> CCKey:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"CCKey(store={self.store!r})"


__all__ = ["CCKey", "KeyManager"]
