"""
Storage backends for the keystore.

Provides the abstract ordered key-value contract plus memory, file and
SQLite implementations.
"""

from __future__ import annotations
from typing import Optional, TYPE_CHECKING

from .backend import StorageBackend
from .memory import MemoryStorage
from .file import FileStorage
from .sqlite import SQLiteStorage

if TYPE_CHECKING:
    from ..config import KeystoreConfig


def open_storage(config: Optional[KeystoreConfig] = None) -> StorageBackend:
    """
    Select the storage backend described by the configuration.

    Defaults to in-memory storage.
    """
    if config is None or config.storage == "memory":
        return MemoryStorage()
    if config.storage == "file":
        return FileStorage(config.path)
    if config.storage == "sqlite":
        return SQLiteStorage(config.path)
    raise ValueError(f"Unknown storage kind: {config.storage}")


__all__ = [
    "StorageBackend",
    "MemoryStorage",
    "FileStorage",
    "SQLiteStorage",
    "open_storage",
]
