"""
Storage backend interface.

The keystore persists everything through this small ordered key-value
contract. Keys are strings with a namespace prefix, values are JSON text.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class StorageBackend(ABC):
    """
    Abstract ordered key-value store.

    Implementations must keep insertion order for `list_keys` (overwriting an
    existing key keeps its position) and make single-key writes atomic.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None."""
        pass

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """Insert or overwrite a value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove a key. Returns False if it was not present."""
        pass

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> List[str]:
        """List keys starting with prefix, in insertion order."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass
