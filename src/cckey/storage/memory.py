"""In-memory storage backend."""

from typing import Dict, List, Optional

from .backend import StorageBackend


class MemoryStorage(StorageBackend):
    """
    In-memory storage implementation.

    Stores values in an insertion-ordered dict with no persistence.
    """

    def __init__(self):
        """Initialize memory storage."""
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def list_keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._data if key.startswith(prefix)]

    def __repr__(self) -> str:
        return f"MemoryStorage(count={len(self._data)})"
