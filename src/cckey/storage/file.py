"""
File storage backend.

Keeps the whole store in one JSON document. Every write replaces the file
atomically (write to a temporary sibling, then os.replace).
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..runtime.errors import StorageUnavailable
from .backend import StorageBackend

logger = logging.getLogger(__name__)

FILE_FORMAT_VERSION = 1


class FileStorage(StorageBackend):
    """File-based implementation of the storage backend."""

    def __init__(self, path: Union[str, Path]):
        """
        Initialize file storage.

        Args:
            path: Path of the JSON document; created on first write
        """
        self.path = Path(path)
        self.lock = asyncio.Lock()
        self._data: Dict[str, str] = self._load()
        logger.debug(f"Opened file storage {self.path} with {len(self._data)} entries")

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageUnavailable(f"Failed to read storage file {self.path}", cause=e) from e

        if not isinstance(document, dict) or document.get("version") != FILE_FORMAT_VERSION:
            raise StorageUnavailable(f"Unrecognized storage file format: {self.path}")
        # list of pairs keeps insertion order explicit in the document
        return {key: value for key, value in document.get("entries", [])}

    def _save(self) -> None:
        document = {
            "version": FILE_FORMAT_VERSION,
            "entries": [[key, value] for key, value in self._data.items()],
        }
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageUnavailable(f"Failed to write storage file {self.path}", cause=e) from e

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        async with self.lock:
            previous = self._data.get(key)
            self._data[key] = value
            try:
                self._save()
            except StorageUnavailable:
                if previous is None:
                    del self._data[key]
                else:
                    self._data[key] = previous
                raise

    async def delete(self, key: str) -> bool:
        async with self.lock:
            if key not in self._data:
                return False
            snapshot = dict(self._data)
            del self._data[key]
            try:
                self._save()
            except StorageUnavailable:
                self._data = snapshot
                raise
            return True

    async def list_keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._data if key.startswith(prefix)]

    def __repr__(self) -> str:
        return f"FileStorage(path='{self.path}', count={len(self._data)})"
