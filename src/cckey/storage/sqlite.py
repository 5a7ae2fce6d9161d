"""SQLite storage backend."""

import logging
import os
import sqlite3
from typing import List, Optional

from ..runtime.errors import StorageUnavailable
from .backend import StorageBackend

logger = logging.getLogger(__name__)


class SQLiteStorage(StorageBackend):
    """
    SQLite implementation of the storage backend.

    Rows carry an autoincrement sequence number so that listing follows
    insertion order; an upsert keeps the original sequence number.
    """

    def __init__(self, path: str = "db/cckey.db"):
        if path != ":memory:":
            dir_path = os.path.dirname(path) or "."
            os.makedirs(dir_path, exist_ok=True)
        self.path = path
        try:
            self.db = sqlite3.connect(path, check_same_thread=False)
            self._init()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Failed to open SQLite storage {path}", cause=e) from e
        logger.debug(f"Opened SQLite storage {path}")

    def _init(self) -> None:
        self.db.execute("""CREATE TABLE IF NOT EXISTS kv(
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            key TEXT NOT NULL UNIQUE,
            value TEXT NOT NULL
        )""")
        self.db.commit()

    async def get(self, key: str) -> Optional[str]:
        try:
            row = self.db.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailable("SQLite read failed", cause=e) from e
        return row[0] if row else None

    async def put(self, key: str, value: str) -> None:
        try:
            with self.db:
                self.db.execute(
                    "INSERT INTO kv(key,value) VALUES(?,?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                    (key, value),
                )
        except sqlite3.Error as e:
            raise StorageUnavailable("SQLite write failed", cause=e) from e

    async def delete(self, key: str) -> bool:
        try:
            with self.db:
                cur = self.db.execute("DELETE FROM kv WHERE key=?", (key,))
        except sqlite3.Error as e:
            raise StorageUnavailable("SQLite delete failed", cause=e) from e
        return cur.rowcount > 0

    async def list_keys(self, prefix: str = "") -> List[str]:
        try:
            cur = self.db.execute(
                "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY seq",
                (len(prefix), prefix),
            )
            return [row[0] for row in cur.fetchall()]
        except sqlite3.Error as e:
            raise StorageUnavailable("SQLite read failed", cause=e) from e

    async def close(self) -> None:
        self.db.close()

    def __repr__(self) -> str:
        return f"SQLiteStorage(path='{self.path}')"
