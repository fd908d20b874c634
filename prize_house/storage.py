"""
Storage Backend Module

Provides an abstract key-value slot interface and implementations for
in-memory (testing) and SQLite (persistence). Each slot holds one text value
that is overwritten wholesale on every write.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Union
from datetime import datetime, timezone
from pathlib import Path
import sqlite3
import threading

from .config import PrizeHouseConfig


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Read the value stored under key, None if absent"""
        pass

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Write value under key, replacing any prior contents"""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key; returns whether it existed"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def exists(self, key: str) -> bool:
        """Check if a key holds a value"""
        return self.get(key) is not None


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    TABLE = "kv_slots"

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()

        with self._lock:
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.TABLE} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._connection.commit()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            cursor = self._connection.execute(f"""
                SELECT value FROM {self.TABLE} WHERE key = ?
            """, (key,))
            row = cursor.fetchone()
            if row:
                return row['value']
            return None

    def put(self, key: str, value: str) -> None:
        with self._lock:
            now = datetime.now(timezone.utc).isoformat()
            self._connection.execute(f"""
                INSERT OR REPLACE INTO {self.TABLE} (key, value, updated_at)
                VALUES (?, ?, ?)
            """, (key, value, now))
            self._connection.commit()

    def delete(self, key: str) -> bool:
        with self._lock:
            cursor = self._connection.execute(f"""
                DELETE FROM {self.TABLE} WHERE key = ?
            """, (key,))
            self._connection.commit()
            return cursor.rowcount > 0

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(config: PrizeHouseConfig) -> StorageInterface:
    """Build the storage backend named by configuration"""
    backend = config.storage_backend.lower()
    if backend == "memory":
        return InMemoryStorage()
    if backend == "sqlite":
        return SQLiteStorage(config.database_path)
    raise ValueError(f"Unknown storage backend: {config.storage_backend}")
