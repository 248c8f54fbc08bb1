"""Key-value persistence for LoanBook."""
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Optional

from loanbook.config import DEFAULT_DB_PATH
from loanbook.exceptions import StorageError, StoreTransactionError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Whole-value store: every save replaces the value under its key."""

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key``, or None if absent."""
        pass

    @abstractmethod
    def save(self, key: str, data: Any) -> None:
        """Replace the value stored under ``key``."""
        pass

    @abstractmethod
    def save_many(self, items: Dict[str, Any]) -> None:
        """Replace several values as one atomic write."""
        pass

    def close(self):
        pass


class DatabaseManager(KeyValueStore):
    """SQLite-backed key-value store holding JSON values."""

    def __init__(self, db_name=DEFAULT_DB_PATH):
        self.db_name = db_name
        self.conn = sqlite3.connect(db_name)
        self._closed = False
        self.create_tables()

    def close(self):
        """Close the database connection."""
        if getattr(self, 'conn', None) and not self._closed:
            self.conn.close()
            self._closed = True

    def __del__(self):
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @contextmanager
    def transaction(self):
        """Context manager for database transactions with automatic rollback on failure.

        Usage:
            with db.transaction():
                db._write(...)
                db._write(...)
        """
        try:
            yield
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StoreTransactionError(f"Transaction failed: {str(e)}")
        except Exception:
            self.conn.rollback()
            raise

    def create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS store (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)
        self.conn.commit()

    def _write(self, key, data):
        try:
            payload = json.dumps(data, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not serializable", {'key': key, 'error': str(e)})
        cursor = self.conn.cursor()
        cursor.execute("INSERT OR REPLACE INTO store (key, value) VALUES (?, ?)", (key, payload))

    def load(self, key):
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM store WHERE key=?", (key,))
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StorageError(f"Stored value for '{key}' is corrupt", {'key': key, 'error': str(e)})

    def save(self, key, data):
        with self.transaction():
            self._write(key, data)
        logger.debug("Saved key %s", key)

    def save_many(self, items):
        with self.transaction():
            for key, data in items.items():
                self._write(key, data)
        logger.debug("Saved keys %s", ", ".join(items))

