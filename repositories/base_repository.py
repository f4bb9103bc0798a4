"""
Shared SQLite plumbing for the repositories.

Every call opens its own short-lived connection, so repositories are safe
to call from worker threads (services reach them through asyncio.to_thread).
"""

import logging
import sqlite3
import threading
from abc import ABC
from contextlib import contextmanager

from infrastructure.schema_manager import SchemaManager

logger = logging.getLogger("rift_bot.repositories")

BUSY_TIMEOUT_MS = 5000


class BaseRepository(ABC):
    # Database files whose schema has been created in this process
    _ready_paths: set[str] = set()
    _ready_lock = threading.Lock()

    def __init__(self, db_path: str):
        self.db_path = db_path
        with BaseRepository._ready_lock:
            if db_path not in BaseRepository._ready_paths:
                SchemaManager(db_path).initialize()
                BaseRepository._ready_paths.add(db_path)

    def get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_MS / 1000)
        conn.row_factory = sqlite3.Row
        # WAL lets the ingestion loop read while a bet is being written
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        return conn

    @contextmanager
    def connection(self):
        """Connection that commits on success and rolls back on any exception."""
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def atomic_transaction(self):
        """
        Connection holding the database write lock from the first statement.

        BEGIN IMMEDIATE serializes read-check-write sequences: two workers
        claiming the same match, a bet debiting a balance while a settlement
        credits it. The second writer waits up to BUSY_TIMEOUT_MS for the lock.
        """
        conn = self.get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            logger.debug(f"Rolled back transaction on {self.db_path}")
            raise
        finally:
            conn.close()
