"""
Pooled SQLite connections for the challenge database.

The API serves several requests at once (a dashboard read while a
progress refresh writes), so repositories borrow connections from a small
fixed pool instead of opening one per call. Each borrow is one
transaction: committed when the block finishes, rolled back if it raises.

Usage:
    pool = SQLiteConnectionPool("challenge.db", pool_size=5)

    with pool.get_connection() as conn:
        conn.execute("UPDATE users SET bailout_passes = 4")

    pool.close()
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from queue import Empty, Queue
from typing import Iterator, Union


# Applied to every connection the pool opens
CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
    "PRAGMA busy_timeout=5000",
)


class SQLiteConnectionPool:
    """
    Fixed-size, thread-safe pool of autocommit SQLite connections.

    Attributes:
        db_path: SQLite file shared by every connection
        pool_size: Number of connections opened up front
        timeout: Seconds to wait for a free connection before ``queue.Empty``
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        pool_size: int = 5,
        timeout: float = 30.0
    ):
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.timeout = timeout
        self._idle: Queue = Queue(maxsize=pool_size)
        self._lock = threading.Lock()
        self._closed = False

        for _ in range(pool_size):
            self._idle.put(self._open())

    def _open(self) -> sqlite3.Connection:
        # isolation_level=None: get_connection() issues BEGIN/COMMIT itself
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False, isolation_level=None)
        conn.row_factory = sqlite3.Row
        for pragma in CONNECTION_PRAGMAS:
            conn.execute(pragma)
        return conn

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """
        Borrow a connection for one transaction.

        Raises:
            RuntimeError: If the pool has been closed
            queue.Empty: If no connection frees up within ``timeout``
        """
        if self._closed:
            raise RuntimeError("Connection pool is closed")

        conn = self._idle.get(timeout=self.timeout)
        try:
            conn.execute("BEGIN")
            yield conn
            conn.execute("COMMIT")
        except Exception:
            self._rollback_quietly(conn)
            raise
        finally:
            self._release(conn)

    @staticmethod
    def _rollback_quietly(conn: sqlite3.Connection) -> None:
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error:
            # Unusable connection; _release swaps it out
            pass

    def _release(self, conn: sqlite3.Connection) -> None:
        """Put a connection back, or a fresh one if it no longer answers."""
        if self._closed:
            conn.close()
            return
        try:
            conn.execute("SELECT 1")
        except sqlite3.Error:
            try:
                conn.close()
            except sqlite3.Error:
                pass
            conn = self._open()
        self._idle.put(conn)

    def close(self) -> None:
        """Close idle connections; borrowed ones close when released."""
        with self._lock:
            self._closed = True
            while True:
                try:
                    conn = self._idle.get_nowait()
                except Empty:
                    break
                try:
                    conn.close()
                except sqlite3.Error:
                    pass

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def available_connections(self) -> int:
        return self._idle.qsize()
