"""SQLite access for the Homeflix daemon.

One writer, many readers: writes go through a single locked connection
in explicit ``BEGIN IMMEDIATE`` transactions, reads open a throwaway
connection so WAL lets them run beside a write.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

# Fraction of the pool timeout after which a transaction is logged as slow
SLOW_TRANSACTION_RATIO = 0.8

_PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA busy_timeout = 10000",
    "PRAGMA temp_store = MEMORY",
)


class PoolClosedError(RuntimeError):
    """Raised when a closed pool is asked for a connection."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        super().__init__(f"Connection pool is closed: {db_path}")


class DaemonConnectionPool:
    """Connection pool shared by the scanner, jobs and HTTP handlers.

    All methods block; async callers wrap them in ``asyncio.to_thread``.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0) -> None:
        """Create a pool for a database file.

        Args:
            db_path: SQLite database path. The parent directory is created
                on first connect.
            timeout: Lock wait in seconds, also the slow-transaction baseline.
        """
        self.db_path = db_path
        self.timeout = timeout
        self._writer: sqlite3.Connection | None = None
        self._writer_lock = threading.Lock()
        self._closed = threading.Event()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def _connect(self, *, read_only: bool = False) -> sqlite3.Connection:
        if self._closed.is_set():
            raise PoolClosedError(self.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        for pragma in _PRAGMAS:
            conn.execute(pragma)
        if read_only:
            conn.execute("PRAGMA query_only = ON")
        return conn

    def _writer_connection(self) -> sqlite3.Connection:
        # Caller holds _writer_lock
        if self._closed.is_set():
            raise PoolClosedError(self.db_path)
        if self._writer is None:
            self._writer = self._connect()
        return self._writer

    @contextmanager
    def read_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a fresh query-only connection, closed on exit.

        Raises:
            PoolClosedError: If the pool has been closed.
        """
        conn = self._connect(read_only=True)
        try:
            yield conn
        finally:
            conn.close()

    def execute_read(self, query: str, params: tuple = ()) -> list[sqlite3.Row]:
        """Run one query on its own read connection and fetch every row."""
        with self.read_connection() as conn:
            return conn.execute(query, params).fetchall()

    @contextmanager
    def transaction(self, timeout: float | None = None) -> Iterator[sqlite3.Connection]:
        """Hold the writer for one atomic unit of work.

        The statements run inside ``BEGIN IMMEDIATE``; the block commits when
        it exits normally and rolls back when it raises.

        Args:
            timeout: Baseline for the slow-transaction warning. Defaults to
                the pool timeout.

        Yields:
            The writer connection.

        Raises:
            PoolClosedError: If the pool has been closed.
        """
        baseline = self.timeout if timeout is None else timeout
        threshold = baseline * SLOW_TRANSACTION_RATIO
        with self._writer_lock:
            conn = self._writer_connection()
            started = time.monotonic()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")
            finally:
                held = time.monotonic() - started
                if held > threshold:
                    logger.warning(
                        "Transaction held the writer for %.2fs on %s",
                        held,
                        self.db_path,
                    )

    def initialize(self) -> None:
        """Create the schema on the writer connection if it is missing."""
        from homeflix.db.schema import initialize_database

        with self._writer_lock:
            initialize_database(self._writer_connection())

    def close(self) -> None:
        """Close the writer. Later calls on the pool raise PoolClosedError."""
        with self._writer_lock:
            self._closed.set()
            writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()
            logger.debug("Closed database %s", self.db_path)
