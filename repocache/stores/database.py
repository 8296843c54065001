"""SQLite handle shared by the strategy cache stores.

Schema:
  - repository_signatures: one fingerprint per (repo_url, course_id) pair
  - cached_strategies: file-selection strategies anchored to a signature,
    with running performance statistics and an optimistic ``revision``
  - benchmark_results: append-only comparison records

Every operation runs as one ``BEGIN IMMEDIATE`` transaction on a
per-thread connection. Contention (busy/locked database or a lost
optimistic write) is retried with exponential backoff; anything else from
sqlite surfaces as ``StoreUnavailable``.
"""

from __future__ import annotations

import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, TypeVar

from ..errors import ConcurrencyConflict, StoreUnavailable, TransientStoreError
from ..logging import get_logger

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS repository_signatures (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    repo_url            TEXT NOT NULL,
    course_id           TEXT NOT NULL,
    directory_structure TEXT NOT NULL,
    technologies        TEXT NOT NULL,
    file_types          TEXT NOT NULL,
    size_category       TEXT NOT NULL CHECK (size_category IN ('small', 'medium', 'large')),
    pattern_hash        TEXT NOT NULL,
    created_at          INTEGER NOT NULL,
    last_used           INTEGER NOT NULL,
    UNIQUE (repo_url, course_id)
);

CREATE TABLE IF NOT EXISTS cached_strategies (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    signature_id       INTEGER NOT NULL,
    course_id          TEXT NOT NULL,
    selected_files     TEXT NOT NULL,
    method             TEXT NOT NULL,
    confidence         REAL NOT NULL,
    discovery_time     REAL NOT NULL,
    accuracy           REAL NOT NULL,
    evaluation_quality REAL NOT NULL,
    usage_count        INTEGER NOT NULL CHECK (usage_count >= 0),
    success_rate       REAL NOT NULL,
    processing_time    REAL NOT NULL,
    created_at         INTEGER NOT NULL,
    last_used          INTEGER NOT NULL,
    last_updated       INTEGER NOT NULL,
    version            TEXT NOT NULL,
    revision           INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (signature_id) REFERENCES repository_signatures(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS benchmark_results (
    id                      INTEGER PRIMARY KEY AUTOINCREMENT,
    test_suite_id           TEXT NOT NULL,
    system_type             TEXT NOT NULL CHECK (system_type IN ('current', 'hybrid')),
    file_selection_accuracy REAL NOT NULL,
    processing_speed        REAL NOT NULL,
    token_efficiency        REAL NOT NULL,
    cache_hit_rate          REAL,
    evaluation_quality      REAL NOT NULL,
    error_rate              REAL NOT NULL,
    timestamp               INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_signatures_pattern_hash ON repository_signatures(pattern_hash);
CREATE INDEX IF NOT EXISTS idx_signatures_course ON repository_signatures(course_id);
CREATE INDEX IF NOT EXISTS idx_strategies_signature ON cached_strategies(signature_id);
CREATE INDEX IF NOT EXISTS idx_strategies_course ON cached_strategies(course_id);
CREATE INDEX IF NOT EXISTS idx_strategies_last_used ON cached_strategies(last_used);
CREATE INDEX IF NOT EXISTS idx_benchmarks_suite ON benchmark_results(test_suite_id);
CREATE INDEX IF NOT EXISTS idx_benchmarks_timestamp ON benchmark_results(timestamp);
CREATE INDEX IF NOT EXISTS idx_benchmarks_system ON benchmark_results(system_type);
"""

_CONTENTION_CODES = {
    getattr(sqlite3, "SQLITE_BUSY", 5),
    getattr(sqlite3, "SQLITE_LOCKED", 6),
}


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def _is_contention(exc: sqlite3.OperationalError) -> bool:
    code = getattr(exc, "sqlite_errorcode", None)
    if code is not None:
        return (code & 0xFF) in _CONTENTION_CODES
    message = str(exc).lower()
    return "locked" in message or "busy" in message


class Database:
    """Injected store handle: opened at process start, closed at shutdown."""

    def __init__(
        self,
        path: Path | str,
        *,
        busy_timeout: float = 5.0,
        retry_attempts: int = 3,
        retry_backoff: float = 0.05,
    ) -> None:
        self.path = Path(path)
        self.busy_timeout = busy_timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff = retry_backoff
        self.logger = get_logger("database")
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._lock = threading.Lock()
        self._closed = False
        self._connect_schema()

    def _connect_schema(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._connection()
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            raise StoreUnavailable(f"Cannot open cache database at {self.path}: {exc}") from exc
        self.logger.debug("Cache database ready at %s", self.path)

    def _connection(self) -> sqlite3.Connection:
        if self._closed:
            raise StoreUnavailable("Cache database handle is closed")
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(
                str(self.path),
                timeout=self.busy_timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA synchronous = NORMAL")
            self._local.conn = conn
            with self._lock:
                self._connections.append(conn)
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements atomically, holding the write lock."""
        conn = self._connection()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")

    def run(self, operation: Callable[[sqlite3.Connection], T], *, label: str = "operation") -> T:
        """Execute ``operation`` in a transaction, retrying on contention."""
        last_error: BaseException | None = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                with self.transaction() as conn:
                    return operation(conn)
            except ConcurrencyConflict as exc:
                last_error = exc
            except sqlite3.OperationalError as exc:
                if not _is_contention(exc):
                    raise StoreUnavailable(f"{label} failed: {exc}") from exc
                last_error = exc
            except sqlite3.Error as exc:
                raise StoreUnavailable(f"{label} failed: {exc}") from exc

            if attempt < self.retry_attempts:
                delay = self.retry_backoff * (2 ** (attempt - 1))
                self.logger.info(
                    "%s hit contention (attempt %d/%d), retrying in %.3fs",
                    label,
                    attempt,
                    self.retry_attempts,
                    delay,
                )
                time.sleep(delay)

        self.logger.warning("%s gave up after %d attempts", label, self.retry_attempts)
        raise TransientStoreError(
            f"{label} failed after {self.retry_attempts} attempts: {last_error}"
        ) from last_error

    def close(self) -> None:
        with self._lock:
            connections, self._connections = self._connections, []
            self._closed = True
        for conn in connections:
            conn.close()
        self.logger.debug("Cache database at %s closed", self.path)

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["Database", "now_ms"]
