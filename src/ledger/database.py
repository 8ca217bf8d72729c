"""SQLite database shared by the evidence store and the report ledger.

All three collections (evidence, reports, meta) live in one database file so
that a report and its ledger position can be committed in a single
transaction.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from src.config_loader import Settings, get_settings
from src.ledger.errors import StorageError

logger = logging.getLogger(__name__)


class CaseDatabase:
    """Connection and transaction management for one case store.

    Thread-safe: each thread gets its own connection. Mutations are
    serialized by a per-store lock and run under ``BEGIN IMMEDIATE``; reads
    run inside a deferred transaction so they observe a consistent snapshot.
    """

    def __init__(
        self,
        db_path: Optional[str | Path] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize database.

        Args:
            db_path: Path to the SQLite file. If None, uses path from config.
            settings: Settings instance. If None, loads from config.
        """
        self.settings = settings or get_settings()
        self.db_path = Path(db_path or self.settings.paths.database)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()
        self._write_lock = threading.Lock()

        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create thread-local database connection."""
        if getattr(self._local, "conn", None) is None:
            # isolation_level=None: transactions are opened explicitly below
            conn = sqlite3.connect(
                str(self.db_path), check_same_thread=False, isolation_level=None
            )
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA journal_mode={self.settings.store.journal_mode}")
            conn.execute(f"PRAGMA busy_timeout={self.settings.store.busy_timeout_ms}")
            self._local.conn = conn
        return self._local.conn

    def _init_db(self) -> None:
        """Create collections and indexes."""
        with self.write_transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS evidence (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT UNIQUE NOT NULL,
                    name TEXT NOT NULL,
                    size INTEGER NOT NULL,
                    type TEXT NOT NULL,
                    content BLOB NOT NULL,
                    sha512 TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    jurisdiction TEXT NOT NULL,
                    timezone TEXT NOT NULL,
                    meta_json TEXT NOT NULL DEFAULT '{}',
                    extracted_text TEXT
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_evidence_sha512 ON evidence(sha512)")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS reports (
                    id TEXT PRIMARY KEY,
                    chapter_index INTEGER NOT NULL,
                    payload_json TEXT NOT NULL
                )
            """)
            # Non-unique: ordering authority is the meta record, not this column
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_reports_chapter ON reports(chapter_index)"
            )

            conn.execute("""
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value_json TEXT NOT NULL
                )
            """)

    # ------------------------------------------------------------------#
    # Transactions
    # ------------------------------------------------------------------#
    @contextmanager
    def write_transaction(self) -> Iterator[sqlite3.Connection]:
        """Serialized read-write transaction.

        Raises:
            StorageError: If SQLite fails; nothing from the block is committed
        """
        with self._write_lock:
            conn = self._get_conn()
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StorageError(f"Could not open write transaction: {e}") from e
            try:
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                logger.error(f"Write transaction on {self.db_path} rolled back: {e}", exc_info=True)
                raise StorageError(f"Write failed and was rolled back: {e}") from e
            except BaseException:
                self._rollback(conn)
                raise

    @contextmanager
    def read_transaction(self) -> Iterator[sqlite3.Connection]:
        """Snapshot read transaction.

        Raises:
            StorageError: If SQLite fails
        """
        conn = self._get_conn()
        try:
            conn.execute("BEGIN")
        except sqlite3.Error as e:
            raise StorageError(f"Could not open read transaction: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"Read failed: {e}") from e
        finally:
            self._rollback(conn)

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    def close(self) -> None:
        """Close this thread's connection."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None
