import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

from clipkeep.config import STORE_TIMEOUT
from clipkeep.models import ContentType, HistoryEntry

logger = logging.getLogger(__name__)

TABLE = "HistoryEntry"

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    Id        INTEGER PRIMARY KEY AUTOINCREMENT,
    Content   TEXT,
    ImagePath TEXT,
    Hash      TEXT,
    Timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""

INDEXES = f"""
CREATE INDEX IF NOT EXISTS idx_hash ON {TABLE}(Hash);
CREATE INDEX IF NOT EXISTS idx_timestamp ON {TABLE}(Timestamp DESC, Id DESC);
"""

# Same ordering as SQLite's CURRENT_TIMESTAMP, with microseconds appended
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


class StorageError(Exception):
    """The history database could not be read or written."""


class StoreTimeoutError(StorageError):
    """The database stayed locked past the configured timeout. Safe to retry."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(TIMESTAMP_FORMAT)


def _parse_timestamp(raw: str) -> datetime:
    return datetime.fromisoformat(str(raw)).replace(tzinfo=timezone.utc)


class HistoryStore:
    """Clipboard history kept in a single SQLite table, deduplicated by hash.

    No connection is held between calls: every operation opens the database,
    does its work and closes it again.
    """

    def __init__(
        self,
        db_path: str | Path,
        timeout: float = STORE_TIMEOUT,
        clock: Callable[[], datetime] | None = None,
    ):
        self._db_path = str(db_path)
        self._timeout = timeout
        self._clock = clock or _utc_now
        self._write_lock = threading.Lock()
        self.init_db()

    @property
    def db_path(self) -> str:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout, isolation_level=None)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.OperationalError as exc:
            message = str(exc).lower()
            if "locked" in message or "busy" in message:
                raise StoreTimeoutError(f"Database busy after {self._timeout}s: {exc}") from exc
            raise StorageError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    @contextmanager
    def _transaction(self, conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def init_db(self) -> None:
        with self._connect() as conn:
            columns = self._table_columns(conn)
            if not columns:
                conn.executescript(SCHEMA)
                logger.info("Created history table in %s", self._db_path)
            elif "Hash" not in columns:
                self._add_hash_column(conn)
            conn.executescript(INDEXES)

    @staticmethod
    def _table_columns(conn: sqlite3.Connection) -> set[str]:
        cursor = conn.execute(f"PRAGMA table_info({TABLE})")
        return {row[1] for row in cursor.fetchall()}

    @staticmethod
    def _add_hash_column(conn: sqlite3.Connection) -> None:
        try:
            conn.execute(f"ALTER TABLE {TABLE} ADD COLUMN Hash TEXT")
        except sqlite3.OperationalError as exc:
            # Another process may have migrated between our check and the ALTER
            if "duplicate column" not in str(exc).lower():
                raise
            logger.debug("Hash column already present")
        else:
            logger.info("Added Hash column to existing history table")

    def upsert(self, kind: ContentType, content: str, fingerprint: str) -> int:
        """Touch the entry with this fingerprint, or insert a new one.

        Returns the id of the touched or inserted entry.
        """
        kind = ContentType(kind)
        text_content = content if kind == ContentType.TEXT else None
        image_ref = content if kind == ContentType.IMAGE else None

        with self._write_lock, self._connect() as conn, self._transaction(conn):
            now = _format_timestamp(self._next_timestamp(conn))
            row = conn.execute(
                f"SELECT Id FROM {TABLE} WHERE Hash = ? ORDER BY Id LIMIT 1",
                (fingerprint,),
            ).fetchone()
            if row is not None:
                conn.execute(f"UPDATE {TABLE} SET Timestamp = ? WHERE Id = ?", (now, row["Id"]))
                return row["Id"]
            cursor = conn.execute(
                f"INSERT INTO {TABLE} (Content, ImagePath, Hash, Timestamp) VALUES (?, ?, ?, ?)",
                (text_content, image_ref, fingerprint, now),
            )
            return cursor.lastrowid

    def _next_timestamp(self, conn: sqlite3.Connection) -> datetime:
        """Clock time, kept strictly after every stored timestamp.

        A touched entry must sort first even if the wall clock stepped back.
        """
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        latest = conn.execute(f"SELECT MAX(Timestamp) AS latest FROM {TABLE}").fetchone()["latest"]
        if latest is not None:
            floor = _parse_timestamp(latest) + timedelta(microseconds=1)
            if now < floor:
                return floor
        return now

    def find_by_fingerprint(self, fingerprint: str) -> HistoryEntry | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT * FROM {TABLE} WHERE Hash = ? ORDER BY Id LIMIT 1",
                (fingerprint,),
            ).fetchone()
        return self._row_to_entry(row) if row else None

    def get_entry(self, entry_id: int) -> HistoryEntry | None:
        with self._connect() as conn:
            row = conn.execute(f"SELECT * FROM {TABLE} WHERE Id = ?", (entry_id,)).fetchone()
        return self._row_to_entry(row) if row else None

    def list_all(self) -> list[HistoryEntry]:
        with self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM {TABLE} ORDER BY Timestamp DESC, Id DESC").fetchall()
        return [self._row_to_entry(r) for r in rows]

    def list_recent(self, limit: int = 25) -> list[HistoryEntry]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM {TABLE} ORDER BY Timestamp DESC, Id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def delete_by_id(self, entry_id: int) -> bool:
        """Remove an entry. Any image file it points at is left on disk."""
        with self._write_lock, self._connect() as conn, self._transaction(conn):
            cursor = conn.execute(f"DELETE FROM {TABLE} WHERE Id = ?", (entry_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted history entry %d", entry_id)
        return deleted

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS cnt FROM {TABLE}").fetchone()
        return row["cnt"]

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> HistoryEntry:
        # Rows whose Content duplicates ImagePath are still images
        image_ref = row["ImagePath"] or None
        kind = ContentType.IMAGE if image_ref else ContentType.TEXT
        keys = row.keys()
        return HistoryEntry(
            id=row["Id"],
            kind=kind,
            text_content=None if image_ref else row["Content"],
            image_ref=image_ref,
            fingerprint=row["Hash"] if "Hash" in keys else None,
            last_seen_at=_parse_timestamp(row["Timestamp"]),
        )
