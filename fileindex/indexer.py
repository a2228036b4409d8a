"""
Indexer - The persistent file index.

One row per full path. Every observation of a path replaces the row's
fields (never merged); rows for files that disappeared are left alone.
Each upsert commits on its own, so a crash mid-run keeps everything
written before it.
"""

import logging
import sqlite3
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .errors import ConfigurationError, FingerprintMismatchError, StorageError
from .models import FileRecord


logger = logging.getLogger(__name__)


SCHEMA = """
    CREATE TABLE IF NOT EXISTS files (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        file_name   TEXT NOT NULL,
        full_path   TEXT NOT NULL UNIQUE,
        checksum    TEXT,
        last_access TIMESTAMPTZ,
        last_write  TIMESTAMPTZ,
        created     TIMESTAMPTZ,
        file_size   BIGINT
    );

    -- Settings the stored rows depend on (fingerprint algorithm)
    CREATE TABLE IF NOT EXISTS index_meta (
        key   TEXT PRIMARY KEY,
        value TEXT NOT NULL
    );
"""

UPSERT_SQL = """
    INSERT INTO files (file_name, full_path, checksum, last_access, last_write, created, file_size)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(full_path) DO UPDATE SET
        file_name = excluded.file_name,
        checksum = excluded.checksum,
        last_access = excluded.last_access,
        last_write = excluded.last_write,
        created = excluded.created,
        file_size = excluded.file_size
"""

SELECT_COLUMNS = "id, file_name, full_path, checksum, last_access, last_write, created, file_size"

FINGERPRINT_KEY = "fingerprint_algorithm"


def _to_db_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_db_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value is not None else None


class IndexStore:
    """
    Upsert contract shared by the SQLite store and the in-memory
    substitute used in tests.
    """

    def open(self) -> None:
        """Connect and create the schema if it is missing."""
        raise NotImplementedError

    def upsert(self, record: FileRecord) -> int:
        """Insert or fully replace the row for record.full_path; returns its id."""
        raise NotImplementedError

    def get(self, full_path: str) -> Optional[FileRecord]:
        raise NotImplementedError

    def records(self) -> List[FileRecord]:
        """All rows, ordered by full_path."""
        raise NotImplementedError

    def count(self) -> int:
        return len(self.records())

    def check_fingerprint_algorithm(self, algorithm: str) -> None:
        """
        Record the algorithm on first use; refuse a different one later.

        Raises:
            FingerprintMismatchError: the index was built with another algorithm
        """
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class SQLiteIndexStore(IndexStore):
    """SQLite-backed index store."""

    def __init__(self, database: str, uri: bool = False):
        self.database = database
        self.uri = uri
        self._conn: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self.open()
        return self._conn

    def open(self) -> None:
        if self._conn is not None:
            return

        target = self.database
        logger.debug(f"Connecting to database: {target}")
        try:
            if not self.uri and target != ":memory:":
                path = Path(target).expanduser()
                path.parent.mkdir(parents=True, exist_ok=True)
                target = str(path)
            conn = sqlite3.connect(target, uri=self.uri)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.executescript(SCHEMA)
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Could not open index at {self.database}: {e}") from e

        self._conn = conn
        logger.debug("Database schema initialized.")

    def upsert(self, record: FileRecord) -> int:
        conn = self._get_connection()
        params = (
            record.file_name,
            record.full_path,
            record.checksum,
            _to_db_time(record.last_access),
            _to_db_time(record.last_write),
            _to_db_time(record.created),
            record.file_size,
        )
        try:
            with conn:
                conn.execute(UPSERT_SQL, params)
                row = conn.execute(
                    "SELECT id FROM files WHERE full_path = ?",
                    (record.full_path,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Upsert failed for {record.full_path}: {e}") from e

        return row["id"]

    def get(self, full_path: str) -> Optional[FileRecord]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                f"SELECT {SELECT_COLUMNS} FROM files WHERE full_path = ?",
                (full_path,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Lookup failed for {full_path}: {e}") from e
        return self._row_to_record(row) if row else None

    def records(self) -> List[FileRecord]:
        conn = self._get_connection()
        try:
            rows = conn.execute(
                f"SELECT {SELECT_COLUMNS} FROM files ORDER BY full_path"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Listing files failed: {e}") from e
        return [self._row_to_record(row) for row in rows]

    def count(self) -> int:
        conn = self._get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM files").fetchone()[0]
        except sqlite3.Error as e:
            raise StorageError(f"Counting files failed: {e}") from e

    def check_fingerprint_algorithm(self, algorithm: str) -> None:
        conn = self._get_connection()
        try:
            with conn:
                row = conn.execute(
                    "SELECT value FROM index_meta WHERE key = ?",
                    (FINGERPRINT_KEY,)
                ).fetchone()
                if row is None:
                    conn.execute(
                        "INSERT INTO index_meta (key, value) VALUES (?, ?)",
                        (FINGERPRINT_KEY, algorithm)
                    )
                    return
        except sqlite3.Error as e:
            raise StorageError(f"Reading index settings failed: {e}") from e

        if row["value"] != algorithm:
            raise FingerprintMismatchError(row["value"], algorithm)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> FileRecord:
        return FileRecord(
            id=row["id"],
            file_name=row["file_name"],
            full_path=row["full_path"],
            checksum=row["checksum"],
            last_access=_from_db_time(row["last_access"]),
            last_write=_from_db_time(row["last_write"]),
            created=_from_db_time(row["created"]),
            file_size=row["file_size"],
        )

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None


class MemoryIndexStore(IndexStore):
    """Dictionary-backed store with the same upsert semantics."""

    def __init__(self):
        self._rows: Dict[str, FileRecord] = {}
        self._meta: Dict[str, str] = {}
        self._next_id = 1
        self.opened = False

    def open(self) -> None:
        self.opened = True

    def upsert(self, record: FileRecord) -> int:
        existing = self._rows.get(record.full_path)
        if existing is None:
            row_id = self._next_id
            self._next_id += 1
        else:
            row_id = existing.id
        self._rows[record.full_path] = replace(record, id=row_id)
        return row_id

    def get(self, full_path: str) -> Optional[FileRecord]:
        row = self._rows.get(full_path)
        return replace(row) if row else None

    def records(self) -> List[FileRecord]:
        return [replace(self._rows[p]) for p in sorted(self._rows)]

    def check_fingerprint_algorithm(self, algorithm: str) -> None:
        stored = self._meta.setdefault(FINGERPRINT_KEY, algorithm)
        if stored != algorithm:
            raise FingerprintMismatchError(stored, algorithm)

    def close(self) -> None:
        self.opened = False


def open_store(database: str) -> IndexStore:
    """
    Build an (unopened) store from a connection string.

    Accepted forms:
        sqlite:///relative/path.db, sqlite:////absolute/path.db,
        sqlite:///:memory:, file:... (SQLite URI), memory://
        (in-process store), or a bare filesystem path.
    """
    database = database.strip()
    if not database:
        raise ConfigurationError("Empty database connection string")

    if database == "memory://":
        return MemoryIndexStore()

    if database.startswith("sqlite://"):
        rest = database[len("sqlite://"):]
        if not rest.startswith("/") or len(rest) == 1:
            raise ConfigurationError(f"Malformed SQLite URL: {database}")
        return SQLiteIndexStore(rest[1:])

    if database.startswith("file:"):
        return SQLiteIndexStore(database, uri=True)

    if "://" in database:
        scheme = database.split("://", 1)[0]
        raise ConfigurationError(f"Unsupported database scheme: {scheme}")

    return SQLiteIndexStore(database)
