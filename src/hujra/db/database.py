"""SQLite record store for students and visits.

Two collections keyed by record id:
- students: Student documents
- visits: VisitEvent documents (indexed by student_id for cascades)

Each record is stored as its JSON document plus the columns needed for
ordering and cascading. Every mutating call is a single SQLite transaction,
so a cascade or a full replace is either fully applied or not at all.

The API is async. Blocking SQLite work runs on one dedicated worker thread
and calls are serialized by an asyncio.Lock, so multi-record operations
never interleave.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Generator, Iterable, TypeVar

import structlog

from hujra.core.models import (
    COLLECTIONS,
    STUDENTS,
    VISITS,
    Student,
    VisitEvent,
    record_from_dict,
)

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("data/hujra.db")

SCHEMA_VERSION = "1"

T = TypeVar("T")
Record = Student | VisitEvent


class StorageUnavailableError(Exception):
    """Raised when the database cannot be opened or written."""

    pass


class RecordStore:
    """Persistent, transactional store for the students and visits collections.

    Construct one per database file. The connection is opened lazily on the
    first operation (or explicitly via open()) and reused until close().

    Example:
        store = RecordStore(Path("data/hujra.db"))
        await store.put("students", student)
        students = await store.get_all("students")
    """

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path) if db_path is not None else DEFAULT_DB_PATH
        self._conn: sqlite3.Connection | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def open(self) -> None:
        """Open the database and create the schema if needed. Idempotent.

        Raises:
            StorageUnavailableError: If the file cannot be opened or created
        """
        async with self._lock:
            await self._call(lambda: None)

    async def close(self) -> None:
        """Close the connection and stop the worker thread."""
        async with self._lock:
            if self._executor is None:
                return
            if self._conn is not None:
                conn = self._conn
                self._conn = None
                await self._in_worker(conn.close)
            self._executor.shutdown(wait=True)
            self._executor = None
            logger.debug("store.closed", path=str(self.db_path))

    # -------------------------------------------------------------------------
    # Collection operations
    # -------------------------------------------------------------------------

    async def put(self, collection: str, record: Record) -> None:
        """Insert or replace one record by id."""
        await self.put_many([(collection, record)])

    async def put_many(self, items: Iterable[tuple[str, Record]]) -> None:
        """Insert or replace several records in one transaction.

        Args:
            items: (collection, record) pairs, possibly spanning both collections
        """
        rows = [_prepare(collection, record) for collection, record in items]

        def work() -> None:
            with self._transaction() as conn:
                for collection, record in rows:
                    _write_row(conn, collection, record)

        await self._run(work)
        logger.debug("store.put", records=len(rows))

    async def get(self, collection: str, record_id: str) -> Record | None:
        """Get one record by id, or None."""
        _check_collection(collection)

        def work() -> Record | None:
            row = self._connection().execute(
                f"SELECT data FROM {collection} WHERE id = ?", (record_id,)
            ).fetchone()
            if row is None:
                return None
            return record_from_dict(collection, json.loads(row["data"]))

        return await self._run(work)

    async def get_all(self, collection: str) -> list[Record]:
        """Get every record of a collection.

        Students come back in creation order, visits newest first.
        """
        _check_collection(collection)
        order = "created_at, id" if collection == STUDENTS else "visit_date DESC, id DESC"

        def work() -> list[Record]:
            rows = self._connection().execute(
                f"SELECT data FROM {collection} ORDER BY {order}"
            ).fetchall()
            return [record_from_dict(collection, json.loads(r["data"])) for r in rows]

        return await self._run(work)

    async def delete(self, collection: str, record_id: str) -> bool:
        """Delete one record. No-op if absent.

        Returns:
            True if a record was removed
        """
        _check_collection(collection)

        def work() -> int:
            with self._transaction() as conn:
                cursor = conn.execute(
                    f"DELETE FROM {collection} WHERE id = ?", (record_id,)
                )
                return cursor.rowcount

        deleted = await self._run(work) > 0
        if deleted:
            logger.debug("store.deleted", collection=collection, id=record_id)
        return deleted

    async def delete_student_cascade(self, student_id: str) -> int:
        """Delete a student and all of its visits in one transaction.

        Returns:
            Number of visits removed
        """

        def work() -> int:
            with self._transaction() as conn:
                visits = conn.execute(
                    "DELETE FROM visits WHERE student_id = ?", (student_id,)
                ).rowcount
                conn.execute("DELETE FROM students WHERE id = ?", (student_id,))
                return visits

        removed = await self._run(work)
        logger.info("store.cascade_deleted", student_id=student_id, visits=removed)
        return removed

    async def replace_all(
        self, students: Iterable[Student], visits: Iterable[VisitEvent]
    ) -> None:
        """Replace the contents of both collections in one transaction."""
        student_rows = [_prepare(STUDENTS, s) for s in students]
        visit_rows = [_prepare(VISITS, v) for v in visits]

        def work() -> None:
            with self._transaction() as conn:
                conn.execute("DELETE FROM visits")
                conn.execute("DELETE FROM students")
                for collection, record in student_rows + visit_rows:
                    _write_row(conn, collection, record)

        await self._run(work)
        logger.info(
            "store.replaced",
            students=len(student_rows),
            visits=len(visit_rows),
        )

    async def count(self, collection: str) -> int:
        """Number of records in a collection."""
        _check_collection(collection)

        def work() -> int:
            row = self._connection().execute(
                f"SELECT COUNT(*) AS n FROM {collection}"
            ).fetchone()
            return int(row["n"])

        return await self._run(work)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _run(self, work: Callable[[], T]) -> T:
        async with self._lock:
            return await self._call(work)

    async def _call(self, work: Callable[[], T]) -> T:
        """Run work on the worker thread, opening the database first if needed.

        Caller must hold the lock.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="hujra-store"
            )

        def guarded() -> T:
            if self._conn is None:
                self._conn = self._open_connection()
            return work()

        try:
            return await self._in_worker(guarded)
        except sqlite3.Error as e:
            logger.error("store.unavailable", path=str(self.db_path), error=str(e))
            raise StorageUnavailableError(
                f"Storage unavailable at {self.db_path}: {e}"
            ) from e

    async def _in_worker(self, fn: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn)

    def _open_connection(self) -> sqlite3.Connection:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot create database directory {self.db_path.parent}: {e}"
            ) from e

        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            _create_schema(conn)
        except Exception:
            conn.close()
            raise

        logger.info("store.opened", path=str(self.db_path))
        return conn

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageUnavailableError("Store is not open")
        return self._conn

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Explicit write transaction: commit on success, rollback on any error."""
        conn = self._connection()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection}")


def _prepare(collection: str, record: Record) -> tuple[str, Record]:
    """Check that a record belongs to the collection before any I/O."""
    _check_collection(collection)
    expected = Student if collection == STUDENTS else VisitEvent
    if not isinstance(record, expected):
        raise TypeError(
            f"Collection '{collection}' stores {expected.__name__}, "
            f"got {type(record).__name__}"
        )
    if not record.id:
        raise ValueError(f"Record for '{collection}' has no id")
    return collection, record


def _write_row(conn: sqlite3.Connection, collection: str, record: Record) -> None:
    data = json.dumps(record.to_dict(), ensure_ascii=False)
    if isinstance(record, Student):
        conn.execute(
            "INSERT OR REPLACE INTO students (id, created_at, data) VALUES (?, ?, ?)",
            (record.id, record.created_at, data),
        )
    else:
        conn.execute(
            """
            INSERT OR REPLACE INTO visits (id, student_id, visit_date, data)
            VALUES (?, ?, ?, ?)
            """,
            (record.id, record.student_id, record.visit_date, data),
        )


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency. A database written by another schema
    version is refused rather than migrated.
    """
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS store_meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS students (
            id TEXT PRIMARY KEY,
            created_at TEXT NOT NULL DEFAULT '',
            data TEXT NOT NULL
        );

        -- student_id is a reference, not a foreign key: visits are deleted
        -- explicitly by delete_student_cascade
        CREATE TABLE IF NOT EXISTS visits (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL,
            visit_date TEXT NOT NULL DEFAULT '',
            data TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_visits_student_id ON visits(student_id);
        """
    )
    row = conn.execute(
        "SELECT value FROM store_meta WHERE key = 'schema_version'"
    ).fetchone()
    if row is None:
        conn.execute(
            "INSERT INTO store_meta (key, value) VALUES ('schema_version', ?)",
            (SCHEMA_VERSION,),
        )
    elif row["value"] != SCHEMA_VERSION:
        raise StorageUnavailableError(
            f"Unsupported schema version {row['value']} (expected {SCHEMA_VERSION})"
        )

