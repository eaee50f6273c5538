"""Ledger service: every mutation of students and visits goes through here.

Responsibilities:
- Persist student and visit records through the RecordStore
- Record a visit: merge its curriculum updates into the student and store
  the visit and the merged student in one transaction
- Cascade student deletion, backup export/import
- Reload the SessionCache after every mutation
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Iterable

import structlog

from hujra.config.app_config import LedgerConfig, load_app_config
from hujra.core.merge import merge_visit
from hujra.core.models import (
    STUDENTS,
    VISITS,
    CurriculumUpdateItem,
    FinanceItem,
    Student,
    VisitEvent,
    generate_id,
    utc_now_iso,
)
from hujra.core.session_cache import SessionCache
from hujra.db.backup import export_backup, import_backup
from hujra.db.database import RecordStore
from hujra.utils.text_utils import normalize_digits
from hujra.utils.validators import require_non_negative_int

logger = structlog.get_logger(__name__)


class StudentNotFoundError(Exception):
    """Raised when an operation names a student that does not exist."""

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(f"Student not found: {student_id}")


class Ledger:
    """Owns one RecordStore and the SessionCache mirroring it.

    Mutations hold ``_lock`` from the read of the current record through the
    cache refresh, so two of them never work from the same snapshot.
    """

    def __init__(
        self,
        store: RecordStore,
        config: LedgerConfig | None = None,
        cache: SessionCache | None = None,
    ):
        self.store = store
        self.config = config or LedgerConfig()
        self.cache = cache or SessionCache()
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        """Open the store and load the cache."""
        await self.store.open()
        await self.cache.refresh(self.store)

    async def close(self) -> None:
        await self.store.close()

    async def refresh(self) -> None:
        """Reload the cache from the store."""
        await self.cache.refresh(self.store)

    # -------------------------------------------------------------------------
    # Students
    # -------------------------------------------------------------------------

    async def create_student(self, full_name: str, **fields: Any) -> Student:
        """Create and persist a new student with a fresh id.

        Args:
            full_name: Student's full name
            **fields: Any other Student fields (snake_case)

        Returns:
            The stored Student
        """
        student = Student(
            id=generate_id(), full_name=full_name, created_at=utc_now_iso(), **fields
        )
        return await self.save_student(student)

    async def save_student(self, student: Student) -> Student:
        """Insert or replace a student (direct edit).

        The creation timestamp of an existing record is preserved.
        """
        async with self._lock:
            existing = await self.store.get(STUDENTS, student.id)
            return await self._write_student(student, existing)

    async def update_student(self, student_id: str, **fields: Any) -> Student:
        """Change profile fields of a stored student, keeping everything else.

        Raises:
            StudentNotFoundError: If no such student
        """
        async with self._lock:
            existing = await self._fetch_student(student_id)
            return await self._write_student(replace(existing, **fields), existing)

    async def delete_student(self, student_id: str) -> int:
        """Delete a student and all of its visits.

        Returns:
            Number of visits removed with the student
        """
        async with self._lock:
            removed = await self.store.delete_student_cascade(student_id)
            await self.refresh()
        return removed

    async def get_student(self, student_id: str) -> Student:
        """Fetch a student from the store.

        Raises:
            StudentNotFoundError: If no such student
        """
        return await self._fetch_student(student_id)

    async def _fetch_student(self, student_id: str) -> Student:
        student = await self.store.get(STUDENTS, student_id)
        if student is None:
            raise StudentNotFoundError(student_id)
        return student

    async def _write_student(self, student: Student, existing: Student | None) -> Student:
        # Caller holds _lock
        if existing is not None and existing.created_at != student.created_at:
            student = replace(student, created_at=existing.created_at)

        await self.store.put(STUDENTS, student)
        logger.info(
            "ledger.student_saved",
            student_id=student.id,
            created=existing is None,
        )
        await self.refresh()
        return student

    # -------------------------------------------------------------------------
    # Visits
    # -------------------------------------------------------------------------

    async def save_visit(self, visit: VisitEvent) -> VisitEvent:
        """Insert or replace a visit without touching the student (edit-and-resave).

        Raises:
            StudentNotFoundError: If the visit references an unknown student
        """
        async with self._lock:
            await self._fetch_student(visit.student_id)
            await self.store.put(VISITS, visit)
            logger.info("ledger.visit_saved", visit_id=visit.id, student_id=visit.student_id)
            await self.refresh()
        return visit

    async def record_visit(
        self,
        visit: VisitEvent,
        updates: Iterable[CurriculumUpdateItem] = (),
        finance_item: FinanceItem | None = None,
    ) -> tuple[VisitEvent, Student]:
        """Record a visit and fold its progress into the student.

        Update items with an empty book name are dropped. Page counts and
        amounts are digit-normalized; with strict_numbers they must also be
        non-negative integers.

        Returns:
            (visit, merged student), both persisted in one transaction

        Raises:
            StudentNotFoundError: If the visit references an unknown student
            MalformedValueError: Non-numeric page or amount in strict mode
        """
        items = self._prepare_updates(updates)
        finance = self._prepare_finance(finance_item)

        async with self._lock:
            student = await self._fetch_student(visit.student_id)
            merged = merge_visit(
                student,
                visit,
                items,
                finance,
                default_finance_source=self.config.default_finance_source,
            )

            await self.store.put_many([(VISITS, visit), (STUDENTS, merged)])
            logger.info(
                "ledger.visit_recorded",
                visit_id=visit.id,
                student_id=student.id,
                updates=len(items),
                finance=finance is not None,
            )
            await self.refresh()
        return visit, merged

    async def delete_visit(self, visit_id: str) -> bool:
        """Delete one visit. The student's history is left as is."""
        async with self._lock:
            deleted = await self.store.delete(VISITS, visit_id)
            await self.refresh()
        return deleted

    # -------------------------------------------------------------------------
    # Backup
    # -------------------------------------------------------------------------

    async def export_backup(self) -> dict[str, Any]:
        """Snapshot both collections as a backup document."""
        return await export_backup(self.store)

    async def import_backup(self, doc: Any) -> tuple[int, int]:
        """Replace everything with the backup contents.

        Raises:
            InvalidBackupFormatError: Document rejected, nothing changed
        """
        async with self._lock:
            counts = await import_backup(self.store, doc)
            await self.refresh()
        return counts

    # -------------------------------------------------------------------------
    # Input preparation
    # -------------------------------------------------------------------------

    def _prepare_updates(
        self, updates: Iterable[CurriculumUpdateItem]
    ) -> list[CurriculumUpdateItem]:
        items = []
        for item in updates:
            name = item.book_name.strip()
            if not name:
                continue
            page = normalize_digits(item.current_page)
            if self.config.strict_numbers:
                require_non_negative_int(page, "currentPage")
            items.append(replace(item, book_name=name, current_page=page))
        return items

    def _prepare_finance(self, finance_item: FinanceItem | None) -> FinanceItem | None:
        if finance_item is None:
            return None
        amount = normalize_digits(finance_item.amount)
        if not amount:
            return None
        if self.config.strict_numbers:
            require_non_negative_int(amount, "amount")
        return replace(finance_item, amount=amount)


# =============================================================================
# PROCESS-WIDE INSTANCE (CLI / web)
# =============================================================================

_ledger: Ledger | None = None


def get_ledger() -> Ledger:
    """Get the process-wide ledger, built from the app config on first use."""
    global _ledger
    if _ledger is None:
        config = load_app_config()
        _ledger = Ledger(RecordStore(config.db_path), config=config.ledger)
    return _ledger


def reset_ledger() -> None:
    """Forget the process-wide ledger (for testing)."""
    global _ledger
    _ledger = None
