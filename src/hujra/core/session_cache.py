"""In-memory snapshot of both collections for the outer surfaces.

The cache is never patched: after every mutation it reloads both
collections from the store, so it can only ever show committed state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from hujra.core.models import STUDENTS, VISITS, Student, VisitEvent
from hujra.db.database import RecordStore, StorageUnavailableError

logger = structlog.get_logger(__name__)


@dataclass
class SessionCache:
    """Last-known-good copy of the students and visits collections."""

    students: list[Student] = field(default_factory=list)
    visits: list[VisitEvent] = field(default_factory=list)
    loaded: bool = False

    async def refresh(self, store: RecordStore) -> None:
        """Reload both collections from the store.

        The snapshot is swapped only after both reads succeed.

        Raises:
            StorageUnavailableError: Store could not be read (snapshot kept)
        """
        try:
            students = await store.get_all(STUDENTS)
            visits = await store.get_all(VISITS)
        except StorageUnavailableError:
            logger.warning(
                "cache.refresh_failed",
                kept_students=len(self.students),
                kept_visits=len(self.visits),
            )
            raise

        self.students = students
        self.visits = visits
        self.loaded = True
        logger.debug("cache.refreshed", students=len(students), visits=len(visits))

    def get_student(self, student_id: str) -> Student | None:
        """Get student by ID."""
        for student in self.students:
            if student.id == student_id:
                return student
        return None

    def get_visit(self, visit_id: str) -> VisitEvent | None:
        """Get visit by ID."""
        for visit in self.visits:
            if visit.id == visit_id:
                return visit
        return None

    def visits_for(self, student_id: str) -> list[VisitEvent]:
        """Visits of one student, in cache order (newest first)."""
        return [v for v in self.visits if v.student_id == student_id]

    def search_students(self, term: str) -> list[Student]:
        """Students whose full name contains term (case-insensitive)."""
        term_lower = term.strip().lower()
        if not term_lower:
            return list(self.students)
        return [s for s in self.students if term_lower in s.full_name.lower()]
