"""Record types for the hujra ledger.

All records are immutable values. List-valued fields are stored as tuples
so a merged Student never shares mutable state with its predecessor.

Serialization uses the camelCase keys of the backup file format:
- Student, BookProgress, VisitEvent, StudyLogEntry, FinancialLogEntry

Input-only types (never persisted):
- CurriculumUpdateItem, FinanceItem
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# =============================================================================
# CONSTANTS
# =============================================================================

STUDENTS = "students"
VISITS = "visits"
COLLECTIONS = (STUDENTS, VISITS)

DEFAULT_FINANCE_SOURCE = "visit-time contribution"


def generate_id() -> str:
    """Generate a client-side record id.

    Millisecond timestamp plus a short random suffix: sortable by creation
    time and unique within a process run.
    """
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def utc_now_iso() -> str:
    """Current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def _str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value)


def _flag(data: dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


# =============================================================================
# EMBEDDED RECORDS
# =============================================================================


@dataclass(frozen=True)
class BookProgress:
    """One book/subject a student is or was studying."""

    id: str
    name: str
    page_count: str = ""
    teacher_name: str = ""
    is_completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "pageCount": self.page_count,
            "teacherName": self.teacher_name,
            "isCompleted": self.is_completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BookProgress:
        return cls(
            id=_str(data, "id") or generate_id(),
            name=_str(data, "name"),
            page_count=_str(data, "pageCount"),
            teacher_name=_str(data, "teacherName"),
            is_completed=_flag(data, "isCompleted"),
        )


@dataclass(frozen=True)
class StudyLogEntry:
    """One progress update for one book at one visit."""

    id: str
    date: str
    book_name: str
    current_page: str
    teacher_name: str = ""
    note: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "date": self.date,
            "bookName": self.book_name,
            "currentPage": self.current_page,
            "teacherName": self.teacher_name,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudyLogEntry:
        return cls(
            id=_str(data, "id") or generate_id(),
            date=_str(data, "date"),
            book_name=_str(data, "bookName"),
            current_page=_str(data, "currentPage"),
            teacher_name=_str(data, "teacherName"),
            note=_str(data, "note"),
        )


@dataclass(frozen=True)
class FinancialLogEntry:
    """One financial contribution received by a student."""

    id: str
    date: str
    amount: str
    source: str = ""
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "amount": self.amount,
            "source": self.source,
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FinancialLogEntry:
        notes = data.get("notes")
        return cls(
            id=_str(data, "id") or generate_id(),
            date=_str(data, "date"),
            amount=_str(data, "amount"),
            source=_str(data, "source"),
            notes=str(notes) if notes is not None else None,
        )


# =============================================================================
# TOP-LEVEL RECORDS
# =============================================================================


# (attribute, json key) pairs for the plain-text profile fields of Student
STUDENT_TEXT_FIELDS: tuple[tuple[str, str], ...] = (
    ("full_name", "fullName"),
    ("phone", "phone"),
    ("address", "address"),
    ("guardian_name", "guardianName"),
    ("guardian_phone", "guardianPhone"),
    ("photo", "photo"),
    ("education_level", "educationLevel"),
    ("previous_financial_aid", "previousFinancialAid"),
    ("aid_source", "aidSource"),
    ("aid_duration", "aidDuration"),
    ("family_financial_status", "familyFinancialStatus"),
    ("income_source", "incomeSource"),
    ("family_status", "familyStatus"),
    ("health_status", "healthStatus"),
    ("chronic_diseases", "chronicDiseases"),
    ("previous_mosque", "previousMosque"),
    ("previous_teacher", "previousTeacher"),
    ("current_mosque", "currentMosque"),
    ("current_teacher", "currentTeacher"),
)


@dataclass(frozen=True)
class Student:
    """A curriculum-tracked student with book sets and history logs."""

    id: str
    full_name: str
    phone: str = ""
    address: str = ""
    guardian_name: str = ""
    guardian_phone: str = ""
    photo: str = ""  # base64 data URL, optional

    # Classification
    education_level: str = ""
    previous_financial_aid: str = ""
    aid_source: str = ""
    aid_duration: str = ""
    family_financial_status: str = ""
    income_source: str = ""
    family_status: str = ""
    health_status: str = ""
    chronic_diseases: str = ""

    # Placement
    previous_mosque: str = ""
    previous_teacher: str = ""
    current_mosque: str = ""
    current_teacher: str = ""

    # Lifecycle book sets
    current_books: tuple[BookProgress, ...] = ()
    previous_books: tuple[BookProgress, ...] = ()

    # Append-only logs, newest first
    study_history: tuple[StudyLogEntry, ...] = ()
    financial_history: tuple[FinancialLogEntry, ...] = ()

    created_at: str = field(default_factory=utc_now_iso)

    def find_current_book(self, name: str) -> BookProgress | None:
        """Get the in-progress book with this exact name."""
        for book in self.current_books:
            if book.name == name:
                return book
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {"id": self.id}
        for attr, key in STUDENT_TEXT_FIELDS:
            data[key] = getattr(self, attr)
        data["currentBooks"] = [b.to_dict() for b in self.current_books]
        data["previousBooks"] = [b.to_dict() for b in self.previous_books]
        data["studyHistory"] = [e.to_dict() for e in self.study_history]
        data["financialHistory"] = [e.to_dict() for e in self.financial_history]
        data["createdAt"] = self.created_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Student:
        """Rebuild a Student from its JSON form, tolerating missing keys."""
        kwargs: dict[str, Any] = {
            attr: _str(data, key) for attr, key in STUDENT_TEXT_FIELDS
        }
        return cls(
            id=_str(data, "id"),
            current_books=tuple(
                BookProgress.from_dict(b) for b in data.get("currentBooks") or []
            ),
            previous_books=tuple(
                BookProgress.from_dict(b) for b in data.get("previousBooks") or []
            ),
            study_history=tuple(
                StudyLogEntry.from_dict(e) for e in data.get("studyHistory") or []
            ),
            financial_history=tuple(
                FinancialLogEntry.from_dict(e)
                for e in data.get("financialHistory") or []
            ),
            created_at=_str(data, "createdAt") or utc_now_iso(),
            **kwargs,
        )


@dataclass(frozen=True)
class VisitEvent:
    """A single dated tutor visit referencing a student."""

    id: str
    student_id: str
    teacher_name: str
    visit_date: str
    location: str = ""
    student_notes: str = ""
    hujra_notes: str = ""
    suggestions: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "studentId": self.student_id,
            "teacherName": self.teacher_name,
            "visitDate": self.visit_date,
            "location": self.location,
            "studentNotes": self.student_notes,
            "hujraNotes": self.hujra_notes,
            "suggestions": self.suggestions,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VisitEvent:
        return cls(
            id=_str(data, "id"),
            student_id=_str(data, "studentId"),
            teacher_name=_str(data, "teacherName"),
            visit_date=_str(data, "visitDate"),
            location=_str(data, "location"),
            student_notes=_str(data, "studentNotes"),
            hujra_notes=_str(data, "hujraNotes"),
            suggestions=_str(data, "suggestions"),
        )


# =============================================================================
# MERGE INPUTS
# =============================================================================


@dataclass(frozen=True)
class CurriculumUpdateItem:
    """Progress reported for one book during a visit."""

    book_name: str
    current_page: str
    teacher_name: str | None = None
    is_new_book: bool = False
    is_book_completed: bool = False


@dataclass(frozen=True)
class FinanceItem:
    """Contribution handed over during a visit."""

    amount: str
    source: str | None = None
    notes: str | None = None


def record_from_dict(collection: str, data: dict[str, Any]) -> Student | VisitEvent:
    """Decode a stored record of the given collection."""
    if collection == STUDENTS:
        return Student.from_dict(data)
    if collection == VISITS:
        return VisitEvent.from_dict(data)
    raise ValueError(f"Unknown collection: {collection}")
