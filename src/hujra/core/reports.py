"""Aggregate statistics over students and visits.

Pure functions over the cached collections; nothing here touches the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from hujra.core.models import FinancialLogEntry, Student, VisitEvent

# Health status values meaning "nothing to report"
HEALTHY_MARKERS = frozenset({"تەندروستە", "healthy"})

# Family financial status values that need follow-up
NEED_MARKERS = frozenset({"خراپ", "هەژار", "زۆر هەژار", "poor", "very poor"})


@dataclass
class StudentFinancialEntry:
    """A financial log entry together with the student it belongs to."""

    student_id: str
    student_name: str
    entry: FinancialLogEntry

    def to_dict(self) -> dict[str, Any]:
        return {
            "studentId": self.student_id,
            "studentName": self.student_name,
            **self.entry.to_dict(),
        }


@dataclass
class ReportSummary:
    """Dashboard numbers for the whole hujra."""

    total_students: int = 0
    total_visits: int = 0
    completed_books: int = 0
    current_books: int = 0
    sick_students: list[Student] = field(default_factory=list)
    financial_alerts: list[Student] = field(default_factory=list)
    financial_log: list[StudentFinancialEntry] = field(default_factory=list)
    total_aid: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "totalStudents": self.total_students,
            "totalVisits": self.total_visits,
            "completedBooks": self.completed_books,
            "currentBooks": self.current_books,
            "sickStudents": [s.id for s in self.sick_students],
            "financialAlerts": [s.id for s in self.financial_alerts],
            "financialLog": [e.to_dict() for e in self.financial_log],
            "totalAid": self.total_aid,
        }


def is_sick(student: Student) -> bool:
    """Student has a health note other than the healthy marker."""
    status = student.health_status.strip()
    return bool(status) and status.lower() not in HEALTHY_MARKERS


def needs_financial_help(student: Student) -> bool:
    """Student's family is marked poor."""
    return student.family_financial_status.strip().lower() in NEED_MARKERS


def parse_amount(amount: str) -> int:
    """Amount as int; anything non-numeric counts as 0."""
    try:
        return max(int(amount.strip()), 0)
    except (ValueError, AttributeError):
        return 0


def collect_financial_log(students: Iterable[Student]) -> list[StudentFinancialEntry]:
    """All students' contributions, newest date first."""
    entries = [
        StudentFinancialEntry(student_id=s.id, student_name=s.full_name, entry=e)
        for s in students
        for e in s.financial_history
    ]
    entries.sort(key=lambda item: item.entry.date, reverse=True)
    return entries


def build_summary(
    students: list[Student], visits: list[VisitEvent]
) -> ReportSummary:
    """Compute the report summary for the given collections."""
    financial_log = collect_financial_log(students)
    return ReportSummary(
        total_students=len(students),
        total_visits=len(visits),
        completed_books=sum(len(s.previous_books) for s in students),
        current_books=sum(len(s.current_books) for s in students),
        sick_students=[s for s in students if is_sick(s)],
        financial_alerts=[s for s in students if needs_financial_help(s)],
        financial_log=financial_log,
        total_aid=sum(parse_amount(item.entry.amount) for item in financial_log),
    )
