"""Pydantic schemas for the Web API.

Request bodies use snake_case fields. Record responses carry the camelCase
record form, the same shape as in backup files.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from hujra.core.models import CurriculumUpdateItem, FinanceItem


# =============================================================================
# STUDENT SCHEMAS
# =============================================================================


class StudentCreate(BaseModel):
    """Request body for creating or updating a student."""

    full_name: str = Field(..., min_length=1, max_length=200)
    phone: str = ""
    address: str = ""
    guardian_name: str = ""
    guardian_phone: str = ""
    photo: str = ""
    education_level: str = ""
    previous_financial_aid: str = ""
    aid_source: str = ""
    aid_duration: str = ""
    family_financial_status: str = ""
    income_source: str = ""
    family_status: str = ""
    health_status: str = ""
    chronic_diseases: str = ""
    previous_mosque: str = ""
    previous_teacher: str = ""
    current_mosque: str = ""
    current_teacher: str = ""


class StudentListResponse(BaseModel):
    """Response for list of students."""

    students: list[dict[str, Any]]
    count: int


class StudentDeleteResponse(BaseModel):
    """Result of a cascading student delete."""

    student_id: str
    visits_removed: int


# =============================================================================
# VISIT SCHEMAS
# =============================================================================


class CurriculumUpdate(BaseModel):
    """Progress on one book reported at a visit."""

    book_name: str
    current_page: str = ""
    teacher_name: str | None = None
    is_new_book: bool = False
    is_book_completed: bool = False

    def to_item(self) -> CurriculumUpdateItem:
        return CurriculumUpdateItem(
            book_name=self.book_name,
            current_page=self.current_page,
            teacher_name=self.teacher_name,
            is_new_book=self.is_new_book,
            is_book_completed=self.is_book_completed,
        )


class FinanceUpdate(BaseModel):
    """Contribution handed over at a visit."""

    amount: str
    source: str | None = None
    notes: str | None = None

    def to_item(self) -> FinanceItem:
        return FinanceItem(amount=self.amount, source=self.source, notes=self.notes)


class VisitCreate(BaseModel):
    """Request body for recording a visit."""

    student_id: str = Field(..., min_length=1)
    teacher_name: str = Field(..., min_length=1)
    visit_date: str | None = None
    location: str = ""
    student_notes: str = ""
    hujra_notes: str = ""
    suggestions: str = ""
    updates: list[CurriculumUpdate] = Field(default_factory=list)
    finance: FinanceUpdate | None = None


class VisitRecordedResponse(BaseModel):
    """The stored visit and the student after merging it."""

    visit: dict[str, Any]
    student: dict[str, Any]


class VisitListResponse(BaseModel):
    """Response for list of visits."""

    visits: list[dict[str, Any]]
    count: int


# =============================================================================
# BACKUP / HEALTH SCHEMAS
# =============================================================================


class ImportResponse(BaseModel):
    """Counts restored from a backup."""

    students: int
    visits: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
