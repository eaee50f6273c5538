"""Progress merge engine.

Folds one visit plus its curriculum updates into a student's long-lived
state. Pure: no I/O, no mutation of the inputs, returns a new Student.

Rules per update item (applied in order, each sees the previous result):
1. Prepend a StudyLogEntry dated at the visit.
2. New book: prepend a fresh BookProgress to previousBooks (completed) or
   currentBooks (in progress).
3. Existing book: look it up in currentBooks by name.
   - completed: move it to previousBooks (same id)
   - in progress: update pageCount/teacherName in place (same id, same slot)
   - missing: stale reference, history append only

Finance: a non-empty amount prepends one FinancialLogEntry.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

import structlog

from hujra.core.models import (
    DEFAULT_FINANCE_SOURCE,
    BookProgress,
    CurriculumUpdateItem,
    FinanceItem,
    FinancialLogEntry,
    Student,
    StudyLogEntry,
    VisitEvent,
    generate_id,
)

logger = structlog.get_logger(__name__)

NOTE_PROGRESS = "progress"
NOTE_COMPLETED = "completed"


def merge_visit(
    student: Student,
    visit: VisitEvent,
    updates: Iterable[CurriculumUpdateItem] = (),
    finance_item: FinanceItem | None = None,
    default_finance_source: str = DEFAULT_FINANCE_SOURCE,
) -> Student:
    """Fold a visit and its updates into a new Student value.

    Args:
        student: Current student state
        visit: The visit being recorded
        updates: Curriculum updates, applied in order
        finance_item: Optional contribution handed over at the visit
        default_finance_source: Source used when finance_item has none

    Returns:
        New Student with updated book sets and history logs. All other
        fields are unchanged.
    """
    result = student
    for item in updates:
        result = apply_update(result, visit, item)

    if finance_item is not None:
        result = apply_finance(result, visit, finance_item, default_finance_source)

    return result


def apply_update(
    student: Student, visit: VisitEvent, item: CurriculumUpdateItem
) -> Student:
    """Apply one curriculum update item."""
    teacher = item.teacher_name or visit.teacher_name

    entry = StudyLogEntry(
        id=generate_id(),
        date=visit.visit_date,
        book_name=item.book_name,
        current_page=item.current_page,
        teacher_name=teacher,
        note=NOTE_COMPLETED if item.is_book_completed else NOTE_PROGRESS,
    )
    study_history = (entry,) + student.study_history

    if item.is_new_book:
        current, previous = _add_new_book(student, item, teacher)
    else:
        current, previous = _advance_existing_book(student, item, teacher)

    return replace(
        student,
        current_books=current,
        previous_books=previous,
        study_history=study_history,
    )


def apply_finance(
    student: Student,
    visit: VisitEvent,
    finance_item: FinanceItem,
    default_source: str = DEFAULT_FINANCE_SOURCE,
) -> Student:
    """Prepend a FinancialLogEntry if the item carries an amount."""
    if not finance_item.amount:
        return student

    entry = FinancialLogEntry(
        id=generate_id(),
        date=visit.visit_date,
        amount=finance_item.amount,
        source=finance_item.source or default_source,
        notes=finance_item.notes,
    )
    return replace(student, financial_history=(entry,) + student.financial_history)


def _add_new_book(
    student: Student, item: CurriculumUpdateItem, teacher: str
) -> tuple[tuple[BookProgress, ...], tuple[BookProgress, ...]]:
    book = BookProgress(
        id=generate_id(),
        name=item.book_name,
        page_count=item.current_page,
        teacher_name=teacher,
        is_completed=item.is_book_completed,
    )

    # A name lives in one set at a time: drop any same-name entry on the other side
    if item.is_book_completed:
        current = _without_name(student.current_books, item.book_name)
        previous = (book,) + student.previous_books
    else:
        current = (book,) + student.current_books
        previous = _without_name(student.previous_books, item.book_name)

    return current, previous


def _advance_existing_book(
    student: Student, item: CurriculumUpdateItem, teacher: str
) -> tuple[tuple[BookProgress, ...], tuple[BookProgress, ...]]:
    existing = student.find_current_book(item.book_name)

    if existing is None:
        logger.debug(
            "merge.stale_book_reference",
            student_id=student.id,
            book_name=item.book_name,
        )
        return student.current_books, student.previous_books

    updated = replace(existing, page_count=item.current_page, teacher_name=teacher)

    if item.is_book_completed:
        finished = replace(updated, is_completed=True)
        current = tuple(b for b in student.current_books if b.id != existing.id)
        return current, (finished,) + student.previous_books

    current = tuple(
        updated if b.id == existing.id else b for b in student.current_books
    )
    return current, student.previous_books


def _without_name(
    books: tuple[BookProgress, ...], name: str
) -> tuple[BookProgress, ...]:
    return tuple(b for b in books if b.name != name)
