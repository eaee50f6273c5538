"""Student endpoints."""

from typing import Any

from fastapi import APIRouter, status

from hujra.core.ledger import get_ledger
from hujra.web.routes.errors import LEDGER_ERRORS, to_http_error
from hujra.web.schemas import (
    StudentCreate,
    StudentDeleteResponse,
    StudentListResponse,
)

router = APIRouter(prefix="/api/students", tags=["students"])


@router.get("", response_model=StudentListResponse)
async def list_students(search: str = "") -> StudentListResponse:
    """List students, optionally filtered by name."""
    students = get_ledger().cache.search_students(search)
    return StudentListResponse(
        students=[s.to_dict() for s in students], count=len(students)
    )


@router.get("/{student_id}")
async def get_student(student_id: str) -> dict[str, Any]:
    """Get a specific student by ID."""
    try:
        student = await get_ledger().get_student(student_id)
    except LEDGER_ERRORS as e:
        raise to_http_error(e) from e
    return student.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_student(student_data: StudentCreate) -> dict[str, Any]:
    """Register a new student."""
    fields = student_data.model_dump()
    full_name = fields.pop("full_name").strip()
    try:
        student = await get_ledger().create_student(full_name, **fields)
    except LEDGER_ERRORS as e:
        raise to_http_error(e) from e
    return student.to_dict()


@router.put("/{student_id}")
async def update_student(student_id: str, student_data: StudentCreate) -> dict[str, Any]:
    """Edit a student's profile. Book sets and history logs are kept."""
    try:
        student = await get_ledger().update_student(student_id, **student_data.model_dump())
    except LEDGER_ERRORS as e:
        raise to_http_error(e) from e
    return student.to_dict()


@router.delete("/{student_id}", response_model=StudentDeleteResponse)
async def delete_student(student_id: str) -> StudentDeleteResponse:
    """Delete a student together with all of its visits."""
    ledger = get_ledger()
    try:
        await ledger.get_student(student_id)
        removed = await ledger.delete_student(student_id)
    except LEDGER_ERRORS as e:
        raise to_http_error(e) from e
    return StudentDeleteResponse(student_id=student_id, visits_removed=removed)
