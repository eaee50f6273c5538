"""Visit endpoints.

Recording a visit merges its curriculum updates and contribution into the
student in the same transaction as the visit itself.
"""

from fastapi import APIRouter, HTTPException, status

from hujra.core.ledger import get_ledger
from hujra.core.models import VisitEvent, generate_id
from hujra.utils.text_utils import today_iso
from hujra.utils.validators import parse_iso_date
from hujra.web.routes.errors import LEDGER_ERRORS, to_http_error
from hujra.web.schemas import VisitCreate, VisitListResponse, VisitRecordedResponse

router = APIRouter(prefix="/api/visits", tags=["visits"])


@router.get("", response_model=VisitListResponse)
async def list_visits(student_id: str = "") -> VisitListResponse:
    """List visits newest first, optionally for one student."""
    cache = get_ledger().cache
    visits = cache.visits_for(student_id) if student_id else cache.visits
    return VisitListResponse(visits=[v.to_dict() for v in visits], count=len(visits))


@router.post(
    "", response_model=VisitRecordedResponse, status_code=status.HTTP_201_CREATED
)
async def record_visit(visit_data: VisitCreate) -> VisitRecordedResponse:
    """Record a visit and apply its progress to the student."""
    if visit_data.visit_date:
        try:
            visit_date = parse_iso_date(visit_data.visit_date)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid visit_date: {visit_data.visit_date}",
            ) from e
    else:
        visit_date = today_iso()

    visit = VisitEvent(
        id=generate_id(),
        student_id=visit_data.student_id,
        teacher_name=visit_data.teacher_name,
        visit_date=visit_date,
        location=visit_data.location,
        student_notes=visit_data.student_notes,
        hujra_notes=visit_data.hujra_notes,
        suggestions=visit_data.suggestions,
    )
    finance = visit_data.finance.to_item() if visit_data.finance else None

    try:
        saved, student = await get_ledger().record_visit(
            visit, [u.to_item() for u in visit_data.updates], finance
        )
    except LEDGER_ERRORS as e:
        raise to_http_error(e) from e

    return VisitRecordedResponse(visit=saved.to_dict(), student=student.to_dict())


@router.delete("/{visit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_visit(visit_id: str) -> None:
    """Delete a visit by ID."""
    try:
        deleted = await get_ledger().delete_visit(visit_id)
    except LEDGER_ERRORS as e:
        raise to_http_error(e) from e

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Visit '{visit_id}' not found",
        )
