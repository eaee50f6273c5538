"""Backup endpoints: full export and destructive import."""

from typing import Any

from fastapi import APIRouter, Body, HTTPException, status

from hujra.core.ledger import get_ledger
from hujra.db.backup import backup_filename
from hujra.web.routes.errors import LEDGER_ERRORS, to_http_error
from hujra.web.schemas import ImportResponse

router = APIRouter(prefix="/api/backup", tags=["backup"])


@router.get("")
async def export_backup() -> dict[str, Any]:
    """Return the whole dataset as a backup document."""
    try:
        return await get_ledger().export_backup()
    except LEDGER_ERRORS as e:
        raise to_http_error(e) from e


@router.get("/filename")
async def suggested_filename() -> dict[str, str]:
    """Suggested file name for a backup taken today."""
    return {"filename": backup_filename()}


@router.post("", response_model=ImportResponse)
async def import_backup(
    doc: Any = Body(...),
    confirm: bool = False,
) -> ImportResponse:
    """Replace ALL students and visits with the backup contents.

    Requires ?confirm=true. A rejected document leaves the data unchanged.
    """
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Import replaces all data; repeat with confirm=true",
        )
    try:
        students, visits = await get_ledger().import_backup(doc)
    except LEDGER_ERRORS as e:
        raise to_http_error(e) from e
    return ImportResponse(students=students, visits=visits)
