"""Report endpoints."""

from typing import Any

from fastapi import APIRouter

from hujra.core.ledger import get_ledger
from hujra.core.reports import build_summary

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/summary")
async def report_summary() -> dict[str, Any]:
    """Dashboard numbers computed from the current snapshot."""
    cache = get_ledger().cache
    return build_summary(cache.students, cache.visits).to_dict()
