"""
/api/reports endpoints.
Summary figures and CSV downloads.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.api.errors import ApiError, internal_errors, ok
from compliance_engine.dependencies import get_current_user, get_db
from compliance_engine.models.database import utcnow
from compliance_engine.reports.export import UnknownReportType, export_report
from compliance_engine.reports.ranges import DEFAULT_RANGE
from compliance_engine.reports.summary import build_summary

router = APIRouter(prefix="/api/reports", tags=["reports"], dependencies=[Depends(get_current_user)])


@router.get("/summary")
async def get_summary(
    range_key: str = Query(DEFAULT_RANGE, alias="range"),
    session: AsyncSession = Depends(get_db),
):
    with internal_errors("Failed to build report"):
        summary = await build_summary(session, range_key, utcnow())
    return ok(summary)


@router.get("/export")
async def export_csv(
    report_type: str = Query("contractors", alias="type"),
    range_key: str = Query(DEFAULT_RANGE, alias="range"),
    session: AsyncSession = Depends(get_db),
):
    """Download a report as CSV."""
    with internal_errors("Failed to export report"):
        try:
            filename, content = await export_report(session, report_type, range_key, utcnow())
        except UnknownReportType:
            raise ApiError.bad_request("INVALID_TYPE", "Invalid report type")

    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
