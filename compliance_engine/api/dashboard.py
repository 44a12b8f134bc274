"""
/api/dashboard endpoints.
JSON data for the dashboard widgets.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.api.errors import internal_errors, ok
from compliance_engine.dashboard.widgets import (
    dashboard_stats,
    expiring_documents,
    payment_blocks,
    recent_activity,
)
from compliance_engine.dependencies import get_current_user, get_db
from compliance_engine.models.database import utcnow

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"], dependencies=[Depends(get_current_user)])


@router.get("/stats")
async def get_stats(session: AsyncSession = Depends(get_db)):
    with internal_errors("Failed to load dashboard stats"):
        stats = await dashboard_stats(session, utcnow().date())
    return ok(stats)


@router.get("/expiring-documents")
async def get_expiring_documents(
    limit: int = Query(5, ge=1, le=50),
    session: AsyncSession = Depends(get_db),
):
    with internal_errors("Failed to load expiring documents"):
        documents = await expiring_documents(session, utcnow().date(), limit=limit)
    return ok(documents)


@router.get("/payment-blocks")
async def get_payment_blocks(
    limit: int = Query(5, ge=1, le=50),
    session: AsyncSession = Depends(get_db),
):
    with internal_errors("Failed to load payment blocks"):
        blocks = await payment_blocks(session, limit=limit)
    return ok(blocks)


@router.get("/recent-activity")
async def get_recent_activity(
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_db),
):
    with internal_errors("Failed to load recent activity"):
        items = await recent_activity(session, limit=limit)
    return ok(items)
