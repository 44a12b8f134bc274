"""
/api/internal/payment-run endpoints.
Execute a payment run (finance roles) or preview what one would do.
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.api.errors import internal_errors, ok
from compliance_engine.config import role_list, settings
from compliance_engine.dependencies import CurrentUser, get_current_user, get_db, require_roles
from compliance_engine.payments.run import execute_payment_run, preview_payment_run

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/internal/payment-run", tags=["payments"])


@router.post("")
async def run_payment_run(
    user: CurrentUser = Depends(require_roles(*role_list(settings.PAYMENT_RUN_ROLES))),
    session: AsyncSession = Depends(get_db),
):
    """Classify every pending invoice and record the run in one transaction."""
    with internal_errors("Payment run failed"):
        result = await execute_payment_run(session, processed_by=user.id)
        await session.commit()

    logger.info(
        "payment_run_requested",
        user_id=str(user.id),
        payment_run_id=str(result.payment_run_id) if result.payment_run_id else None,
    )
    return ok(result)


@router.get("")
async def get_payment_run_preview(
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Counts, amounts and verdicts for the invoices a run would process now."""
    with internal_errors("Failed to get payment run preview"):
        preview = await preview_payment_run(session)
    return ok(preview)
