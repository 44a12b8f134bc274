"""
Daily compliance expiry check.

1. Age current document statuses (expired / expiring soon).
2. Suspend contractors holding expired liability insurance.
3. Block pending invoices of payment-blocked contractors.
4. Recalculate every active contractor's risk score.
"""

from datetime import date, timedelta
from typing import Optional

import structlog
from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.compliance.audit import record_audit
from compliance_engine.compliance.risk import calculate_risk_score
from compliance_engine.config import settings
from compliance_engine.models.database import utcnow
from compliance_engine.models.enums import (
    REQUIRED_INSURANCE_TYPES,
    AuditAction,
    ComplianceStatus,
    InvoiceStatus,
    PaymentStatus,
    VerificationStatus,
)
from compliance_engine.models.tables import ComplianceDocument, Contractor, Invoice
from compliance_engine.observability.metrics import expiry_check_updates_total

logger = structlog.get_logger(__name__)

INSURANCE_EXPIRED_BLOCK_REASON = "Contractor compliance issue - insurance expired"


class ExpiryCheckResult(BaseModel):
    documents_expired: int = 0
    documents_expiring: int = 0
    contractors_suspended: int = 0
    invoices_blocked: int = 0
    risk_scores_updated: int = 0
    errors: list[str] = []


async def _ids(session: AsyncSession, query) -> list:
    result = await session.execute(query)
    return list(result.scalars().all())


async def _set_document_status(session: AsyncSession, ids: list, status: ComplianceStatus) -> None:
    if ids:
        await session.execute(
            update(ComplianceDocument)
            .where(ComplianceDocument.id.in_(ids))
            .values(status=status.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )


async def age_documents(session: AsyncSession, today: date) -> tuple[int, int]:
    """Mark current documents expired or expiring soon. Returns (expired, expiring)."""
    expired_ids = await _ids(session, select(ComplianceDocument.id).where(
        ComplianceDocument.replaced_by_id.is_(None),
        ComplianceDocument.expiry_date < today,
        ComplianceDocument.status.in_(
            [ComplianceStatus.VALID.value, ComplianceStatus.EXPIRING_SOON.value]
        ),
    ))
    await _set_document_status(session, expired_ids, ComplianceStatus.EXPIRED)

    expiring_ids = await _ids(session, select(ComplianceDocument.id).where(
        ComplianceDocument.replaced_by_id.is_(None),
        ComplianceDocument.expiry_date >= today,
        ComplianceDocument.expiry_date <= today + timedelta(days=settings.EXPIRY_WARNING_DAYS),
        ComplianceDocument.status == ComplianceStatus.VALID.value,
    ))
    await _set_document_status(session, expiring_ids, ComplianceStatus.EXPIRING_SOON)

    return len(expired_ids), len(expiring_ids)


async def suspend_uninsured_contractors(session: AsyncSession) -> int:
    """Suspend and payment-block active contractors with expired required insurance."""
    result = await session.execute(
        select(Contractor)
        .where(
            Contractor.is_active.is_(True),
            Contractor.deleted_at.is_(None),
            Contractor.verification_status != VerificationStatus.BLOCKED.value,
            Contractor.id.in_(
                select(ComplianceDocument.contractor_id).where(
                    ComplianceDocument.replaced_by_id.is_(None),
                    ComplianceDocument.document_type.in_(REQUIRED_INSURANCE_TYPES),
                    ComplianceDocument.status == ComplianceStatus.EXPIRED.value,
                )
            ),
        )
    )

    suspended = 0
    for contractor in result.scalars().all():
        if (
            contractor.verification_status == VerificationStatus.SUSPENDED.value
            and contractor.payment_status == PaymentStatus.BLOCKED.value
        ):
            continue
        previous = {
            "company_name": contractor.company_name,
            "verification_status": contractor.verification_status,
            "payment_status": contractor.payment_status,
        }
        contractor.verification_status = VerificationStatus.SUSPENDED.value
        contractor.payment_status = PaymentStatus.BLOCKED.value
        await record_audit(
            session,
            entity_type="contractors",
            entity_id=contractor.id,
            action=AuditAction.SUSPEND,
            previous_state=previous,
            new_state={
                "company_name": contractor.company_name,
                "verification_status": contractor.verification_status,
                "payment_status": contractor.payment_status,
            },
            metadata={"reason": "insurance_expired"},
        )
        suspended += 1

    await session.flush()
    return suspended


async def block_pending_invoices(session: AsyncSession) -> int:
    """Block pending invoices of contractors whose payments are blocked."""
    invoice_ids = await _ids(session, select(Invoice.id).where(
        Invoice.status == InvoiceStatus.PENDING.value,
        Invoice.contractor_id.in_(
            select(Contractor.id).where(Contractor.payment_status == PaymentStatus.BLOCKED.value)
        ),
    ))
    if invoice_ids:
        now = utcnow()
        await session.execute(
            update(Invoice)
            .where(Invoice.id.in_(invoice_ids))
            .values(
                status=InvoiceStatus.BLOCKED.value,
                payment_block_reason=INSURANCE_EXPIRED_BLOCK_REASON,
                compliance_check_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
    return len(invoice_ids)


async def refresh_risk_scores(session: AsyncSession, errors: list[str]) -> int:
    """Recalculate risk scores; failures are collected in `errors`."""
    contractors = await session.execute(
        select(Contractor).where(Contractor.is_active.is_(True), Contractor.deleted_at.is_(None))
    )
    documents = await session.execute(
        select(ComplianceDocument.contractor_id, ComplianceDocument.status)
        .where(ComplianceDocument.replaced_by_id.is_(None))
    )
    statuses: dict = {}
    for contractor_id, status in documents.all():
        statuses.setdefault(contractor_id, []).append(status)

    updated = 0
    for contractor in contractors.scalars().all():
        try:
            score = calculate_risk_score(contractor.companies_house_data, statuses.get(contractor.id, []))
        except (AttributeError, TypeError, ValueError) as exc:
            errors.append(f"Risk score for {contractor.id}: {exc}")
            continue
        if score != contractor.risk_score:
            contractor.risk_score = score
            updated += 1

    await session.flush()
    return updated


async def run_expiry_check(session: AsyncSession, today: Optional[date] = None) -> ExpiryCheckResult:
    """Run every step of the expiry check. The caller commits."""
    today = today or utcnow().date()
    result = ExpiryCheckResult()

    result.documents_expired, result.documents_expiring = await age_documents(session, today)
    result.contractors_suspended = await suspend_uninsured_contractors(session)
    result.invoices_blocked = await block_pending_invoices(session)
    result.risk_scores_updated = await refresh_risk_scores(session, result.errors)

    for kind in ("documents_expired", "documents_expiring", "contractors_suspended", "invoices_blocked"):
        expiry_check_updates_total.labels(kind=kind).inc(getattr(result, kind))

    logger.info("expiry_check_completed", **result.model_dump())
    return result
