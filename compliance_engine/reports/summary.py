"""
Compliance summary report.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.dashboard.widgets import expiring_documents, recent_activity
from compliance_engine.models.enums import ComplianceStatus, InvoiceStatus, VerificationStatus
from compliance_engine.models.tables import ComplianceDocument, Contractor, Invoice
from compliance_engine.reports.ranges import range_start
from compliance_engine.schemas.reports import (
    ContractorTotals,
    DocumentTotals,
    InvoiceTotals,
    ReportSummary,
)


async def _grouped_counts(session: AsyncSession, column, *conditions) -> dict[str, int]:
    query = select(column, func.count()).group_by(column)
    if conditions:
        query = query.where(*conditions)
    result = await session.execute(query)
    return {key: count for key, count in result.all()}


async def build_summary(session: AsyncSession, range_key: str, now: datetime) -> ReportSummary:
    start = range_start(range_key, now)
    today = now.date()

    by_verification = await _grouped_counts(
        session,
        Contractor.verification_status,
        Contractor.is_active.is_(True),
        Contractor.deleted_at.is_(None),
    )
    total_contractors = sum(by_verification.values())
    verified = by_verification.get(VerificationStatus.VERIFIED.value, 0)

    by_document_status = await _grouped_counts(
        session, ComplianceDocument.status, ComplianceDocument.replaced_by_id.is_(None)
    )
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    uploaded = await session.execute(
        select(func.count(ComplianceDocument.id)).where(ComplianceDocument.created_at >= month_start)
    )

    by_invoice_status = await _grouped_counts(session, Invoice.status)
    blocked_amount = await session.execute(
        select(func.coalesce(func.sum(Invoice.amount), 0))
        .where(Invoice.status == InvoiceStatus.BLOCKED.value)
    )

    return ReportSummary(
        range=range_key,
        range_start=start,
        generated_at=now,
        contractors=ContractorTotals(
            total=total_contractors,
            verified=verified,
            partially_verified=by_verification.get(VerificationStatus.PARTIALLY_VERIFIED.value, 0),
            unverified=by_verification.get(VerificationStatus.UNVERIFIED.value, 0),
            suspended=by_verification.get(VerificationStatus.SUSPENDED.value, 0),
            blocked=by_verification.get(VerificationStatus.BLOCKED.value, 0),
            compliance_rate=round(verified / total_contractors * 100) if total_contractors else 0,
        ),
        documents=DocumentTotals(
            total=sum(by_document_status.values()),
            valid=by_document_status.get(ComplianceStatus.VALID.value, 0),
            expiring_soon=by_document_status.get(ComplianceStatus.EXPIRING_SOON.value, 0),
            expired=by_document_status.get(ComplianceStatus.EXPIRED.value, 0),
            pending_review=by_document_status.get(ComplianceStatus.PENDING_REVIEW.value, 0),
            uploaded_this_month=uploaded.scalar() or 0,
        ),
        invoices=InvoiceTotals(
            pending=by_invoice_status.get(InvoiceStatus.PENDING.value, 0),
            approved=by_invoice_status.get(InvoiceStatus.APPROVED.value, 0),
            blocked=by_invoice_status.get(InvoiceStatus.BLOCKED.value, 0),
            blocked_amount=int(blocked_amount.scalar() or 0),
        ),
        expiring_documents=await expiring_documents(session, today, limit=10),
        recent_activity=await recent_activity(session, limit=10, since=start),
    )
