"""
Dashboard widget queries.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.config import settings
from compliance_engine.dashboard.activity import FEED_ACTIONS, describe_activity
from compliance_engine.formatting import days_until, expiry_badge, format_document_type
from compliance_engine.models.database import as_utc
from compliance_engine.models.enums import ComplianceStatus, InvoiceStatus, VerificationStatus
from compliance_engine.models.tables import AuditLog, ComplianceDocument, Contractor, Invoice
from compliance_engine.payments.block_check import fetch_block_checks
from compliance_engine.schemas.dashboard import (
    ActivityItem,
    DashboardStats,
    ExpiringDocument,
    PaymentBlocks,
)


async def _count(session: AsyncSession, query) -> int:
    result = await session.execute(select(func.count()).select_from(query.subquery()))
    return result.scalar() or 0


async def dashboard_stats(session: AsyncSession, today: date) -> DashboardStats:
    active = select(Contractor.id).where(Contractor.is_active.is_(True), Contractor.deleted_at.is_(None))
    total = await _count(session, active)
    verified = await _count(
        session, active.where(Contractor.verification_status == VerificationStatus.VERIFIED.value)
    )

    current_docs = select(ComplianceDocument.id).where(ComplianceDocument.replaced_by_id.is_(None))
    warning_end = today + timedelta(days=settings.EXPIRY_WARNING_DAYS)
    expiring = await _count(
        session,
        current_docs.where(
            ComplianceDocument.expiry_date >= today,
            ComplianceDocument.expiry_date <= warning_end,
        ),
    )
    expired = await _count(session, current_docs.where(ComplianceDocument.expiry_date < today))
    pending = await _count(
        session, current_docs.where(ComplianceDocument.status == ComplianceStatus.PENDING_REVIEW.value)
    )

    blocked = await session.execute(
        select(func.count(Invoice.id), func.coalesce(func.sum(Invoice.amount), 0))
        .where(Invoice.status == InvoiceStatus.BLOCKED.value)
    )
    blocked_count, blocked_amount = blocked.one()

    return DashboardStats(
        total_contractors=total,
        verified_contractors=verified,
        verified_rate=round(verified / total * 100) if total else 0,
        expiring_documents=expiring,
        expired_documents=expired,
        pending_documents=pending,
        blocked_payments=blocked_count,
        blocked_amount=int(blocked_amount),
    )


async def expiring_documents(
    session: AsyncSession,
    today: date,
    limit: int = 5,
    within_days: Optional[int] = None,
) -> list[ExpiringDocument]:
    """Current valid/expiring documents due within the warning window, soonest first."""
    window = within_days if within_days is not None else settings.EXPIRY_WARNING_DAYS
    result = await session.execute(
        select(ComplianceDocument, Contractor.company_name)
        .join(Contractor, Contractor.id == ComplianceDocument.contractor_id)
        .where(
            ComplianceDocument.replaced_by_id.is_(None),
            ComplianceDocument.status.in_(
                [ComplianceStatus.VALID.value, ComplianceStatus.EXPIRING_SOON.value]
            ),
            ComplianceDocument.expiry_date.is_not(None),
            ComplianceDocument.expiry_date <= today + timedelta(days=window),
            Contractor.deleted_at.is_(None),
        )
        .order_by(ComplianceDocument.expiry_date)
        .limit(limit)
    )

    documents = []
    for doc, company_name in result.all():
        days_left = days_until(doc.expiry_date, today)
        documents.append(ExpiringDocument(
            id=doc.id,
            contractor_id=doc.contractor_id,
            company_name=company_name,
            document_type=doc.document_type,
            document_label=format_document_type(doc.document_type),
            expiry_date=doc.expiry_date,
            days_until_expiry=days_left,
            is_expired=days_left < 0,
            is_urgent=days_left <= settings.EXPIRY_URGENT_DAYS,
            badge=expiry_badge(days_left),
        ))
    return documents


async def payment_blocks(session: AsyncSession, limit: int = 5) -> PaymentBlocks:
    """Pending invoices that cannot be paid, earliest due first."""
    items = await fetch_block_checks(session, blocked_only=True, limit=limit)
    return PaymentBlocks(items=items, total_amount=sum(item.amount for item in items))


async def recent_activity(
    session: AsyncSession,
    limit: int = 10,
    since: Optional[datetime] = None,
) -> list[ActivityItem]:
    """Newest audit entries for feed actions, each with a display message."""
    conditions = [AuditLog.action.in_(FEED_ACTIONS)]
    if since is not None:
        conditions.append(AuditLog.created_at >= since)

    result = await session.execute(
        select(AuditLog)
        .where(and_(*conditions))
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
    )

    items = []
    for entry in result.scalars().all():
        kind, message = describe_activity(
            entry.action, entry.entity_type, entry.new_state or entry.previous_state
        )
        items.append(ActivityItem(
            id=entry.id,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            kind=kind,
            message=message,
            user_id=entry.user_id,
            created_at=as_utc(entry.created_at),
        ))
    return items
