"""
CSV report exports.
"""

import csv
import io
from datetime import datetime

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.compliance.risk import risk_band
from compliance_engine.formatting import format_currency, format_document_type, format_status
from compliance_engine.models.enums import ComplianceStatus
from compliance_engine.models.tables import ComplianceDocument, Contractor, Invoice
from compliance_engine.reports.ranges import range_start

logger = structlog.get_logger(__name__)


class UnknownReportType(ValueError):
    pass


def report_filename(report_type: str, now: datetime) -> str:
    return f"{report_type}_report_{now.strftime('%Y-%m-%d')}.csv"


def _iso(value) -> str:
    return value.isoformat() if value is not None else ""


async def _contractor_rows(session: AsyncSession, start: datetime) -> list[list]:
    result = await session.execute(
        select(Contractor)
        .where(Contractor.deleted_at.is_(None))
        .order_by(Contractor.company_name)
    )
    rows = [[
        "Company Name", "Trading Name", "Company Number", "Contact Name", "Email", "Phone",
        "Trade Types", "Verification Status", "Payment Status", "Risk Score", "Risk Level", "Created At",
    ]]
    for c in result.scalars().all():
        rows.append([
            c.company_name, c.trading_name or "", c.company_number or "", c.contact_name,
            c.email, c.phone or "", "; ".join(c.trade_types or []),
            format_status(c.verification_status), format_status(c.payment_status),
            c.risk_score, risk_band(c.risk_score).label, _iso(c.created_at),
        ])
    return rows


async def _document_rows(session: AsyncSession, start: datetime) -> list[list]:
    result = await session.execute(
        select(ComplianceDocument, Contractor.company_name)
        .join(Contractor, Contractor.id == ComplianceDocument.contractor_id)
        .where(ComplianceDocument.replaced_by_id.is_(None), Contractor.deleted_at.is_(None))
        .order_by(ComplianceDocument.expiry_date)
    )
    rows = [[
        "Company Name", "Document Type", "Provider", "Policy Number", "Registration Number",
        "Expiry Date", "Status", "Verification Score",
    ]]
    for doc, company_name in result.all():
        rows.append([
            company_name, format_document_type(doc.document_type), doc.provider_name or "",
            doc.policy_number or "", doc.registration_number or "", _iso(doc.expiry_date),
            format_status(doc.status), doc.verification_score,
        ])
    return rows


async def _compliance_rows(session: AsyncSession, start: datetime) -> list[list]:
    def _status_count(status: ComplianceStatus):
        return func.coalesce(func.sum(case((ComplianceDocument.status == status.value, 1), else_=0)), 0)

    result = await session.execute(
        select(
            Contractor.company_name,
            Contractor.verification_status,
            Contractor.payment_status,
            Contractor.risk_score,
            _status_count(ComplianceStatus.VALID),
            _status_count(ComplianceStatus.EXPIRING_SOON),
            _status_count(ComplianceStatus.EXPIRED),
        )
        .outerjoin(
            ComplianceDocument,
            (ComplianceDocument.contractor_id == Contractor.id)
            & ComplianceDocument.replaced_by_id.is_(None),
        )
        .where(Contractor.deleted_at.is_(None))
        .group_by(
            Contractor.id,
            Contractor.company_name,
            Contractor.verification_status,
            Contractor.payment_status,
            Contractor.risk_score,
        )
        .order_by(Contractor.company_name)
    )
    rows = [[
        "Company Name", "Verification Status", "Payment Status", "Risk Score",
        "Valid Documents", "Expiring Documents", "Expired Documents",
    ]]
    for name, verification, payment, risk, valid, expiring, expired in result.all():
        rows.append([
            name, format_status(verification), format_status(payment), risk,
            int(valid), int(expiring), int(expired),
        ])
    return rows


async def _payment_rows(session: AsyncSession, start: datetime) -> list[list]:
    result = await session.execute(
        select(Invoice, Contractor.company_name)
        .join(Contractor, Contractor.id == Invoice.contractor_id)
        .where(Invoice.created_at >= start)
        .order_by(Invoice.created_at.desc())
    )
    rows = [[
        "Invoice Number", "Company Name", "Amount", "Due Date", "Status", "Block Reason", "Created At",
    ]]
    for invoice, company_name in result.all():
        rows.append([
            invoice.invoice_number, company_name, format_currency(invoice.amount),
            _iso(invoice.due_date), format_status(invoice.status),
            invoice.payment_block_reason or "", _iso(invoice.created_at),
        ])
    return rows


_BUILDERS = {
    "contractors": _contractor_rows,
    "documents": _document_rows,
    "compliance": _compliance_rows,
    "payments": _payment_rows,
}


async def export_report(
    session: AsyncSession,
    report_type: str,
    range_key: str,
    now: datetime,
) -> tuple[str, str]:
    """Build a CSV report. Returns (filename, csv_text)."""
    builder = _BUILDERS.get(report_type)
    if builder is None:
        raise UnknownReportType(report_type)

    rows = await builder(session, range_start(range_key, now))

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerows(rows)

    logger.info("report_exported", report_type=report_type, rows=len(rows) - 1)
    return report_filename(report_type, now), buffer.getvalue()
