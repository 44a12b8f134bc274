"""
Payment-block check.

For every pending invoice, decides whether the contractor may be paid and,
if not, why. The first matching rule gives the block reason:

    1. contractor payment_status is blocked
    2. contractor verification_status is blocked
    3. contractor verification_status is suspended
    4. a current public/employers liability document has expired
    5. no current valid public liability document

`can_pay` requires payment_status allowed, verification_status verified and
no expired current liability document. It is possible for `can_pay` to be
false with no reason; the classifier supplies a default.
"""

from typing import Optional

from sqlalchemy import Select, and_, case, exists, false, null, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.models.enums import (
    REQUIRED_INSURANCE_TYPES,
    ComplianceStatus,
    DocumentType,
    InvoiceStatus,
    PaymentStatus,
    VerificationStatus,
)
from compliance_engine.models.tables import ComplianceDocument, Contractor, Invoice
from compliance_engine.schemas.payments import BlockCheckRow

REASON_PAYMENT_BLOCKED = "Contractor payment blocked"
REASON_VERIFICATION_BLOCKED = "Contractor verification blocked"
REASON_SUSPENDED = "Contractor suspended"
REASON_INSURANCE_EXPIRED = "Required insurance expired"
REASON_NO_PUBLIC_LIABILITY = "No valid public liability insurance"


def _current_document_exists(*conditions):
    return exists().where(
        ComplianceDocument.contractor_id == Contractor.id,
        ComplianceDocument.replaced_by_id.is_(None),
        *conditions,
    )


def block_check_query() -> Select:
    """Pending invoices joined to their contractor with `block_reason` and `can_pay`."""
    insurance_expired = _current_document_exists(
        ComplianceDocument.document_type.in_(REQUIRED_INSURANCE_TYPES),
        ComplianceDocument.status == ComplianceStatus.EXPIRED.value,
    )
    has_public_liability = _current_document_exists(
        ComplianceDocument.document_type == DocumentType.PUBLIC_LIABILITY.value,
        ComplianceDocument.status == ComplianceStatus.VALID.value,
    )

    block_reason = case(
        (Contractor.payment_status == PaymentStatus.BLOCKED.value, REASON_PAYMENT_BLOCKED),
        (Contractor.verification_status == VerificationStatus.BLOCKED.value, REASON_VERIFICATION_BLOCKED),
        (Contractor.verification_status == VerificationStatus.SUSPENDED.value, REASON_SUSPENDED),
        (insurance_expired, REASON_INSURANCE_EXPIRED),
        (~has_public_liability, REASON_NO_PUBLIC_LIABILITY),
        else_=null(),
    )
    can_pay = case(
        (
            and_(
                Contractor.payment_status == PaymentStatus.ALLOWED.value,
                Contractor.verification_status == VerificationStatus.VERIFIED.value,
                ~insurance_expired,
            ),
            true(),
        ),
        else_=false(),
    )

    return (
        select(
            Invoice.id,
            Invoice.invoice_number,
            Invoice.contractor_id,
            Contractor.company_name,
            Invoice.amount,
            Invoice.due_date,
            can_pay.label("can_pay"),
            block_reason.label("block_reason"),
        )
        .join(Contractor, Contractor.id == Invoice.contractor_id)
        .where(Invoice.status == InvoiceStatus.PENDING.value)
    )


async def fetch_block_checks(
    session: AsyncSession,
    blocked_only: bool = False,
    limit: Optional[int] = None,
) -> list[BlockCheckRow]:
    """Evaluate the block check. `blocked_only` keeps rows that cannot be paid and have a reason."""
    query = block_check_query()
    if blocked_only:
        subquery = query.subquery()
        query = (
            select(subquery)
            .where(subquery.c.can_pay == false(), subquery.c.block_reason.is_not(None))
            .order_by(subquery.c.due_date)
        )
    else:
        query = query.order_by(Invoice.due_date, Invoice.invoice_number)
    if limit is not None:
        query = query.limit(limit)

    result = await session.execute(query)
    return [BlockCheckRow.model_validate(dict(row._mapping)) for row in result.all()]
