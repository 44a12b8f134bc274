"""
Payment-run classification.
Pure functions: pending invoice verdicts in, approved/blocked partition out.
"""

from typing import Iterable

from compliance_engine.schemas.payments import BlockCheckRow, InvoiceDecision, PaymentClassification

DEFAULT_BLOCK_REASON = "Compliance check failed"


def classify_invoice(row: BlockCheckRow) -> InvoiceDecision:
    """Approve when the block check allows payment, otherwise block with its reason."""
    if row.can_pay:
        return InvoiceDecision(
            invoice_id=row.id,
            invoice_number=row.invoice_number,
            company_name=row.company_name,
            amount=row.amount,
            approved=True,
        )
    return InvoiceDecision(
        invoice_id=row.id,
        invoice_number=row.invoice_number,
        company_name=row.company_name,
        amount=row.amount,
        approved=False,
        reason=row.block_reason or DEFAULT_BLOCK_REASON,
    )


def classify_invoices(rows: Iterable[BlockCheckRow]) -> PaymentClassification:
    """
    Partition rows into approved and blocked decisions.
    Every row lands in exactly one list; input order is kept within each.
    """
    classification = PaymentClassification()
    for row in rows:
        decision = classify_invoice(row)
        if decision.approved:
            classification.approved.append(decision)
        else:
            classification.blocked.append(decision)
    return classification
