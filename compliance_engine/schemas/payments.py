"""
Payment run schemas.
All amounts are integer pence.
"""

import uuid
from datetime import date
from typing import Optional

from compliance_engine.schemas.common import ApiModel


class BlockCheckRow(ApiModel):
    """One pending invoice with its payment-block verdict."""
    id: uuid.UUID
    invoice_number: str
    contractor_id: uuid.UUID
    company_name: str
    amount: int
    due_date: Optional[date] = None
    can_pay: bool
    block_reason: Optional[str] = None


class InvoiceDecision(ApiModel):
    invoice_id: uuid.UUID
    invoice_number: str
    company_name: str
    amount: int
    approved: bool
    reason: Optional[str] = None


class PaymentClassification(ApiModel):
    approved: list[InvoiceDecision] = []
    blocked: list[InvoiceDecision] = []

    @property
    def approved_amount(self) -> int:
        return sum(d.amount for d in self.approved)

    @property
    def blocked_amount(self) -> int:
        return sum(d.amount for d in self.blocked)

    @property
    def total_amount(self) -> int:
        return self.approved_amount + self.blocked_amount

    @property
    def total_invoices(self) -> int:
        return len(self.approved) + len(self.blocked)


class BlockedInvoice(ApiModel):
    invoice_id: uuid.UUID
    invoice_number: str
    company_name: str
    amount: int
    reason: str


class PaymentRunResult(ApiModel):
    payment_run_id: Optional[uuid.UUID] = None
    message: Optional[str] = None
    total_invoices: int = 0
    approved_invoices: int = 0
    blocked_invoices: int = 0
    total_amount: int = 0
    approved_amount: int = 0
    blocked_amount: int = 0
    blocked_details: list[BlockedInvoice] = []


class PreviewInvoice(ApiModel):
    id: uuid.UUID
    invoice_number: str
    contractor_id: uuid.UUID
    company_name: str
    amount: int
    due_date: Optional[date] = None
    can_pay: bool
    block_reason: Optional[str] = None


class PaymentRunPreview(ApiModel):
    total_invoices: int
    can_pay_count: int
    blocked_count: int
    total_amount: int
    approveable_amount: int
    blocked_amount: int
    invoices: list[PreviewInvoice]
