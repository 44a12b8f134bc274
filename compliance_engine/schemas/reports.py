"""
Report schemas.
"""

from datetime import datetime

from compliance_engine.schemas.common import ApiModel
from compliance_engine.schemas.dashboard import ActivityItem, ExpiringDocument


class ContractorTotals(ApiModel):
    total: int
    verified: int
    partially_verified: int
    unverified: int
    suspended: int
    blocked: int
    compliance_rate: int            # percent verified, rounded


class DocumentTotals(ApiModel):
    total: int
    valid: int
    expiring_soon: int
    expired: int
    pending_review: int
    uploaded_this_month: int


class InvoiceTotals(ApiModel):
    pending: int
    approved: int
    blocked: int
    blocked_amount: int


class ReportSummary(ApiModel):
    range: str
    range_start: datetime
    generated_at: datetime
    contractors: ContractorTotals
    documents: DocumentTotals
    invoices: InvoiceTotals
    expiring_documents: list[ExpiringDocument]
    recent_activity: list[ActivityItem]
