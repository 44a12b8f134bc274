"""
Dashboard widget schemas.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from compliance_engine.schemas.common import ApiModel
from compliance_engine.schemas.payments import BlockCheckRow


class DashboardStats(ApiModel):
    total_contractors: int
    verified_contractors: int
    verified_rate: int                  # percent, rounded
    expiring_documents: int
    expired_documents: int
    pending_documents: int
    blocked_payments: int
    blocked_amount: int


class ExpiringDocument(ApiModel):
    id: uuid.UUID
    contractor_id: uuid.UUID
    company_name: str
    document_type: str
    document_label: str
    expiry_date: date
    days_until_expiry: int
    is_expired: bool
    is_urgent: bool
    badge: str


class PaymentBlocks(ApiModel):
    items: list[BlockCheckRow]
    total_amount: int


class ActivityItem(ApiModel):
    id: uuid.UUID
    action: str
    entity_type: str
    entity_id: uuid.UUID
    kind: str
    message: str
    user_id: Optional[uuid.UUID] = None
    created_at: datetime
