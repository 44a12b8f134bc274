"""
Contractor record schemas.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field

from compliance_engine.models.enums import PaymentStatus, TradeType, VerificationStatus
from compliance_engine.schemas.common import ApiModel, Pagination

COMPANY_NUMBER_PATTERN = r"^[A-Z0-9]{8}$"
POSTCODE_PATTERN = r"^[A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2}$"


class ContractorCreate(ApiModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    trading_name: Optional[str] = Field(None, max_length=200)
    company_number: Optional[str] = Field(None, pattern=COMPANY_NUMBER_PATTERN)
    vat_number: Optional[str] = Field(None, max_length=20)
    contact_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, min_length=10, max_length=32)
    trade_types: list[TradeType] = Field(..., min_length=1)
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = Field(None, pattern=POSTCODE_PATTERN)
    notes: Optional[str] = None
    tags: list[str] = []


class ContractorUpdate(ApiModel):
    """Partial update; only fields present in the body are applied."""
    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    trading_name: Optional[str] = Field(None, max_length=200)
    company_number: Optional[str] = Field(None, pattern=COMPANY_NUMBER_PATTERN)
    vat_number: Optional[str] = Field(None, max_length=20)
    contact_name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=10, max_length=32)
    trade_types: Optional[list[TradeType]] = Field(None, min_length=1)
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = Field(None, pattern=POSTCODE_PATTERN)
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    verification_status: Optional[VerificationStatus] = None
    payment_status: Optional[PaymentStatus] = None


class ContractorSummary(ApiModel):
    id: uuid.UUID
    company_name: str
    trading_name: Optional[str] = None
    contact_name: str
    email: str
    phone: Optional[str] = None
    trade_types: list[str]
    verification_status: str
    payment_status: str
    risk_score: int
    public_profile_slug: Optional[str] = None
    created_at: datetime


class ContractorListResponse(ApiModel):
    contractors: list[ContractorSummary]
    pagination: Pagination


class ComplianceDocumentSummary(ApiModel):
    id: uuid.UUID
    document_type: str
    provider_name: Optional[str] = None
    policy_number: Optional[str] = None
    registration_number: Optional[str] = None
    expiry_date: Optional[date] = None
    status: str
    verification_score: int


class VerificationLogSummary(ApiModel):
    id: uuid.UUID
    check_type: str
    status: str
    result: Optional[dict] = None
    duration_ms: Optional[int] = None
    created_at: datetime


class ContractorDetail(ContractorSummary):
    company_number: Optional[str] = None
    vat_number: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None
    notes: Optional[str] = None
    tags: list[str] = []
    is_active: bool
    last_verified_at: Optional[datetime] = None
    updated_at: datetime
    documents: list[ComplianceDocumentSummary] = []
    verification_logs: list[VerificationLogSummary] = []
