"""
Public verification schemas.
Only what a member of the public may see about a contractor.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from compliance_engine.schemas.common import ApiModel


class PublicQueryType(str, Enum):
    COMPANY_NAME = "company_name"
    COMPANY_NUMBER = "company_number"
    SLUG = "slug"


class PublicVerifyQuery(ApiModel):
    query: str = Field(..., min_length=2, max_length=255)
    type: PublicQueryType = PublicQueryType.COMPANY_NAME


class PublicDocument(ApiModel):
    type: str
    status: str
    coverage_amount: Optional[int] = None
    expiry_date: Optional[date] = None
    provider_name: Optional[str] = None


class PublicCompaniesHouse(ApiModel):
    company_name: str
    company_number: str
    status: str
    incorporated_date: str
    registered_address: str
    is_active: bool


class VerificationBadge(ApiModel):
    type: str
    label: str
    description: str
    earned_at: datetime


class PublicContractorProfile(ApiModel):
    company_name: str
    trading_name: Optional[str] = None
    trade_types: list[str]
    verification_status: str
    documents: list[PublicDocument]
    certifications: list[str]
    member_since: Optional[datetime] = None


class PublicVerificationResult(ApiModel):
    found: bool
    contractor: Optional[PublicContractorProfile] = None
    companies_house: Optional[PublicCompaniesHouse] = None
    verification_status: str
    overall_score: int
    badges: list[VerificationBadge] = []
    last_verified_at: Optional[datetime] = None
    disclaimer: str
