"""
Gas Safe lookup and verification schemas.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from compliance_engine.schemas.common import ApiModel


class GasSafeEngineer(ApiModel):
    """One engineer record as returned by the register (or the cache)."""
    licence_number: str
    engineer_name: Optional[str] = None
    trading_name: Optional[str] = None
    business_address: Optional[str] = None
    status: str = "unknown"                  # valid, expired, not_found, unknown
    is_valid: bool = False
    appliances: list[str] = []
    expiry_date: Optional[date] = None
    raw_data: Optional[dict] = None
    fetched_at: Optional[datetime] = None


class GasSafeLookupResult(ApiModel):
    success: bool
    engineer: Optional[GasSafeEngineer] = None
    error: Optional[str] = None
    cached: bool = False


class GasSafeLookupResponse(GasSafeEngineer):
    """Engineer record plus the public register link for manual checks."""
    manual_verification_url: str


class GasSafeVerifyRequest(ApiModel):
    licence_number: Optional[str] = None
    contractor_id: Optional[str] = None


class GasSafeVerification(ApiModel):
    verified: bool
    engineer: Optional[GasSafeEngineer] = None
    manual_verification_url: str
    message: str
    verification_log_id: Optional[uuid.UUID] = None
    document_id: Optional[uuid.UUID] = None


class ApplianceCoverage(ApiModel):
    covered: bool
    missing_appliances: list[str]
