"""
Public contractor verification.
Lets anyone check a contractor by company name, company number or profile
slug. Scores and badges are computed from current documents and the stored
Companies House record; nothing here calls an external service.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.models.database import as_utc, utcnow
from compliance_engine.models.enums import ComplianceStatus, DocumentType, VerificationStatus
from compliance_engine.models.tables import ComplianceDocument, Contractor
from compliance_engine.schemas.public import (
    PublicCompaniesHouse,
    PublicContractorProfile,
    PublicDocument,
    PublicQueryType,
    PublicVerificationResult,
    VerificationBadge,
)

logger = structlog.get_logger(__name__)

NOT_FOUND_DISCLAIMER = (
    "This company is not registered in our verification system. This does not necessarily "
    "mean they are not legitimate - please conduct your own due diligence."
)
FOUND_DISCLAIMER = (
    "This verification is based on documents and data submitted to our system. "
    "Always conduct your own due diligence before engaging any contractor."
)

SCORED_INSURANCE_TYPES = (
    DocumentType.PUBLIC_LIABILITY.value,
    DocumentType.EMPLOYERS_LIABILITY.value,
)
CERTIFICATION_TYPES = (
    DocumentType.GAS_SAFE.value,
    DocumentType.NICEIC.value,
    DocumentType.NAPIT.value,
    DocumentType.OFTEC.value,
    DocumentType.CSCS.value,
)

_VALID = ComplianceStatus.VALID.value

# type -> (label, description)
_BADGES = {
    "verified_partner": ("Verified Partner", "This contractor has completed our full verification process"),
    "insurance_verified": (
        "Insurance Verified", "Has valid public liability or employers liability insurance"
    ),
    "companies_house_verified": ("Companies House Active", "Registered and active on Companies House"),
    "gas_safe_registered": ("Gas Safe Registered", "Registered with the Gas Safe Register"),
    "niceic_approved": ("NICEIC Approved", "NICEIC approved contractor"),
    "long_standing_member": ("Long Standing Member", "Has been a verified member for over 1 year"),
    "fully_compliant": ("Fully Compliant", "All compliance documents are current and valid"),
}


def format_address(address: dict) -> str:
    parts = [address.get(key) for key in ("line1", "line2", "city", "county", "postcode")]
    return ", ".join(part for part in parts if part)


def companies_house_summary(contractor: Contractor) -> Optional[PublicCompaniesHouse]:
    """Public view of the stored Companies House record, if the contractor has a company number."""
    if not contractor.company_number:
        return None
    data = contractor.companies_house_data or {}
    company_status = str(data.get("companyStatus") or "")
    address = data.get("registeredOfficeAddress")
    return PublicCompaniesHouse(
        company_name=str(data.get("companyName") or contractor.company_name),
        company_number=contractor.company_number,
        status=company_status or "unknown",
        incorporated_date=str(data.get("dateOfCreation") or ""),
        registered_address=format_address(address) if isinstance(address, dict) else "",
        is_active=company_status.lower() == "active",
    )


def verification_score(
    verification_status: str,
    company_number: Optional[str],
    documents: list[PublicDocument],
) -> int:
    """
    0-100: up to 40 for verification status, 10 for a company number,
    20 per valid liability policy, 5 per other valid document (max 10).
    """
    score = 0
    if verification_status == VerificationStatus.VERIFIED.value:
        score += 40
    elif verification_status == VerificationStatus.PARTIALLY_VERIFIED.value:
        score += 20

    if company_number:
        score += 10

    valid_types = [d.type for d in documents if d.status == _VALID]
    score += 20 * sum(1 for doc_type in SCORED_INSURANCE_TYPES if doc_type in valid_types)
    additional = sum(1 for doc_type in valid_types if doc_type not in SCORED_INSURANCE_TYPES)
    score += min(additional * 5, 10)

    return min(score, 100)


def earned_badges(
    contractor: Contractor,
    documents: list[PublicDocument],
    companies_house: Optional[PublicCompaniesHouse],
    now: Optional[datetime] = None,
) -> list[VerificationBadge]:
    now = now or utcnow()
    valid_types = {d.type for d in documents if d.status == _VALID}

    earned = []
    if contractor.verification_status == VerificationStatus.VERIFIED.value:
        earned.append("verified_partner")
    if valid_types & set(SCORED_INSURANCE_TYPES):
        earned.append("insurance_verified")
    if companies_house is not None and companies_house.is_active:
        earned.append("companies_house_verified")
    if DocumentType.GAS_SAFE.value in valid_types:
        earned.append("gas_safe_registered")
    if DocumentType.NICEIC.value in valid_types:
        earned.append("niceic_approved")
    if contractor.onboarded_at and as_utc(contractor.onboarded_at) < now - timedelta(days=365):
        earned.append("long_standing_member")
    if documents and all(d.status == _VALID for d in documents):
        earned.append("fully_compliant")

    return [
        VerificationBadge(type=badge, label=_BADGES[badge][0], description=_BADGES[badge][1], earned_at=now)
        for badge in earned
    ]


def certifications(documents: list[PublicDocument]) -> list[str]:
    return [d.type for d in documents if d.type in CERTIFICATION_TYPES and d.status == _VALID]


async def find_public_contractor(
    session: AsyncSession,
    query: str,
    query_type: PublicQueryType,
) -> Optional[Contractor]:
    """First active contractor matching the query."""
    stmt = select(Contractor).where(Contractor.is_active.is_(True), Contractor.deleted_at.is_(None))
    if query_type == PublicQueryType.COMPANY_NUMBER:
        stmt = stmt.where(Contractor.company_number == query.upper())
    elif query_type == PublicQueryType.SLUG:
        stmt = stmt.where(Contractor.public_profile_slug == query.lower())
    else:
        stmt = stmt.where(Contractor.company_name.ilike(f"%{query}%"))
    result = await session.execute(stmt.order_by(Contractor.company_name).limit(1))
    return result.scalar_one_or_none()


async def public_verification(
    session: AsyncSession,
    query: str,
    query_type: PublicQueryType = PublicQueryType.COMPANY_NAME,
) -> PublicVerificationResult:
    contractor = await find_public_contractor(session, query, query_type)
    if contractor is None:
        logger.info("public_verification", query_type=query_type.value, found=False)
        return PublicVerificationResult(
            found=False,
            verification_status=VerificationStatus.UNVERIFIED.value,
            overall_score=0,
            disclaimer=NOT_FOUND_DISCLAIMER,
        )

    result = await session.execute(
        select(ComplianceDocument)
        .where(
            ComplianceDocument.contractor_id == contractor.id,
            ComplianceDocument.replaced_by_id.is_(None),
        )
        .order_by(ComplianceDocument.expiry_date)
    )
    documents = [
        PublicDocument(
            type=doc.document_type,
            status=doc.status,
            coverage_amount=doc.coverage_amount or None,
            expiry_date=doc.expiry_date,
            provider_name=doc.provider_name,
        )
        for doc in result.scalars().all()
    ]

    companies_house = companies_house_summary(contractor)
    profile = PublicContractorProfile(
        company_name=contractor.company_name,
        trading_name=contractor.trading_name,
        trade_types=contractor.trade_types,
        verification_status=contractor.verification_status,
        documents=documents,
        certifications=certifications(documents),
        member_since=contractor.onboarded_at or contractor.last_verified_at,
    )

    logger.info(
        "public_verification",
        query_type=query_type.value,
        found=True,
        contractor_id=str(contractor.id),
    )
    return PublicVerificationResult(
        found=True,
        contractor=profile,
        companies_house=companies_house,
        verification_status=contractor.verification_status,
        overall_score=verification_score(contractor.verification_status, contractor.company_number, documents),
        badges=earned_badges(contractor, documents, companies_house),
        last_verified_at=contractor.last_verified_at,
        disclaimer=FOUND_DISCLAIMER,
    )
