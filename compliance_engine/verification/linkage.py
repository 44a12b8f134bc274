"""
Verify a contractor's Gas Safe registration and record the outcome.
"""

import time
import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.compliance.audit import record_audit, snapshot
from compliance_engine.compliance.documents import refresh_contractor_status
from compliance_engine.models.database import utcnow
from compliance_engine.models.enums import (
    AuditAction,
    ComplianceStatus,
    DocumentType,
    GasSafeStatus,
    VerificationLogStatus,
)
from compliance_engine.models.tables import ComplianceDocument, Contractor, VerificationLog
from compliance_engine.schemas.verification import GasSafeLookupResult, GasSafeVerification
from compliance_engine.verification.gas_safe import (
    GasSafeRegisterClient,
    format_licence,
    lookup_engineer,
    lookup_url,
)

logger = structlog.get_logger(__name__)

CHECK_TYPE = "gas_safe_registry"
VERIFIED_SCORE = 90

MESSAGE_UNAVAILABLE = "Automated verification unavailable. Please verify manually using the provided link."
MESSAGE_VERIFIED = "Gas Safe registration verified successfully"
MESSAGE_NOT_VERIFIED = "Gas Safe registration could not be verified"


def verification_message(result: GasSafeLookupResult) -> str:
    engineer = result.engineer
    if engineer is not None and engineer.status == GasSafeStatus.UNKNOWN.value:
        return MESSAGE_UNAVAILABLE
    if engineer is not None and engineer.is_valid:
        return MESSAGE_VERIFIED
    return MESSAGE_NOT_VERIFIED


async def current_gas_safe_document(
    session: AsyncSession,
    contractor_id: uuid.UUID,
) -> Optional[ComplianceDocument]:
    """The contractor's latest unreplaced gas_safe document, if any."""
    result = await session.execute(
        select(ComplianceDocument)
        .where(
            ComplianceDocument.contractor_id == contractor_id,
            ComplianceDocument.document_type == DocumentType.GAS_SAFE.value,
            ComplianceDocument.replaced_by_id.is_(None),
        )
        .order_by(ComplianceDocument.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def verify_contractor_gas_safe(
    session: AsyncSession,
    contractor: Contractor,
    licence: str,
    client: GasSafeRegisterClient,
    performed_by: Optional[uuid.UUID] = None,
) -> GasSafeVerification:
    """
    Live lookup (no cache), append a verification log and, when the engineer
    is confirmed valid, mark the contractor's current gas_safe document valid.
    The caller owns the transaction.
    """
    licence_number = format_licence(licence)
    verification_url = lookup_url(licence_number)

    started = time.perf_counter()
    result = await lookup_engineer(licence_number, client)
    duration_ms = int((time.perf_counter() - started) * 1000)

    engineer = result.engineer
    log = VerificationLog(
        contractor_id=contractor.id,
        check_type=CHECK_TYPE,
        status=(VerificationLogStatus.SUCCESS if result.success else VerificationLogStatus.ERROR).value,
        result={
            "licenceNumber": licence_number,
            "lookupResult": engineer.model_dump(mode="json", by_alias=True) if engineer else None,
            "verificationUrl": verification_url,
            "note": (engineer.raw_data or {}).get("note") if engineer else None,
        },
        performed_by=performed_by,
        duration_ms=duration_ms,
    )
    session.add(log)

    document_id = None
    if result.success and engineer is not None and engineer.is_valid:
        document = await current_gas_safe_document(session, contractor.id)
        if document is not None:
            previous = snapshot(document)
            document.registration_number = licence_number
            document.status = ComplianceStatus.VALID.value
            document.verification_score = VERIFIED_SCORE
            document.ai_analysis = {
                "gasSafeVerified": True,
                "verifiedAt": utcnow().isoformat(),
                "appliances": engineer.appliances,
            }
            log.document_id = document.id
            document_id = document.id
            await record_audit(
                session,
                entity_type="compliance_documents",
                entity_id=document.id,
                action=AuditAction.VERIFY,
                user_id=performed_by,
                previous_state=previous,
                new_state=snapshot(document),
            )
            await refresh_contractor_status(session, contractor, performed_by)

    await session.flush()

    logger.info(
        "gas_safe_verification_recorded",
        contractor_id=str(contractor.id),
        licence_number=licence_number,
        lookup_success=result.success,
        document_id=str(document_id) if document_id else None,
    )

    return GasSafeVerification(
        verified=result.success,
        engineer=engineer,
        manual_verification_url=verification_url,
        message=verification_message(result),
        verification_log_id=log.id,
        document_id=document_id,
    )
