"""
Compliance document registration.
A newly registered document becomes the contractor's current document of its
type; the document it replaces drops out of every compliance query.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.compliance.audit import record_audit, snapshot
from compliance_engine.models.database import utcnow
from compliance_engine.models.enums import (
    AuditAction,
    ComplianceStatus,
    DocumentType,
    PaymentStatus,
    VerificationLogStatus,
    VerificationStatus,
)
from compliance_engine.models.tables import ComplianceDocument, Contractor, VerificationLog
from compliance_engine.schemas.documents import DocumentRegistration

logger = structlog.get_logger(__name__)

CHECK_TYPE = "document_upload"
PENDING_SCORE = 50
PENDING_MESSAGE = "Pending manual review"
DEFAULT_PROVIDER = "Unknown"

# Current valid documents needed before a new contractor is verified
VERIFICATION_REQUIRED_TYPES = (DocumentType.PUBLIC_LIABILITY.value,)

# Only contractors still being onboarded are promoted; suspensions are lifted by staff
_PROMOTABLE_STATUSES = (
    VerificationStatus.UNVERIFIED.value,
    VerificationStatus.PARTIALLY_VERIFIED.value,
)


@dataclass
class StoredFile:
    """Where and what was written to the document store."""
    path: str
    file_name: str
    mime_type: str
    size_bytes: int
    file_hash: str


async def find_duplicate(
    session: AsyncSession,
    contractor_id: uuid.UUID,
    file_hash: str,
) -> Optional[uuid.UUID]:
    """Id of a current document of this contractor with identical content."""
    result = await session.execute(
        select(ComplianceDocument.id)
        .where(
            ComplianceDocument.contractor_id == contractor_id,
            ComplianceDocument.file_hash == file_hash,
            ComplianceDocument.replaced_by_id.is_(None),
        )
        .limit(1)
    )
    return result.scalar()


async def current_documents(
    session: AsyncSession,
    contractor_id: uuid.UUID,
    document_type: Optional[str] = None,
) -> list[ComplianceDocument]:
    query = select(ComplianceDocument).where(
        ComplianceDocument.contractor_id == contractor_id,
        ComplianceDocument.replaced_by_id.is_(None),
    )
    if document_type is not None:
        query = query.where(ComplianceDocument.document_type == document_type)
    result = await session.execute(query.order_by(ComplianceDocument.created_at))
    return list(result.scalars().all())


async def refresh_contractor_status(
    session: AsyncSession,
    contractor: Contractor,
    user_id: Optional[uuid.UUID] = None,
) -> bool:
    """
    Verify an onboarding contractor and allow payments once every required
    document type has a current valid document. Returns True if promoted.
    """
    if contractor.verification_status not in _PROMOTABLE_STATUSES:
        return False

    documents = await current_documents(session, contractor.id)
    valid_types = {d.document_type for d in documents if d.status == ComplianceStatus.VALID.value}
    if not all(doc_type in valid_types for doc_type in VERIFICATION_REQUIRED_TYPES):
        return False

    previous = snapshot(contractor)
    contractor.verification_status = VerificationStatus.VERIFIED.value
    contractor.payment_status = PaymentStatus.ALLOWED.value
    contractor.last_verified_at = utcnow()
    await session.flush()

    await record_audit(
        session,
        entity_type="contractors",
        entity_id=contractor.id,
        action=AuditAction.VERIFY,
        user_id=user_id,
        previous_state=previous,
        new_state=snapshot(contractor),
        metadata={"reason": "required_documents_valid"},
    )
    logger.info("contractor_verified", contractor_id=str(contractor.id))
    return True


async def register_document(
    session: AsyncSession,
    contractor: Contractor,
    registration: DocumentRegistration,
    stored: StoredFile,
    document_id: uuid.UUID,
    uploaded_by: Optional[uuid.UUID] = None,
) -> tuple[ComplianceDocument, Optional[ComplianceDocument]]:
    """
    Insert the document pending review, link the one it replaces, and log a
    pending verification. Returns (new document, replaced document).
    The caller owns the transaction.
    """
    document_type = registration.document_type.value
    existing = await current_documents(session, contractor.id, document_type)

    document = ComplianceDocument(
        id=document_id,
        contractor_id=contractor.id,
        document_type=document_type,
        provider_name=registration.provider_name or DEFAULT_PROVIDER,
        expiry_date=registration.expiry_date,
        document_path=stored.path,
        file_size_bytes=stored.size_bytes,
        mime_type=stored.mime_type,
        file_hash=stored.file_hash,
        status=ComplianceStatus.PENDING_REVIEW.value,
        verification_score=PENDING_SCORE,
        metadata_json={
            "originalFileName": stored.file_name,
            "uploadedBy": str(uploaded_by) if uploaded_by else None,
            "uploadedAt": utcnow().isoformat(),
        },
    )
    session.add(document)
    await session.flush()

    # Older rows can leave more than one current document of a type
    for old in existing:
        old.replaced_by_id = document.id
    replaced = existing[-1] if existing else None

    session.add(VerificationLog(
        contractor_id=contractor.id,
        document_id=document.id,
        check_type=CHECK_TYPE,
        status=VerificationLogStatus.PENDING.value,
        result={"passed": False, "message": PENDING_MESSAGE, "aiAnalysis": None},
        performed_by=uploaded_by,
        duration_ms=0,
    ))

    await record_audit(
        session,
        entity_type="compliance_documents",
        entity_id=document.id,
        action=AuditAction.CREATE,
        user_id=uploaded_by,
        new_state=snapshot(document),
        metadata={"replaced_document_id": str(replaced.id)} if replaced else None,
    )

    await refresh_contractor_status(session, contractor, uploaded_by)
    await session.flush()

    logger.info(
        "document_registered",
        document_id=str(document.id),
        contractor_id=str(contractor.id),
        document_type=document_type,
        replaced_document_id=str(replaced.id) if replaced else None,
    )
    return document, replaced
