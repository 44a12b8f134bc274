"""
/api/contractors endpoints.
Listing, detail, create, update and soft delete of contractor records.
"""

import re
import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.api.errors import ApiError, internal_errors, ok, parse_body
from compliance_engine.compliance.audit import record_audit, snapshot
from compliance_engine.config import role_list, settings
from compliance_engine.dependencies import CurrentUser, get_current_user, get_db, require_roles
from compliance_engine.models.database import utcnow
from compliance_engine.models.enums import AuditAction, PaymentStatus, VerificationStatus
from compliance_engine.models.tables import (
    ComplianceDocument,
    Contractor,
    VerificationLog,
)
from compliance_engine.schemas.common import Pagination
from compliance_engine.schemas.contractors import (
    ComplianceDocumentSummary,
    ContractorCreate,
    ContractorDetail,
    ContractorListResponse,
    ContractorSummary,
    ContractorUpdate,
    VerificationLogSummary,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/contractors", tags=["contractors"])

require_writer = require_roles(*role_list(settings.CONTRACTOR_WRITE_ROLES))

_SORT_COLUMNS = {
    "created_at": Contractor.created_at,
    "company_name": Contractor.company_name,
    "risk_score": Contractor.risk_score,
    "verification_status": Contractor.verification_status,
}

# Columns a PATCH may change but never clear
_REQUIRED_FIELDS = {
    "company_name", "contact_name", "email", "trade_types", "tags",
    "verification_status", "payment_status",
}


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "contractor"


async def _unique_slug(session: AsyncSession, company_name: str) -> str:
    base = slugify(company_name)
    result = await session.execute(
        select(Contractor.public_profile_slug).where(
            or_(
                Contractor.public_profile_slug == base,
                Contractor.public_profile_slug.like(f"{base}-%"),
            )
        )
    )
    taken = set(result.scalars().all())
    slug, counter = base, 1
    while slug in taken:
        counter += 1
        slug = f"{base}-{counter}"
    return slug


async def _email_in_use(
    session: AsyncSession,
    email: str,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    query = select(Contractor.id).where(
        func.lower(Contractor.email) == email.lower(),
        Contractor.deleted_at.is_(None),
    )
    if exclude_id is not None:
        query = query.where(Contractor.id != exclude_id)
    result = await session.execute(query.limit(1))
    return result.scalar() is not None


async def _get_contractor(session: AsyncSession, contractor_id: str) -> Contractor:
    try:
        contractor_uuid = uuid.UUID(contractor_id)
    except ValueError:
        raise ApiError.not_found("Contractor not found")
    contractor = await session.get(Contractor, contractor_uuid)
    if contractor is None or contractor.deleted_at is not None:
        raise ApiError.not_found("Contractor not found")
    return contractor


@router.get("")
async def list_contractors(
    search: Optional[str] = Query(None),
    status_filter: Optional[VerificationStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """List active contractors with search, status filter and pagination."""
    query = select(Contractor).where(Contractor.deleted_at.is_(None))

    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            Contractor.company_name.ilike(pattern),
            Contractor.contact_name.ilike(pattern),
            Contractor.email.ilike(pattern),
        ))
    if status_filter:
        query = query.where(Contractor.verification_status == status_filter.value)

    with internal_errors("Failed to fetch contractors"):
        count_result = await session.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        column = _SORT_COLUMNS.get(sort_by, Contractor.created_at)
        query = query.order_by(column.asc() if sort_order == "asc" else column.desc())
        query = query.offset((page - 1) * limit).limit(limit)
        result = await session.execute(query)
        contractors = result.scalars().all()

    return ok(ContractorListResponse(
        contractors=[ContractorSummary.model_validate(c) for c in contractors],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=(total + limit - 1) // limit,
        ),
    ))


@router.get("/{contractor_id}")
async def get_contractor(
    contractor_id: str,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Contractor with current documents and verification history."""
    with internal_errors("Failed to fetch contractor"):
        contractor = await _get_contractor(session, contractor_id)

        docs = await session.execute(
            select(ComplianceDocument)
            .where(
                ComplianceDocument.contractor_id == contractor.id,
                ComplianceDocument.replaced_by_id.is_(None),
            )
            .order_by(ComplianceDocument.expiry_date)
        )
        logs = await session.execute(
            select(VerificationLog)
            .where(VerificationLog.contractor_id == contractor.id)
            .order_by(VerificationLog.created_at.desc())
            .limit(50)
        )

        detail = ContractorDetail.model_validate(contractor)
        detail.documents = [ComplianceDocumentSummary.model_validate(d) for d in docs.scalars().all()]
        detail.verification_logs = [VerificationLogSummary.model_validate(v) for v in logs.scalars().all()]

    return ok(detail)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_contractor(
    request: Request,
    user: CurrentUser = Depends(require_writer),
    session: AsyncSession = Depends(get_db),
):
    """Create a contractor. New contractors start unverified with payments blocked."""
    body = await parse_body(request, ContractorCreate)

    with internal_errors("Failed to create contractor"):
        if await _email_in_use(session, body.email):
            raise ApiError.conflict("DUPLICATE_EMAIL", "A contractor with this email already exists")

        fields = body.model_dump()
        fields["trade_types"] = [t.value for t in body.trade_types]
        contractor = Contractor(
            **fields,
            verification_status=VerificationStatus.UNVERIFIED.value,
            payment_status=PaymentStatus.BLOCKED.value,
            public_profile_slug=await _unique_slug(session, body.company_name),
            created_by=user.id,
        )
        session.add(contractor)
        await session.flush()

        await record_audit(
            session,
            entity_type="contractors",
            entity_id=contractor.id,
            action=AuditAction.CREATE,
            user_id=user.id,
            new_state=snapshot(contractor),
        )
        await session.commit()

    logger.info("contractor_created", contractor_id=str(contractor.id), user_id=str(user.id))
    return ok(ContractorDetail.model_validate(contractor))


@router.patch("/{contractor_id}")
async def update_contractor(
    contractor_id: str,
    request: Request,
    user: CurrentUser = Depends(require_writer),
    session: AsyncSession = Depends(get_db),
):
    """Apply a partial update and record what changed."""
    body = await parse_body(request, ContractorUpdate)
    updates = {
        field: value
        for field, value in body.model_dump(exclude_unset=True, mode="json").items()
        if value is not None or field not in _REQUIRED_FIELDS
    }

    with internal_errors("Failed to update contractor"):
        contractor = await _get_contractor(session, contractor_id)

        if updates.get("email") and await _email_in_use(session, updates["email"], exclude_id=contractor.id):
            raise ApiError.conflict("DUPLICATE_EMAIL", "A contractor with this email already exists")

        previous = snapshot(contractor)
        for field, value in updates.items():
            setattr(contractor, field, value)
        if updates.get("verification_status") == VerificationStatus.VERIFIED.value:
            contractor.last_verified_at = utcnow()
        await session.flush()

        await record_audit(
            session,
            entity_type="contractors",
            entity_id=contractor.id,
            action=AuditAction.UPDATE,
            user_id=user.id,
            previous_state=previous,
            new_state=snapshot(contractor),
        )
        await session.commit()

    logger.info(
        "contractor_updated",
        contractor_id=str(contractor.id),
        user_id=str(user.id),
        fields=sorted(updates),
    )
    return ok(ContractorDetail.model_validate(contractor))


@router.delete("/{contractor_id}")
async def delete_contractor(
    contractor_id: str,
    user: CurrentUser = Depends(require_writer),
    session: AsyncSession = Depends(get_db),
):
    """Soft delete: the row stays for the audit trail but leaves every listing."""
    with internal_errors("Failed to delete contractor"):
        contractor = await _get_contractor(session, contractor_id)
        previous = snapshot(contractor)

        contractor.deleted_at = utcnow()
        contractor.is_active = False
        await session.flush()

        await record_audit(
            session,
            entity_type="contractors",
            entity_id=contractor.id,
            action=AuditAction.DELETE,
            user_id=user.id,
            previous_state=previous,
            new_state=snapshot(contractor),
        )
        await session.commit()

    logger.info("contractor_deleted", contractor_id=str(contractor.id), user_id=str(user.id))
    return ok({"message": "Contractor deleted successfully"})
