"""
/api/verification/gas-safe endpoints.
Cached licence lookup, and live verification linked to a contractor.
"""

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.api.errors import ApiError, internal_errors, ok, parse_body
from compliance_engine.dependencies import (
    CurrentUser,
    get_current_user,
    get_db,
    get_gas_safe_client,
)
from compliance_engine.models.tables import Contractor
from compliance_engine.schemas.verification import GasSafeLookupResponse, GasSafeVerifyRequest
from compliance_engine.verification.cache import cached_lookup
from compliance_engine.verification.gas_safe import (
    GasSafeRegisterClient,
    LOOKUP_FAILED_MESSAGE,
    format_licence,
    lookup_url,
    validate_licence,
)
from compliance_engine.verification.linkage import verify_contractor_gas_safe

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/verification/gas-safe", tags=["verification"])


@router.get("")
async def lookup_gas_safe(
    licence: Optional[str] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    client: GasSafeRegisterClient = Depends(get_gas_safe_client),
):
    """Look up a licence, serving results fetched in the last 24 hours from cache."""
    if not licence:
        raise ApiError.bad_request("INVALID_REQUEST", "Licence number is required")
    if not validate_licence(licence):
        raise ApiError.bad_request(
            "INVALID_FORMAT",
            "Invalid Gas Safe licence number format. Must be 7 digits.",
        )

    licence_number = format_licence(licence)
    with internal_errors("Lookup failed"):
        result = await cached_lookup(session, licence_number, client)
        if not result.success or result.engineer is None:
            raise ApiError.internal(result.error or LOOKUP_FAILED_MESSAGE, code="LOOKUP_FAILED")
        await session.commit()

    data = GasSafeLookupResponse(
        **result.engineer.model_dump(),
        manual_verification_url=lookup_url(licence_number),
    )
    return ok(data, cached=result.cached)


@router.post("")
async def verify_gas_safe(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    client: GasSafeRegisterClient = Depends(get_gas_safe_client),
):
    """Verify a contractor's licence live, log the attempt and update their Gas Safe document."""
    body = await parse_body(request, GasSafeVerifyRequest)
    if not body.licence_number or not body.contractor_id:
        raise ApiError.bad_request("INVALID_REQUEST", "Licence number and contractor ID required")
    if not validate_licence(body.licence_number):
        raise ApiError.bad_request("INVALID_FORMAT", "Invalid Gas Safe licence number format")

    with internal_errors("Verification failed"):
        try:
            contractor_id = uuid.UUID(body.contractor_id)
        except ValueError:
            contractor_id = None
        contractor = await session.get(Contractor, contractor_id) if contractor_id else None
        if contractor is None or contractor.deleted_at is not None:
            raise ApiError.not_found("Contractor not found")

        verification = await verify_contractor_gas_safe(
            session,
            contractor,
            body.licence_number,
            client,
            performed_by=user.id,
        )
        await session.commit()

    logger.info(
        "gas_safe_verified",
        contractor_id=str(contractor.id),
        user_id=str(user.id),
        verified=verification.verified,
    )
    return ok(verification)
