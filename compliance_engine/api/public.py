"""
/api/public endpoints.
Unauthenticated contractor verification for customers and partners.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.api.errors import ApiError, internal_errors, ok
from compliance_engine.dependencies import get_db
from compliance_engine.schemas.public import PublicVerifyQuery
from compliance_engine.verification.public import public_verification

router = APIRouter(prefix="/api/public", tags=["public"])


@router.get("/verify")
async def verify_contractor(
    query: Optional[str] = Query(None),
    query_type: Optional[str] = Query(None, alias="type"),
    session: AsyncSession = Depends(get_db),
):
    """Look up a contractor by company name, company number or profile slug."""
    params = {"query": (query or "").strip()}
    if query_type:
        params["type"] = query_type
    try:
        search = PublicVerifyQuery.model_validate(params)
    except ValidationError as exc:
        raise ApiError.bad_request(
            "VALIDATION_ERROR",
            "Invalid request",
            details=jsonable_encoder(exc.errors(include_url=False, include_context=False)),
        )

    with internal_errors("An unexpected error occurred"):
        result = await public_verification(session, search.query, search.type)

    return ok(result)
