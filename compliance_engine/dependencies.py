"""
FastAPI dependency injection.
Provides DB sessions, the Gas Safe client, the document store and the signed-in user.
"""

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Header
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.api.errors import ApiError
from compliance_engine.config import settings
from compliance_engine.models.database import get_session
from compliance_engine.models.tables import User
from compliance_engine.security import TokenError, decode_access_token, subject_user_id
from compliance_engine.storage.document_store import DocumentStore
from compliance_engine.verification.gas_safe import GasSafeRegisterClient

logger = structlog.get_logger(__name__)


class CurrentUser(BaseModel):
    """The authenticated caller. `role` is None without an active profile row."""
    id: uuid.UUID
    email: Optional[str] = None
    role: Optional[str] = None


# ── Singleton instances ──────────────────────────────────────
_gas_safe_client: Optional[GasSafeRegisterClient] = None
_document_store: Optional[DocumentStore] = None


def get_gas_safe_client() -> GasSafeRegisterClient:
    """Get or create the Gas Safe register client singleton."""
    global _gas_safe_client
    if _gas_safe_client is None:
        _gas_safe_client = GasSafeRegisterClient(
            api_url=settings.GAS_SAFE_API_URL,
            api_key=settings.GAS_SAFE_API_KEY,
            timeout=settings.GAS_SAFE_TIMEOUT_SECONDS,
        )
    return _gas_safe_client


def get_document_store() -> DocumentStore:
    """Get or create the document store singleton."""
    global _document_store
    if _document_store is None:
        _document_store = DocumentStore()
    return _document_store


async def get_db() -> AsyncSession:
    """Yield an async DB session."""
    async for session in get_session():
        yield session


async def get_current_user(
    authorization: Optional[str] = Header(None),
    session: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    Resolve the bearer token to a user.
    Any missing, malformed or expired token is a 401.
    """
    if not authorization:
        raise ApiError.unauthorized()

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise ApiError.unauthorized()

    try:
        claims = decode_access_token(token.strip())
        user_id = subject_user_id(claims)
    except TokenError as exc:
        logger.info("token_rejected", reason=str(exc))
        raise ApiError.unauthorized()

    profile = await session.get(User, user_id)
    role = profile.role if profile is not None and profile.is_active else None
    return CurrentUser(id=user_id, email=claims.get("email"), role=role)


def require_roles(*roles: str):
    """Dependency factory: 403 unless the caller's active profile has one of `roles`."""
    allowed = frozenset(roles)

    async def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            logger.info("role_rejected", user_id=str(user.id), role=user.role)
            raise ApiError.forbidden()
        return user

    return checker
