"""
/api/documents endpoints.
Registers an uploaded compliance document against a contractor.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from compliance_engine.api.errors import ApiError, internal_errors, ok
from compliance_engine.compliance.documents import (
    StoredFile,
    find_duplicate,
    register_document,
)
from compliance_engine.config import settings
from compliance_engine.dependencies import CurrentUser, get_current_user, get_db, get_document_store
from compliance_engine.models.tables import Contractor
from compliance_engine.schemas.documents import DocumentRegistered, DocumentRegistration
from compliance_engine.storage.document_store import DocumentStore
from compliance_engine.storage.paths import document_path, extension_for, file_hash

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])

_REQUIRED_FIELDS = ("contractorId", "documentType", "expiryDate")
UPLOADED_MESSAGE = "Document uploaded - pending verification"


async def _get_contractor(session: AsyncSession, contractor_id: str) -> Contractor:
    try:
        contractor_uuid = uuid.UUID(contractor_id)
    except ValueError:
        raise ApiError.not_found("Contractor not found")
    contractor = await session.get(Contractor, contractor_uuid)
    if contractor is None or contractor.deleted_at is not None:
        raise ApiError.not_found("Contractor not found")
    return contractor


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_document(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
):
    """Store the file and register it pending review, replacing the current document of its type."""
    form = await request.form()
    upload = form.get("file")
    if not isinstance(upload, UploadFile) or any(not form.get(name) for name in _REQUIRED_FIELDS):
        raise ApiError.bad_request(
            "VALIDATION_ERROR",
            "Missing required fields: file, contractorId, documentType, expiryDate",
        )

    try:
        registration = DocumentRegistration.model_validate({
            name: value for name, value in form.items() if isinstance(value, str) and value
        })
    except ValidationError as exc:
        raise ApiError.bad_request(
            "VALIDATION_ERROR",
            "Invalid input data",
            details=jsonable_encoder(exc.errors(include_url=False, include_context=False)),
        )

    # Validate file type
    mime_type = upload.content_type or ""
    if mime_type not in settings.ALLOWED_MIME_TYPES.split(","):
        raise ApiError.bad_request("INVALID_FILE_TYPE", "File must be PDF, JPEG, PNG, or WebP")

    file_bytes = await upload.read()
    file_size = len(file_bytes)

    # Validate size
    if file_size > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise ApiError.bad_request(
            "FILE_TOO_LARGE",
            f"File must be less than {settings.MAX_UPLOAD_SIZE_MB}MB",
        )
    if file_size == 0:
        raise ApiError.bad_request("VALIDATION_ERROR", "Empty file uploaded")

    with internal_errors("Document upload failed"):
        contractor = await _get_contractor(session, registration.contractor_id)

        content_hash = file_hash(file_bytes)
        if await find_duplicate(session, contractor.id, content_hash):
            raise ApiError.conflict("DUPLICATE_DOCUMENT", "This document has already been uploaded")

        document_id = uuid.uuid4()
        stored = StoredFile(
            path=document_path(
                str(contractor.id),
                registration.document_type.value,
                str(document_id),
                extension_for(mime_type, upload.filename or ""),
            ),
            file_name=upload.filename or "document",
            mime_type=mime_type,
            size_bytes=file_size,
            file_hash=content_hash,
        )
        store.save_bytes(stored.path, file_bytes)

        try:
            document, replaced = await register_document(
                session, contractor, registration, stored, document_id, uploaded_by=user.id
            )
            await session.commit()
        except Exception:
            # The row never landed, so the file has nothing pointing at it
            store.delete(stored.path)
            raise

    logger.info(
        "document_uploaded",
        document_id=str(document.id),
        contractor_id=str(contractor.id),
        file_size_bytes=file_size,
        file_hash=content_hash,
        user_id=str(user.id),
    )
    return ok(DocumentRegistered(
        id=document.id,
        status=document.status,
        verification_score=document.verification_score,
        replaced_document_id=replaced.id if replaced else None,
        message=UPLOADED_MESSAGE,
    ))
