"""
Document registration schemas.
"""

import uuid
from datetime import date
from typing import Optional

from pydantic import Field

from compliance_engine.models.enums import DocumentType
from compliance_engine.schemas.common import ApiModel


class DocumentRegistration(ApiModel):
    """Form fields sent alongside the uploaded file."""
    contractor_id: str = Field(..., min_length=1)
    document_type: DocumentType
    provider_name: Optional[str] = Field(None, max_length=200)
    expiry_date: date


class DocumentRegistered(ApiModel):
    id: uuid.UUID
    status: str
    verification_score: int
    replaced_document_id: Optional[uuid.UUID] = None
    message: str
