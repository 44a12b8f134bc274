"""
SQLAlchemy ORM models.
Status columns are plain text holding the values in models.enums.
"""

import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from compliance_engine.models.database import Base, utcnow
from compliance_engine.models.enums import (
    ComplianceStatus,
    InvoiceStatus,
    PaymentRunStatus,
    PaymentStatus,
    UserRole,
    VerificationStatus,
)

# JSONB on PostgreSQL, plain JSON elsewhere
JsonDocument = JSON().with_variant(JSONB(), "postgresql")


def _created_at() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


def _updated_at() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
        server_default=func.now(),
    )


# ────────────────────────────────────────────────────────────
# USERS
# ────────────────────────────────────────────────────────────
class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    full_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(
        String(32), nullable=False, default=UserRole.VIEWER.value, server_default=UserRole.VIEWER.value
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


# ────────────────────────────────────────────────────────────
# CONTRACTORS
# ────────────────────────────────────────────────────────────
class Contractor(Base):
    __tablename__ = "contractors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_name: Mapped[str] = mapped_column(Text, nullable=False)
    trading_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    vat_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    contact_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    trade_types: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)
    address_line1: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address_line2: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    county: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    postcode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    country: Mapped[str] = mapped_column(String(2), nullable=False, default="GB", server_default="GB")
    verification_status: Mapped[str] = mapped_column(
        String(32), nullable=False,
        default=VerificationStatus.UNVERIFIED.value, server_default=VerificationStatus.UNVERIFIED.value,
    )
    payment_status: Mapped[str] = mapped_column(
        String(32), nullable=False,
        default=PaymentStatus.PENDING_REVIEW.value, server_default=PaymentStatus.PENDING_REVIEW.value,
    )
    public_profile_slug: Mapped[Optional[str]] = mapped_column(Text, nullable=True, unique=True)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False, default=50, server_default="50")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    onboarded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    companies_house_data: Mapped[Optional[dict]] = mapped_column(JsonDocument, nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        Index("idx_contractors_email", "email"),
        Index("idx_contractors_verification_status", "verification_status"),
        Index("idx_contractors_payment_status", "payment_status"),
    )


# ────────────────────────────────────────────────────────────
# COMPLIANCE DOCUMENTS
# ────────────────────────────────────────────────────────────
class ComplianceDocument(Base):
    __tablename__ = "compliance_documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("contractors.id", ondelete="CASCADE"), nullable=False
    )
    document_type: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    policy_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    registration_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    coverage_amount: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    document_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    document_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_size_bytes: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    file_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False,
        default=ComplianceStatus.PENDING_REVIEW.value, server_default=ComplianceStatus.PENDING_REVIEW.value,
    )
    verification_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    ai_analysis: Mapped[Optional[dict]] = mapped_column(JsonDocument, nullable=True)
    manually_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    verified_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    replaced_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("compliance_documents.id"), nullable=True
    )
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JsonDocument, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        Index("idx_compliance_documents_contractor", "contractor_id"),
        Index("idx_compliance_documents_expiry", "expiry_date"),
        Index("idx_compliance_documents_file_hash", "contractor_id", "file_hash"),
    )


# ────────────────────────────────────────────────────────────
# VERIFICATION LOGS (append-only)
# ────────────────────────────────────────────────────────────
class VerificationLog(Base):
    __tablename__ = "verification_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    contractor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("contractors.id", ondelete="CASCADE"), nullable=True
    )
    document_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("compliance_documents.id", ondelete="SET NULL"), nullable=True
    )
    check_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    result: Mapped[Optional[dict]] = mapped_column(JsonDocument, nullable=True)
    performed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = _created_at()


# ────────────────────────────────────────────────────────────
# INVOICES
# ────────────────────────────────────────────────────────────
class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("contractors.id", ondelete="CASCADE"), nullable=False
    )
    invoice_number: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)  # pence
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="GBP", server_default="GBP")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    project_reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False,
        default=InvoiceStatus.PENDING.value, server_default=InvoiceStatus.PENDING.value,
    )
    payment_block_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    compliance_check_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    __table_args__ = (
        UniqueConstraint("contractor_id", "invoice_number", name="uq_invoices_contractor_number"),
        Index("idx_invoices_status", "status"),
    )


# ────────────────────────────────────────────────────────────
# PAYMENT RUNS
# ────────────────────────────────────────────────────────────
class PaymentRun(Base):
    __tablename__ = "payment_runs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    run_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False,
        default=PaymentRunStatus.PENDING.value, server_default=PaymentRunStatus.PENDING.value,
    )
    total_invoices: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    approved_invoices: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    blocked_invoices: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    approved_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    blocked_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    processed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()


class PaymentRunItem(Base):
    __tablename__ = "payment_run_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_run_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("payment_runs.id", ondelete="CASCADE"), nullable=False
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    block_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checked_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        UniqueConstraint("payment_run_id", "invoice_id", name="uq_payment_run_items_run_invoice"),
    )


# ────────────────────────────────────────────────────────────
# GAS SAFE CACHE
# ────────────────────────────────────────────────────────────
class GasSafeCacheEntry(Base):
    __tablename__ = "gas_safe_cache"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    licence_number: Mapped[str] = mapped_column(String(7), nullable=False, unique=True)
    engineer_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    trading_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    appliances: Mapped[list] = mapped_column(JsonDocument, nullable=False, default=list)
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    expires_at: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    raw_data: Mapped[Optional[dict]] = mapped_column(JsonDocument, nullable=True)
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    created_at: Mapped[datetime] = _created_at()


# ────────────────────────────────────────────────────────────
# AUDIT LOG
# ────────────────────────────────────────────────────────────
class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    action: Mapped[str] = mapped_column(String(16), nullable=False)
    previous_state: Mapped[Optional[dict]] = mapped_column(JsonDocument, nullable=True)
    new_state: Mapped[Optional[dict]] = mapped_column(JsonDocument, nullable=True)
    changes: Mapped[Optional[dict]] = mapped_column(JsonDocument, nullable=True)
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JsonDocument, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        Index("idx_audit_logs_created", "created_at"),
        Index("idx_audit_logs_entity", "entity_type", "entity_id"),
    )
