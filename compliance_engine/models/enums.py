"""
Python enums for the string status columns.
Values are what is stored in the database.
"""

from enum import Enum


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    FINANCE = "finance"
    OPERATIONS = "operations"
    VIEWER = "viewer"


class TradeType(str, Enum):
    GAS_ENGINEER = "gas_engineer"
    ELECTRICIAN = "electrician"
    PLUMBER = "plumber"
    ROOFER = "roofer"
    BUILDER = "builder"
    CARPENTER = "carpenter"
    PLASTERER = "plasterer"
    PAINTER_DECORATOR = "painter_decorator"
    LANDSCAPER = "landscaper"
    HVAC = "hvac"
    GENERAL = "general"
    OTHER = "other"


class DocumentType(str, Enum):
    PUBLIC_LIABILITY = "public_liability"
    EMPLOYERS_LIABILITY = "employers_liability"
    PROFESSIONAL_INDEMNITY = "professional_indemnity"
    GAS_SAFE = "gas_safe"
    NICEIC = "niceic"
    NAPIT = "napit"
    OFTEC = "oftec"
    CSCS = "cscs"
    CHAS = "chas"
    CONSTRUCTIONLINE = "constructionline"
    SAFE_CONTRACTOR = "safe_contractor"
    OTHER = "other"


class ComplianceStatus(str, Enum):
    VALID = "valid"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"
    PENDING_REVIEW = "pending_review"
    REJECTED = "rejected"
    FRAUD_SUSPECTED = "fraud_suspected"


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    PARTIALLY_VERIFIED = "partially_verified"
    UNVERIFIED = "unverified"
    SUSPENDED = "suspended"
    BLOCKED = "blocked"


class PaymentStatus(str, Enum):
    ALLOWED = "allowed"
    BLOCKED = "blocked"
    ON_HOLD = "on_hold"
    PENDING_REVIEW = "pending_review"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    BLOCKED = "blocked"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentRunStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentRunItemStatus(str, Enum):
    APPROVED = "approved"
    BLOCKED = "blocked"


class VerificationLogStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"
    PENDING = "pending"


class GasSafeStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    VERIFY = "verify"
    APPROVE = "approve"
    REJECT = "reject"
    BLOCK = "block"
    UNBLOCK = "unblock"
    SUSPEND = "suspend"


# Current liability cover a contractor must hold to be paid
REQUIRED_INSURANCE_TYPES = (
    DocumentType.PUBLIC_LIABILITY.value,
    DocumentType.EMPLOYERS_LIABILITY.value,
)
