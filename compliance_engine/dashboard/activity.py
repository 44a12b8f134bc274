"""
Human-readable messages for audit log entries shown in the activity feed.
"""

from typing import Optional

from compliance_engine.models.enums import AuditAction

# Actions that appear in the feed
FEED_ACTIONS = (
    AuditAction.CREATE.value,
    AuditAction.UPDATE.value,
    AuditAction.VERIFY.value,
    AuditAction.APPROVE.value,
    AuditAction.REJECT.value,
    AuditAction.BLOCK.value,
)

_ENTITY_LABELS = {
    "contractors": "Contractor",
    "compliance_documents": "Document",
    "invoices": "Invoice",
    "payment_runs": "Payment run",
    "users": "User",
}


def entity_label(entity_type: str) -> str:
    return _ENTITY_LABELS.get(entity_type, entity_type.replace("_", " ").capitalize())


def entity_name(entity_type: str, state: Optional[dict]) -> str:
    """Best display name for the entity, from its recorded state."""
    state = state or {}
    if entity_type == "contractors" and state.get("company_name"):
        return state["company_name"]
    if entity_type == "compliance_documents" and state.get("document_type"):
        return state["document_type"].replace("_", " ")
    if entity_type == "invoices" and state.get("invoice_number"):
        return f"Invoice #{state['invoice_number']}"
    return "Unknown"


def describe_activity(action: str, entity_type: str, state: Optional[dict]) -> tuple[str, str]:
    """
    Return (kind, message) for an audit entry.
    `kind` is a stable key the client maps to an icon.
    """
    name = entity_name(entity_type, state)
    label = entity_label(entity_type)

    if action == AuditAction.CREATE.value:
        if entity_type == "contractors":
            return "contractor_added", f"New contractor added: {name}"
        if entity_type == "compliance_documents":
            return "document_uploaded", f"Document uploaded for {name}"
        return "created", f"New {entity_type} created"
    if action == AuditAction.VERIFY.value:
        return "verified", f"{label} verified: {name}"
    if action == AuditAction.APPROVE.value:
        return "approved", f"{label} approved: {name}"
    if action == AuditAction.REJECT.value:
        return "rejected", f"{label} rejected: {name}"
    if action == AuditAction.BLOCK.value:
        return "payment_blocked", f"Payment blocked for {name}"
    if action == AuditAction.UPDATE.value:
        return "updated", f"{label} updated: {name}"
    return "other", f"{action} on {entity_type}"
