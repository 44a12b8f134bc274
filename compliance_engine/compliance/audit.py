"""
Audit trail.
Every state change made through the service is recorded as an audit_logs row
with before/after snapshots and the changed fields.
"""

import uuid
from typing import Optional, Union

import structlog
from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.models.enums import AuditAction
from compliance_engine.models.tables import AuditLog

logger = structlog.get_logger(__name__)

# Bookkeeping columns that never count as a change
_IGNORED_FIELDS = {"updated_at"}


def snapshot(instance) -> dict:
    """JSON-safe dict of an ORM instance's column values."""
    mapper = sa_inspect(instance).mapper
    return jsonable_encoder({attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs})


def diff_states(previous: Optional[dict], new: Optional[dict]) -> dict:
    """Fields whose value differs, as {field: {"from": old, "to": new}}."""
    previous = previous or {}
    new = new or {}
    changes = {}
    for key in sorted(set(previous) | set(new)):
        if key in _IGNORED_FIELDS:
            continue
        if previous.get(key) != new.get(key):
            changes[key] = {"from": previous.get(key), "to": new.get(key)}
    return changes


async def record_audit(
    session: AsyncSession,
    entity_type: str,
    entity_id: uuid.UUID,
    action: Union[AuditAction, str],
    user_id: Optional[uuid.UUID] = None,
    previous_state: Optional[dict] = None,
    new_state: Optional[dict] = None,
    metadata: Optional[dict] = None,
) -> AuditLog:
    """Add an audit row to the session. The caller owns the transaction."""
    action_value = action.value if isinstance(action, AuditAction) else action
    changes = diff_states(previous_state, new_state) if previous_state and new_state else None
    entry = AuditLog(
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action_value,
        previous_state=previous_state,
        new_state=new_state,
        changes=changes,
        metadata_json=metadata,
    )
    session.add(entry)
    logger.debug("audit_recorded", entity_type=entity_type, entity_id=str(entity_id), action=action_value)
    return entry
