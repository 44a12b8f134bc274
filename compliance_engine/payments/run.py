"""
Payment run execution and preview.

A run classifies every pending invoice, writes the invoice statuses and run
items and records the totals, all inside the caller's transaction. On
PostgreSQL the pending invoices are locked with FOR UPDATE SKIP LOCKED so two
overlapping runs never process the same invoice.
"""

import time
import uuid
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.compliance.audit import record_audit
from compliance_engine.models.database import utcnow
from compliance_engine.models.enums import (
    AuditAction,
    InvoiceStatus,
    PaymentRunItemStatus,
    PaymentRunStatus,
)
from compliance_engine.models.tables import Invoice, PaymentRun, PaymentRunItem
from compliance_engine.observability.metrics import (
    invoices_classified_total,
    payment_run_amount_pence_total,
    payment_run_duration_seconds,
    payment_runs_total,
)
from compliance_engine.payments.block_check import fetch_block_checks
from compliance_engine.payments.classifier import classify_invoices
from compliance_engine.schemas.payments import (
    BlockCheckRow,
    BlockedInvoice,
    InvoiceDecision,
    PaymentRunPreview,
    PaymentRunResult,
    PreviewInvoice,
)

logger = structlog.get_logger(__name__)

NO_PENDING_MESSAGE = "No pending invoices to process"


async def preview_payment_run(session: AsyncSession) -> PaymentRunPreview:
    """What a run would do right now. Read-only."""
    rows = await fetch_block_checks(session)
    payable = [row for row in rows if row.can_pay]
    blocked = [row for row in rows if not row.can_pay]
    return PaymentRunPreview(
        total_invoices=len(rows),
        can_pay_count=len(payable),
        blocked_count=len(blocked),
        total_amount=sum(row.amount for row in rows),
        approveable_amount=sum(row.amount for row in payable),
        blocked_amount=sum(row.amount for row in blocked),
        invoices=[PreviewInvoice.model_validate(row.model_dump()) for row in rows],
    )


async def _lock_pending(session: AsyncSession, rows: list[BlockCheckRow]) -> list[BlockCheckRow]:
    """Keep only rows whose invoice is still pending and not locked by another run."""
    if not rows:
        return rows
    result = await session.execute(
        select(Invoice.id)
        .where(
            Invoice.id.in_([row.id for row in rows]),
            Invoice.status == InvoiceStatus.PENDING.value,
        )
        .with_for_update(skip_locked=True)
    )
    locked = set(result.scalars().all())
    return [row for row in rows if row.id in locked]


async def _apply_decision(
    session: AsyncSession,
    run: PaymentRun,
    decision: InvoiceDecision,
    processed_by: Optional[uuid.UUID],
) -> None:
    now = utcnow()
    if decision.approved:
        invoice_values = {"status": InvoiceStatus.APPROVED.value, "compliance_check_at": now}
        item_status = PaymentRunItemStatus.APPROVED.value
        action = AuditAction.APPROVE
    else:
        invoice_values = {
            "status": InvoiceStatus.BLOCKED.value,
            "payment_block_reason": decision.reason,
            "compliance_check_at": now,
        }
        item_status = PaymentRunItemStatus.BLOCKED.value
        action = AuditAction.BLOCK

    await session.execute(
        update(Invoice)
        .where(Invoice.id == decision.invoice_id, Invoice.status == InvoiceStatus.PENDING.value)
        .values(**invoice_values, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    session.add(PaymentRunItem(
        payment_run_id=run.id,
        invoice_id=decision.invoice_id,
        status=item_status,
        block_reason=decision.reason,
        checked_at=now,
    ))
    await record_audit(
        session,
        entity_type="invoices",
        entity_id=decision.invoice_id,
        action=action,
        user_id=processed_by,
        previous_state={"invoice_number": decision.invoice_number, "status": InvoiceStatus.PENDING.value},
        new_state={
            "invoice_number": decision.invoice_number,
            "status": invoice_values["status"],
            "payment_block_reason": decision.reason,
        },
        metadata={"payment_run_id": str(run.id)},
    )


async def execute_payment_run(
    session: AsyncSession,
    processed_by: Optional[uuid.UUID] = None,
) -> PaymentRunResult:
    """
    Classify and process every pending invoice.
    Nothing is written when there are no pending invoices. The caller commits.
    """
    started = time.perf_counter()
    rows = await _lock_pending(session, await fetch_block_checks(session))

    if not rows:
        logger.info("payment_run_skipped", reason="no_pending_invoices")
        return PaymentRunResult(message=NO_PENDING_MESSAGE)

    run = PaymentRun(
        run_date=utcnow().date(),
        status=PaymentRunStatus.IN_PROGRESS.value,
        total_invoices=len(rows),
        processed_by=processed_by,
    )
    session.add(run)
    await session.flush()

    logger.info("payment_run_started", payment_run_id=str(run.id), total_invoices=len(rows))

    classification = classify_invoices(rows)
    for decision in [*classification.approved, *classification.blocked]:
        await _apply_decision(session, run, decision, processed_by)

    run.status = PaymentRunStatus.COMPLETED.value
    run.approved_invoices = len(classification.approved)
    run.blocked_invoices = len(classification.blocked)
    run.total_amount = classification.total_amount
    run.approved_amount = classification.approved_amount
    run.blocked_amount = classification.blocked_amount
    run.completed_at = utcnow()
    await session.flush()

    payment_runs_total.labels(status=run.status).inc()
    invoices_classified_total.labels(outcome="approved").inc(run.approved_invoices)
    invoices_classified_total.labels(outcome="blocked").inc(run.blocked_invoices)
    payment_run_amount_pence_total.labels(outcome="approved").inc(run.approved_amount)
    payment_run_amount_pence_total.labels(outcome="blocked").inc(run.blocked_amount)
    payment_run_duration_seconds.observe(time.perf_counter() - started)

    logger.info(
        "payment_run_completed",
        payment_run_id=str(run.id),
        approved_invoices=run.approved_invoices,
        blocked_invoices=run.blocked_invoices,
        approved_amount=run.approved_amount,
        blocked_amount=run.blocked_amount,
    )

    return PaymentRunResult(
        payment_run_id=run.id,
        total_invoices=run.total_invoices,
        approved_invoices=run.approved_invoices,
        blocked_invoices=run.blocked_invoices,
        total_amount=run.total_amount,
        approved_amount=run.approved_amount,
        blocked_amount=run.blocked_amount,
        blocked_details=[
            BlockedInvoice(
                invoice_id=d.invoice_id,
                invoice_number=d.invoice_number,
                company_name=d.company_name,
                amount=d.amount,
                reason=d.reason,
            )
            for d in classification.blocked
        ],
    )
