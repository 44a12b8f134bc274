"""
Tests for payment-run classification.
"""

import uuid

from compliance_engine.payments.classifier import (
    DEFAULT_BLOCK_REASON,
    classify_invoice,
    classify_invoices,
)
from compliance_engine.schemas.payments import BlockCheckRow


def _row(amount: int, can_pay: bool, reason=None, number=None) -> BlockCheckRow:
    return BlockCheckRow(
        id=uuid.uuid4(),
        invoice_number=number or f"INV-{uuid.uuid4().hex[:4]}",
        contractor_id=uuid.uuid4(),
        company_name="Acme Heating Ltd",
        amount=amount,
        can_pay=can_pay,
        block_reason=reason,
    )


class TestClassifyInvoice:

    def test_payable_row_is_approved(self):
        decision = classify_invoice(_row(12000, True))
        assert decision.approved
        assert decision.reason is None

    def test_blocked_row_keeps_reason(self):
        decision = classify_invoice(_row(500, False, "Contractor suspended"))
        assert not decision.approved
        assert decision.reason == "Contractor suspended"

    def test_blocked_row_without_reason_gets_default(self):
        decision = classify_invoice(_row(500, False))
        assert decision.reason == DEFAULT_BLOCK_REASON == "Compliance check failed"

    def test_payable_row_ignores_stray_reason(self):
        # Payable contractors can still lack a public liability record
        decision = classify_invoice(_row(700, True, "No valid public liability insurance"))
        assert decision.approved
        assert decision.reason is None


class TestClassifyInvoices:

    def test_partition_is_disjoint_and_complete(self):
        rows = [
            _row(10000, True),
            _row(2500, False, "Contractor payment blocked"),
            _row(4000, True),
            _row(999, False),
            _row(1, False, "Required insurance expired"),
        ]
        result = classify_invoices(rows)

        approved_ids = {d.invoice_id for d in result.approved}
        blocked_ids = {d.invoice_id for d in result.blocked}
        assert approved_ids.isdisjoint(blocked_ids)
        assert approved_ids | blocked_ids == {row.id for row in rows}
        assert result.total_invoices == len(rows)

    def test_amounts_sum_to_total(self):
        rows = [_row(10000, True), _row(2500, False), _row(4000, True), _row(1, False)]
        result = classify_invoices(rows)

        assert result.approved_amount == 14000
        assert result.blocked_amount == 2501
        assert result.approved_amount + result.blocked_amount == sum(r.amount for r in rows)
        assert result.total_amount == 16501

    def test_empty_input(self):
        result = classify_invoices([])
        assert result.approved == []
        assert result.blocked == []
        assert result.total_amount == 0

    def test_order_kept_within_each_list(self):
        rows = [_row(1, True, number="A"), _row(2, False, number="B"), _row(3, True, number="C")]
        result = classify_invoices(rows)
        assert [d.invoice_number for d in result.approved] == ["A", "C"]
        assert [d.invoice_number for d in result.blocked] == ["B"]
