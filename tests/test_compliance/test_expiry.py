"""
Tests for the daily compliance expiry check.
"""

from datetime import timedelta

from sqlalchemy import select

from compliance_engine.compliance.expiry import INSURANCE_EXPIRED_BLOCK_REASON, run_expiry_check
from compliance_engine.models.tables import AuditLog, ComplianceDocument, Contractor, Invoice


async def test_expiry_check(factory, session_factory, reload):
    today = factory.today
    lapsed = await factory.contractor(company_name="Lapsed Ltd")
    lapsed_doc = await factory.document(lapsed, expiry_date=today - timedelta(days=1))
    lapsed_invoice = await factory.invoice(lapsed)

    healthy = await factory.contractor(company_name="Healthy Ltd")
    soon_doc = await factory.document(healthy, expiry_date=today + timedelta(days=10))
    later_doc = await factory.document(healthy, document_type="gas_safe", expiry_date=today + timedelta(days=90))
    healthy_invoice = await factory.invoice(healthy)

    async with session_factory() as s:
        result = await run_expiry_check(s, today)
        await s.commit()

    assert result.documents_expired == 1
    assert result.documents_expiring == 1
    assert result.contractors_suspended == 1
    assert result.invoices_blocked == 1
    assert result.errors == []

    assert (await reload(ComplianceDocument, lapsed_doc.id)).status == "expired"
    assert (await reload(ComplianceDocument, soon_doc.id)).status == "expiring_soon"
    assert (await reload(ComplianceDocument, later_doc.id)).status == "valid"

    stored = await reload(Contractor, lapsed.id)
    assert stored.verification_status == "suspended"
    assert stored.payment_status == "blocked"
    assert (await reload(Contractor, healthy.id)).verification_status == "verified"

    blocked = await reload(Invoice, lapsed_invoice.id)
    assert blocked.status == "blocked"
    assert blocked.payment_block_reason == INSURANCE_EXPIRED_BLOCK_REASON
    assert (await reload(Invoice, healthy_invoice.id)).status == "pending"

    async with session_factory() as s:
        audits = (await s.execute(select(AuditLog))).scalars().all()
    assert [(a.action, a.entity_id) for a in audits] == [("suspend", lapsed.id)]


async def test_expiry_check_is_idempotent(factory, session_factory):
    lapsed = await factory.contractor()
    await factory.document(lapsed, expiry_date=factory.today - timedelta(days=1))

    async with session_factory() as s:
        await run_expiry_check(s, factory.today)
        await s.commit()
    async with session_factory() as s:
        second = await run_expiry_check(s, factory.today)
        await s.commit()

    assert second.documents_expired == 0
    assert second.contractors_suspended == 0
    assert second.invoices_blocked == 0


async def test_risk_scores_refreshed(factory, session_factory, reload):
    contractor = await factory.contractor(companies_house_data={"companyStatus": "active"})
    await factory.document(contractor)
    await factory.document(contractor, document_type="employers_liability")

    async with session_factory() as s:
        result = await run_expiry_check(s, factory.today)
        await s.commit()

    assert result.risk_scores_updated == 1
    assert (await reload(Contractor, contractor.id)).risk_score == 30
