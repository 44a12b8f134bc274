"""
Tests for contractor status re-evaluation after document changes.
"""

from compliance_engine.compliance.documents import refresh_contractor_status
from compliance_engine.models.tables import Contractor


async def test_partially_verified_contractor_promoted(factory, session_factory, reload):
    contractor = await factory.contractor(verification_status="partially_verified", payment_status="on_hold")
    await factory.document(contractor, document_type="public_liability", status="valid")

    async with session_factory() as s:
        promoted = await refresh_contractor_status(s, await s.get(Contractor, contractor.id))
        await s.commit()

    assert promoted is True
    stored = await reload(Contractor, contractor.id)
    assert (stored.verification_status, stored.payment_status) == ("verified", "allowed")


async def test_replaced_valid_document_does_not_count(factory, session_factory):
    contractor = await factory.contractor(verification_status="unverified", payment_status="blocked")
    newer = await factory.document(contractor, document_type="public_liability", status="pending_review")
    await factory.document(contractor, document_type="public_liability", status="valid", replaced_by_id=newer.id)

    async with session_factory() as s:
        promoted = await refresh_contractor_status(s, await s.get(Contractor, contractor.id))

    assert promoted is False


async def test_other_valid_documents_not_enough(factory, session_factory):
    contractor = await factory.contractor(verification_status="unverified", payment_status="blocked")
    await factory.document(contractor, document_type="gas_safe", status="valid")
    await factory.document(contractor, document_type="employers_liability", status="valid")

    async with session_factory() as s:
        promoted = await refresh_contractor_status(s, await s.get(Contractor, contractor.id))

    assert promoted is False


async def test_blocked_contractor_left_alone(factory, session_factory):
    contractor = await factory.contractor(verification_status="blocked", payment_status="blocked")
    await factory.document(contractor, document_type="public_liability", status="valid")

    async with session_factory() as s:
        promoted = await refresh_contractor_status(s, await s.get(Contractor, contractor.id))

    assert promoted is False
