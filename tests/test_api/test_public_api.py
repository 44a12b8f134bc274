"""
Tests for the public verification endpoint.
"""

from datetime import timedelta

from compliance_engine.models.database import utcnow

URL = "/api/public/verify"


async def test_lookup_by_slug_without_authentication(client, factory):
    contractor = await factory.contractor(
        company_name="Acme Heating Ltd",
        public_profile_slug="acme-heating-ltd",
        company_number="01234567",
        onboarded_at=utcnow() - timedelta(days=30),
        last_verified_at=utcnow(),
    )
    await factory.document(contractor, document_type="public_liability", coverage_amount=500000000,
                           provider_name="Hiscox")
    await factory.document(contractor, document_type="gas_safe")

    resp = await client.get(URL, params={"query": "Acme-Heating-Ltd", "type": "slug"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["found"] is True
    assert data["verificationStatus"] == "verified"
    assert data["overallScore"] == 75
    assert data["contractor"]["companyName"] == "Acme Heating Ltd"
    assert data["contractor"]["certifications"] == ["gas_safe"]
    assert data["contractor"]["memberSince"] is not None
    assert {d["type"] for d in data["contractor"]["documents"]} == {"public_liability", "gas_safe"}
    liability = next(d for d in data["contractor"]["documents"] if d["type"] == "public_liability")
    assert liability["coverageAmount"] == 500000000
    assert liability["providerName"] == "Hiscox"
    assert data["companiesHouse"]["companyNumber"] == "01234567"
    assert [b["type"] for b in data["badges"]] == [
        "verified_partner", "insurance_verified", "gas_safe_registered", "fully_compliant",
    ]
    assert data["lastVerifiedAt"] is not None
    assert data["disclaimer"].startswith("This verification is based on documents")


async def test_lookup_by_company_number(client, factory):
    await factory.contractor(company_name="Numbered Ltd", company_number="SC123456")

    resp = await client.get(URL, params={"query": "sc123456", "type": "company_number"})

    assert resp.json()["data"]["contractor"]["companyName"] == "Numbered Ltd"


async def test_lookup_by_name_is_default(client, factory):
    await factory.contractor(company_name="Bright Sparks Electrical")

    resp = await client.get(URL, params={"query": "sparks"})

    assert resp.json()["data"]["found"] is True


async def test_replaced_documents_hidden(client, factory):
    contractor = await factory.contractor(public_profile_slug="swap-ltd")
    newer = await factory.document(contractor, status="pending_review")
    await factory.document(contractor, status="valid", replaced_by_id=newer.id)

    resp = await client.get(URL, params={"query": "swap-ltd", "type": "slug"})

    documents = resp.json()["data"]["contractor"]["documents"]
    assert [d["status"] for d in documents] == ["pending_review"]


async def test_inactive_and_deleted_contractors_not_found(client, factory):
    await factory.contractor(company_name="Dormant Ltd", is_active=False)
    await factory.contractor(company_name="Dormant Deleted Ltd", deleted_at=utcnow())

    resp = await client.get(URL, params={"query": "Dormant"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["found"] is False
    assert data["verificationStatus"] == "unverified"
    assert data["overallScore"] == 0
    assert data["badges"] == []
    assert data["contractor"] is None
    assert data["disclaimer"].startswith("This company is not registered")


async def test_query_too_short(client):
    resp = await client.get(URL, params={"query": " a "})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
    assert resp.json()["error"]["message"] == "Invalid request"


async def test_unknown_query_type(client):
    resp = await client.get(URL, params={"query": "acme", "type": "postcode"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
