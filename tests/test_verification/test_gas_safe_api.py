"""
Tests for the Gas Safe verification endpoints.
"""

from datetime import timedelta

import httpx
from sqlalchemy import select

from compliance_engine.models.database import utcnow
from compliance_engine.models.tables import ComplianceDocument, Contractor, GasSafeCacheEntry, VerificationLog

URL = "/api/verification/gas-safe"


class TestCachedLookup:

    async def test_requires_authentication_even_for_bad_input(self, client, gas_safe_client):
        resp = await client.get(URL, params={"licence": "nope"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"
        assert gas_safe_client.calls == []

    async def test_rejects_invalid_token(self, client):
        resp = await client.get(URL, params={"licence": "1234567"}, headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    async def test_missing_licence(self, client, factory, headers_for):
        user = await factory.user(role="viewer")
        resp = await client.get(URL, headers=headers_for(user))
        assert resp.status_code == 400
        assert resp.json()["error"] == {"code": "INVALID_REQUEST", "message": "Licence number is required"}

    async def test_invalid_format_rejected_before_lookup(self, client, factory, headers_for, gas_safe_client):
        user = await factory.user(role="viewer")

        resp = await client.get(URL, params={"licence": "12345"}, headers=headers_for(user))

        assert resp.status_code == 400
        assert resp.json()["error"] == {
            "code": "INVALID_FORMAT",
            "message": "Invalid Gas Safe licence number format. Must be 7 digits.",
        }
        assert gas_safe_client.calls == []

    async def test_miss_looks_up_and_caches(self, client, factory, headers_for, gas_safe_client, session_factory):
        user = await factory.user(role="viewer")

        resp = await client.get(URL, params={"licence": "123 4567"}, headers=headers_for(user))

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["cached"] is False
        assert body["data"]["licenceNumber"] == "1234567"
        assert body["data"]["engineerName"] == "Sam Fitter"
        assert body["data"]["isValid"] is True
        assert body["data"]["manualVerificationUrl"].endswith("?registration=1234567")
        assert gas_safe_client.calls == ["1234567"]

        async with session_factory() as s:
            entry = (await s.execute(
                select(GasSafeCacheEntry).where(GasSafeCacheEntry.licence_number == "1234567")
            )).scalar_one()
        assert entry.engineer_name == "Sam Fitter"
        assert entry.appliances == ["Boilers", "Cookers", "Central Heating"]

    async def test_second_lookup_served_from_cache(self, client, factory, headers_for, gas_safe_client):
        user = await factory.user(role="viewer")

        first = await client.get(URL, params={"licence": "1234567"}, headers=headers_for(user))
        second = await client.get(URL, params={"licence": "1234567"}, headers=headers_for(user))

        assert gas_safe_client.calls == ["1234567"]
        assert second.json()["cached"] is True
        for key in ("licenceNumber", "engineerName", "tradingName", "businessAddress", "status", "isValid", "appliances"):
            assert second.json()["data"][key] == first.json()["data"][key]

    async def test_fresh_cache_row_returned_unchanged(self, client, factory, headers_for, gas_safe_client):
        await factory.cache_entry("0012345", fetched_at=utcnow() - timedelta(hours=23))
        user = await factory.user(role="viewer")

        resp = await client.get(URL, params={"licence": "0012345"}, headers=headers_for(user))

        assert resp.status_code == 200
        assert resp.json()["cached"] is True
        data = resp.json()["data"]
        assert data["engineerName"] == "Cached Engineer"
        assert data["appliances"] == ["Boilers"]
        assert gas_safe_client.calls == []

    async def test_stale_cache_row_refreshed(self, client, factory, headers_for, gas_safe_client, session_factory):
        await factory.cache_entry("0012345", fetched_at=utcnow() - timedelta(hours=25))
        user = await factory.user(role="viewer")

        resp = await client.get(URL, params={"licence": "0012345"}, headers=headers_for(user))

        assert resp.json()["cached"] is False
        assert resp.json()["data"]["engineerName"] == "Sam Fitter"
        assert gas_safe_client.calls == ["0012345"]
        async with session_factory() as s:
            rows = (await s.execute(
                select(GasSafeCacheEntry).where(GasSafeCacheEntry.licence_number == "0012345")
            )).scalars().all()
        assert len(rows) == 1
        assert rows[0].engineer_name == "Sam Fitter"

    async def test_lookup_failure(self, client, factory, headers_for, gas_safe_client, session_factory):
        gas_safe_client.error = httpx.ConnectError("register down")
        user = await factory.user(role="viewer")

        resp = await client.get(URL, params={"licence": "1234567"}, headers=headers_for(user))

        assert resp.status_code == 500
        assert resp.json()["error"] == {
            "code": "LOOKUP_FAILED",
            "message": "Failed to verify Gas Safe registration",
        }
        async with session_factory() as s:
            assert (await s.execute(select(GasSafeCacheEntry))).scalars().all() == []


class TestVerifyAndLink:

    async def test_requires_authentication_regardless_of_body(self, client):
        resp = await client.post(URL, content=b"not json")
        assert resp.status_code == 401

    async def test_missing_fields(self, client, factory, headers_for):
        user = await factory.user(role="operations")
        resp = await client.post(URL, json={"licenceNumber": "1234567"}, headers=headers_for(user))
        assert resp.status_code == 400
        assert resp.json()["error"] == {
            "code": "INVALID_REQUEST",
            "message": "Licence number and contractor ID required",
        }

    async def test_invalid_json(self, client, factory, headers_for):
        user = await factory.user(role="operations")
        resp = await client.post(URL, content=b"{", headers=headers_for(user))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_REQUEST"

    async def test_invalid_format(self, client, factory, headers_for, gas_safe_client):
        user = await factory.user(role="operations")
        contractor = await factory.contractor()

        resp = await client.post(
            URL,
            json={"licenceNumber": "12", "contractorId": str(contractor.id)},
            headers=headers_for(user),
        )

        assert resp.status_code == 400
        assert resp.json()["error"] == {
            "code": "INVALID_FORMAT",
            "message": "Invalid Gas Safe licence number format",
        }
        assert gas_safe_client.calls == []

    async def test_unknown_contractor(self, client, factory, headers_for):
        user = await factory.user(role="operations")
        resp = await client.post(
            URL,
            json={"licenceNumber": "1234567", "contractorId": "7c9e6679-7425-40de-944b-e07fc1f90ae7"},
            headers=headers_for(user),
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == {"code": "NOT_FOUND", "message": "Contractor not found"}

    async def test_valid_engineer_updates_document(
        self, client, factory, headers_for, gas_safe_client, reload, session_factory
    ):
        user = await factory.user(role="operations")
        contractor = await factory.contractor()
        document = await factory.document(contractor, document_type="gas_safe", status="pending_review")

        resp = await client.post(
            URL,
            json={"licenceNumber": "123-4567", "contractorId": str(contractor.id)},
            headers=headers_for(user),
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["verified"] is True
        assert data["message"] == "Gas Safe registration verified successfully"
        assert data["engineer"]["engineerName"] == "Sam Fitter"
        assert data["manualVerificationUrl"].endswith("?registration=1234567")
        assert gas_safe_client.calls == ["1234567"]

        stored = await reload(ComplianceDocument, document.id)
        assert stored.status == "valid"
        assert stored.registration_number == "1234567"
        assert stored.verification_score == 90
        assert stored.ai_analysis["gasSafeVerified"] is True
        assert stored.ai_analysis["appliances"] == ["Boilers", "Cookers", "Central Heating"]

        async with session_factory() as s:
            logs = (await s.execute(select(VerificationLog))).scalars().all()
        assert len(logs) == 1
        assert logs[0].check_type == "gas_safe_registry"
        assert logs[0].status == "success"
        assert logs[0].performed_by == user.id
        assert logs[0].result["licenceNumber"] == "1234567"
        assert logs[0].result["lookupResult"]["engineerName"] == "Sam Fitter"
        assert logs[0].result["lookupResult"]["rawData"] == {"source": "fake"}
        assert logs[0].result["note"] is None

    async def test_verification_completes_onboarding(self, client, factory, headers_for, reload):
        user = await factory.user(role="operations")
        contractor = await factory.contractor(verification_status="unverified", payment_status="blocked")
        await factory.document(contractor, document_type="public_liability", status="valid")
        await factory.document(contractor, document_type="gas_safe", status="pending_review")

        await client.post(
            URL,
            json={"licenceNumber": "1234567", "contractorId": str(contractor.id)},
            headers=headers_for(user),
        )

        stored = await reload(Contractor, contractor.id)
        assert stored.verification_status == "verified"
        assert stored.payment_status == "allowed"

    async def test_unknown_status_asks_for_manual_check(
        self, client, factory, headers_for, gas_safe_client, reload
    ):
        gas_safe_client.status = "unknown"
        user = await factory.user(role="operations")
        contractor = await factory.contractor()
        document = await factory.document(contractor, document_type="gas_safe", status="pending_review")

        resp = await client.post(
            URL,
            json={"licenceNumber": "1234567", "contractorId": str(contractor.id)},
            headers=headers_for(user),
        )

        data = resp.json()["data"]
        assert data["message"] == (
            "Automated verification unavailable. Please verify manually using the provided link."
        )
        assert (await reload(ComplianceDocument, document.id)).status == "pending_review"

    async def test_lookup_error_logged(self, client, factory, headers_for, gas_safe_client, session_factory):
        gas_safe_client.error = httpx.ReadTimeout("slow")
        user = await factory.user(role="operations")
        contractor = await factory.contractor()

        resp = await client.post(
            URL,
            json={"licenceNumber": "1234567", "contractorId": str(contractor.id)},
            headers=headers_for(user),
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["verified"] is False
        assert data["message"] == "Gas Safe registration could not be verified"
        async with session_factory() as s:
            log = (await s.execute(select(VerificationLog))).scalar_one()
        assert log.status == "error"
        assert log.result["lookupResult"] is None
        assert log.result["note"] is None

    async def test_register_note_logged(self, client, factory, headers_for, gas_safe_client, session_factory):
        gas_safe_client.status = "unknown"
        gas_safe_client.raw_data = {"note": "Register unavailable, check manually"}
        user = await factory.user(role="operations")
        contractor = await factory.contractor()

        await client.post(
            URL,
            json={"licenceNumber": "1234567", "contractorId": str(contractor.id)},
            headers=headers_for(user),
        )

        async with session_factory() as s:
            log = (await s.execute(select(VerificationLog))).scalar_one()
        assert log.result["note"] == "Register unavailable, check manually"
        assert log.result["lookupResult"]["status"] == "unknown"

    async def test_verification_bypasses_cache(self, client, factory, headers_for, gas_safe_client):
        await factory.cache_entry("1234567")
        user = await factory.user(role="operations")
        contractor = await factory.contractor()

        await client.post(
            URL,
            json={"licenceNumber": "1234567", "contractorId": str(contractor.id)},
            headers=headers_for(user),
        )

        assert gas_safe_client.calls == ["1234567"]
