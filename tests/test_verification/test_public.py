"""
Tests for public verification scoring and badges.
"""

from datetime import timedelta

from compliance_engine.models.database import utcnow
from compliance_engine.models.tables import Contractor
from compliance_engine.schemas.public import PublicDocument
from compliance_engine.verification.public import (
    certifications,
    companies_house_summary,
    earned_badges,
    format_address,
    verification_score,
)


def _doc(doc_type, status="valid"):
    return PublicDocument(type=doc_type, status=status)


class TestVerificationScore:

    def test_nothing(self):
        assert verification_score("unverified", None, []) == 0

    def test_verified_with_liability_cover(self):
        docs = [_doc("public_liability"), _doc("employers_liability")]
        assert verification_score("verified", "01234567", docs) == 90

    def test_partially_verified(self):
        assert verification_score("partially_verified", None, [_doc("public_liability")]) == 40

    def test_additional_documents_capped(self):
        docs = [_doc("gas_safe"), _doc("niceic"), _doc("cscs"), _doc("oftec")]
        assert verification_score("unverified", None, docs) == 10

    def test_only_valid_documents_count(self):
        docs = [_doc("public_liability", "expired"), _doc("gas_safe", "pending_review")]
        assert verification_score("verified", None, docs) == 40

    def test_capped_at_100(self):
        docs = [_doc("public_liability"), _doc("employers_liability"), _doc("gas_safe"), _doc("niceic")]
        assert verification_score("verified", "01234567", docs) == 100


class TestBadges:

    def test_badges_for_established_gas_engineer(self):
        now = utcnow()
        contractor = Contractor(
            company_name="Acme Heating Ltd",
            company_number="01234567",
            verification_status="verified",
            onboarded_at=now - timedelta(days=400),
            companies_house_data={"companyStatus": "active"},
        )
        docs = [_doc("public_liability"), _doc("gas_safe")]

        badges = earned_badges(contractor, docs, companies_house_summary(contractor), now)

        assert [b.type for b in badges] == [
            "verified_partner",
            "insurance_verified",
            "companies_house_verified",
            "gas_safe_registered",
            "long_standing_member",
            "fully_compliant",
        ]
        assert badges[0].label == "Verified Partner"
        assert all(b.earned_at == now for b in badges)

    def test_new_unverified_contractor(self):
        contractor = Contractor(
            company_name="New Co",
            verification_status="unverified",
            onboarded_at=utcnow() - timedelta(days=30),
        )
        docs = [_doc("public_liability", "pending_review"), _doc("niceic")]

        badges = earned_badges(contractor, docs, None)

        assert [b.type for b in badges] == ["niceic_approved"]

    def test_no_documents_not_fully_compliant(self):
        contractor = Contractor(company_name="Empty Ltd", verification_status="verified")
        assert [b.type for b in earned_badges(contractor, [], None)] == ["verified_partner"]


class TestCompaniesHouseSummary:

    def test_requires_company_number(self):
        assert companies_house_summary(Contractor(company_name="Sole Trader")) is None

    def test_from_stored_record(self):
        contractor = Contractor(
            company_name="Acme Heating Ltd",
            company_number="01234567",
            companies_house_data={
                "companyName": "ACME HEATING LIMITED",
                "companyStatus": "dissolved",
                "dateOfCreation": "2009-04-01",
                "registeredOfficeAddress": {"line1": "1 High Street", "city": "Leeds", "postcode": "LS1 1AA"},
            },
        )

        summary = companies_house_summary(contractor)

        assert summary.company_name == "ACME HEATING LIMITED"
        assert summary.status == "dissolved"
        assert summary.is_active is False
        assert summary.registered_address == "1 High Street, Leeds, LS1 1AA"

    def test_without_stored_record(self):
        summary = companies_house_summary(Contractor(company_name="Acme Ltd", company_number="01234567"))
        assert summary.company_name == "Acme Ltd"
        assert summary.status == "unknown"
        assert summary.incorporated_date == ""


def test_certifications_only_valid():
    docs = [_doc("gas_safe"), _doc("niceic", "expired"), _doc("public_liability"), _doc("cscs")]
    assert certifications(docs) == ["gas_safe", "cscs"]


def test_format_address_skips_blanks():
    assert format_address({"line1": "2 Low Road", "line2": "", "city": "York"}) == "2 Low Road, York"
