"""
Tests for contractor risk scoring.
"""

from compliance_engine.compliance.risk import calculate_risk_score, risk_band


class TestCalculateRiskScore:

    def test_neutral_start(self):
        assert calculate_risk_score(None, []) == 50

    def test_active_company(self):
        assert calculate_risk_score({"companyStatus": "active"}, []) == 40

    def test_dissolved_with_insolvency(self):
        data = {"companyStatus": "dissolved", "hasInsolvencyHistory": True}
        assert calculate_risk_score(data, []) == 100

    def test_insolvency_flag_alone(self):
        assert calculate_risk_score({"hasInsolvencyHistory": True}, []) == 70

    def test_snake_case_record(self):
        data = {"company_status": "liquidation", "has_insolvency_history": False}
        assert calculate_risk_score(data, []) == 80

    def test_documents_adjust_score(self):
        assert calculate_risk_score(None, ["valid", "valid", "expired"]) == 55

    def test_clamped_low(self):
        assert calculate_risk_score({"companyStatus": "active"}, ["valid"] * 20) == 0

    def test_clamped_high(self):
        assert calculate_risk_score(None, ["fraud_suspected", "fraud_suspected"]) == 100

    def test_pending_documents_ignored(self):
        assert calculate_risk_score(None, ["pending_review", "rejected"]) == 50


class TestRiskBand:

    def test_bands(self):
        assert risk_band(10).level == "low"
        assert risk_band(50).level == "medium"
        assert risk_band(60).level == "high"
        assert risk_band(90).label == "Critical Risk"
