"""
Contractor risk scoring.
Scores run 0 (lowest risk) to 100, starting from a neutral 50.
"""

from typing import Iterable, Optional

from pydantic import BaseModel

from compliance_engine.models.enums import ComplianceStatus

BASE_SCORE = 50

COMPANY_ACTIVE_ADJUSTMENT = -10
COMPANY_FAILED_ADJUSTMENT = 30
INSOLVENCY_ADJUSTMENT = 20

DOCUMENT_ADJUSTMENTS = {
    ComplianceStatus.VALID.value: -5,
    ComplianceStatus.EXPIRED.value: 15,
    ComplianceStatus.FRAUD_SUSPECTED.value: 40,
}

_FAILED_COMPANY_STATUSES = ("dissolved", "liquidation")


def _company_field(data: dict, key: str, legacy_key: str):
    """Stored Companies House records use camelCase keys; older rows may be snake_case."""
    return data[key] if key in data else data.get(legacy_key)


class RiskBand(BaseModel):
    label: str
    level: str          # low, medium, high, critical


def calculate_risk_score(
    companies_house_data: Optional[dict],
    document_statuses: Iterable[str],
) -> int:
    """
    Score from Companies House data and current document statuses.

    Active company -10, dissolved or in liquidation +30, any insolvency
    history +20; per document valid -5, expired +15, fraud suspected +40.
    Clamped to 0-100.
    """
    score = BASE_SCORE

    if companies_house_data:
        company_status = str(_company_field(companies_house_data, "companyStatus", "company_status") or "").lower()
        if company_status == "active":
            score += COMPANY_ACTIVE_ADJUSTMENT
        elif company_status in _FAILED_COMPANY_STATUSES:
            score += COMPANY_FAILED_ADJUSTMENT
        if _company_field(companies_house_data, "hasInsolvencyHistory", "has_insolvency_history"):
            score += INSOLVENCY_ADJUSTMENT

    for status in document_statuses:
        score += DOCUMENT_ADJUSTMENTS.get(status, 0)

    return max(0, min(100, score))


def risk_band(score: int) -> RiskBand:
    if score <= 25:
        return RiskBand(label="Low Risk", level="low")
    if score <= 50:
        return RiskBand(label="Medium Risk", level="medium")
    if score <= 75:
        return RiskBand(label="High Risk", level="high")
    return RiskBand(label="Critical Risk", level="critical")
