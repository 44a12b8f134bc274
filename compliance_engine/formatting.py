"""
Display formatting helpers shared by dashboard widgets and report exports.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

DOCUMENT_TYPE_LABELS = {
    "public_liability": "Public Liability",
    "employers_liability": "Employers Liability",
    "professional_indemnity": "Professional Indemnity",
    "gas_safe": "Gas Safe",
    "niceic": "NICEIC",
    "napit": "NAPIT",
    "oftec": "OFTEC",
    "cscs": "CSCS",
    "chas": "CHAS",
    "constructionline": "Constructionline",
    "safe_contractor": "SafeContractor",
    "other": "Other",
}


def format_document_type(document_type: str) -> str:
    """Human label for a document type; unknown types are title-cased."""
    label = DOCUMENT_TYPE_LABELS.get(document_type)
    if label:
        return label
    return document_type.replace("_", " ").title()


def format_status(status: Optional[str]) -> str:
    """'pending_review' -> 'Pending Review'."""
    if not status:
        return ""
    return " ".join(part.capitalize() for part in status.split("_"))


def format_currency(pence: Optional[int]) -> str:
    """Integer pence as pounds, e.g. 123456 -> '£1,234.56'."""
    pounds = Decimal(pence or 0) / 100
    sign = "-" if pounds < 0 else ""
    return f"{sign}£{abs(pounds):,.2f}"


def days_until(target: Union[date, datetime], today: date) -> int:
    """Whole days from today to target; negative once past."""
    if isinstance(target, datetime):
        target = target.date()
    return (target - today).days


def expiry_badge(days_left: int) -> str:
    if days_left < 0:
        return f"{abs(days_left)}d overdue"
    if days_left == 0:
        return "Expires today"
    return f"{days_left}d left"


def format_date(value: Optional[Union[date, datetime]]) -> str:
    """UK display date, e.g. '05 Mar 2025'."""
    if value is None:
        return ""
    return value.strftime("%d %b %Y")
