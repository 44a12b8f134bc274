"""
Gas Safe Register licence lookups.

Licence numbers are 7 digits. Input is normalised by stripping every
non-digit and zero-padding to 7. Without a configured register API the
client returns a manual-verification placeholder pointing the user at
the public register.
"""

import re
import time
from datetime import date
from typing import Optional, Sequence
from urllib.parse import urlencode

import httpx
import structlog

from compliance_engine.config import settings
from compliance_engine.models.database import utcnow
from compliance_engine.models.enums import GasSafeStatus
from compliance_engine.observability.metrics import (
    external_api_latency_seconds,
    gas_safe_lookups_total,
)
from compliance_engine.schemas.verification import (
    ApplianceCoverage,
    GasSafeEngineer,
    GasSafeLookupResult,
)

logger = structlog.get_logger(__name__)

LICENCE_LENGTH = 7
LOOKUP_FAILED_MESSAGE = "Failed to verify Gas Safe registration"
MANUAL_VERIFICATION_NOTE = (
    "Automated lookup not available. Please verify manually at gassaferegister.co.uk"
)

GAS_SAFE_APPLIANCE_CATEGORIES = [
    "Natural Gas",
    "LPG",
    "Domestic",
    "Commercial",
    "Boilers",
    "Fires",
    "Cookers",
    "Water Heaters",
    "Warm Air",
    "Meters",
    "Catering",
    "Industrial Catering",
    "Space Heating",
    "Refrigeration",
]

_NON_DIGITS = re.compile(r"\D")


def _digits(licence: str) -> str:
    return _NON_DIGITS.sub("", licence or "")


def validate_licence(licence: Optional[str]) -> bool:
    """A licence is valid when exactly 7 digits remain after stripping non-digits."""
    return len(_digits(licence or "")) == LICENCE_LENGTH


def format_licence(licence: str) -> str:
    return _digits(licence).zfill(LICENCE_LENGTH)


def lookup_url(licence: Optional[str] = None) -> str:
    """Public register search page, pre-filled when a licence is given."""
    base = settings.GAS_SAFE_PUBLIC_LOOKUP_URL
    if licence:
        return f"{base}?{urlencode({'registration': licence})}"
    return base


def check_appliance_coverage(
    engineer: GasSafeEngineer,
    required_appliances: Sequence[str],
) -> ApplianceCoverage:
    """
    Check an engineer is registered for every required appliance.
    A required appliance is covered when it appears, case-insensitively,
    inside any of the engineer's appliance categories.
    """
    if not engineer.is_valid:
        return ApplianceCoverage(covered=False, missing_appliances=list(required_appliances))

    registered = [appliance.lower() for appliance in engineer.appliances]
    missing = [
        required for required in required_appliances
        if not any(required.lower() in appliance for appliance in registered)
    ]
    return ApplianceCoverage(covered=not missing, missing_appliances=missing)


def manual_verification_placeholder(licence: str) -> GasSafeEngineer:
    return GasSafeEngineer(
        licence_number=licence,
        status=GasSafeStatus.UNKNOWN.value,
        is_valid=False,
        appliances=[],
        raw_data={"note": MANUAL_VERIFICATION_NOTE},
        fetched_at=utcnow(),
    )


def _parse_status(value) -> str:
    status = str(value or "").strip().lower().replace(" ", "_")
    known = {s.value for s in GasSafeStatus}
    return status if status in known else GasSafeStatus.UNKNOWN.value


def engineer_from_register(licence: str, payload: dict) -> GasSafeEngineer:
    """Map a register API payload onto an engineer record."""
    status = _parse_status(payload.get("status"))
    expiry = payload.get("expiryDate")
    appliances = payload.get("appliances") or []
    return GasSafeEngineer(
        licence_number=licence,
        engineer_name=payload.get("engineerName"),
        trading_name=payload.get("tradingName"),
        business_address=payload.get("businessAddress"),
        status=status,
        is_valid=status == GasSafeStatus.VALID.value,
        appliances=[str(a) for a in appliances],
        expiry_date=date.fromisoformat(expiry) if expiry else None,
        raw_data=payload,
        fetched_at=utcnow(),
    )


class GasSafeRegisterClient:
    """HTTP client for the Gas Safe Register engineer search."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.api_url = api_url.rstrip("/") if api_url else None
        self.api_key = api_key
        self.timeout = timeout

    @property
    def automated(self) -> bool:
        return self.api_url is not None

    async def fetch_engineer(self, licence: str) -> GasSafeEngineer:
        """
        Fetch one engineer by normalised licence number.
        Raises httpx.HTTPError on transport or non-404 HTTP failures.
        """
        if not self.automated:
            return manual_verification_placeholder(licence)

        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(f"{self.api_url}/engineers/{licence}", headers=headers)

        if resp.status_code == 404:
            return GasSafeEngineer(
                licence_number=licence,
                status=GasSafeStatus.NOT_FOUND.value,
                is_valid=False,
                fetched_at=utcnow(),
            )
        resp.raise_for_status()
        return engineer_from_register(licence, resp.json())


async def lookup_engineer(licence: str, client: GasSafeRegisterClient) -> GasSafeLookupResult:
    """
    Live lookup against the register, bypassing the cache.
    Failures are reported in the result rather than raised.
    """
    if not validate_licence(licence):
        return GasSafeLookupResult(success=False, error="Invalid Gas Safe licence number format")

    formatted = format_licence(licence)
    started = time.perf_counter()
    try:
        engineer = await client.fetch_engineer(formatted)
    except (httpx.HTTPError, ValueError) as exc:
        gas_safe_lookups_total.labels(source="register", outcome="error").inc()
        logger.warning("gas_safe_lookup_failed", licence_number=formatted, error=str(exc))
        return GasSafeLookupResult(success=False, error=LOOKUP_FAILED_MESSAGE)
    finally:
        external_api_latency_seconds.labels(
            service="gas_safe_register", operation="fetch_engineer"
        ).observe(time.perf_counter() - started)

    gas_safe_lookups_total.labels(source="register", outcome=engineer.status).inc()
    logger.info(
        "gas_safe_lookup_completed",
        licence_number=formatted,
        status=engineer.status,
        is_valid=engineer.is_valid,
    )
    return GasSafeLookupResult(success=True, engineer=engineer)
