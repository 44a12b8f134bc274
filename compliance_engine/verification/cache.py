"""
Gas Safe lookup cache.
Rows are keyed by normalised licence number and are fresh for
GAS_SAFE_CACHE_TTL_HOURS after `fetched_at`. Writes are upserts, so
concurrent lookups of the same licence resolve last-write-wins.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.config import settings
from compliance_engine.models.database import as_utc, utcnow
from compliance_engine.models.tables import GasSafeCacheEntry
from compliance_engine.observability.metrics import gas_safe_lookups_total
from compliance_engine.schemas.verification import GasSafeEngineer, GasSafeLookupResult
from compliance_engine.verification.gas_safe import (
    GasSafeRegisterClient,
    format_licence,
    lookup_engineer,
)

logger = structlog.get_logger(__name__)


def cache_cutoff(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) - timedelta(hours=settings.GAS_SAFE_CACHE_TTL_HOURS)


async def get_fresh_entry(
    session: AsyncSession,
    licence_number: str,
    now: Optional[datetime] = None,
) -> Optional[GasSafeCacheEntry]:
    """Return the cache row for a normalised licence if fetched within the TTL."""
    result = await session.execute(
        select(GasSafeCacheEntry).where(
            GasSafeCacheEntry.licence_number == licence_number,
            GasSafeCacheEntry.fetched_at >= cache_cutoff(now),
        )
    )
    return result.scalar_one_or_none()


def engineer_from_entry(entry: GasSafeCacheEntry) -> GasSafeEngineer:
    return GasSafeEngineer(
        licence_number=entry.licence_number,
        engineer_name=entry.engineer_name,
        trading_name=entry.trading_name,
        business_address=entry.business_address,
        status=entry.status or "unknown",
        is_valid=entry.is_valid,
        appliances=list(entry.appliances or []),
        expiry_date=entry.expires_at,
        raw_data=entry.raw_data,
        fetched_at=as_utc(entry.fetched_at),
    )


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"No upsert support for dialect {dialect!r}")


async def store_engineer(session: AsyncSession, engineer: GasSafeEngineer) -> None:
    """Upsert an engineer record keyed on licence number."""
    values = {
        "engineer_name": engineer.engineer_name,
        "trading_name": engineer.trading_name,
        "business_address": engineer.business_address,
        "status": engineer.status,
        "appliances": engineer.appliances,
        "is_valid": engineer.is_valid,
        "expires_at": engineer.expiry_date,
        "raw_data": engineer.raw_data,
        "fetched_at": engineer.fetched_at or utcnow(),
    }
    insert = _insert_for(session)
    stmt = insert(GasSafeCacheEntry).values(licence_number=engineer.licence_number, **values)
    stmt = stmt.on_conflict_do_update(index_elements=["licence_number"], set_=values)
    await session.execute(stmt)


async def cached_lookup(
    session: AsyncSession,
    licence: str,
    client: GasSafeRegisterClient,
    now: Optional[datetime] = None,
) -> GasSafeLookupResult:
    """
    Serve a fresh cache row unchanged, otherwise look up and refresh the cache.
    The licence must already have passed format validation.
    """
    licence_number = format_licence(licence)

    entry = await get_fresh_entry(session, licence_number, now)
    if entry is not None:
        gas_safe_lookups_total.labels(source="cache", outcome=entry.status or "unknown").inc()
        logger.info("gas_safe_cache_hit", licence_number=licence_number)
        return GasSafeLookupResult(success=True, engineer=engineer_from_entry(entry), cached=True)

    result = await lookup_engineer(licence_number, client)
    if not result.success or result.engineer is None:
        return result

    await store_engineer(session, result.engineer)
    logger.info("gas_safe_cache_refreshed", licence_number=licence_number, status=result.engineer.status)
    return result
