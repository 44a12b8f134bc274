"""
Health check endpoints.
/health always returns 200 so platform healthchecks pass while a dependency
is down. It reports the database, the job queue's Redis and whether Gas Safe
lookups are automated or fall back to manual verification.
/health/ready reports whether the database is reachable.
"""

from typing import Optional

from fastapi import APIRouter
from redis.asyncio import Redis
from sqlalchemy import text

from compliance_engine.config import settings
from compliance_engine.models.database import async_session_factory

router = APIRouter(tags=["health"])

REDIS_PING_TIMEOUT_SECONDS = 2.0


async def check_database() -> tuple[bool, Optional[str]]:
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1, None
    except Exception as e:
        return False, str(e)[:200]


async def check_queue() -> tuple[bool, Optional[str]]:
    """Ping the Redis instance behind the expiry-check queue."""
    client = Redis.from_url(
        settings.REDIS_URL,
        socket_connect_timeout=REDIS_PING_TIMEOUT_SECONDS,
        socket_timeout=REDIS_PING_TIMEOUT_SECONDS,
    )
    try:
        return bool(await client.ping()), None
    except Exception as e:
        return False, str(e)[:200]
    finally:
        await client.aclose()


def gas_safe_register_mode() -> str:
    """Without an API URL every lookup is a manual-verification placeholder."""
    return "automated" if settings.GAS_SAFE_API_URL else "manual"


@router.get("/health")
async def health_check():
    """Liveness plus best-effort checks of the database and job queue."""
    db_ok, db_error = await check_database()
    queue_ok, queue_error = await check_queue()

    response = {
        "status": "healthy" if db_ok and queue_ok else "degraded",
        "version": settings.APP_VERSION,
        "database": "connected" if db_ok else "unreachable",
        "queue": {
            "name": settings.QUEUE_NAME,
            "redis": "connected" if queue_ok else "unreachable",
        },
        "gas_safe_register": {
            "mode": gas_safe_register_mode(),
            "cache_ttl_hours": settings.GAS_SAFE_CACHE_TTL_HOURS,
        },
    }
    if db_error:
        response["database_error"] = db_error
    if queue_error:
        response["queue_error"] = queue_error

    return response


@router.get("/health/ready")
async def readiness_check():
    """Ready only when the database answers; the queue is only needed by the expiry job."""
    db_ok, _ = await check_database()
    return {"ready": db_ok}
