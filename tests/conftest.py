"""
Shared test fixtures.
Each test gets a fresh in-memory SQLite database and an HTTP client bound
to the app with the DB session, Gas Safe client and document store
dependencies replaced.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["AUTH_JWT_SECRET"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["PROMETHEUS_ENABLED"] = "false"

import uuid
from datetime import date, timedelta
from typing import Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from compliance_engine.dependencies import get_db, get_document_store, get_gas_safe_client
from compliance_engine.main import create_app
from compliance_engine.models.database import Base, utcnow
from compliance_engine.models.tables import (
    ComplianceDocument,
    Contractor,
    GasSafeCacheEntry,
    Invoice,
    User,
)
from compliance_engine.schemas.verification import GasSafeEngineer
from compliance_engine.security import create_access_token
from compliance_engine.storage.document_store import DocumentStore
from compliance_engine.verification.gas_safe import GasSafeRegisterClient


class FakeGasSafeClient(GasSafeRegisterClient):
    """Register client that records calls and returns a canned engineer."""

    def __init__(self):
        super().__init__()
        self.calls: list[str] = []
        self.status = "valid"
        self.error: Optional[Exception] = None
        self.raw_data = {"source": "fake"}

    async def fetch_engineer(self, licence: str) -> GasSafeEngineer:
        self.calls.append(licence)
        if self.error is not None:
            raise self.error
        return GasSafeEngineer(
            licence_number=licence,
            engineer_name="Sam Fitter",
            trading_name="Fitter Gas Services",
            business_address="1 High Street, Leeds",
            status=self.status,
            is_valid=self.status == "valid",
            appliances=["Boilers", "Cookers", "Central Heating"],
            raw_data=self.raw_data,
            fetched_at=utcnow(),
        )


class Factory:
    """Creates and commits rows with sensible defaults."""

    def __init__(self, session):
        self.session = session
        self.today = utcnow().date()

    async def save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def user(self, role: str = "admin", is_active: bool = True) -> User:
        return await self.save(User(
            email=f"user-{uuid.uuid4().hex[:8]}@acmeheating.co.uk",
            full_name="Test User",
            role=role,
            is_active=is_active,
        ))

    async def contractor(self, **overrides) -> Contractor:
        fields = {
            "company_name": "Acme Heating Ltd",
            "contact_name": "Jo Bloggs",
            "email": f"contact-{uuid.uuid4().hex[:8]}@acmeheating.co.uk",
            "trade_types": ["gas_engineer"],
            "verification_status": "verified",
            "payment_status": "allowed",
        }
        fields.update(overrides)
        return await self.save(Contractor(**fields))

    async def document(self, contractor: Contractor, **overrides) -> ComplianceDocument:
        fields = {
            "contractor_id": contractor.id,
            "document_type": "public_liability",
            "status": "valid",
            "expiry_date": self.today + timedelta(days=365),
        }
        fields.update(overrides)
        return await self.save(ComplianceDocument(**fields))

    async def invoice(self, contractor: Contractor, **overrides) -> Invoice:
        fields = {
            "contractor_id": contractor.id,
            "invoice_number": f"INV-{uuid.uuid4().hex[:6]}",
            "amount": 10000,
            "due_date": self.today + timedelta(days=14),
            "status": "pending",
        }
        fields.update(overrides)
        return await self.save(Invoice(**fields))

    async def compliant_contractor(self, **overrides) -> Contractor:
        contractor = await self.contractor(**overrides)
        await self.document(contractor)
        return contractor

    async def cache_entry(self, licence_number: str, **overrides) -> GasSafeCacheEntry:
        fields = {
            "licence_number": licence_number,
            "engineer_name": "Cached Engineer",
            "trading_name": "Cached Gas Ltd",
            "business_address": "2 Low Road, York",
            "status": "valid",
            "appliances": ["Boilers"],
            "is_valid": True,
            "fetched_at": utcnow(),
        }
        fields.update(overrides)
        return await self.save(GasSafeCacheEntry(**fields))


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def factory(session):
    return Factory(session)


@pytest.fixture
def reload(session_factory):
    """Read a row back through a fresh session, bypassing any identity map."""

    async def _reload(model, ident):
        async with session_factory() as fresh:
            return await fresh.get(model, ident)

    return _reload


@pytest.fixture
def gas_safe_client():
    return FakeGasSafeClient()


@pytest.fixture
def document_store(tmp_path):
    return DocumentStore(str(tmp_path / "documents"))


@pytest.fixture
async def client(session_factory, gas_safe_client, document_store):
    app = create_app()

    async def override_get_db():
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gas_safe_client] = lambda: gas_safe_client
    app.dependency_overrides[get_document_store] = lambda: document_store

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def today() -> date:
    return utcnow().date()
