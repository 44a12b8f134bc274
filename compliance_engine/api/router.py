"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from compliance_engine.api.health import router as health_router
from compliance_engine.api.payment_run import router as payment_run_router
from compliance_engine.api.gas_safe import router as gas_safe_router
from compliance_engine.api.dashboard import router as dashboard_router
from compliance_engine.api.contractors import router as contractors_router
from compliance_engine.api.documents import router as documents_router
from compliance_engine.api.public import router as public_router
from compliance_engine.api.reports import router as reports_router
from compliance_engine.api.jobs import router as jobs_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(payment_run_router)
api_router.include_router(gas_safe_router)
api_router.include_router(dashboard_router)
api_router.include_router(contractors_router)
api_router.include_router(documents_router)
api_router.include_router(public_router)
api_router.include_router(reports_router)
api_router.include_router(jobs_router)
