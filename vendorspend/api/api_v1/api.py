"""
Main API router for v1 endpoints.
"""

from fastapi import APIRouter

from vendorspend.api.api_v1.endpoints import (
    approvals,
    auth,
    contracts,
    dashboard,
    documents,
    exceptions,
    invoices,
    validations,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(contracts.router, prefix="/contracts", tags=["Contracts"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
api_router.include_router(validations.router, prefix="/validations", tags=["Validations"])
api_router.include_router(exceptions.router, prefix="/exceptions", tags=["Exception Management"])
api_router.include_router(approvals.router, prefix="/approvals", tags=["Approvals"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
