"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import internal, invoices

api_router = APIRouter()

# Public invoices
api_router.include_router(invoices.router, prefix="/public/invoices", tags=["Invoices"])

# Internal
api_router.include_router(internal.router, prefix="/internal", tags=["Internal"])
