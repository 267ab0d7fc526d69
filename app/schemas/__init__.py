"""Pydantic schemas for API validation."""

from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceCreateResponse,
    InvoicePublicResponse,
    MarkPaidRequest,
    MarkPaidResponse,
    PriceBreakdown,
)

__all__ = [
    "InvoiceCreate",
    "InvoiceCreateResponse",
    "InvoicePublicResponse",
    "MarkPaidRequest",
    "MarkPaidResponse",
    "PriceBreakdown",
]
