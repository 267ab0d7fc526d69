"""Core utilities: exceptions and middleware."""

from app.core.exceptions import (
    AppException,
    AuthorizationError,
    BookingCodeExhaustedError,
    InvalidInvoiceStatus,
    InvoiceConflictError,
    NotFoundError,
    PropertyNotApprovedError,
)

__all__ = [
    "AppException",
    "AuthorizationError",
    "BookingCodeExhaustedError",
    "InvalidInvoiceStatus",
    "InvoiceConflictError",
    "NotFoundError",
    "PropertyNotApprovedError",
]
