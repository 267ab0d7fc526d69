"""Invoice-related Pydantic schemas (camelCase on the wire)."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InvoiceCreate(CamelModel):
    """Schema for requesting a booking's invoice."""

    booking_id: int = Field(..., gt=0, strict=True)


class BookingSummary(CamelModel):
    """Stay summary embedded in invoice responses."""

    id: int
    booking_code: str | None = None
    check_in: datetime
    check_out: datetime
    nights: int


class PropertySummary(CamelModel):
    """Property summary embedded in the public invoice view."""

    id: int
    title: str
    primary_image: Any | None = None


class InvoiceCreateResponse(CamelModel):
    """Schema for the invoice-from-booking response."""

    ok: bool = True
    invoice_id: int
    invoice_number: str
    payment_ref: str | None
    status: str
    total_amount: float
    currency: str
    message: str | None = None
    booking: BookingSummary


class PriceBreakdown(CamelModel):
    """Payer-facing split of the invoice total. Commission is always 0."""

    accommodation_subtotal: float
    transport_fare: float
    commission: float = 0
    total: float


class InvoicePublicResponse(CamelModel):
    """Schema for the public invoice view."""

    id: int
    invoice_number: str
    payment_ref: str | None
    status: str
    total_amount: float
    currency: str
    price_breakdown: PriceBreakdown
    booking: BookingSummary
    property: PropertySummary


class MarkPaidRequest(CamelModel):
    """Schema for a confirmed payment callback."""

    payment_method: str | None = Field(None, max_length=30)
    payment_ref: str | None = Field(None, max_length=100)


class MarkPaidResponse(CamelModel):
    """Schema for the payment confirmation response."""

    invoice_id: int
    status: str
    receipt_number: str | None
    paid_at: datetime | None
