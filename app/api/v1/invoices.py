"""Public invoice endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_publisher
from app.schemas.invoice import (
    BookingSummary,
    InvoiceCreate,
    InvoiceCreateResponse,
    InvoicePublicResponse,
)
from app.services.invoice_service import invoice_service
from app.services.notification_service import RealtimePublisher

router = APIRouter()


@router.post(
    "/from-booking",
    response_model=InvoiceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_200_OK: {"model": InvoiceCreateResponse}},
)
async def create_invoice_from_booking(
    payload: InvoiceCreate,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    publisher: Annotated[RealtimePublisher, Depends(get_publisher)],
) -> InvoiceCreateResponse:
    """Create the invoice for a booking, or return the one it already has.

    Responds 201 for a new invoice and 200 when it already existed.
    """
    result = await invoice_service.settle(db, payload.booking_id, publisher=publisher)
    invoice = result.invoice
    facts = result.facts

    if not result.created:
        response.status_code = status.HTTP_200_OK

    return InvoiceCreateResponse(
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        payment_ref=invoice.payment_ref,
        status=invoice.status,
        total_amount=invoice.total or 0,
        currency=facts.currency,
        message=None if result.created else "Invoice already exists",
        booking=BookingSummary(
            id=facts.booking_id,
            booking_code=result.booking_code,
            check_in=facts.check_in,
            check_out=facts.check_out,
            nights=facts.nights,
        ),
    )


@router.get("/{invoice_id}", response_model=InvoicePublicResponse)
async def get_invoice(
    invoice_id: Annotated[int, Path(gt=0)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InvoicePublicResponse:
    """Public view of an invoice with its price breakdown."""
    view = await invoice_service.project(db, invoice_id)
    return InvoicePublicResponse.model_validate(view)
