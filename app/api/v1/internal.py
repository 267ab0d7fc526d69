"""Internal callbacks from trusted collaborators."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_publisher, require_internal_key
from app.schemas.invoice import MarkPaidRequest, MarkPaidResponse
from app.services.invoice_service import invoice_service
from app.services.notification_service import RealtimePublisher

router = APIRouter(dependencies=[Depends(require_internal_key)])


@router.post("/invoices/{invoice_id}/mark-paid", response_model=MarkPaidResponse)
async def mark_invoice_paid(
    invoice_id: Annotated[int, Path(gt=0)],
    payload: MarkPaidRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    publisher: Annotated[RealtimePublisher, Depends(get_publisher)],
) -> MarkPaidResponse:
    """Record a confirmed payment and release the stay's rides to drivers."""
    invoice = await invoice_service.mark_paid(
        db,
        invoice_id,
        payment_method=payload.payment_method,
        payment_ref=payload.payment_ref,
        publisher=publisher,
    )
    return MarkPaidResponse(
        invoice_id=invoice.id,
        status=invoice.status,
        receipt_number=invoice.receipt_number,
        paid_at=invoice.paid_at,
    )
