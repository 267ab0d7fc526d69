"""Invoice state machine."""

from app.core.exceptions import InvalidInvoiceStatus

REQUESTED = "REQUESTED"
VERIFIED = "VERIFIED"
APPROVED = "APPROVED"
PROCESSING = "PROCESSING"
PAID = "PAID"
REJECTED = "REJECTED"
CUSTOMER_PAID = "CUSTOMER_PAID"  # legacy

INVOICE_TRANSITIONS = {
    REQUESTED: {VERIFIED, APPROVED, PROCESSING, PAID, REJECTED},
    VERIFIED: {APPROVED, PROCESSING, PAID, REJECTED},
    APPROVED: {PROCESSING, PAID, REJECTED},
    PROCESSING: {PAID, REJECTED},
    CUSTOMER_PAID: {PAID, REJECTED},
    PAID: set(),
    REJECTED: set(),
}


def is_paid_like(status: str | None, receipt_number: str | None = None) -> bool:
    """Whether an invoice counts as settled.

    Legacy ``CUSTOMER_PAID`` only counts when a receipt was issued.
    """
    if status == PAID:
        return True
    return status == CUSTOMER_PAID and bool(receipt_number)


def assert_invoice_transition(current: str, target: str) -> None:
    allowed = INVOICE_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidInvoiceStatus(
            f"Invalid invoice transition: {current} → {target}"
        )
