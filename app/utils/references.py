"""Invoice, payment and receipt reference generation utilities."""

import secrets
import time
from datetime import UTC, datetime


def make_invoice_number(booking_id: int, code_id: int, now: datetime | None = None) -> str:
    """Build a human-readable invoice number.

    Returns:
        str: Invoice number like 'INV-202410-42-17'
    """
    now = now or datetime.now(UTC)
    return f"INV-{now:%Y%m}-{booking_id}-{code_id}"


def generate_payment_reference(booking_id: int) -> str:
    """Generate an opaque payment correlation token.

    Returns:
        str: Payment reference like 'INVREF-42-1729300000000-9f1c2a'
    """
    millis = time.time_ns() // 1_000_000
    return f"INVREF-{booking_id}-{millis}-{secrets.token_hex(3)}"


def make_receipt_number(invoice_id: int, now: datetime | None = None) -> str:
    """Build a receipt number for a paid invoice.

    Returns:
        str: Receipt number like 'RCT-202410-7'
    """
    now = now or datetime.now(UTC)
    return f"RCT-{now:%Y%m}-{invoice_id}"


def booking_correlation_key(booking_id: int) -> str:
    """Key linking transport bookings to the stay they were requested with."""
    return f"BOOKING:{booking_id}"
