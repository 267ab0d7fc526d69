"""Database models."""

from app.models.booking import Booking, CheckinCode
from app.models.invoice import Invoice
from app.models.property import Property
from app.models.system_setting import SystemSetting
from app.models.transport import TransportBooking

__all__ = [
    # Property
    "Property",
    # Booking
    "Booking",
    "CheckinCode",
    # Invoice
    "Invoice",
    # Transport
    "TransportBooking",
    # Settings
    "SystemSetting",
]
