"""Custom application exceptions."""

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception.

    ``detail`` becomes the ``error`` field of the response body; ``message``
    carries an optional human-readable explanation.
    """

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        message: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class PropertyNotApprovedError(AppException):
    """Booking's property cannot be invoiced in its current state."""

    def __init__(self, property_status: str | None) -> None:
        self.property_status = property_status
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Property is not available",
            message=f"Property status is {property_status}",
        )


class InvalidInvoiceStatus(AppException):
    """Invalid invoice status for operation."""

    def __init__(self, detail: str = "This operation is not allowed for the current invoice status") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvoiceConflictError(AppException):
    """Invoice write lost a uniqueness race that could not be resolved."""

    def __init__(self, booking_id: int) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="Invoice conflict",
            message=f"Another invoice write for booking {booking_id} is in progress",
        )


class BookingCodeExhaustedError(AppException):
    """No unique check-in code could be allocated within the attempt budget."""

    def __init__(self, booking_id: int, attempts: int) -> None:
        self.booking_id = booking_id
        self.attempts = attempts
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate booking code",
            message=f"No unique code for booking {booking_id} after {attempts} attempts",
        )
