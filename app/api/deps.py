"""API dependencies shared by the endpoint modules."""

import secrets
from typing import Annotated

from fastapi import Header

from app.config import settings
from app.core.exceptions import AuthorizationError, NotFoundError
from app.database import get_db
from app.services.notification_service import RealtimePublisher, realtime_publisher

__all__ = ["get_db", "get_publisher", "require_internal_key"]


async def get_publisher() -> RealtimePublisher:
    """Real-time publisher used for driver notifications."""
    return realtime_publisher


async def require_internal_key(
    x_internal_key: Annotated[str | None, Header()] = None,
) -> None:
    """Guard for internal callbacks.

    The routes behave as missing while no internal key is configured.
    """
    if not settings.internal_api_key:
        raise NotFoundError("Endpoint")
    if not x_internal_key or not secrets.compare_digest(
        x_internal_key, settings.internal_api_key
    ):
        raise AuthorizationError("Invalid internal key")
