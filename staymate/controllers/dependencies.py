"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from staymate.domain.errors import (
    BookingError,
    BookingValidationError,
    CapacityConflictError,
    DuplicateSubscriptionError,
    InvalidTransitionError,
    NoAvailabilityError,
    NotFoundError,
    PermissionDeniedError,
)
from staymate.domain.models import Actor
from staymate.services.auth_service import AuthenticationError, AuthService
from staymate.services.booking_service import BookingService
from staymate.services.dashboard_service import DashboardService
from staymate.services.inventory_service import InventoryService
from staymate.utils.logger import get_logger


logger = get_logger(__name__)


_ERROR_STATUS: tuple[tuple[type[BookingError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (NoAvailabilityError, status.HTTP_409_CONFLICT),
    (DuplicateSubscriptionError, status.HTTP_409_CONFLICT),
    (CapacityConflictError, status.HTTP_409_CONFLICT),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (InvalidTransitionError, status.HTTP_400_BAD_REQUEST),
    (BookingValidationError, status.HTTP_400_BAD_REQUEST),
)


def booking_failure(exc: BookingError) -> JSONResponse:
    """Render a domain failure as the ``{success, message}`` envelope."""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, mapped_status in _ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = mapped_status
            break
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": str(exc)},
    )


def unexpected_failure(exc: Exception, action: str) -> HTTPException:
    logger.exception("Unexpected failure while trying to %s: %s", action, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


def _service_from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is not initialized",
        )
    return service


def get_booking_service(request: Request) -> BookingService:
    return _service_from_state(request, "booking_service", "Booking service")


def get_inventory_service(request: Request) -> InventoryService:
    return _service_from_state(request, "inventory_service", "Inventory service")


def get_dashboard_service(request: Request) -> DashboardService:
    return _service_from_state(request, "dashboard_service", "Dashboard service")


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService()
        request.app.state.auth_service = service
    return service


def get_optional_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> Actor | None:
    if x_actor_id is None and x_actor_role is None:
        return None
    try:
        return auth_service.resolve_actor(x_actor_id, x_actor_role)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


def require_actor(actor: Actor | None = Depends(get_optional_actor)) -> Actor:
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id and X-Actor-Role headers are required",
        )
    return actor
