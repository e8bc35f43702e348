from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from app.api.v1.schemas import (
    AdminBookingListResponse,
    AdminBookingSchema,
    CalendarRefreshResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from app.application.exceptions import (
    BookingNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
    SlotConflictError,
)
from app.application.use_cases.booking_lifecycle import BookingLifecycle
from app.application.use_cases.maintenance import BookingMaintenanceUseCase
from app.core.config import settings
from app.infrastructure.security.admin_key import verify_admin_key
from app.wiring.dependencies import get_booking_lifecycle, get_maintenance_use_case


logger = logging.getLogger(__name__)


def require_admin(x_admin_key: str | None = Header(None, alias="X-Admin-Key")) -> None:
    if not verify_admin_key(x_admin_key, settings.ADMIN_API_KEY, settings.ENV):
        raise HTTPException(status_code=403, detail="Admin access denied")


router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.get("/bookings", response_model=AdminBookingListResponse)
def list_bookings(
    status: str | None = Query(None),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    try:
        bookings = lifecycle.list_bookings(status)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AdminBookingListResponse(bookings=[AdminBookingSchema.from_booking(b) for b in bookings])


@router.patch("/bookings/{booking_id}/status", response_model=StatusUpdateResponse)
def update_booking_status(
    booking_id: str,
    req: StatusUpdateRequest,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    try:
        result = lifecycle.set_status(booking_id, req.status)
    except BookingNotFoundError:
        raise HTTPException(status_code=404, detail="Booking not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SlotConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(
        "Admin status update",
        extra={"booking_id": booking_id, "status": result.booking.status.value, "reason": f"changed={result.changed}"},
    )
    return StatusUpdateResponse(booking=AdminBookingSchema.from_booking(result.booking), changed=result.changed)


@router.post("/calendar/refresh", response_model=CalendarRefreshResponse)
def refresh_calendar(maintenance: BookingMaintenanceUseCase = Depends(get_maintenance_use_case)):
    return CalendarRefreshResponse(refreshed=maintenance.refresh_calendar())
