from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from app.api.v1.schemas import (
    BookingResponse,
    BookingSchema,
    CancelBookingResponse,
    ConfirmBookingResponse,
    CreateBookingRequest,
    CreateBookingResponse,
)
from app.application.exceptions import (
    BookingLimitError,
    BookingNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
    SlotConflictError,
    SlotUnavailableError,
)
from app.application.use_cases.booking_lifecycle import BookingLifecycle
from app.application.utils.schedule_rules import parse_duration_type
from app.wiring.dependencies import get_booking_lifecycle

router = APIRouter(prefix="/bookings")
logger = logging.getLogger(__name__)


def parse_session_date(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        raise InvalidInputError("Invalid session date/time") from None


@router.post("", response_model=CreateBookingResponse, status_code=201)
def create_booking(
    req: CreateBookingRequest,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    try:
        result = lifecycle.create(
            session_start=parse_session_date(req.session_date),
            duration_type=parse_duration_type(req.duration_type),
            client_ref=req.client_ref,
            beneficiary_ref=req.beneficiary_ref,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SlotUnavailableError as e:
        raise HTTPException(
            status_code=400,
            detail={"reason": e.check.rejection.value, "message": e.check.message},
        )
    except BookingLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except SlotConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return CreateBookingResponse(
        id=result.booking.id,
        confirmation_token=result.booking.confirmation_token,
        status=result.booking.status,
        requires_confirmation=result.requires_confirmation,
    )


@router.get("/confirm/{token}", response_model=ConfirmBookingResponse)
def confirm_booking(
    token: str,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    try:
        result = lifecycle.confirm(token)
    except BookingNotFoundError:
        raise HTTPException(status_code=404, detail="Booking not found or link expired")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SlotConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return ConfirmBookingResponse(
        confirmed=True,
        already_confirmed=result.already_confirmed,
        booking=BookingSchema.from_booking(result.booking),
    )


@router.post("/cancel/{token}", response_model=CancelBookingResponse)
def cancel_booking(
    token: str,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    try:
        result = lifecycle.cancel(token)
    except BookingNotFoundError:
        raise HTTPException(status_code=404, detail="Booking not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return CancelBookingResponse(cancelled=True, already_cancelled=result.already_cancelled)


@router.get("/{token}", response_model=BookingResponse)
def get_booking(
    token: str,
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    try:
        booking = lifecycle.get_by_token(token)
    except BookingNotFoundError:
        raise HTTPException(status_code=404, detail="Booking not found")
    return BookingResponse(booking=BookingSchema.from_booking(booking))
