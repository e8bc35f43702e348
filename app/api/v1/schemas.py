from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.entities.booking import Booking, BookingStatus, DurationType
from app.domain.entities.slot import Slot

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _fmt(value: datetime | None) -> str | None:
    return value.strftime(DATETIME_FORMAT) if value else None


class AvailableDatesResponse(BaseModel):
    year: int
    month: int
    type: DurationType
    available_dates: list[str]


class SlotSchema(BaseModel):
    time: str
    datetime: str

    @classmethod
    def from_slot(cls, slot: Slot) -> SlotSchema:
        return cls(time=slot.time_label, datetime=slot.datetime_label)


class AvailableSlotsResponse(BaseModel):
    date: str
    type: DurationType
    duration_display_minutes: int
    duration_blocked_minutes: int
    slots: list[SlotSchema]
    message: str | None = None


class ScheduleResponse(BaseModel):
    schedule: list[dict[str, Any]]
    lunch_break: dict[str, str] | None = None
    first_slot: str
    durations: dict[str, dict[str, int]]
    email_confirmation_required: bool


class CreateBookingRequest(BaseModel):
    session_date: str = Field(min_length=10, max_length=32)
    duration_type: str = DurationType.regular.value
    client_ref: str | None = Field(default=None, max_length=64)
    beneficiary_ref: str | None = Field(default=None, max_length=64)


class CreateBookingResponse(BaseModel):
    id: str
    confirmation_token: str
    status: BookingStatus
    requires_confirmation: bool


class BookingSchema(BaseModel):
    id: str
    session_date: str
    duration_type: DurationType
    duration_display_minutes: int
    duration_blocked_minutes: int
    status: BookingStatus
    confirmed_at: str | None = None
    cancelled_at: str | None = None

    @classmethod
    def from_booking(cls, booking: Booking) -> BookingSchema:
        return cls(
            id=booking.id,
            session_date=booking.session_start.strftime(DATETIME_FORMAT),
            duration_type=booking.duration_type,
            duration_display_minutes=booking.display_minutes,
            duration_blocked_minutes=booking.blocked_minutes,
            status=booking.status,
            confirmed_at=_fmt(booking.confirmed_at),
            cancelled_at=_fmt(booking.cancelled_at),
        )


class AdminBookingSchema(BookingSchema):
    confirmation_token: str
    client_ref: str | None = None
    beneficiary_ref: str | None = None
    created_at: str | None = None

    @classmethod
    def from_booking(cls, booking: Booking) -> AdminBookingSchema:
        base = BookingSchema.from_booking(booking).model_dump()
        return cls(
            **base,
            confirmation_token=booking.confirmation_token,
            client_ref=booking.client_ref,
            beneficiary_ref=booking.beneficiary_ref,
            created_at=_fmt(booking.created_at),
        )


class BookingResponse(BaseModel):
    booking: BookingSchema


class ConfirmBookingResponse(BaseModel):
    confirmed: bool
    already_confirmed: bool = False
    booking: BookingSchema


class CancelBookingResponse(BaseModel):
    cancelled: bool
    already_cancelled: bool = False


class StatusUpdateRequest(BaseModel):
    status: BookingStatus


class StatusUpdateResponse(BaseModel):
    booking: AdminBookingSchema
    changed: bool


class AdminBookingListResponse(BaseModel):
    bookings: list[AdminBookingSchema]


class CalendarRefreshResponse(BaseModel):
    refreshed: bool
