from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime

from app.application.exceptions import (
    BookingLimitError,
    BookingNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
    SlotConflictError,
    SlotUnavailableError,
)
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.clock import ClockPort
from app.application.use_cases.availability import AvailabilityResolver
from app.application.utils.schedule_rules import ScheduleRules, parse_duration_type
from app.domain.entities.booking import Booking, BookingStatus, DurationType, can_transition


@dataclass(frozen=True)
class CreateResult:
    booking: Booking
    requires_confirmation: bool


@dataclass(frozen=True)
class ConfirmResult:
    booking: Booking
    already_confirmed: bool = False


@dataclass(frozen=True)
class CancelResult:
    booking: Booking
    already_cancelled: bool = False


@dataclass(frozen=True)
class StatusChangeResult:
    booking: Booking
    changed: bool


def parse_status(value: str | BookingStatus) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(value)
    except ValueError:
        raise InvalidInputError(f"Unknown booking status: {value!r}") from None


def generate_token() -> str:
    return secrets.token_hex(32)


class BookingLifecycle:
    def __init__(
        self,
        bookings: BookingRepositoryPort,
        availability: AvailabilityResolver,
        rules: ScheduleRules,
        clock: ClockPort,
    ) -> None:
        self._bookings = bookings
        self._availability = availability
        self._rules = rules
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def create(
        self,
        session_start: datetime,
        duration_type: DurationType | str,
        client_ref: str | None = None,
        beneficiary_ref: str | None = None,
    ) -> CreateResult:
        kind = parse_duration_type(duration_type)
        if client_ref:
            self._check_client_limit(client_ref)

        check = self._availability.validate_slot(session_start, kind)
        if not check.ok:
            self._logger.info(
                "Booking rejected",
                extra={"slot": session_start.isoformat(), "reason": check.rejection.value},
            )
            raise SlotUnavailableError(check)

        now = self._clock.now()
        durations = self._rules.durations(kind)
        start = session_start if session_start.tzinfo else session_start.replace(tzinfo=self._rules.timezone)
        booking = Booking(
            id=str(uuid.uuid4()),
            session_start=start.astimezone(self._rules.timezone),
            duration_type=kind,
            display_minutes=durations.display,
            blocked_minutes=durations.blocked,
            status=BookingStatus.pending,
            confirmation_token=generate_token(),
            created_at=now,
            client_ref=client_ref,
            beneficiary_ref=beneficiary_ref,
            updated_at=now,
        )

        # Raises SlotConflictError if another request took the slot since validation.
        booking = self._bookings.add_if_free(booking)
        self._logger.info(
            "Booking created",
            extra={"booking_id": booking.id, "slot": booking.session_start.isoformat(), "status": booking.status.value},
        )

        requires_confirmation = self._rules.email_confirmation_required()
        if not requires_confirmation:
            confirmed = self._bookings.update_status(
                booking.id, BookingStatus.pending, BookingStatus.confirmed, self._clock.now()
            )
            if confirmed is not None:
                booking = confirmed
                self._logger.info("Booking auto-confirmed", extra={"booking_id": booking.id, "status": booking.status.value})

        return CreateResult(booking=booking, requires_confirmation=requires_confirmation)

    def _check_client_limit(self, client_ref: str) -> None:
        limit = self._rules.max_bookings_per_client()
        if limit <= 0:
            return
        upcoming = self._bookings.count_upcoming_for_client(client_ref, self._clock.now())
        if upcoming >= limit:
            self._logger.info("Booking refused, client limit reached", extra={"reason": f"upcoming={upcoming}"})
            raise BookingLimitError(f"Maximum number of upcoming bookings reached ({limit})")

    def get_by_token(self, token: str) -> Booking:
        booking = self._bookings.get_by_token(token)
        if booking is None:
            raise BookingNotFoundError("Booking not found")
        return booking

    def get(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError("Booking not found")
        return booking

    def list_bookings(self, status: BookingStatus | str | None = None) -> list[Booking]:
        return self._bookings.list_by_status(parse_status(status) if status else None)

    def confirm(self, token: str) -> ConfirmResult:
        return self._confirm(self.get_by_token(token))

    def _confirm(self, booking: Booking) -> ConfirmResult:
        if booking.status == BookingStatus.confirmed:
            return ConfirmResult(booking=booking, already_confirmed=True)
        if booking.status == BookingStatus.cancelled:
            raise InvalidTransitionError("This booking has been cancelled")
        if booking.status != BookingStatus.pending:
            raise InvalidTransitionError("This booking can no longer be confirmed")

        # The slot may have been blocked between the request and the confirmation.
        check = self._availability.validate_slot(
            booking.session_start, booking.duration_type, ignore_booking_id=booking.id
        )
        if not check.ok:
            self._logger.info(
                "Confirmation refused, slot gone",
                extra={"booking_id": booking.id, "reason": check.rejection.value},
            )
            raise SlotConflictError("This slot is no longer available. Please make a new booking.")

        updated = self._bookings.update_status(
            booking.id, BookingStatus.pending, BookingStatus.confirmed, self._clock.now()
        )
        if updated is None:
            current = self.get(booking.id)
            if current.status == BookingStatus.confirmed:
                return ConfirmResult(booking=current, already_confirmed=True)
            raise InvalidTransitionError("This booking can no longer be confirmed")

        self._logger.info("Booking confirmed", extra={"booking_id": updated.id, "status": updated.status.value})
        return ConfirmResult(booking=updated)

    def cancel(self, token: str) -> CancelResult:
        booking = self.get_by_token(token)
        if booking.status == BookingStatus.cancelled:
            return CancelResult(booking=booking, already_cancelled=True)
        if booking.is_terminal:
            raise InvalidTransitionError(f"A {booking.status.value} booking can no longer be cancelled")
        return CancelResult(booking=self._transition(booking, BookingStatus.cancelled))

    def set_status(self, booking_id: str, status: BookingStatus | str) -> StatusChangeResult:
        target = parse_status(status)
        booking = self.get(booking_id)
        if booking.status == target:
            return StatusChangeResult(booking=booking, changed=False)
        if target == BookingStatus.confirmed and booking.status == BookingStatus.pending:
            return StatusChangeResult(booking=self._confirm(booking).booking, changed=True)
        return StatusChangeResult(booking=self._transition(booking, target), changed=True)

    def _transition(self, booking: Booking, target: BookingStatus) -> Booking:
        if not can_transition(booking.status, target):
            raise InvalidTransitionError(
                f"Cannot change a {booking.status.value} booking to {target.value}"
            )
        updated = self._bookings.update_status(booking.id, booking.status, target, self._clock.now())
        if updated is None:
            current = self.get(booking.id)
            if current.status == target:
                return current
            raise InvalidTransitionError(
                f"Booking changed concurrently to {current.status.value}"
            )
        self._logger.info(
            "Booking status changed",
            extra={"booking_id": updated.id, "status": updated.status.value, "reason": booking.status.value},
        )
        return updated
