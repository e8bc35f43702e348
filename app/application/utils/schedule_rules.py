from __future__ import annotations

import json
import logging
from datetime import date, time
from typing import Any
from zoneinfo import ZoneInfo

from app.application.exceptions import InvalidInputError
from app.application.ports.settings_provider import SettingsProviderPort
from app.domain.entities.booking import DurationType
from app.domain.entities.slot import DayHours, SessionDurations

# Weekdays are keyed 0=Sunday .. 6=Saturday in the settings store.
DEFAULT_BUSINESS_HOURS: dict[int, dict[str, str] | None] = {
    0: None,
    1: {"open": "09:00", "close": "18:00"},
    2: {"open": "09:00", "close": "18:00"},
    3: {"open": "09:00", "close": "18:00"},
    4: None,
    5: {"open": "09:00", "close": "18:00"},
    6: {"open": "10:00", "close": "17:00"},
}

DEFAULT_DURATIONS: dict[DurationType, tuple[int, int]] = {
    DurationType.discovery: (75, 15),
    DurationType.regular: (45, 20),
}

DEFAULT_LUNCH_START = "12:30"
DEFAULT_LUNCH_END = "13:30"
DEFAULT_FIRST_SLOT = "09:00"
DEFAULT_SAME_DAY_CUTOFF = "23:00"
DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_HORIZON_MONTHS = 3
DEFAULT_PENDING_EXPIRY_HOURS = 24
DEFAULT_MAX_BOOKINGS_PER_CLIENT = 4

DAY_NAMES = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}


def store_weekday(day: date) -> int:
    """Convert to the settings store's weekday numbering (0=Sunday)."""
    return day.isoweekday() % 7


def parse_hhmm(value: str) -> time:
    hour, _, minute = value.strip().partition(":")
    return time(int(hour), int(minute or 0))


def parse_duration_type(value: str | DurationType | None) -> DurationType:
    if isinstance(value, DurationType):
        return value
    try:
        return DurationType((value or "").strip().lower())
    except ValueError:
        raise InvalidInputError(f"Unknown session type: {value!r}") from None


class ScheduleRules:
    """
    Typed, late-bound view over the scheduling configuration keys.
    Every accessor reads the provider at call time so administrators can
    change hours or durations without a restart.
    """

    def __init__(self, settings: SettingsProviderPort, timezone: ZoneInfo) -> None:
        self._settings = settings
        self.timezone = timezone
        self._logger = logging.getLogger(__name__)

    def _raw(self, key: str, default: Any) -> Any:
        value = self._settings.get(key, None)
        return default if value is None or value == "" else value

    def _int(self, key: str, default: int) -> int:
        value = self._raw(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            self._logger.warning("Invalid integer setting", extra={"reason": key})
            return default

    def _bool(self, key: str, default: bool) -> bool:
        value = self._raw(key, default)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    def _json(self, key: str, default: Any) -> Any:
        value = self._raw(key, default)
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                self._logger.warning("Invalid JSON setting", extra={"reason": key})
                return default
        return value

    def _time(self, key: str, default: str) -> time:
        value = self._raw(key, default)
        if isinstance(value, time):
            return value
        try:
            return parse_hhmm(str(value))
        except ValueError:
            self._logger.warning("Invalid time setting", extra={"reason": key})
            return parse_hhmm(default)

    def business_hours_config(self) -> dict[int, dict[str, str] | None]:
        hours = self._json("business_hours", None)
        if not hours:
            return dict(DEFAULT_BUSINESS_HOURS)
        if not isinstance(hours, dict):
            self._logger.warning("business_hours is not a mapping, using defaults", extra={"reason": "business_hours"})
            return dict(DEFAULT_BUSINESS_HOURS)

        config: dict[int, dict[str, str] | None] = {}
        for day, entry in hours.items():
            try:
                weekday = int(day)
            except (TypeError, ValueError):
                weekday = -1
            if weekday not in DAY_NAMES:
                self._logger.warning("Ignoring unknown weekday in business_hours", extra={"reason": str(day)})
                continue
            if entry and not isinstance(entry, dict):
                self._logger.warning("Invalid business_hours entry, using default", extra={"reason": DAY_NAMES[weekday]})
                entry = DEFAULT_BUSINESS_HOURS[weekday]
            config[weekday] = entry or None
        return config

    def day_hours(self, day: date) -> DayHours | None:
        weekday = store_weekday(day)
        config = self.business_hours_config().get(weekday)
        if not config:
            return None
        try:
            hours = DayHours(
                open=parse_hhmm(str(config.get("open") or "09:00")),
                close=parse_hhmm(str(config.get("close") or "18:00")),
            )
        except ValueError:
            self._logger.warning("Invalid business hours, using default", extra={"reason": DAY_NAMES[weekday]})
            fallback = DEFAULT_BUSINESS_HOURS[weekday]
            if not fallback:
                return None
            hours = DayHours(open=parse_hhmm(fallback["open"]), close=parse_hhmm(fallback["close"]))
        if hours.close <= hours.open:
            return None
        return hours

    def is_day_open(self, day: date) -> bool:
        return self.day_hours(day) is not None

    def durations(self, duration_type: DurationType | str) -> SessionDurations:
        kind = parse_duration_type(duration_type)
        display_default, pause_default = DEFAULT_DURATIONS[kind]
        durations = SessionDurations(
            display=self._int(f"session_{kind.value}_display_minutes", display_default),
            pause=self._int(f"session_{kind.value}_pause_minutes", pause_default),
        )
        if durations.display < 0 or durations.pause < 0 or durations.blocked <= 0:
            self._logger.warning("Invalid session durations, using defaults", extra={"reason": kind.value})
            return SessionDurations(display=display_default, pause=pause_default)
        return durations

    def lunch_break(self) -> tuple[time, time] | None:
        start = self._settings.get("lunch_break_start", DEFAULT_LUNCH_START)
        end = self._settings.get("lunch_break_end", DEFAULT_LUNCH_END)
        if not start or not end:
            return None
        try:
            lunch_start, lunch_end = parse_hhmm(str(start)), parse_hhmm(str(end))
        except ValueError:
            self._logger.warning("Invalid lunch break, using default", extra={"reason": f"{start}-{end}"})
            lunch_start, lunch_end = parse_hhmm(DEFAULT_LUNCH_START), parse_hhmm(DEFAULT_LUNCH_END)
        if lunch_end <= lunch_start:
            return None
        return lunch_start, lunch_end

    def first_slot_time(self) -> time:
        return self._time("first_slot_time", DEFAULT_FIRST_SLOT)

    def same_day_cutoff(self) -> time:
        return self._time("same_day_cutoff_time", DEFAULT_SAME_DAY_CUTOFF)

    def cache_ttl_seconds(self) -> int:
        return self._int("calendar_cache_ttl", DEFAULT_CACHE_TTL_SECONDS)

    def email_confirmation_required(self) -> bool:
        return self._bool("booking_email_confirmation_required", False)

    def horizon_months(self) -> int:
        return self._int("booking_horizon_months", DEFAULT_HORIZON_MONTHS)

    def pending_expiry_hours(self) -> int:
        return self._int("pending_booking_expiry_hours", DEFAULT_PENDING_EXPIRY_HOURS)

    def max_bookings_per_client(self) -> int:
        """Upcoming active bookings allowed per client_ref; 0 or less disables the cap."""
        return self._int("booking_max_per_client", DEFAULT_MAX_BOOKINGS_PER_CLIENT)

    def schedule_info(self) -> dict[str, Any]:
        hours = self.business_hours_config()
        lunch = self.lunch_break()
        return {
            "schedule": [
                {
                    "day": day,
                    "name": DAY_NAMES[day],
                    "open": hours.get(day) is not None,
                    "hours": hours.get(day),
                }
                for day in sorted(DAY_NAMES)
            ],
            "lunch_break": (
                {"start": lunch[0].strftime("%H:%M"), "end": lunch[1].strftime("%H:%M")} if lunch else None
            ),
            "first_slot": self.first_slot_time().strftime("%H:%M"),
            "durations": {
                kind.value: {
                    "display": d.display,
                    "pause": d.pause,
                    "blocked": d.blocked,
                }
                for kind, d in ((k, self.durations(k)) for k in DurationType)
            },
            "email_confirmation_required": self.email_confirmation_required(),
        }
