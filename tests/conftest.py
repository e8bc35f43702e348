from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from app.application.ports.calendar_feed import CalendarFeedPort
from app.application.ports.clock import ClockPort
from app.application.use_cases.availability import AvailabilityResolver
from app.application.use_cases.booking_lifecycle import BookingLifecycle
from app.application.use_cases.calendar_sync import CalendarSyncCache
from app.application.use_cases.maintenance import BookingMaintenanceUseCase
from app.application.use_cases.slot_generator import SlotGenerator
from app.application.utils.schedule_rules import ScheduleRules
from app.infrastructure.calendar.static_feed import StaticCalendarFeed
from app.infrastructure.settings import MemorySettingsStore
from app.infrastructure.store.memory_store import MemoryBookingRepository, MemoryCalendarCache

TZ = ZoneInfo("Europe/Paris")

# Sunday evening; Monday 2026-10-19 is the first open day after it.
DEFAULT_NOW = datetime(2026, 10, 18, 20, 0, tzinfo=TZ)


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=TZ)


def ical(*events: str) -> str:
    return "BEGIN:VCALENDAR\r\nVERSION:2.0\r\n" + "".join(events) + "END:VCALENDAR\r\n"


def vevent(uid: str, start: str, end: str | None = None, summary: str = "Busy") -> str:
    lines = ["BEGIN:VEVENT", f"UID:{uid}", f"SUMMARY:{summary}", start]
    if end:
        lines.append(end)
    lines.append("END:VEVENT")
    return "\r\n".join(lines) + "\r\n"


class FixedClock(ClockPort):
    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@dataclass
class Engine:
    clock: FixedClock
    settings: MemorySettingsStore
    feed: CalendarFeedPort
    calendar_store: MemoryCalendarCache
    bookings: MemoryBookingRepository
    rules: ScheduleRules
    generator: SlotGenerator
    calendar: CalendarSyncCache
    availability: AvailabilityResolver
    lifecycle: BookingLifecycle
    maintenance: BookingMaintenanceUseCase


def build_engine(
    now: datetime = DEFAULT_NOW,
    settings: dict[str, Any] | None = None,
    feed: CalendarFeedPort | None = None,
) -> Engine:
    clock = FixedClock(now)
    store = MemorySettingsStore(settings)
    feed = feed or StaticCalendarFeed()
    calendar_store = MemoryCalendarCache()
    bookings = MemoryBookingRepository()
    rules = ScheduleRules(store, TZ)
    generator = SlotGenerator(rules)
    calendar = CalendarSyncCache(feed, calendar_store, rules, clock, retry_backoff_seconds=60)
    availability = AvailabilityResolver(rules, generator, calendar, bookings, clock)
    lifecycle = BookingLifecycle(bookings, availability, rules, clock)
    maintenance = BookingMaintenanceUseCase(bookings, calendar, rules, clock)
    return Engine(
        clock=clock,
        settings=store,
        feed=feed,
        calendar_store=calendar_store,
        bookings=bookings,
        rules=rules,
        generator=generator,
        calendar=calendar,
        availability=availability,
        lifecycle=lifecycle,
        maintenance=maintenance,
    )


@pytest.fixture
def make_engine():
    return build_engine


@pytest.fixture
def engine() -> Engine:
    return build_engine()
