from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.calendar_cache import CalendarCachePort
from app.application.ports.calendar_feed import CalendarFeedPort
from app.application.ports.clock import ClockPort
from app.application.ports.settings_provider import SettingsProviderPort
from app.application.use_cases.availability import AvailabilityResolver
from app.application.use_cases.booking_lifecycle import BookingLifecycle
from app.application.use_cases.calendar_sync import CalendarSyncCache
from app.application.use_cases.maintenance import BookingMaintenanceUseCase
from app.application.use_cases.slot_generator import SlotGenerator
from app.application.utils.schedule_rules import ScheduleRules
from app.infrastructure.calendar.ical_feed_client import ICalFeedClient
from app.infrastructure.calendar.static_feed import StaticCalendarFeed
from app.infrastructure.clock import SystemClock
from app.infrastructure.settings import JsonSettingsStore
from app.infrastructure.store.json_store import JsonBookingRepository, JsonCalendarCache
from app.infrastructure.store.memory_store import MemoryBookingRepository, MemoryCalendarCache


logger = logging.getLogger(__name__)


@lru_cache
def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.APP_TIMEZONE)


@lru_cache
def get_clock() -> ClockPort:
    return SystemClock(get_timezone())


@lru_cache
def get_settings_provider() -> SettingsProviderPort:
    return JsonSettingsStore(
        settings.SCHEDULE_SETTINGS_PATH,
        ttl_seconds=settings.SCHEDULE_SETTINGS_TTL_SECONDS,
    )


@lru_cache
def get_schedule_rules() -> ScheduleRules:
    return ScheduleRules(get_settings_provider(), get_timezone())


def _use_json_store() -> bool:
    return settings.STORE_PROVIDER.lower() == "json"


@lru_cache
def get_booking_repository() -> BookingRepositoryPort:
    if _use_json_store():
        return JsonBookingRepository(get_timezone(), data_dir=settings.DATA_DIR)
    return MemoryBookingRepository()


@lru_cache
def get_calendar_cache_store() -> CalendarCachePort:
    if _use_json_store():
        return JsonCalendarCache(get_timezone(), data_dir=settings.DATA_DIR)
    return MemoryCalendarCache()


@lru_cache
def get_calendar_feed() -> CalendarFeedPort:
    if not settings.CALENDAR_FEED_URL:
        if settings.ENV.lower() in {"dev", "local"}:
            logger.info("Using StaticCalendarFeed (CALENDAR_FEED_URL missing, ENV=dev/local)")
            return StaticCalendarFeed()
        logger.warning("CALENDAR_FEED_URL is not configured; external calendar will never block slots")
    return ICalFeedClient()


@lru_cache
def get_calendar_sync() -> CalendarSyncCache:
    return CalendarSyncCache(
        feed=get_calendar_feed(),
        store=get_calendar_cache_store(),
        rules=get_schedule_rules(),
        clock=get_clock(),
        retry_backoff_seconds=settings.CALENDAR_RETRY_BACKOFF_SECONDS,
    )


def get_availability_resolver() -> AvailabilityResolver:
    rules = get_schedule_rules()
    return AvailabilityResolver(
        rules=rules,
        generator=SlotGenerator(rules),
        calendar_cache=get_calendar_sync(),
        bookings=get_booking_repository(),
        clock=get_clock(),
    )


def get_booking_lifecycle() -> BookingLifecycle:
    return BookingLifecycle(
        bookings=get_booking_repository(),
        availability=get_availability_resolver(),
        rules=get_schedule_rules(),
        clock=get_clock(),
    )


def get_maintenance_use_case() -> BookingMaintenanceUseCase:
    return BookingMaintenanceUseCase(
        bookings=get_booking_repository(),
        calendar_cache=get_calendar_sync(),
        rules=get_schedule_rules(),
        clock=get_clock(),
    )
