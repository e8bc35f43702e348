from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from datetime import date, datetime, timedelta

from app.application.exceptions import CalendarFeedError
from app.application.ports.calendar_cache import CalendarCachePort
from app.application.ports.calendar_feed import CalendarFeedPort
from app.application.ports.clock import ClockPort
from app.application.utils.ical_parser import parse_ical
from app.application.utils.schedule_rules import ScheduleRules
from app.domain.entities.calendar_event import CalendarCacheEntry


class CalendarSyncCache:
    """
    Local mirror of the provider's external calendar feed.

    Queries never wait on the network unless the mirror is older than the
    configured TTL, and even then concurrent callers share a single fetch.
    A failing feed leaves the mirror untouched (fail-open).
    """

    def __init__(
        self,
        feed: CalendarFeedPort,
        store: CalendarCachePort,
        rules: ScheduleRules,
        clock: ClockPort,
        retry_backoff_seconds: float = 60.0,
    ) -> None:
        self._feed = feed
        self._store = store
        self._rules = rules
        self._clock = clock
        self._retry_backoff = timedelta(seconds=retry_backoff_seconds)
        self._flight_lock = threading.Lock()
        self._in_flight: Future[bool] | None = None
        self._last_failure_at: datetime | None = None
        self._logger = logging.getLogger(__name__)

    def is_stale(self) -> bool:
        last_fetched = self._store.last_fetched_at()
        if last_fetched is None:
            return True
        age = (self._clock.now() - last_fetched).total_seconds()
        return age >= self._rules.cache_ttl_seconds()

    def _in_failure_backoff(self) -> bool:
        if self._last_failure_at is None:
            return False
        return self._clock.now() - self._last_failure_at < self._retry_backoff

    def refresh_if_stale(self) -> bool:
        """Returns True when the cache is fresh or was refreshed, False when a refresh failed."""
        if not self.is_stale():
            return True
        if self._in_failure_backoff():
            return False
        return self._single_flight(only_if_stale=True)

    def refresh(self) -> bool:
        return self._single_flight(only_if_stale=False)

    def _single_flight(self, only_if_stale: bool) -> bool:
        with self._flight_lock:
            flight = self._in_flight
            leader = flight is None
            if leader:
                flight = Future()
                self._in_flight = flight

        if not leader:
            return flight.result()

        try:
            if only_if_stale and not self.is_stale():
                result = True
            else:
                result = self._refresh_now()
            flight.set_result(result)
            return result
        except BaseException as e:
            flight.set_exception(e)
            raise
        finally:
            with self._flight_lock:
                self._in_flight = None

    def _refresh_now(self) -> bool:
        try:
            content = self._feed.fetch()
            parsed = parse_ical(content, self._rules.timezone)
        except CalendarFeedError as e:
            self._last_failure_at = self._clock.now()
            self._logger.warning("Calendar feed unavailable, keeping cached events", extra={"error": str(e)})
            return False
        except Exception as e:
            self._last_failure_at = self._clock.now()
            self._logger.warning("Calendar feed could not be parsed, keeping cached events", extra={"error": str(e)})
            return False

        fetched_at = self._clock.now()
        entries = [
            CalendarCacheEntry(
                event_uid=event.uid,
                summary=event.summary,
                start_time=event.start,
                end_time=event.end,
                is_all_day=event.is_all_day,
                last_fetched_at=fetched_at,
            )
            for event in parsed
        ]
        stats = self._store.reconcile(entries, fetched_at)
        self._last_failure_at = None
        self._logger.info(
            "Calendar cache refreshed",
            extra={"event_count": len(entries), "reason": f"removed={stats.removed}"},
        )
        return True

    def busy_intervals_for_date(self, day: date) -> list[CalendarCacheEntry]:
        self.refresh_if_stale()
        tz = self._rules.timezone
        day_start = datetime.combine(day, datetime.min.time(), tzinfo=tz)
        day_end = day_start + timedelta(days=1)
        busy = [
            entry
            for entry in self._store.all_entries()
            if (entry.covers_date(day) if entry.is_all_day else entry.blocks(day_start, day_end))
        ]
        return sorted(busy, key=lambda entry: entry.start_time)

    def is_interval_blocked(self, start: datetime, end: datetime) -> bool:
        self.refresh_if_stale()
        return any(entry.blocks(start, end) for entry in self._store.all_entries())

    def clear(self) -> None:
        self._store.clear()
        self._logger.info("Calendar cache cleared")
