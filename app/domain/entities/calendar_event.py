from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta


@dataclass(frozen=True)
class CalendarCacheEntry:
    event_uid: str
    summary: str
    start_time: datetime
    end_time: datetime
    is_all_day: bool = False
    last_fetched_at: datetime | None = None

    def covers_date(self, day: date) -> bool:
        """All-day events cover [start, end) in whole days; a zero-length one covers its start day."""
        first = self.start_time.date()
        last = self.end_time.date()
        if last <= first:
            return day == first
        return first <= day < last

    def blocks(self, start: datetime, end: datetime) -> bool:
        if self.is_all_day:
            day = start.date()
            last_day = (end - timedelta(microseconds=1)).date() if end > start else day
            while day <= last_day:
                if self.covers_date(day):
                    return True
                day += timedelta(days=1)
            return False
        return self.start_time < end and self.end_time > start
