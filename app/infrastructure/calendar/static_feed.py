from __future__ import annotations

import logging

from app.application.ports.calendar_feed import CalendarFeedPort

EMPTY_CALENDAR = "BEGIN:VCALENDAR\r\nVERSION:2.0\r\nEND:VCALENDAR\r\n"


class StaticCalendarFeed(CalendarFeedPort):
    """In-process feed for local development and tests; the content can be swapped at runtime."""

    def __init__(self, content: str = EMPTY_CALENDAR) -> None:
        self.content = content
        self.fetch_count = 0
        self._logger = logging.getLogger(__name__)

    def fetch(self) -> str:
        self.fetch_count += 1
        self._logger.debug("Static calendar feed served", extra={"event_count": self.content.count("BEGIN:VEVENT")})
        return self.content
