from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from app.application.ports.clock import ClockPort


class SystemClock(ClockPort):
    def __init__(self, timezone: ZoneInfo) -> None:
        self._timezone = timezone

    def now(self) -> datetime:
        return datetime.now(self._timezone)
