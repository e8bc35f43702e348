from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime

    @property
    def time_label(self) -> str:
        return self.start.strftime("%H:%M")

    @property
    def datetime_label(self) -> str:
        return self.start.strftime("%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class DayHours:
    open: time
    close: time


@dataclass(frozen=True)
class SessionDurations:
    display: int
    pause: int

    @property
    def blocked(self) -> int:
        return self.display + self.pause


class SlotRejection(str, Enum):
    in_past = "in_past"
    day_closed = "day_closed"
    before_opening = "before_opening"
    after_closing = "after_closing"
    off_grid = "off_grid"
    unavailable = "unavailable"


@dataclass(frozen=True)
class SlotCheck:
    ok: bool
    rejection: SlotRejection | None = None
    message: str = ""

    @classmethod
    def passed(cls) -> SlotCheck:
        return cls(True)

    @classmethod
    def failed(cls, rejection: SlotRejection, message: str) -> SlotCheck:
        return cls(False, rejection, message)
