from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from app.domain.entities.calendar_event import CalendarCacheEntry


@dataclass(frozen=True)
class ReconcileStats:
    removed: int
    upserted: int


class CalendarCachePort(ABC):
    @abstractmethod
    def all_entries(self) -> list[CalendarCacheEntry]:
        raise NotImplementedError

    @abstractmethod
    def last_fetched_at(self) -> datetime | None:
        """Time of the last successful sync, None if the cache was never filled."""
        raise NotImplementedError

    @abstractmethod
    def reconcile(self, entries: list[CalendarCacheEntry], fetched_at: datetime) -> ReconcileStats:
        """Delete entries whose UID is absent from `entries`, then upsert `entries` by UID."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError
