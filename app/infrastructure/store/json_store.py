from __future__ import annotations

import json
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

from app.application.exceptions import SlotConflictError
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.calendar_cache import CalendarCachePort, ReconcileStats
from app.domain.entities.booking import Booking, BookingStatus, DurationType
from app.domain.entities.calendar_event import CalendarCacheEntry


def _dump_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _load_dt(value: str | None, tz: ZoneInfo) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


class _JsonFile:
    """A JSON document rewritten atomically through a temp file and rename."""

    def __init__(self, path: Path, default: dict[str, Any]) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._default = default

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return json.loads(json.dumps(self._default))
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def save(self, data: dict[str, Any]) -> None:
        temp_path = self.path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self.path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise


class JsonBookingRepository(BookingRepositoryPort):
    """
    File-backed booking store. Every mutation holds the store lock across
    read-check-write, so the overlap check and the insert cannot interleave
    with another writer in this process.
    """

    def __init__(self, timezone: ZoneInfo, data_dir: str = "./data") -> None:
        self._tz = timezone
        self._file = _JsonFile(Path(data_dir) / "bookings.json", {"bookings": [], "version": 1})
        self._lock = threading.RLock()

    def _serialize(self, booking: Booking) -> dict[str, Any]:
        return {
            "id": booking.id,
            "session_start": _dump_dt(booking.session_start),
            "duration_type": booking.duration_type.value,
            "display_minutes": booking.display_minutes,
            "blocked_minutes": booking.blocked_minutes,
            "status": booking.status.value,
            "confirmation_token": booking.confirmation_token,
            "created_at": _dump_dt(booking.created_at),
            "client_ref": booking.client_ref,
            "beneficiary_ref": booking.beneficiary_ref,
            "confirmed_at": _dump_dt(booking.confirmed_at),
            "cancelled_at": _dump_dt(booking.cancelled_at),
            "updated_at": _dump_dt(booking.updated_at),
        }

    def _deserialize(self, data: dict[str, Any]) -> Booking:
        return Booking(
            id=data["id"],
            session_start=_load_dt(data["session_start"], self._tz),
            duration_type=DurationType(data["duration_type"]),
            display_minutes=int(data["display_minutes"]),
            blocked_minutes=int(data["blocked_minutes"]),
            status=BookingStatus(data["status"]),
            confirmation_token=data["confirmation_token"],
            created_at=_load_dt(data["created_at"], self._tz),
            client_ref=data.get("client_ref"),
            beneficiary_ref=data.get("beneficiary_ref"),
            confirmed_at=_load_dt(data.get("confirmed_at"), self._tz),
            cancelled_at=_load_dt(data.get("cancelled_at"), self._tz),
            updated_at=_load_dt(data.get("updated_at"), self._tz),
        )

    def _all(self) -> list[Booking]:
        return [self._deserialize(item) for item in self._file.load().get("bookings", [])]

    def _write(self, bookings: list[Booking]) -> None:
        self._file.save({"bookings": [self._serialize(b) for b in bookings], "version": 1})

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            return next((b for b in self._all() if b.id == booking_id), None)

    def get_by_token(self, token: str) -> Booking | None:
        with self._lock:
            return next((b for b in self._all() if b.confirmation_token == token), None)

    def list_for_date(self, day: date) -> list[Booking]:
        with self._lock:
            found = [b for b in self._all() if b.is_active and b.session_start.date() == day]
        return sorted(found, key=lambda b: b.session_start)

    def find_overlapping(
        self,
        start: datetime,
        end: datetime,
        exclude_id: str | None = None,
    ) -> list[Booking]:
        with self._lock:
            return [
                b for b in self._all() if b.is_active and b.id != exclude_id and b.overlaps(start, end)
            ]

    def count_upcoming_for_client(self, client_ref: str, now: datetime) -> int:
        with self._lock:
            return sum(
                1 for b in self._all() if b.is_active and b.client_ref == client_ref and b.session_start >= now
            )

    def list_by_status(self, status: BookingStatus | None = None) -> list[Booking]:
        with self._lock:
            found = [b for b in self._all() if status is None or b.status == status]
        return sorted(found, key=lambda b: b.session_start)

    def add_if_free(self, booking: Booking) -> Booking:
        with self._lock:
            bookings = self._all()
            if any(b.is_active and b.overlaps(booking.session_start, booking.session_end) for b in bookings):
                raise SlotConflictError("This slot has just been booked by someone else")
            if any(b.confirmation_token == booking.confirmation_token for b in bookings):
                raise ValueError("Duplicate confirmation token")
            bookings.append(booking)
            self._write(bookings)
            return booking

    def update_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        target: BookingStatus,
        at: datetime,
    ) -> Booking | None:
        with self._lock:
            bookings = self._all()
            for index, current in enumerate(bookings):
                if current.id != booking_id:
                    continue
                if current.status != expected:
                    return None
                updated = current.with_status(target, at)
                bookings[index] = updated
                self._write(bookings)
                return updated
            return None


class JsonCalendarCache(CalendarCachePort):
    def __init__(self, timezone: ZoneInfo, data_dir: str = "./data") -> None:
        self._tz = timezone
        self._file = _JsonFile(
            Path(data_dir) / "calendar_cache.json",
            {"entries": [], "last_fetched_at": None, "version": 1},
        )
        self._lock = threading.Lock()

    def _serialize(self, entry: CalendarCacheEntry) -> dict[str, Any]:
        return {
            "event_uid": entry.event_uid,
            "summary": entry.summary,
            "start_time": _dump_dt(entry.start_time),
            "end_time": _dump_dt(entry.end_time),
            "is_all_day": entry.is_all_day,
            "last_fetched_at": _dump_dt(entry.last_fetched_at),
        }

    def _deserialize(self, data: dict[str, Any]) -> CalendarCacheEntry:
        return CalendarCacheEntry(
            event_uid=data["event_uid"],
            summary=data.get("summary") or "",
            start_time=_load_dt(data["start_time"], self._tz),
            end_time=_load_dt(data["end_time"], self._tz),
            is_all_day=bool(data.get("is_all_day", False)),
            last_fetched_at=_load_dt(data.get("last_fetched_at"), self._tz),
        )

    def all_entries(self) -> list[CalendarCacheEntry]:
        with self._lock:
            entries = [self._deserialize(item) for item in self._file.load().get("entries", [])]
        return sorted(entries, key=lambda e: e.start_time)

    def last_fetched_at(self) -> datetime | None:
        with self._lock:
            return _load_dt(self._file.load().get("last_fetched_at"), self._tz)

    def reconcile(self, entries: list[CalendarCacheEntry], fetched_at: datetime) -> ReconcileStats:
        with self._lock:
            data = self._file.load()
            fresh = {entry.event_uid: self._serialize(entry) for entry in entries}
            existing = {item["event_uid"] for item in data.get("entries", [])}
            removed = len(existing - fresh.keys())
            data["entries"] = list(fresh.values())
            data["last_fetched_at"] = _dump_dt(fetched_at)
            self._file.save(data)
            return ReconcileStats(removed=removed, upserted=len(fresh))

    def clear(self) -> None:
        with self._lock:
            self._file.save({"entries": [], "last_fetched_at": None, "version": 1})
