"""
HTTP tests for the availability, booking and admin routes.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.infrastructure.calendar.static_feed import StaticCalendarFeed
from app.main import app
from app.wiring.dependencies import (
    get_availability_resolver,
    get_booking_lifecycle,
    get_maintenance_use_case,
)

from conftest import build_engine, ical, vevent


@pytest.fixture
def api():
    def make(**kwargs):
        engine = build_engine(**kwargs)
        app.dependency_overrides[get_availability_resolver] = lambda: engine.availability
        app.dependency_overrides[get_booking_lifecycle] = lambda: engine.lifecycle
        app.dependency_overrides[get_maintenance_use_case] = lambda: engine.maintenance
        return TestClient(app), engine

    yield make
    app.dependency_overrides.clear()


def test_health(api):
    client, _ = api()

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_available_dates(api):
    client, _ = api()

    response = client.get("/availability/dates", params={"year": 2026, "month": 10, "type": "regular"})

    assert response.status_code == 200
    data = response.json()
    assert data["type"] == "regular"
    assert data["available_dates"][:3] == ["2026-10-19", "2026-10-20", "2026-10-21"]
    assert "2026-10-22" not in data["available_dates"]


def test_available_dates_invalid_month(api):
    client, _ = api()

    response = client.get("/availability/dates", params={"year": 2026, "month": 13})

    assert response.status_code == 400


@pytest.mark.parametrize("year", [0, 10000])
def test_available_dates_out_of_range_year(api, year):
    client, _ = api()

    response = client.get("/availability/dates", params={"year": year, "month": 5})

    assert response.status_code == 400


def test_available_slots(api):
    client, _ = api()

    response = client.get("/availability/slots", params={"date": "2026-10-19", "type": "regular"})

    assert response.status_code == 200
    data = response.json()
    assert data["duration_display_minutes"] == 45
    assert data["duration_blocked_minutes"] == 65
    assert [s["time"] for s in data["slots"]] == ["09:00", "10:05", "11:10", "13:30", "14:35", "15:40", "16:45"]
    assert data["slots"][1]["datetime"] == "2026-10-19 10:05:00"


def test_available_slots_for_past_date(api):
    client, _ = api()

    response = client.get("/availability/slots", params={"date": "2026-10-01"})

    assert response.status_code == 200
    assert response.json()["slots"] == []
    assert response.json()["message"]


@pytest.mark.parametrize("params", [{"date": "19/10/2026"}, {"date": "2026-10-19", "type": "weekend"}])
def test_available_slots_rejects_bad_input(api, params):
    client, _ = api()

    assert client.get("/availability/slots", params=params).status_code == 400


def test_schedule(api):
    client, _ = api()

    data = client.get("/availability/schedule").json()

    assert data["lunch_break"] == {"start": "12:30", "end": "13:30"}
    assert data["durations"]["discovery"]["blocked"] == 90


def test_create_confirm_and_cancel_booking(api):
    client, _ = api(settings={"booking_email_confirmation_required": True})

    created = client.post(
        "/bookings",
        json={"session_date": "2026-10-19 10:05:00", "duration_type": "regular", "client_ref": "c-1"},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "pending"
    assert body["requires_confirmation"] is True
    token = body["confirmation_token"]

    confirmed = client.get(f"/bookings/confirm/{token}")
    assert confirmed.status_code == 200
    assert confirmed.json()["already_confirmed"] is False
    assert confirmed.json()["booking"]["status"] == "confirmed"

    again = client.get(f"/bookings/confirm/{token}")
    assert again.json()["already_confirmed"] is True

    fetched = client.get(f"/bookings/{token}")
    assert fetched.json()["booking"]["session_date"] == "2026-10-19 10:05:00"

    cancelled = client.post(f"/bookings/cancel/{token}")
    assert cancelled.json() == {"cancelled": True, "already_cancelled": False}
    assert client.post(f"/bookings/cancel/{token}").json()["already_cancelled"] is True


def test_create_booking_off_grid_reports_reason(api):
    client, _ = api()

    response = client.post("/bookings", json={"session_date": "2026-10-19T10:06:00", "duration_type": "regular"})

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "off_grid"


def test_create_booking_with_malformed_date(api):
    client, _ = api()

    response = client.post("/bookings", json={"session_date": "next monday 10h", "duration_type": "regular"})

    assert response.status_code == 400


def test_create_booking_with_unknown_duration_type(api):
    client, _ = api()

    response = client.post("/bookings", json={"session_date": "2026-10-19 10:05:00", "duration_type": "weekend"})

    assert response.status_code == 400


def test_create_booking_defaults_to_regular_duration(api):
    client, engine = api()

    response = client.post("/bookings", json={"session_date": "2026-10-19 10:05:00"})

    assert response.status_code == 201
    assert engine.bookings.get(response.json()["id"]).blocked_minutes == 65


def test_create_booking_over_client_limit(api):
    client, _ = api(settings={"booking_max_per_client": 1})

    first = client.post("/bookings", json={"session_date": "2026-10-19 10:05:00", "client_ref": "c-1"})
    second = client.post("/bookings", json={"session_date": "2026-10-19 13:30:00", "client_ref": "c-1"})

    assert first.status_code == 201
    assert second.status_code == 429


def test_create_booking_conflict_at_insert(api, monkeypatch):
    client, engine = api()
    validate = engine.availability.validate_slot
    raced: list[bool] = []

    def validate_then_lose_race(start, duration_type, ignore_booking_id=None):
        check = validate(start, duration_type, ignore_booking_id=ignore_booking_id)
        if not raced:
            raced.append(True)
            engine.lifecycle.create(start, duration_type)
        return check

    monkeypatch.setattr(engine.availability, "validate_slot", validate_then_lose_race)

    response = client.post("/bookings", json={"session_date": "2026-10-19 10:05:00"})

    assert response.status_code == 409
    assert len(engine.bookings.list_by_status()) == 1


def test_create_booking_on_taken_slot(api):
    client, _ = api()
    payload = {"session_date": "2026-10-19 10:05:00", "duration_type": "regular"}

    assert client.post("/bookings", json=payload).status_code == 201
    second = client.post("/bookings", json=payload)

    assert second.status_code == 400
    assert second.json()["detail"]["reason"] == "unavailable"


def test_confirm_after_external_event_conflicts(api):
    feed = StaticCalendarFeed()
    client, engine = api(settings={"booking_email_confirmation_required": True}, feed=feed)
    token = client.post(
        "/bookings", json={"session_date": "2026-10-19 10:05:00", "duration_type": "regular"}
    ).json()["confirmation_token"]

    feed.content = ical(vevent("x", "DTSTART:20261019T100000", "DTEND:20261019T110000"))
    engine.calendar.refresh()

    assert client.get(f"/bookings/confirm/{token}").status_code == 409


def test_unknown_token(api):
    client, _ = api()

    assert client.get("/bookings/confirm/unknown").status_code == 404
    assert client.post("/bookings/cancel/unknown").status_code == 404
    assert client.get("/bookings/unknown").status_code == 404


def test_admin_list_and_update_status(api):
    client, _ = api()
    created = client.post("/bookings", json={"session_date": "2026-10-19 10:05:00", "duration_type": "regular"}).json()

    listed = client.get("/admin/bookings", params={"status": "confirmed"})
    assert [b["id"] for b in listed.json()["bookings"]] == [created["id"]]
    assert listed.json()["bookings"][0]["confirmation_token"] == created["confirmation_token"]

    completed = client.patch(f"/admin/bookings/{created['id']}/status", json={"status": "completed"})
    assert completed.status_code == 200
    assert completed.json()["changed"] is True
    assert completed.json()["booking"]["status"] == "completed"

    refused = client.patch(f"/admin/bookings/{created['id']}/status", json={"status": "cancelled"})
    assert refused.status_code == 400

    assert client.patch("/admin/bookings/missing/status", json={"status": "cancelled"}).status_code == 404
    assert client.get("/admin/bookings", params={"status": "archived"}).status_code == 400


def test_admin_calendar_refresh(api):
    client, engine = api(feed=StaticCalendarFeed(ical(vevent("x", "DTSTART:20261019T100000"))))

    response = client.post("/admin/calendar/refresh")

    assert response.json() == {"refreshed": True}
    assert [e.event_uid for e in engine.calendar_store.all_entries()] == ["x"]


def test_admin_routes_require_key_when_configured(api, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "secret")
    client, _ = api()

    assert client.get("/admin/bookings").status_code == 403
    assert client.get("/admin/bookings", headers={"X-Admin-Key": "wrong"}).status_code == 403
    assert client.get("/admin/bookings", headers={"X-Admin-Key": "secret"}).status_code == 200


def test_admin_routes_closed_without_key_outside_dev(api, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", None)
    monkeypatch.setattr(settings, "ENV", "production")
    client, _ = api()

    assert client.get("/admin/bookings").status_code == 403
