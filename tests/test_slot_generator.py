"""
Tests for the theoretical slot grid.
"""

from __future__ import annotations

from datetime import date, time, timedelta

import pytest

from conftest import local


MONDAY = date(2026, 10, 19)
THURSDAY = date(2026, 10, 22)
SATURDAY = date(2026, 10, 24)
SUNDAY = date(2026, 10, 25)


def labels(slots) -> list[str]:
    return [s.strftime("%H:%M") for s in slots]


def test_regular_grid_skips_lunch_and_stops_before_close(engine):
    """Mon 09:00-18:00, lunch 12:30-13:30, blocked 65 min."""
    slots = engine.generator.candidates(MONDAY, "regular")

    assert labels(slots) == ["09:00", "10:05", "11:10", "13:30", "14:35", "15:40", "16:45"]
    assert slots[0] == local(2026, 10, 19, 9, 0)


def test_discovery_grid_uses_its_own_blocked_duration(engine):
    slots = engine.generator.candidates(MONDAY, "discovery")

    assert labels(slots) == ["09:00", "10:30", "13:30", "15:00", "16:30"]


def test_closed_days_have_no_slots(engine):
    assert engine.generator.candidates(THURSDAY, "regular") == []
    assert engine.generator.candidates(SUNDAY, "regular") == []


def test_saturday_starts_at_its_later_opening_time(engine):
    slots = engine.generator.candidates(SATURDAY, "regular")

    assert labels(slots)[0] == "10:00"
    assert all(s + timedelta(minutes=65) <= local(2026, 10, 24, 17, 0) for s in slots)


def test_grid_starts_at_the_later_of_opening_and_first_slot_time(make_engine):
    early_open = make_engine(
        settings={
            "business_hours": {"6": {"open": "09:30", "close": "17:00"}, "1": {"open": "08:00", "close": "18:00"}},
            "first_slot_time": "10:00",
        }
    )
    late_open = make_engine(
        settings={"business_hours": {"6": {"open": "11:00", "close": "17:00"}}, "first_slot_time": "10:00"}
    )

    assert labels(early_open.generator.candidates(SATURDAY, "regular"))[0] == "10:00"
    assert labels(early_open.generator.candidates(MONDAY, "regular"))[0] == "10:00"
    assert labels(late_open.generator.candidates(SATURDAY, "regular"))[0] == "11:00"


def test_business_hours_accept_json_string(make_engine):
    engine = make_engine(settings={"business_hours": '{"1": {"open": "14:00", "close": "16:00"}}'})

    assert labels(engine.generator.candidates(MONDAY, "regular")) == ["14:00"]
    assert engine.generator.candidates(date(2026, 10, 20), "regular") == []


def test_empty_lunch_setting_disables_break(make_engine):
    engine = make_engine(settings={"lunch_break_start": "", "lunch_break_end": ""})

    assert "12:15" in labels(engine.generator.candidates(MONDAY, "regular"))


def test_generation_is_restartable_and_deterministic(engine):
    first = list(engine.generator.generate(MONDAY, "regular"))
    second = list(engine.generator.generate(MONDAY, "regular"))

    assert first == second


def test_non_positive_durations_fall_back_to_defaults(make_engine):
    zero = make_engine(settings={"session_regular_display_minutes": 0, "session_regular_pause_minutes": 0})
    negative = make_engine(settings={"session_regular_pause_minutes": -30})

    assert zero.rules.durations("regular").blocked == 65
    assert negative.rules.durations("regular").pause == 20
    assert labels(zero.generator.candidates(MONDAY, "regular")) == [
        "09:00", "10:05", "11:10", "13:30", "14:35", "15:40", "16:45"
    ]


def test_malformed_business_hours_fall_back_to_defaults(make_engine):
    bad_time = make_engine(settings={"business_hours": {"1": {"open": "9h", "close": "18:00"}, "2": None}})
    not_a_mapping = make_engine(settings={"business_hours": ["09:00", "18:00"]})
    bad_entry = make_engine(settings={"business_hours": {"1": "all day", "x": {"open": "09:00"}}})

    assert labels(bad_time.generator.candidates(MONDAY, "regular"))[0] == "09:00"
    assert bad_time.generator.candidates(date(2026, 10, 20), "regular") == []
    assert labels(not_a_mapping.generator.candidates(SATURDAY, "regular"))[0] == "10:00"
    assert labels(bad_entry.generator.candidates(MONDAY, "regular"))[-1] == "16:45"


def test_malformed_lunch_break_falls_back_to_default(make_engine):
    engine = make_engine(settings={"lunch_break_start": "noon", "lunch_break_end": "13:30"})

    assert engine.rules.lunch_break() == (time(12, 30), time(13, 30))
    assert "12:15" not in labels(engine.generator.candidates(MONDAY, "regular"))


@pytest.mark.parametrize(
    "settings",
    [
        {},
        {"session_regular_display_minutes": 30, "session_regular_pause_minutes": 0},
        {"session_regular_display_minutes": 50, "session_regular_pause_minutes": 10, "first_slot_time": "08:15"},
        {"lunch_break_start": "11:45", "lunch_break_end": "14:10"},
        {"business_hours": {"1": {"open": "07:00", "close": "21:30"}}, "first_slot_time": "07:20"},
        {"session_regular_display_minutes": 200, "session_regular_pause_minutes": 40},
    ],
)
def test_every_slot_fits_before_close_and_avoids_lunch(make_engine, settings):
    engine = make_engine(settings=settings)
    hours = engine.rules.day_hours(MONDAY)
    blocked = timedelta(minutes=engine.rules.durations("regular").blocked)
    lunch = engine.rules.lunch_break()
    close = local(2026, 10, 19, hours.close.hour, hours.close.minute)

    slots = engine.generator.candidates(MONDAY, "regular")

    assert slots == sorted(slots)
    for start in slots:
        end = start + blocked
        assert end <= close
        if lunch:
            lunch_start = local(2026, 10, 19, lunch[0].hour, lunch[0].minute)
            lunch_end = local(2026, 10, 19, lunch[1].hour, lunch[1].minute)
            assert not (start < lunch_end and end > lunch_start)
