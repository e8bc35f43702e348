from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

PROPERTY_PATTERN = re.compile(r"^([A-Z-]+)((?:;[^:]*)?):(.*)$")
TZID_PATTERN = re.compile(r"TZID=([^;:]+)")


@dataclass(frozen=True)
class ParsedEvent:
    uid: str
    summary: str
    start: datetime
    end: datetime
    is_all_day: bool


def unfold_lines(content: str) -> list[str]:
    """Join continuation lines (leading space or tab) onto the previous line."""
    lines: list[str] = []
    for line in re.split(r"\r\n|\r|\n", content):
        if line[:1] in (" ", "\t") and lines:
            lines[-1] += line[1:]
        else:
            lines.append(line)
    return lines


def unescape_text(value: str) -> str:
    return (
        value.replace("\\n", "\n")
        .replace("\\N", "\n")
        .replace("\\,", ",")
        .replace("\\;", ";")
        .replace("\\\\", "\\")
    )


def parse_date_value(params: str, value: str, default_tz: ZoneInfo) -> tuple[datetime, bool] | None:
    """
    Parse a DTSTART/DTEND value. Handles TZID local times, UTC "Z" times and
    VALUE=DATE all-day dates. Floating times use `default_tz`. Results are
    converted to `default_tz`.
    """
    tz = default_tz
    tz_match = TZID_PATTERN.search(params)
    if tz_match:
        try:
            tz = ZoneInfo(tz_match.group(1).strip('"'))
        except (ZoneInfoNotFoundError, ValueError):
            tz = default_tz

    value = value.strip()
    try:
        if "VALUE=DATE" in params and "VALUE=DATE-TIME" not in params:
            parsed = datetime.strptime(value[:8], "%Y%m%d").replace(tzinfo=default_tz)
            return parsed, True
        if value.endswith("Z"):
            parsed = datetime.strptime(value, "%Y%m%dT%H%M%SZ").replace(tzinfo=ZoneInfo("UTC"))
            return parsed.astimezone(default_tz), False
        parsed = datetime.strptime(value, "%Y%m%dT%H%M%S").replace(tzinfo=tz)
        return parsed.astimezone(default_tz), False
    except ValueError:
        return None


def parse_ical(content: str, default_tz: ZoneInfo) -> list[ParsedEvent]:
    """Extract VEVENT blocks. Events without a UID or a parseable start are skipped."""
    events: list[ParsedEvent] = []
    current: dict[str, object] | None = None

    for raw_line in unfold_lines(content):
        line = raw_line.strip()

        if line == "BEGIN:VEVENT":
            current = {"uid": "", "summary": "", "start": None, "end": None, "all_day": False}
            continue

        if line == "END:VEVENT":
            if current and current["uid"] and current["start"]:
                start: datetime = current["start"]  # type: ignore[assignment]
                end: datetime | None = current["end"]  # type: ignore[assignment]
                all_day = bool(current["all_day"])
                if end is None:
                    end = start + (timedelta(days=1) if all_day else timedelta(hours=1))
                events.append(
                    ParsedEvent(
                        uid=str(current["uid"]),
                        summary=str(current["summary"]),
                        start=start,
                        end=end,
                        is_all_day=all_day,
                    )
                )
            current = None
            continue

        if current is None:
            continue

        match = PROPERTY_PATTERN.match(line)
        if not match:
            continue
        name, params, value = match.group(1), match.group(2), match.group(3)

        if name == "UID":
            current["uid"] = value.strip()
        elif name == "SUMMARY":
            current["summary"] = unescape_text(value)
        elif name == "DTSTART":
            parsed = parse_date_value(params, value, default_tz)
            if parsed:
                current["start"], current["all_day"] = parsed
        elif name == "DTEND":
            parsed = parse_date_value(params, value, default_tz)
            if parsed:
                current["end"] = parsed[0]

    return events
