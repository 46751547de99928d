# ical.py
# DatePlan -> RFC 5545 calendar text, plus a Google Calendar template link.
# Pure functions: same plan in, same bytes out (DTSTAMP comes from createdAt).

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from urllib.parse import urlencode

from . import config
from .models import DatePlan

DEFAULT_DURATION = timedelta(hours=2)
MAX_LINE_OCTETS = 75
GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"


def escape_text(value: str) -> str:
    """Escape a TEXT value: backslash first, then ; , and newlines."""
    return (
        (value or "")
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\r", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str) -> str:
    """Fold to 75 octets per physical line without splitting a UTF-8 sequence."""
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line
    parts = []
    current = ""
    size = 0
    limit = MAX_LINE_OCTETS
    for ch in line:
        n = len(ch.encode("utf-8"))
        if size + n > limit:
            parts.append(current)
            current = ""
            size = 0
            # continuation lines lose one octet to the leading space
            limit = MAX_LINE_OCTETS - 1
        current += ch
        size += n
    parts.append(current)
    return "\r\n ".join(parts)


def utc_stamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def event_window(plan: DatePlan) -> tuple[datetime | date, datetime | date]:
    """
    (start, end) as naive datetimes for a timed plan, dates for an all-day one.
    No date at all -> all-day on the creation date.
    """
    if plan.date and plan.startTime:
        start = datetime.combine(plan.date, plan.startTime)
        if plan.endTime:
            end = datetime.combine(plan.date, plan.endTime)
            if end <= start:
                end += timedelta(days=1)
        else:
            end = start + DEFAULT_DURATION
        return start, end

    day = plan.date
    if day is None:
        created = plan.createdAt
        if created.tzinfo is not None:
            created = created.astimezone(timezone.utc)
        day = created.date()
    return day, day + timedelta(days=1)


def plan_description(plan: DatePlan) -> str:
    lines = []
    if plan.notes:
        lines.append(plan.notes)
        lines.append("")
    for i, v in enumerate(plan.venues, start=1):
        line = f"{i}. {v.name} ({v.category.value}) - {v.address}"
        if v.openNow is not None:
            line += " - open now" if v.openNow else " - currently closed"
        lines.append(line)
    return "\n".join(lines)


def _fmt(value: datetime | date) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y%m%dT%H%M%S")
    return value.strftime("%Y%m%d")


def generate_ical_event(plan: DatePlan) -> str:
    start, end = event_window(plan)
    if isinstance(start, datetime):
        when = [f"DTSTART:{_fmt(start)}", f"DTEND:{_fmt(end)}"]
    else:
        when = [f"DTSTART;VALUE=DATE:{_fmt(start)}", f"DTEND;VALUE=DATE:{_fmt(end)}"]

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{config.ICAL_PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{plan.id}@{config.ICAL_UID_DOMAIN}",
        f"DTSTAMP:{utc_stamp(plan.createdAt)}",
        *when,
        f"SUMMARY:{escape_text(plan.title)}",
        f"DESCRIPTION:{escape_text(plan_description(plan))}",
    ]
    if plan.venues:
        lines.append(f"LOCATION:{escape_text(plan.venues[0].address)}")
    lines += ["END:VEVENT", "END:VCALENDAR"]
    return "\r\n".join(fold_line(l) for l in lines) + "\r\n"


def google_calendar_link(plan: DatePlan) -> str:
    start, end = event_window(plan)
    params = {
        "action": "TEMPLATE",
        "text": plan.title,
        "dates": f"{_fmt(start)}/{_fmt(end)}",
        "details": plan_description(plan),
    }
    if plan.venues:
        params["location"] = plan.venues[0].address
    return f"{GOOGLE_CALENDAR_URL}?{urlencode(params)}"
