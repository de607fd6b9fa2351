"""Natural-language due date resolution.

Turns phrases such as "tomorrow at 5 PM", "next Friday", "in 2 hours" or
"push it back a week" into datetimes relative to a reference point. Absolute
dates ("2026-03-05", "March 5 at 3pm") are handed to dateutil.

Day-only phrases resolve to noon; a time mentioned on its own resolves to the
next occurrence of that time.
"""
from __future__ import annotations

import re
from datetime import datetime, time, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

# Words that mark a date phrase as a shift of an existing due date
RELATIVE_SHIFT_KEYWORDS = ("further", "later", "more", "extend", "postpone", "delay")

DEFAULT_TIME_OF_DAY = time(12, 0)

_WEEKDAYS = {
    "mon": 0, "monday": 0,
    "tue": 1, "tues": 1, "tuesday": 1,
    "wed": 2, "wednesday": 2,
    "thu": 3, "thur": 3, "thurs": 3, "thursday": 3,
    "fri": 4, "friday": 4,
    "sat": 5, "saturday": 5,
    "sun": 6, "sunday": 6,
}

_NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "couple": 2,
    "few": 3,
}

_WEEKDAY_RE = re.compile(
    r"\b(?:(next|this|on|coming)\s+)?(" + "|".join(sorted(_WEEKDAYS, key=len, reverse=True)) + r")\b"
)
_OFFSET_RE = re.compile(
    r"\b(\d+|a|an|one|two|three|four|five|six|seven|eight|nine|ten|couple(?:\s+of)?|few)\s+"
    r"(minute|min|hour|hr|day|week|month|year)s?\b"
)
_TIME_12H_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)(?!\w)")
_TIME_24H_RE = re.compile(r"\b(?:at\s+)?([01]?\d|2[0-3]):([0-5]\d)\b")
_BARE_AT_RE = re.compile(r"\bat\s+(\d{1,2})\b(?!\s*[:/.\-]\d)")
_YEAR_RE = re.compile(r"\b\d{4}\b")


def is_relative_shift(text: str) -> bool:
    """Return True when the phrase moves an existing date rather than naming one."""
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in RELATIVE_SHIFT_KEYWORDS)


def parse_due_date(text: Optional[str], reference: Optional[datetime] = None) -> Optional[datetime]:
    """Resolve a natural-language date phrase.

    Args:
        text: The phrase to resolve ("tomorrow 5pm", "Friday", "2026-01-05").
        reference: Anchor for relative phrases. Defaults to the current local
            time. Pass an existing due date to shift it ("a week later").

    Returns:
        The resolved datetime (same tzinfo as the reference), or None when the
        phrase cannot be understood.
    """
    if not text or not text.strip():
        return None

    ref = reference or datetime.now().astimezone()
    lowered = " ".join(text.lower().split())

    clock = _extract_time(lowered)
    day = _extract_day(lowered, ref)
    offset = _extract_offset(lowered)

    if day is None and offset is None:
        if clock is not None and not _mentions_calendar_date(lowered):
            candidate = datetime.combine(ref.date(), clock, tzinfo=ref.tzinfo)
            if candidate <= ref:
                candidate += timedelta(days=1)
            return candidate
        return _parse_absolute(text, ref)

    if offset is not None:
        result = ref + offset
        if clock is not None:
            result = result.replace(hour=clock.hour, minute=clock.minute, second=0, microsecond=0)
        return result

    return datetime.combine(day, clock or DEFAULT_TIME_OF_DAY, tzinfo=ref.tzinfo)


def coerce_datetime(value, reference: Optional[datetime] = None) -> Optional[datetime]:
    """Accept a datetime, an ISO string or a natural-language phrase."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return parse_due_date(text, reference)


# Internal helpers ---------------------------------------------------------


def _extract_day(text: str, ref: datetime):
    if "day after tomorrow" in text:
        return (ref + timedelta(days=2)).date()
    if "tomorrow" in text:
        return (ref + timedelta(days=1)).date()
    if "today" in text or "tonight" in text:
        return ref.date()
    if "next week" in text:
        return (ref + timedelta(weeks=1)).date()
    if "next month" in text:
        return (ref + relativedelta(months=1)).date()

    match = _WEEKDAY_RE.search(text)
    if match:
        qualifier, name = match.group(1), match.group(2)
        target = _WEEKDAYS[name]
        days_ahead = (target - ref.weekday()) % 7
        if days_ahead == 0 and qualifier != "this":
            days_ahead = 7
        return (ref + timedelta(days=days_ahead)).date()
    return None


def _extract_offset(text: str) -> Optional[relativedelta]:
    match = _OFFSET_RE.search(text)
    if not match:
        return None
    amount_text, unit = match.group(1), match.group(2)
    amount_key = amount_text.split()[0]
    amount = int(amount_key) if amount_key.isdigit() else _NUMBER_WORDS[amount_key]

    if unit in ("minute", "min"):
        return relativedelta(minutes=amount)
    if unit in ("hour", "hr"):
        return relativedelta(hours=amount)
    if unit == "day":
        return relativedelta(days=amount)
    if unit == "week":
        return relativedelta(weeks=amount)
    if unit == "month":
        return relativedelta(months=amount)
    return relativedelta(years=amount)


def _extract_time(text: str) -> Optional[time]:
    if "noon" in text or "midday" in text:
        return time(12, 0)
    if "midnight" in text:
        return time(0, 0)

    match = _TIME_12H_RE.search(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        meridiem = match.group(3).replace(".", "")
        if hour > 12 or minute > 59:
            return None
        if meridiem == "pm" and hour != 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
        return time(hour, minute)

    match = _TIME_24H_RE.search(text)
    if match:
        return time(int(match.group(1)), int(match.group(2)))

    match = _BARE_AT_RE.search(text)
    if match and int(match.group(1)) <= 23:
        return time(int(match.group(1)), 0)

    if "tonight" in text:
        return time(20, 0)
    if "morning" in text:
        return time(9, 0)
    if "evening" in text:
        return time(18, 0)
    return None


def _mentions_calendar_date(text: str) -> bool:
    return bool(re.search(r"\d{1,4}[/\-]\d{1,2}|\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\b", text))


def _parse_absolute(text: str, ref: datetime) -> Optional[datetime]:
    default = datetime.combine(ref.date(), DEFAULT_TIME_OF_DAY, tzinfo=ref.tzinfo)
    try:
        parsed, _tokens = date_parser.parse(text, default=default, fuzzy_with_tokens=True)
    except (ValueError, OverflowError):
        return None

    if parsed.tzinfo is None and ref.tzinfo is not None:
        parsed = parsed.replace(tzinfo=ref.tzinfo)

    # Month/day without a year refers to the next occurrence
    comparable = (parsed.tzinfo is None) == (ref.tzinfo is None)
    if comparable and parsed < ref and not _YEAR_RE.search(text) and parsed.date() != ref.date():
        parsed = parsed + relativedelta(years=1)
    return parsed
