import dateparser
from datetime import date, datetime, timedelta, timezone
from typing import Optional
import pytz
import re

DDMMYYYY = "%d/%m/%Y"

_FULL_DMY = re.compile(r"^\s*(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})\s*$")
_PARTIAL_DM = re.compile(r"^\s*(\d{1,2})[/.-](\d{1,2})\s*$")
_ISO = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})\s*$")
_WEEKDAY = re.compile(
    r"^\s*(?:(next|this|coming)\s+)?(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\s*$",
    re.IGNORECASE,
)
_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def get_current_date(tz: str = "UTC") -> date:
    return datetime.now(pytz.timezone(tz)).date()


def _soonest_future(day: int, month: int, today: date) -> Optional[date]:
    """Pick this year's occurrence of day/month, or next year's if it has passed."""
    for year in (today.year, today.year + 1):
        try:
            candidate = date(year, month, day)
        except ValueError:
            continue
        if candidate >= today:
            return candidate
    return None


def to_ddmmyyyy(text: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """Normalise a date mention to DD/MM/YYYY.

    Accepts the DD/MM/YYYY the model is asked for, bare DD/MM (soonest future
    occurrence), ISO dates, and free text such as "next friday" or "22nd June"
    resolved against ``today``. Returns None when nothing parses.
    """
    if not text:
        return None
    today = today or get_current_date()

    m = _FULL_DMY.match(text)
    if m:
        try:
            return date(int(m.group(3)), int(m.group(2)), int(m.group(1))).strftime(DDMMYYYY)
        except ValueError:
            return None

    m = _PARTIAL_DM.match(text)
    if m:
        d = _soonest_future(int(m.group(1)), int(m.group(2)), today)
        return d.strftime(DDMMYYYY) if d else None

    m = _ISO.match(text)
    if m:
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3))).strftime(DDMMYYYY)
        except ValueError:
            return None

    text_lower = text.lower().strip()
    if text_lower == "today":
        return today.strftime(DDMMYYYY)
    if text_lower == "tomorrow":
        return (today + timedelta(days=1)).strftime(DDMMYYYY)

    m = _WEEKDAY.match(text)
    if m:
        # always the next occurrence strictly after today
        ahead = (_WEEKDAYS.index(m.group(2).lower()) - today.weekday()) % 7 or 7
        return (today + timedelta(days=ahead)).strftime(DDMMYYYY)

    base = datetime(today.year, today.month, today.day)
    dt = dateparser.parse(
        text,
        settings={
            "RELATIVE_BASE": base,
            "PREFER_DATES_FROM": "future",
            "DATE_ORDER": "DMY",
        },
    )
    if dt:
        return dt.date().strftime(DDMMYYYY)
    return None


def to_iso_utc(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a trailing Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
