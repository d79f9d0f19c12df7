"""
Wake time resolution and display helpers
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from .errors import InvalidTimeFormat

TIME_OF_DAY_RE = re.compile(r"^(\d{1,2}):(\d{1,2})\Z", re.ASCII)


def parse_time_of_day(value: str) -> Tuple[int, int]:
    """
    Parse a 24-hour HH:MM string.

    Raises:
        InvalidTimeFormat: if the value is not two integers separated by a colon
            with hour in 0-23 and minute in 0-59
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(str(value))

    match = TIME_OF_DAY_RE.match(value.strip())
    if not match:
        raise InvalidTimeFormat(value)

    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidTimeFormat(value)
    return hour, minute


def compute_next_occurrence(time_of_day: str, now: Optional[datetime] = None) -> datetime:
    """
    Resolve a wake time-of-day to the next concrete instant after now.

    The candidate is built on now's date; if it is not strictly in the future
    it moves forward by exactly one calendar day.

    Args:
        time_of_day: Wake time as HH:MM
        now: Reference instant, defaults to the current local time

    Returns:
        Trigger instant (naive or aware, matching now)
    """
    hour, minute = parse_time_of_day(time_of_day)
    if now is None:
        now = datetime.now()

    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def format_alarm_time(instant: datetime) -> str:
    return instant.strftime("%H:%M")


def format_alarm_date(instant: datetime, today: Optional[date] = None) -> str:
    """Label a trigger instant as Today, Tomorrow, or a weekday with its date"""
    today = today or date.today()
    day = instant.date()
    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    return f"{instant.strftime('%A, %b')} {day.day}"
