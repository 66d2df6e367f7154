from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo
import re

"""
DATE / RANGE PRIMITIVES

Everything availability and dispatch related works at whole-day
granularity. Ranges are closed on both ends.
"""


_HHMM = re.compile(r"^(\d{2}):(\d{2})(?::\d{2})?$")


#Inclusive [start, end] pair of calendar days for one vehicle
@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def as_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def _zone(tz: str | None):
    return ZoneInfo(tz) if tz else None


#Truncate a timestamp to its calendar day, in tz or the server's local zone
def start_of_day(value: datetime | date, tz: str | None = None) -> date:
    if not isinstance(value, datetime):
        return value

    zone = _zone(tz)
    if zone is None:
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()

    return to_zone(value, tz).date()


#Express a timestamp in tz; naive values are taken as UTC
def to_zone(value: datetime, tz: str) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz))


def now_in(tz: str | None = None) -> datetime:
    zone = _zone(tz)
    if zone is None:
        return datetime.now().astimezone()
    return datetime.now(zone)


def today(tz: str | None = None) -> date:
    return start_of_day(now_in(tz), tz)


def in_range(day: date, rng: DateRange) -> bool:
    return rng.start <= day <= rng.end


def ranges_overlap(a_start: date, a_end: date, rng: DateRange) -> bool:
    """
    Closed interval intersection. A range ending on day N and another
    starting on day N overlap: same-day handoff is not allowed.
    """
    return a_start <= rng.end and rng.start <= a_end


def parse_ymd(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def add_days(day: date, n: int) -> date:
    return day + timedelta(days=n)


def is_valid_hhmm(value: str | None) -> bool:
    if not value:
        return False
    m = _HHMM.match(value)
    if not m:
        return False
    return int(m.group(1)) <= 23 and int(m.group(2)) <= 59


#"09:00:00" -> "09:00"; None stays None
def to_hm(value: str | time | None) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value.strftime("%H:%M")
    hh, mm = value.split(":")[:2]
    return f"{hh}:{mm}"


def _minutes(hm: str) -> int:
    hh, mm = hm.split(":")[:2]
    return int(hh) * 60 + int(mm)


#Signed minutes from a to b; negative means b is earlier than a
def minutes_between(a: str | time, b: str | time) -> int:
    return _minutes(to_hm(b)) - _minutes(to_hm(a))
