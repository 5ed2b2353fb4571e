"""
Resolve user supplied start/end strings into a UTC time range.

Accepted inputs:
  2025-05-01                  -> midnight UTC of that day
  2025-05-01T10:15:00         -> UTC timestamp
  2025-05-01 10:15            -> UTC timestamp
  2025-05-01T10:15:00+09:00   -> normalized to UTC

Anything containing "T" or a space is treated as a timestamp.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List

from .errors import InvalidTimeFormat, InvalidTimeRange

DATE_RE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})$")

TIMESTAMP_RE = re.compile(
    r"""
    ^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})
    [T\ ]
    (?P<hour>\d{2}):(?P<minute>\d{2})
    (?::(?P<second>\d{2})(?:\.(?P<fraction>\d+))?)?
    \s*(?P<offset>Z|[+-]\d{2}:?\d{2})?$
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime
    has_time_of_day: bool

    def days(self) -> List[date]:
        """Inclusive list of calendar dates covered by the range."""
        first = self.start.date()
        last = self.end.date()
        return [first + timedelta(days=i) for i in range((last - first).days + 1)]

    def day_prefixes(self, fmt: str = "%Y/%m/%d") -> List[str]:
        return [d.strftime(fmt) for d in self.days()]


def has_time_component(value: str) -> bool:
    return "T" in value or " " in value


def _parse_offset(raw: str) -> timezone:
    if raw == "Z":
        return timezone.utc
    sign = -1 if raw[0] == "-" else 1
    digits = raw[1:].replace(":", "")
    delta = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    return timezone(sign * delta)


def parse_datetime(value: str) -> datetime:
    """
    Parse a date or timestamp string into an aware UTC datetime.

    Raises InvalidTimeFormat when the string matches neither shape or
    names an impossible calendar value.
    """
    text = value.strip()

    try:
        if has_time_component(text):
            m = TIMESTAMP_RE.match(text)
            if not m:
                raise InvalidTimeFormat(
                    f"Invalid timestamp '{value}' "
                    "(expected YYYY-MM-DDThh:mm:ss or YYYY-MM-DD hh:mm:ss)"
                )
            fraction = (m.group("fraction") or "0")[:6].ljust(6, "0")
            tz = _parse_offset(m.group("offset")) if m.group("offset") else timezone.utc
            parsed = datetime(
                int(m.group("year")),
                int(m.group("month")),
                int(m.group("day")),
                int(m.group("hour")),
                int(m.group("minute")),
                int(m.group("second") or 0),
                int(fraction),
                tzinfo=tz,
            )
            return parsed.astimezone(timezone.utc)

        m = DATE_RE.match(text)
        if not m:
            raise InvalidTimeFormat(
                f"Invalid date '{value}' (expected YYYY-MM-DD)"
            )
        return datetime(
            int(m.group("year")),
            int(m.group("month")),
            int(m.group("day")),
            tzinfo=timezone.utc,
        )
    except ValueError as e:
        raise InvalidTimeFormat(f"Invalid date/time '{value}': {e}") from e


def resolve_time_range(start: str, end: str) -> TimeRange:
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)

    if start_dt > end_dt:
        raise InvalidTimeRange(
            f"Start {start_dt.isoformat()} is after end {end_dt.isoformat()}"
        )

    return TimeRange(
        start=start_dt,
        end=end_dt,
        has_time_of_day=has_time_component(start.strip())
        or has_time_component(end.strip()),
    )
