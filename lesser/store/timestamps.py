"""
Timestamp Parser Module - Per-line timestamp extraction for merging

Handles:
- Leading timestamp detection for common log formats
- Conversion to naive UTC datetimes so lines from any source compare
- A pluggable parser interface (any callable str -> Optional[datetime])
- Dating time-only stamps from the previous timestamp of the same source

Supported line prefixes:
- ISO 8601: "2025-11-22T01:18:23.123Z ..." or "2025-11-22 01:18:23,123 ..."
- Bracketed: "[2025-11-22 01:18:23] ..."
- Syslog: "Nov 22 01:18:23 hostname service[pid]: ..."
- Time only: "01:18:23 ..." or "10:00 ..."
"""
import re
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

TimestampParser = Callable[[str], Optional[datetime]]

# strptime fills in 1900-01-01 for formats without a date
DATELESS_YEAR = 1900
# A time-only clock going back further than this crossed midnight
ROLLOVER_GAP = timedelta(hours=12)

DEFAULT_TIMESTAMP_FORMATS = [
    '%Y-%m-%dT%H:%M:%S.%f%z',
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M:%S.%f',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%d %H:%M:%S.%f',
    '%Y-%m-%d %H:%M:%S',
    '%b %d %H:%M:%S',  # Syslog format
    '%H:%M:%S.%f',
    '%H:%M:%S',
    '%H:%M',
]

# Candidate timestamp tokens at the start of a line (after an optional "[")
TIMESTAMP_PATTERNS = [
    re.compile(
        r'^\[?(?P<ts>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}'
        r'(?:[.,]\d{1,9})?(?:Z|[+-]\d{2}:?\d{2})?)'
    ),
    re.compile(r'^\[?(?P<ts>[A-Z][a-z]{2}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2})'),
    re.compile(r'^\[?(?P<ts>\d{1,2}:\d{2}(?::\d{2}(?:[.,]\d{1,6})?)?)(?![\d:])'),
]


class LogTimestampParser:
    """
    Default timestamp parser

    Looks for a timestamp at the start of the line and tries each
    configured strptime format in order. Timezone-aware values are
    converted to UTC and made naive; syslog stamps get the current year.
    Time-only formats keep strptime's 1900-01-01 date until the line
    store anchors them (see anchor_timestamp).
    """

    def __init__(self, formats: Optional[Sequence[str]] = None):
        self.formats: List[str] = list(formats or DEFAULT_TIMESTAMP_FORMATS)
        self.current_year = datetime.now().year

    def __call__(self, line: str) -> Optional[datetime]:
        token = self.extract(line)
        if token is None:
            return None
        return self.parse_timestamp(token)

    def extract(self, line: str) -> Optional[str]:
        """Return the leading timestamp token of a line, if any"""
        text = line.lstrip()
        for pattern in TIMESTAMP_PATTERNS:
            match = pattern.match(text)
            if match:
                return match.group('ts')
        return None

    def parse_timestamp(self, timestamp_str: str) -> Optional[datetime]:
        """Parse timestamp string into a naive UTC datetime"""
        value = self._normalize(timestamp_str)
        for fmt in self.formats:
            candidate = value
            if '%b' in fmt and '%Y' not in fmt:
                # Syslog stamps carry no year; parse with one so Feb 29 is valid
                candidate, fmt = f"{self.current_year} {value}", f"%Y {fmt}"
            try:
                dt = datetime.strptime(candidate, fmt)
            except ValueError:
                continue
            if dt.tzinfo is not None:
                dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
            return dt
        return None

    @staticmethod
    def _normalize(timestamp_str: str) -> str:
        value = timestamp_str.strip()
        # "2025-11-22 01:18:23,123" and "...Z" into strptime-friendly forms
        value = re.sub(r'(\d{2}:\d{2}:\d{2}),(\d)', r'\1.\2', value)
        value = re.sub(r'\s+', ' ', value)
        if value.endswith('Z'):
            value = value[:-1] + '+0000'
        # strptime %f accepts at most 6 digits
        value = re.sub(r'(\.\d{6})\d+', r'\1', value)
        return value


def is_time_only(value: datetime) -> bool:
    """True for values parsed from a format without a date"""
    return value.year == DATELESS_YEAR


def anchor_timestamp(parsed: datetime, previous: Optional[datetime],
                     today: Optional[date] = None) -> datetime:
    """
    Give a time-only timestamp a calendar date

    Args:
        parsed: Value returned by a timestamp parser
        previous: Last timestamp of the same source, if any
        today: Date used when there is no previous timestamp

    Returns:
        The parsed value on the previous timestamp's date (the next day
        when the clock went back past ROLLOVER_GAP), or on today's date.
        Dated values are returned unchanged.
    """
    if not is_time_only(parsed):
        return parsed
    if previous is None:
        return datetime.combine(today or date.today(), parsed.time())
    anchored = datetime.combine(previous.date(), parsed.time())
    if previous - anchored > ROLLOVER_GAP:
        anchored += timedelta(days=1)
    return anchored


def no_timestamps(line: str) -> Optional[datetime]:
    """Parser that never finds a timestamp (merge falls back to arrival order)"""
    return None
