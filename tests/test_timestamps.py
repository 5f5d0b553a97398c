import warnings
from datetime import date, datetime

import pytest

from lesser.store.timestamps import (
    DATELESS_YEAR,
    LogTimestampParser,
    anchor_timestamp,
    is_time_only,
    no_timestamps,
)


@pytest.fixture
def parser():
    return LogTimestampParser()


class TestTimestampExtraction:
    """Test finding the leading timestamp token"""

    @pytest.mark.parametrize("line, token", [
        ("2025-11-22T01:18:23.123Z GET /", "2025-11-22T01:18:23.123Z"),
        ("2025-11-22 01:18:23,123 - app - INFO - hi", "2025-11-22 01:18:23,123"),
        ("[2025-11-22 01:18:23] worker started", "2025-11-22 01:18:23"),
        ("Nov 22 01:18:23 host sshd[42]: accepted", "Nov 22 01:18:23"),
        ("10:00 deploy", "10:00"),
        ("  10:00:05.250 indented", "10:00:05.250"),
    ])
    def test_extract(self, parser, line, token):
        assert parser.extract(line) == token

    @pytest.mark.parametrize("line", [
        "plain text",
        "",
        "version 1.2.3",
        "10:00:00:00 not a clock",
    ])
    def test_extract_none(self, parser, line):
        assert parser.extract(line) is None


class TestTimestampParsing:
    """Test conversion to naive UTC datetimes"""

    def test_iso_with_zulu(self, parser):
        assert parser("2025-11-22T01:18:23.123Z x") == datetime(2025, 11, 22, 1, 18, 23, 123000)

    def test_iso_with_offset_converted_to_utc(self, parser):
        assert parser("2025-11-22T03:18:23+02:00 x") == datetime(2025, 11, 22, 1, 18, 23)

    def test_comma_fraction(self, parser):
        assert parser("2025-11-22 01:18:23,5 x") == datetime(2025, 11, 22, 1, 18, 23, 500000)

    def test_long_fraction_truncated(self, parser):
        assert parser("2025-11-22T01:18:23.123456789 x") == datetime(2025, 11, 22, 1, 18, 23, 123456)

    def test_syslog_gets_current_year(self, parser):
        parsed = parser("Nov 22 01:18:23 host cron: ran")
        assert parsed == datetime(datetime.now().year, 11, 22, 1, 18, 23)

    def test_time_only(self, parser):
        assert parser("10:02 b").time() == datetime(1900, 1, 1, 10, 2).time()
        assert parser("10:01 a") < parser("10:02 b")

    def test_invalid_date_is_none(self, parser):
        assert parser("2025-13-45 01:18:23 bad month") is None

    def test_custom_formats(self):
        parser = LogTimestampParser(formats=['%H:%M'])
        assert parser("10:00 x") == datetime(1900, 1, 1, 10, 0)
        assert parser("10:00:30 x") is None

    def test_no_timestamps(self):
        assert no_timestamps("2025-11-22 01:18:23 x") is None


class TestSyslogYear:
    """Test syslog stamps parsed against the current year"""

    def test_leap_day(self, parser):
        parser.current_year = 2024
        assert parser("Feb 29 12:00:00 host cron: ran") == datetime(2024, 2, 29, 12, 0, 0)

    def test_leap_day_in_common_year(self, parser):
        parser.current_year = 2026
        assert parser("Feb 29 12:00:00 host cron: ran") is None

    def test_no_deprecation_warning(self, parser):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert parser("Nov 22 01:18:23 host cron: ran") is not None


class TestAnchorTimestamp:
    """Test dating of time-only values"""

    def test_dated_value_unchanged(self):
        value = datetime(2026, 10, 18, 9, 0)
        assert anchor_timestamp(value, datetime(2026, 10, 17, 9, 0)) == value

    def test_uses_previous_date(self):
        parsed = LogTimestampParser()("10:00:05 x")
        assert is_time_only(parsed)
        anchored = anchor_timestamp(parsed, datetime(2026, 10, 18, 9, 59))
        assert anchored == datetime(2026, 10, 18, 10, 0, 5)
        assert not is_time_only(anchored)

    def test_small_step_back_stays_on_same_day(self):
        parsed = datetime(DATELESS_YEAR, 1, 1, 10, 0, 1)
        assert anchor_timestamp(parsed, datetime(2026, 10, 18, 10, 0, 5)) == datetime(2026, 10, 18, 10, 0, 1)

    def test_rollover_after_midnight(self):
        parsed = datetime(DATELESS_YEAR, 1, 1, 0, 0, 3)
        assert anchor_timestamp(parsed, datetime(2026, 12, 31, 23, 59, 58)) == datetime(2027, 1, 1, 0, 0, 3)

    def test_no_previous_uses_given_day(self):
        parsed = datetime(DATELESS_YEAR, 1, 1, 8, 30)
        assert anchor_timestamp(parsed, None, today=date(2026, 10, 18)) == datetime(2026, 10, 18, 8, 30)
