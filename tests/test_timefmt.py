"""Tests for timestamp prefixes."""

import pytest

from streamlog.errors import TimestampError
from streamlog.timefmt import TimeFormat, epoch_ms, format_timestamp

# 2025-01-15 12:00:00.123 UTC
INSTANT_NS = 1_736_942_400_123_456_789


class TestFormatTimestamp:
    def test_none_has_no_prefix(self):
        assert format_timestamp(TimeFormat.NONE, INSTANT_NS) is None

    def test_epoch_ms(self):
        assert format_timestamp(TimeFormat.EPOCH_MS, INSTANT_NS) == b"1736942400123"

    def test_epoch_ms_pads_millis(self):
        assert format_timestamp(TimeFormat.EPOCH_MS, 5_007_000_000) == b"5007"

    def test_human(self):
        assert format_timestamp(TimeFormat.HUMAN_MINUTE, INSTANT_NS) == b"2025-01-15_12:00:00.00123"

    def test_human_t(self):
        assert format_timestamp(TimeFormat.HUMAN_MINUTE_T, INSTANT_NS) == b"2025-01-15T12:00:00.00123"

    @pytest.mark.parametrize("fmt", list(TimeFormat))
    def test_fixed_width(self, fmt):
        a = format_timestamp(fmt, INSTANT_NS)
        b = format_timestamp(fmt, INSTANT_NS + 3_600_000_000_000)
        if a is None:
            assert b is None
        else:
            assert len(a) == len(b)

    def test_human_out_of_range_raises(self):
        with pytest.raises(TimestampError):
            format_timestamp(TimeFormat.HUMAN_MINUTE, 10**30)


class TestEpochMs:
    def test_sorts_with_time(self):
        earlier = epoch_ms(INSTANT_NS)
        later = epoch_ms(INSTANT_NS + 1_000_000)
        assert earlier < later

    def test_overflow_raises(self):
        with pytest.raises(TimestampError):
            epoch_ms(10**40)
