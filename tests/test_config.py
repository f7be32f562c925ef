"""Tests for run configuration parsing."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from groundtrack.config import (
    FeatureKind,
    TrackConfig,
    parse_interval,
    parse_time,
    steps_between,
)
from groundtrack.errors import ConfigurationError

EPOCH = datetime(2014, 1, 20, 22, 23, 4, tzinfo=timezone.utc)


class TestParseTime:
    """Start and end times in every accepted form."""

    def test_unix_seconds(self):
        assert parse_time("1700000000") == datetime(
            2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc
        )

    def test_iso_naive_is_utc(self):
        assert parse_time("2023-11-14T22:13:20") == datetime(
            2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc
        )

    def test_iso_with_offset(self):
        parsed = parse_time("2023-11-14T23:13:20+01:00")
        assert parsed == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_now(self):
        before = datetime.now(timezone.utc)
        assert before <= parse_time("now") <= datetime.now(timezone.utc)

    def test_epoch(self):
        assert parse_time("epoch", epoch=EPOCH) == EPOCH

    def test_epoch_unavailable(self):
        with pytest.raises(ConfigurationError):
            parse_time("epoch")

    def test_garbage(self):
        with pytest.raises(ConfigurationError):
            parse_time("yesterday-ish")


class TestParseInterval:
    """Intervals accept an optional s/m/h/d unit."""

    @pytest.mark.parametrize(
        "text, seconds",
        [("30", 30.0), ("30s", 30.0), ("5m", 300.0), ("1.5h", 5400.0), ("1d", 86400.0)],
    )
    def test_units(self, text, seconds):
        assert parse_interval(text) == seconds

    @pytest.mark.parametrize("text", ["", "m", "5w", "-5s", "0"])
    def test_invalid(self, text):
        with pytest.raises(ConfigurationError):
            parse_interval(text)


class TestSteps:
    """Fix counts between two times and per feature kind."""

    def test_inclusive_count(self):
        end = EPOCH + timedelta(minutes=10)
        assert steps_between(EPOCH, end, 60.0) == 11

    def test_end_before_start(self):
        with pytest.raises(ConfigurationError):
            steps_between(EPOCH, EPOCH - timedelta(seconds=1), 60.0)

    def test_line_needs_one_extra_fix(self):
        points = TrackConfig(Path("x"), FeatureKind.POINT, EPOCH, 60.0, 10)
        lines = TrackConfig(Path("x"), FeatureKind.LINE, EPOCH, 60.0, 10, split=True)
        assert points.fix_count == 10
        assert lines.fix_count == 11
        assert "split at antimeridian" in lines.describe()
