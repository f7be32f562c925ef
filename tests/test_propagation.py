"""Tests for TLE loading, fix generation and look angles (Skyfield)."""

import math
from datetime import datetime, timezone

import pytest

from conftest import make_fix
from groundtrack.errors import ConfigurationError
from groundtrack.propagation import (
    ObserverStation,
    OrbitSource,
    fix_at,
    load_tle_objects,
    look_angle,
    select_satellite,
    ts,
    unix_seconds,
)


@pytest.fixture
def iss(tle_path):
    return select_satellite(load_tle_objects(tle_path))


# ----------------------------------------------------------------
# 1. Loading and selection
# ----------------------------------------------------------------
class TestLoading:
    """Element sets are read from file and picked by name or number."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_tle_objects(tmp_path / "absent.tle")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.tle"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_tle_objects(path)

    def test_select_by_name_and_number(self, tle_path):
        satellites = load_tle_objects(tle_path)
        assert select_satellite(satellites, "ISS (ZARYA)").model.satnum == 25544
        assert select_satellite(satellites, "25544").name == "ISS (ZARYA)"

    def test_select_unknown(self, tle_path):
        with pytest.raises(ConfigurationError, match="not found"):
            select_satellite(load_tle_objects(tle_path), "HUBBLE")


# ----------------------------------------------------------------
# 2. Fixes
# ----------------------------------------------------------------
class TestFixes:
    """Propagated fixes carry plausible geodetic values for the ISS."""

    def test_fix_values(self, iss):
        fix = fix_at(iss, iss.epoch)
        assert -52.0 < fix.latitude_deg < 52.0
        assert -180.0 <= fix.longitude_deg <= 180.0
        assert 300.0 < fix.altitude_km < 500.0
        assert 7.0 < fix.velocity_km_s < 8.0
        assert fix.utc.tzinfo is not None
        assert fix.unix_seconds == math.floor(fix.utc.timestamp())

    def test_orbit_source_spacing(self, iss):
        start = iss.epoch.utc_datetime()
        fixes = list(OrbitSource(iss, start, 60.0, 5))
        assert len(fixes) == 5
        gaps = [
            (b.utc - a.utc).total_seconds()
            for a, b in zip(fixes, fixes[1:])
        ]
        assert gaps == pytest.approx([60.0] * 4, abs=1e-3)
        assert abs((fixes[0].utc - start).total_seconds()) < 1e-3

    @pytest.mark.parametrize(
        "utc, expected",
        [
            (datetime(2023, 11, 14, 22, 13, 20, 750000, tzinfo=timezone.utc), 1700000000),
            (datetime(1969, 12, 31, 23, 59, 59, 500000, tzinfo=timezone.utc), -1),
            (datetime(1970, 1, 1, tzinfo=timezone.utc), 0),
        ],
    )
    def test_unix_seconds_round_down(self, utc, expected):
        assert unix_seconds(utc) == expected


# ----------------------------------------------------------------
# 3. Look angles
# ----------------------------------------------------------------
class TestLookAngle:
    """Range rate sign agrees with the change in range."""

    def test_geometry_ranges(self, iss):
        fix = fix_at(iss, iss.epoch)
        geometry = look_angle(ObserverStation(0.0, 0.0, 0.0), fix)
        assert geometry.range_km > 0
        assert -90.0 <= geometry.elevation_deg <= 90.0
        assert 0.0 <= geometry.azimuth_deg < 360.0

    def test_range_rate_matches_range_change(self, iss):
        station = ObserverStation(44.0, -69.0, 0.1)
        t0 = iss.epoch
        t1 = ts.tt_jd(t0.tt + 0.1 / 86400.0)
        before = look_angle(station, fix_at(iss, t0))
        after = look_angle(station, fix_at(iss, t1))
        assert (after.range_km - before.range_km) / 0.1 == pytest.approx(
            before.range_rate_km_s, abs=0.05
        )

    def test_subpoint_observer_sees_satellite_overhead(self, iss):
        fix = fix_at(iss, iss.epoch)
        station = ObserverStation(fix.latitude_deg, fix.longitude_deg, 0.0)
        geometry = look_angle(station, fix)
        assert geometry.elevation_deg > 89.0
        assert geometry.range_km == pytest.approx(fix.altitude_km, rel=1e-3)

    def test_requires_propagated_fix(self):
        with pytest.raises(ValueError):
            look_angle(ObserverStation(0.0, 0.0), make_fix(0.0, 0.0))
