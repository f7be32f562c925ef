"""Shared fixtures: synthetic fixes, a fake observer and an ISS TLE."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from groundtrack.propagation import GeodeticFix, ObserverGeometry

ISS_TLE: str = (
    "ISS (ZARYA)\n"
    "1 25544U 98067A   14020.93268519  .00009878  00000-0  18200-3 0  5082\n"
    "2 25544  51.6498 109.4756 0003572  55.9686 274.8005 15.50867039868300\n"
)


def make_fix(
    lat: float,
    lon: float,
    unix_seconds: int = 1700000000,
    altitude_km: float = 420.0,
    velocity_km_s: float = 7.66,
) -> GeodeticFix:
    return GeodeticFix(
        latitude_deg=lat,
        longitude_deg=lon,
        altitude_km=altitude_km,
        velocity_km_s=velocity_km_s,
        utc=datetime.fromtimestamp(unix_seconds, tz=timezone.utc),
        unix_seconds=unix_seconds,
    )


class FakeObserver:
    """Look angle service returning a fixed geometry and recording calls."""

    def __init__(self, range_rate_km_s: float = -1.5) -> None:
        self.range_rate_km_s = range_rate_km_s
        self.calls = []

    def __call__(self, station, fix) -> ObserverGeometry:
        self.calls.append((station, fix))
        return ObserverGeometry(
            range_km=1234.5,
            range_rate_km_s=self.range_rate_km_s,
            elevation_deg=12.25,
            azimuth_deg=271.5,
        )


@pytest.fixture
def approaching_observer() -> FakeObserver:
    return FakeObserver(range_rate_km_s=-1.5)


@pytest.fixture
def receding_observer() -> FakeObserver:
    return FakeObserver(range_rate_km_s=1.5)


@pytest.fixture
def tle_path(tmp_path: Path) -> Path:
    path = tmp_path / "iss.tle"
    path.write_text(ISS_TLE, encoding="utf-8")
    return path
