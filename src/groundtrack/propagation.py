"""Orbit propagation, geodetic fixes and observer look angles.

Reads Two-Line Element data via Skyfield, propagates the selected
satellite at a fixed interval with SGP4, and reduces each position to
the geodetic fix and the optional observer look angle that the shapefile
writer consumes.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterator, List, Optional

import numpy as np
from skyfield.api import EarthSatellite, load, wgs84

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ts = load.timescale()


@dataclass(frozen=True)
class ObserverStation:
    """Ground station that observer-relative attributes refer to."""

    latitude_deg: float
    longitude_deg: float
    altitude_km: float = 0.0


@dataclass(frozen=True)
class ObserverGeometry:
    """Look angle from an observer station to a satellite."""

    range_km: float
    range_rate_km_s: float
    elevation_deg: float
    azimuth_deg: float


@dataclass(frozen=True)
class GeodeticFix:
    """Satellite state at one instant, reduced to geographic terms.

    Attributes:
        latitude_deg: Geodetic latitude of the sub-satellite point.
        longitude_deg: Longitude of the sub-satellite point, -180 to 180.
        altitude_km: Height above the WGS84 ellipsoid.
        velocity_km_s: Magnitude of the inertial velocity.
        utc: Timezone-aware UTC timestamp, microsecond precision.
        unix_seconds: Whole seconds since the Unix epoch.
        satellite: Skyfield satellite the fix was computed from.
        time: Skyfield time of the fix.
    """

    latitude_deg: float
    longitude_deg: float
    altitude_km: float
    velocity_km_s: float
    utc: datetime
    unix_seconds: int
    satellite: Optional[EarthSatellite] = field(
        default=None, compare=False, repr=False
    )
    time: Any = field(default=None, compare=False, repr=False)


def load_tle_objects(tle_path: Path) -> List[EarthSatellite]:
    """Load satellite objects from a TLE file using Skyfield.

    Args:
        tle_path: File holding one or more two- or three-line element
            sets.

    Returns:
        List of EarthSatellite objects parsed from the file.

    Raises:
        FileNotFoundError: If the TLE file does not exist.
        ConfigurationError: If the file holds no element sets.
    """
    if not tle_path.exists():
        raise FileNotFoundError(f"TLE file not found: {tle_path}")

    satellites: List[EarthSatellite] = load.tle_file(str(tle_path))
    if not satellites:
        raise ConfigurationError(f"no element sets in {tle_path}")
    logger.info("Loaded %d satellites from TLE file", len(satellites))
    return satellites


def select_satellite(
    satellites: List[EarthSatellite],
    key: Optional[str] = None,
) -> EarthSatellite:
    """Pick one satellite by name or catalog number.

    Args:
        satellites: Candidates, as returned by :func:`load_tle_objects`.
        key: Satellite name or NORAD catalog number. The first satellite
            is returned when omitted.

    Raises:
        ConfigurationError: If no satellite matches *key*.
    """
    if key is None:
        satellite = satellites[0]
    else:
        wanted = key.strip()
        matches = [
            sat for sat in satellites
            if (sat.name or "").strip() == wanted
            or str(sat.model.satnum) == wanted
        ]
        if not matches:
            raise ConfigurationError(f"satellite not found: {key}")
        satellite = matches[0]
    logger.info(
        "Selected satellite %s (%d), epoch %s",
        satellite.name,
        satellite.model.satnum,
        satellite.epoch.utc_strftime(),
    )
    return satellite


def unix_seconds(utc: datetime) -> int:
    """Whole seconds since 1970, rounded down."""
    return math.floor(utc.timestamp())


def fix_at(satellite: EarthSatellite, t: Any) -> GeodeticFix:
    """Propagate *satellite* to Skyfield time *t* and reduce to a fix."""
    geocentric = satellite.at(t)
    subpoint = wgs84.subpoint_of(geocentric)
    utc: datetime = t.utc_datetime()
    return GeodeticFix(
        latitude_deg=float(subpoint.latitude.degrees),
        longitude_deg=float(subpoint.longitude.degrees),
        altitude_km=float(wgs84.height_of(geocentric).km),
        velocity_km_s=float(np.linalg.norm(geocentric.velocity.km_per_s)),
        utc=utc,
        unix_seconds=unix_seconds(utc),
        satellite=satellite,
        time=t,
    )


class OrbitSource:
    """Fixes of one satellite at a fixed interval.

    Attributes:
        satellite: Satellite being propagated.
        start: First fix time, timezone-aware.
        interval_s: Seconds between consecutive fixes.
        count: Number of fixes produced.
    """

    def __init__(
        self,
        satellite: EarthSatellite,
        start: datetime,
        interval_s: float,
        count: int,
    ) -> None:
        self.satellite = satellite
        self.start = start
        self.interval_s = interval_s
        self.count = count

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[GeodeticFix]:
        for step in range(self.count):
            when = self.start + timedelta(seconds=step * self.interval_s)
            yield fix_at(self.satellite, ts.from_datetime(when))


def look_angle(
    station: ObserverStation,
    fix: GeodeticFix,
) -> ObserverGeometry:
    """Range, range rate, elevation and azimuth from *station* to *fix*.

    Range rate is the relative velocity projected on the line of sight,
    so a negative value means the satellite is approaching.

    Raises:
        ValueError: If *fix* carries no Skyfield satellite and time.
    """
    if fix.satellite is None or fix.time is None:
        raise ValueError("look angle needs a propagated fix")
    topos = wgs84.latlon(
        station.latitude_deg,
        station.longitude_deg,
        elevation_m=station.altitude_km * 1000.0,
    )
    topocentric = (fix.satellite - topos).at(fix.time)
    alt, az, distance = topocentric.altaz()

    pos = topocentric.position.km
    vel = topocentric.velocity.km_per_s
    r_mag = float(np.linalg.norm(pos))
    range_rate = float(np.dot(pos, vel) / r_mag) if r_mag else 0.0

    return ObserverGeometry(
        range_km=float(distance.km),
        range_rate_km_s=range_rate,
        elevation_deg=float(alt.degrees),
        azimuth_deg=float(az.degrees),
    )
