"""Antimeridian crossing detection for ground track line segments.

A straight line between two points on either side of the 180th meridian
is drawn across the whole map by GIS tools. These functions find where
the great-circle arc between the segment endpoints meets the ±180°
meridian so the segment can be written as two pieces instead.

The construction follows http://geospatialmethods.org/spheres/ and
assumes a spherical Earth. The great-circle plane through both endpoints
meets the plane of the 0°/180° meridian along a line through the Earth's
centre, which pierces the sphere at two antipodal points. Only one of
them is on the 180° side, and the arithmetic alone cannot tell whether
the satellite is moving toward it or away from it; callers supply that
direction as an "approaching" test.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM: float = 6367.435

# Below this the great-circle plane coincides with the meridian plane.
DEGENERATE_TOLERANCE: float = 1e-12

LatLon = Tuple[float, float]
Vertex = Tuple[float, float]


@dataclass(frozen=True)
class Crossing:
    """Latitude (degrees) at which a segment crosses the antimeridian."""

    latitude: float


def straddles_antimeridian(lon0: float, lon1: float) -> bool:
    """Return True if the longitudes lie in different E/W hemispheres.

    A longitude of exactly zero belongs to neither hemisphere, so such a
    segment is never considered for splitting.
    """
    return (lon0 > 0 and lon1 < 0) or (lon0 < 0 and lon1 > 0)


def _unit_vector(lat_deg: float, lon_deg: float) -> np.ndarray:
    lat = math.radians(lat_deg)
    lon = math.radians(lon_deg)
    return np.array([
        math.cos(lon) * math.cos(lat),
        math.sin(lon) * math.cos(lat),
        math.sin(lat),
    ])


def crossing_candidate(start: LatLon, end: LatLon) -> Optional[float]:
    """Latitude where the great circle through two points meets 180°.

    Args:
        start: (latitude, longitude) of the first point, in degrees.
        end: (latitude, longitude) of the second point, in degrees.

    Returns:
        The latitude in degrees of the intersection lying on the 180°
        meridian, or None when the geometry is degenerate: the great
        circle is the 0°/180° meridian itself, the endpoints coincide or
        are antipodal, or the intersections fall on the poles.
    """
    a, _, c = np.cross(_unit_vector(*start), _unit_vector(*end))

    # Direction of the line shared by the great-circle plane
    # a*x + b*y + c*z = 0 and the meridian plane y = 0.
    direction = np.array([-c, 0.0, a])
    norm = float(np.linalg.norm(direction))
    if norm < DEGENERATE_TOLERANCE or abs(direction[0]) < DEGENERATE_TOLERANCE:
        return None

    point = EARTH_RADIUS_KM * direction / norm
    if point[0] > 0:
        point = -point
    return math.degrees(math.asin(point[2] / EARTH_RADIUS_KM))


def resolve_crossing(
    candidate_latitude: Optional[float],
    approaching: bool,
) -> Optional[Crossing]:
    """Accept the 180° candidate only if the satellite is heading for it.

    Args:
        candidate_latitude: Result of :func:`crossing_candidate`.
        approaching: True if the range from a ground point at the
            candidate to the satellite is decreasing.

    Returns:
        The crossing, or None if there is no candidate or the satellite
        is moving away from it.
    """
    if candidate_latitude is None or not approaching:
        return None
    return Crossing(latitude=candidate_latitude)


def find_crossing(
    start: LatLon,
    end: LatLon,
    is_approaching: Callable[[float, float], bool],
) -> Optional[Crossing]:
    """Find where the segment from *start* to *end* crosses ±180°.

    Args:
        start: (latitude, longitude) of the segment start, in degrees.
        end: (latitude, longitude) of the segment end, in degrees.
        is_approaching: Called with the candidate (latitude, longitude)
            on the 180° meridian; returns whether the satellite at the
            segment start is closing range on that point.

    Returns:
        The crossing, or None if the segment does not cross.
    """
    if not straddles_antimeridian(start[1], end[1]):
        return None
    candidate = crossing_candidate(start, end)
    if candidate is None:
        logger.debug(
            "Degenerate segment %s -> %s, not splitting", start, end
        )
        return None
    return resolve_crossing(candidate, is_approaching(candidate, 180.0))


def split_parts(
    lon0: float,
    lat0: float,
    lon1: float,
    lat1: float,
    crossing: Crossing,
) -> List[List[Vertex]]:
    """Vertices of the two pieces of a segment split at *crossing*.

    The first piece ends on the meridian with the sign of *lon0*; the
    second starts on the opposite side.
    """
    near = -180.0 if lon0 < 0 else 180.0
    return [
        [(lon0, lat0), (near, crossing.latitude)],
        [(-near, crossing.latitude), (lon1, lat1)],
    ]
