"""Ground track feature emission.

:class:`FeatureEmitter` turns fixes into shapefile features: a point per
fix, or a line segment per pair of consecutive fixes, split in two where
the segment crosses the antimeridian. Each geometry is written first and
its attributes are then written at the row index the geometry write
returned, which keeps the ``.shp`` and ``.dbf`` rows paired.

:class:`TrackWriter` is the session object callers use; it owns the
dataset, the attribute selection and the emitter.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from . import antimeridian
from .attributes import AttributeSelection, apply_attribute_names
from .config import FeatureKind
from .dataset import ShapefileDataset
from .errors import ConfigurationError
from .propagation import (
    GeodeticFix,
    ObserverGeometry,
    ObserverStation,
    look_angle,
)

logger = logging.getLogger(__name__)

LookAngle = Callable[[ObserverStation, GeodeticFix], ObserverGeometry]


class FeatureEmitter:
    """Write point or line features and their attribute rows.

    Attributes:
        dataset: Open shapefile the features go to.
        selection: Attributes written for each feature; its columns must
            already be initialized in ``dataset.table``.
        split: Whether line segments are split at the antimeridian.
        look_angle: Observer service, called with a station and a fix.
    """

    def __init__(
        self,
        dataset: ShapefileDataset,
        selection: AttributeSelection,
        split: bool = False,
        look_angle: LookAngle = look_angle,
    ) -> None:
        self.dataset = dataset
        self.selection = selection
        self.split = split
        self.look_angle = look_angle

    def emit(self, fix: GeodeticFix, next_fix: Optional[GeodeticFix] = None) -> int:
        if self.dataset.kind is FeatureKind.LINE:
            return self.emit_line(fix, next_fix)
        return self.emit_point(fix)

    def emit_point(self, fix: GeodeticFix) -> int:
        """Write a point at *fix* and return its row index."""
        store = self.dataset.geometry
        row = store.write(store.create_point(fix.longitude_deg, fix.latitude_deg))
        self._write_attributes(row, fix)
        logger.debug("Lat: %f, Lon: %f", fix.latitude_deg, fix.longitude_deg)
        return row

    def emit_line(
        self,
        fix: GeodeticFix,
        next_fix: Optional[GeodeticFix],
    ) -> int:
        """Write the segment from *fix* to *next_fix*; return its row index.

        The attributes describe *fix*, also when the segment is split.

        Raises:
            ConfigurationError: If *next_fix* is missing.
        """
        if next_fix is None:
            raise ConfigurationError(
                "line output requires two points; only one received"
            )
        lat0, lon0 = fix.latitude_deg, fix.longitude_deg
        lat1, lon1 = next_fix.latitude_deg, next_fix.longitude_deg

        crossing = None
        if self.split:
            crossing = antimeridian.find_crossing(
                (lat0, lon0),
                (lat1, lon1),
                lambda lat, lon: self._approaching(lat, lon, fix),
            )

        store = self.dataset.geometry
        if crossing is not None:
            parts = antimeridian.split_parts(lon0, lat0, lon1, lat1, crossing)
            logger.info(
                "Split segment at dateline at latitude: %f", crossing.latitude
            )
        else:
            parts = [[(lon0, lat0), (lon1, lat1)]]
        row = store.write(store.create_line(parts))

        self._write_attributes(row, fix)
        logger.debug("Lat: %f, Lon: %f", lat0, lon0)
        return row

    def _approaching(self, lat: float, lon: float, fix: GeodeticFix) -> bool:
        # Negative range rate: the satellite is closing on the point.
        station = ObserverStation(lat, lon, 0.0)
        return self.look_angle(station, fix).range_rate_km_s < 0

    def _write_attributes(self, row: int, fix: GeodeticFix) -> None:
        geometry = None
        if self.selection.needs_observer and self.selection.observer is not None:
            geometry = self.look_angle(self.selection.observer, fix)
        self.selection.write_row(self.dataset.table, row, fix, geometry)


class TrackWriter:
    """Output session writing one ground track shapefile.

    The shapefile is created on construction. Attributes and the observer
    may be configured until the first feature is emitted; at that point
    the selection is validated and the attribute columns are created.
    """

    def __init__(
        self,
        basepath: Union[str, Path],
        feature_kind: FeatureKind,
        selection: Optional[AttributeSelection] = None,
        split: bool = False,
        look_angle: LookAngle = look_angle,
    ) -> None:
        self.selection = selection if selection is not None else AttributeSelection()
        self.dataset = ShapefileDataset(basepath, feature_kind)
        self.emitter = FeatureEmitter(
            self.dataset, self.selection, split=split, look_angle=look_angle
        )

    @property
    def feature_kind(self) -> FeatureKind:
        return self.dataset.kind

    def configure_attributes(self, names: Iterable[str]) -> None:
        """Enable attributes by name; see :func:`apply_attribute_names`."""
        apply_attribute_names(self.selection, list(names))

    def configure_observer(self, station: ObserverStation) -> None:
        self.selection.set_observer(station)

    def _start(self) -> None:
        if self.selection.initialized:
            return
        self.selection.validate()
        self.selection.initialize_columns(self.dataset.table)

    def emit(self, fix: GeodeticFix, next_fix: Optional[GeodeticFix] = None) -> int:
        """Write one feature and return its row index."""
        self._start()
        return self.emitter.emit(fix, next_fix)

    def close(self) -> None:
        """Create columns if nothing was emitted, then close the files."""
        try:
            if not self.dataset.closed:
                self._start()
        finally:
            self.dataset.close()

    def __enter__(self) -> "TrackWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.dataset.close()
        else:
            self.close()


def write_track(writer: TrackWriter, fixes: Iterable[GeodeticFix]) -> int:
    """Emit every fix as a point, or every consecutive pair as a line.

    Returns:
        Number of features written.

    Raises:
        ConfigurationError: If line output receives fewer than two fixes.
    """
    count = 0
    if writer.feature_kind is FeatureKind.POINT:
        for fix in fixes:
            writer.emit(fix)
            count += 1
        return count

    previous: Optional[GeodeticFix] = None
    for fix in fixes:
        if previous is not None:
            writer.emit(previous, fix)
            count += 1
        previous = fix
    if count == 0:
        raise ConfigurationError(
            "line output requires two points; only one received"
        )
    return count
