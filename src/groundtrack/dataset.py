"""Shapefile output: geometry store, attribute table and read-back.

A ground track dataset is an ESRI shapefile: geometry in ``.shp`` with
its ``.shx`` index, and a dBASE attribute table in ``.dbf`` whose row
*i* describes geometry *i*. Both halves are written with pyshp and are
opened and closed together by :class:`ShapefileDataset`.
"""

import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd
import shapefile
from shapely.errors import ShapelyError
from shapely.geometry import LineString, MultiLineString, Point

from .attributes import AttributeKind
from .config import FeatureKind
from .errors import OutputError

logger = logging.getLogger(__name__)

Geometry = Union[Point, LineString, MultiLineString]
Vertex = Tuple[float, float]

SHAPE_SUFFIXES: Tuple[str, ...] = (".shp", ".shx", ".dbf", ".prj")

SHAPE_TYPES: Dict[FeatureKind, int] = {
    FeatureKind.POINT: shapefile.POINT,
    FeatureKind.LINE: shapefile.POLYLINE,
}

MAX_FIELD_NAME: int = 10
MAX_FIELD_WIDTH: int = 254
ROW_ID_FIELD: str = "id"

WGS84_PRJ: str = (
    'GEOGCS["GCS_WGS_1984",DATUM["D_WGS_1984",'
    'SPHEROID["WGS_1984",6378137.0,298.257223563]],'
    'PRIMEM["Greenwich",0.0],'
    'UNIT["Degree",0.0174532925199433]]'
)


def base_path(path: Union[str, Path]) -> Path:
    """Strip a shapefile component suffix, if any, from *path*."""
    path = Path(path)
    if path.suffix.lower() in SHAPE_SUFFIXES:
        return path.with_suffix("")
    return path


def component(base: Path, suffix: str) -> str:
    return f"{base}{suffix}"


class GeometryStore:
    """Point or polyline geometry written to ``.shp``/``.shx``.

    Attributes:
        kind: Feature kind the store accepts.
        count: Number of geometries written so far.
    """

    def __init__(self, base: Path, kind: FeatureKind) -> None:
        self.kind = kind
        self.count = 0
        try:
            self._writer = shapefile.Writer(
                shp=component(base, ".shp"),
                shx=component(base, ".shx"),
                shapeType=SHAPE_TYPES[kind],
            )
        except OSError as exc:
            raise OutputError(f"cannot create shapefile: {base}") from exc

    def create_point(self, lon: float, lat: float) -> Point:
        try:
            return Point(lon, lat)
        except (ValueError, TypeError, ShapelyError) as exc:
            raise OutputError("cannot create shape") from exc

    def create_line(
        self,
        parts: Sequence[Sequence[Vertex]],
    ) -> Union[LineString, MultiLineString]:
        """Build a line from one or more parts of two or more vertices."""
        try:
            if len(parts) == 1:
                return LineString(parts[0])
            return MultiLineString([list(part) for part in parts])
        except (ValueError, TypeError, ShapelyError) as exc:
            raise OutputError(
                "cannot create split line segment"
                if len(parts) > 1 else "cannot create shape"
            ) from exc

    def write(self, geometry: Geometry) -> int:
        """Append *geometry* and return its row index."""
        if self.kind is FeatureKind.POINT:
            if not isinstance(geometry, Point):
                raise OutputError(
                    f"cannot write {geometry.geom_type} to a point shapefile"
                )
            self._writer.point(geometry.x, geometry.y)
        else:
            if isinstance(geometry, LineString):
                lines = [list(geometry.coords)]
            elif isinstance(geometry, MultiLineString):
                lines = [list(part.coords) for part in geometry.geoms]
            else:
                raise OutputError(
                    f"cannot write {geometry.geom_type} to a line shapefile"
                )
            self._writer.line(lines)
        row = self.count
        self.count += 1
        return row

    def close(self) -> None:
        self._writer.close()


class AttributeTable:
    """Row-indexed dBASE attribute table written to ``.dbf``.

    Cells are written by (row, column). A row is committed to the file
    once a later row is touched or the table is closed, so rows must be
    filled in increasing order; rows that receive no value are written
    blank.
    """

    def __init__(self, base: Path) -> None:
        self._columns: List[Tuple[str, AttributeKind]] = []
        self._pending: Optional[List[Any]] = None
        self._next_row = 0
        self._row_ids = False
        try:
            self._writer = shapefile.Writer(dbf=component(base, ".dbf"))
        except OSError as exc:
            raise OutputError(
                f"cannot create shapefile attribute table: {base}"
            ) from exc

    @property
    def column_names(self) -> List[str]:
        return [name for name, _ in self._columns]

    @property
    def row_count(self) -> int:
        return self._next_row

    def add_column(
        self,
        name: str,
        kind: AttributeKind,
        width: int,
        decimals: int = 0,
    ) -> int:
        """Define a new column and return its index.

        Raises:
            OutputError: If the name is empty, too long or already used,
                the width or decimals are out of range, or rows have
                already been committed.
        """
        if self._next_row > 0:
            raise OutputError(
                f"cannot add column {name!r} after rows were written"
            )
        if not name or len(name) > MAX_FIELD_NAME or not name.isascii():
            raise OutputError(f"invalid column name: {name!r}")
        if name.lower() in (n.lower() for n in self.column_names):
            raise OutputError(f"duplicate column name: {name!r}")
        if not 1 <= width <= MAX_FIELD_WIDTH:
            raise OutputError(f"invalid width {width} for column {name!r}")
        if kind is AttributeKind.TIME_STRING:
            decimals = 0
        if not 0 <= decimals < max(width - 1, 1):
            raise OutputError(
                f"invalid decimals {decimals} for column {name!r}"
            )

        field_type = "C" if kind is AttributeKind.TIME_STRING else "N"
        self._writer.field(name, field_type, size=width, decimal=decimals)
        self._columns.append((name, kind))
        return len(self._columns) - 1

    def write_float(self, row: int, column: int, value: float) -> None:
        self._set(row, column, float(value))

    def write_int(self, row: int, column: int, value: int) -> None:
        self._set(row, column, int(value))

    def write_string(self, row: int, column: int, value: str) -> None:
        self._set(row, column, str(value))

    def _set(self, row: int, column: int, value: Any) -> None:
        if not 0 <= column < len(self._columns):
            raise OutputError(f"no attribute column {column}")
        if row < self._next_row:
            raise OutputError(f"attribute row {row} is already committed")
        while self._next_row < row:
            self._commit()
        if self._pending is None:
            self._pending = [None] * len(self._columns)
        self._pending[column] = value

    def _ensure_fields(self) -> None:
        # dBASE files need at least one field.
        if not self._columns and not self._row_ids:
            self._writer.field(ROW_ID_FIELD, "N", size=10, decimal=0)
            self._row_ids = True

    def _commit(self) -> None:
        self._ensure_fields()
        if self._row_ids:
            values: List[Any] = [self._next_row]
        else:
            values = self._pending or [None] * len(self._columns)
        self._writer.record(*values)
        self._pending = None
        self._next_row += 1

    def close(self, row_count: Optional[int] = None) -> None:
        """Commit outstanding rows and close the table.

        Args:
            row_count: Number of rows the table must hold, normally the
                number of geometries written. Missing rows are written
                blank.

        Raises:
            OutputError: If attributes were written beyond *row_count*.
        """
        try:
            if row_count is not None:
                while self._next_row < row_count:
                    self._commit()
                if self._pending is not None:
                    raise OutputError(
                        f"attribute row {self._next_row} has no geometry"
                    )
            elif self._pending is not None:
                self._commit()
            self._ensure_fields()
        finally:
            self._writer.close()


class ShapefileDataset:
    """Geometry store and attribute table sharing one base path.

    Both halves are created together; if either cannot be created
    nothing is left open or on disk. :meth:`close` flushes and closes
    both.
    """

    def __init__(self, basepath: Union[str, Path], kind: FeatureKind) -> None:
        self.base = base_path(basepath)
        self.kind = kind
        self.closed = False
        with ExitStack() as stack:
            self.geometry = GeometryStore(self.base, kind)
            # callbacks unwind in reverse: close first, then remove
            for suffix in (".shx", ".shp"):
                stack.callback(
                    Path(component(self.base, suffix)).unlink, missing_ok=True
                )
            stack.callback(self.geometry.close)
            self.table = AttributeTable(self.base)
            stack.pop_all()
        logger.info("Opened %s shapefile %s", kind.value, self.base)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.table.close(row_count=self.geometry.count)
        finally:
            self.geometry.close()
        logger.info(
            "Closed %s with %d features", self.base, self.geometry.count
        )

    def __enter__(self) -> "ShapefileDataset":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def write_prj(basepath: Union[str, Path]) -> Path:
    """Write a WGS84 geographic ``.prj`` file next to the shapefile."""
    path = Path(component(base_path(basepath), ".prj"))
    try:
        path.write_text(WGS84_PRJ, encoding="ascii")
    except OSError as exc:
        raise OutputError(f"cannot write projection file: {path}") from exc
    logger.info("Wrote projection file %s", path)
    return path


def read_attribute_table(basepath: Union[str, Path]) -> pd.DataFrame:
    """Read the attribute table of a shapefile into a DataFrame.

    Args:
        basepath: Shapefile base path, with or without a suffix.

    Returns:
        DataFrame with one row per feature, indexed by row number.

    Raises:
        FileNotFoundError: If the shapefile does not exist.
    """
    base = base_path(basepath)
    if not Path(component(base, ".dbf")).exists():
        raise FileNotFoundError(f"attribute table not found: {base}.dbf")

    with shapefile.Reader(str(base)) as reader:
        names = [f[0] for f in reader.fields[1:]]
        rows = [list(record) for record in reader.iterRecords()]

    df: pd.DataFrame = pd.DataFrame(rows, columns=names)
    logger.debug("Read %d attribute rows from %s", len(df), base)
    return df
