"""Attribute catalog and per-session attribute selection.

The catalog lists every per-fix measurement the generator can write to
the attribute table. A :class:`AttributeSelection` records which of them
are enabled for one output session, checks that observer-relative
attributes have a ground station to refer to, and maps the enabled
entries to attribute table columns.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .errors import ConfigurationError, OutputError
from .propagation import GeodeticFix, ObserverGeometry, ObserverStation

logger = logging.getLogger(__name__)

TIME_FORMAT: str = "%Y-%m-%d %H:%M:%S.%f UTC"


class AttributeKind(enum.Enum):
    """Value type of an attribute table column."""

    FLOAT = "float"
    INTEGER = "integer"
    TIME_STRING = "string"


Extractor = Callable[[GeodeticFix, Optional[ObserverGeometry]], Any]


@dataclass(frozen=True)
class AttributeDescriptor:
    """One entry of the attribute catalog.

    Attributes:
        name: Column title, also the name accepted on the command line.
        kind: Value type written to the table.
        width: Display width of the column.
        decimals: Decimal places for numeric columns.
        requires_observer: Whether the value is relative to a ground
            station.
        extractor: Derives the value from a fix and, for observer
            attributes, its look angle.
    """

    name: str
    kind: AttributeKind
    width: int
    decimals: int
    requires_observer: bool
    extractor: Extractor = field(compare=False, repr=False)

    def value(
        self,
        fix: GeodeticFix,
        geometry: Optional[ObserverGeometry] = None,
    ) -> Any:
        return self.extractor(fix, geometry)


def format_time(fix: GeodeticFix) -> str:
    """Render the fix timestamp as ``YYYY-MM-DD HH:MM:SS.ffffff UTC``."""
    return fix.utc.strftime(TIME_FORMAT)


# Widths and precisions are carried over from the dBASE layout that
# downstream readers already expect.
ATTRIBUTE_CATALOG: Tuple[AttributeDescriptor, ...] = (
    AttributeDescriptor(
        "altitude", AttributeKind.FLOAT, 20, 6, False,
        lambda fix, _: fix.altitude_km,
    ),
    AttributeDescriptor(
        "velocity", AttributeKind.FLOAT, 20, 6, False,
        lambda fix, _: fix.velocity_km_s,
    ),
    AttributeDescriptor(
        "time", AttributeKind.TIME_STRING, 31, 0, False,
        lambda fix, _: format_time(fix),
    ),
    AttributeDescriptor(
        "unixtime", AttributeKind.INTEGER, 20, 0, False,
        lambda fix, _: fix.unix_seconds,
    ),
    AttributeDescriptor(
        "latitude", AttributeKind.FLOAT, 20, 6, False,
        lambda fix, _: fix.latitude_deg,
    ),
    AttributeDescriptor(
        "longitude", AttributeKind.FLOAT, 20, 6, False,
        lambda fix, _: fix.longitude_deg,
    ),
    AttributeDescriptor(
        "range", AttributeKind.FLOAT, 30, 6, True,
        lambda _, geo: geo.range_km,
    ),
    AttributeDescriptor(
        "rate", AttributeKind.FLOAT, 20, 6, True,
        lambda _, geo: geo.range_rate_km_s,
    ),
    AttributeDescriptor(
        "elevation", AttributeKind.FLOAT, 20, 6, True,
        lambda _, geo: geo.elevation_deg,
    ),
    AttributeDescriptor(
        "azimuth", AttributeKind.FLOAT, 20, 6, True,
        lambda _, geo: geo.azimuth_deg,
    ),
)

ATTRIBUTE_NAMES: Tuple[str, ...] = tuple(d.name for d in ATTRIBUTE_CATALOG)


def observer_group(
    catalog: Sequence[AttributeDescriptor] = ATTRIBUTE_CATALOG,
) -> range:
    """Return the index range of the observer-relative descriptors.

    Raises:
        ValueError: If the observer descriptors are not one contiguous
            run in *catalog*.
    """
    indices = [i for i, d in enumerate(catalog) if d.requires_observer]
    if not indices:
        return range(0)
    group = range(indices[0], indices[-1] + 1)
    if len(group) != len(indices):
        raise ValueError(
            "observer attributes must be contiguous in the catalog"
        )
    return group


OBSERVER_GROUP: range = observer_group()


def lookup(name: str) -> Optional[int]:
    """Return the catalog index of *name*, or None if it is unknown."""
    try:
        return ATTRIBUTE_NAMES.index(name)
    except ValueError:
        return None


class AttributeSelection:
    """Enabled attributes and their column assignment for one session.

    Flags may change freely until :meth:`initialize_columns` has run;
    from then on the column map is fixed for the rest of the session.

    Attributes:
        observer: Ground station for observer-relative attributes, if
            one has been configured.
    """

    def __init__(self) -> None:
        self._enabled: List[bool] = [False] * len(ATTRIBUTE_CATALOG)
        self._columns: Dict[int, int] = {}
        self._initialized: bool = False
        self.observer: Optional[ObserverStation] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def enabled_names(self) -> List[str]:
        return [
            d.name
            for d, on in zip(ATTRIBUTE_CATALOG, self._enabled)
            if on
        ]

    @property
    def needs_observer(self) -> bool:
        """True if any observer-relative attribute is enabled."""
        return any(self._enabled[i] for i in OBSERVER_GROUP)

    @property
    def columns(self) -> Dict[str, int]:
        """Column index of each enabled attribute, by name."""
        return {
            ATTRIBUTE_CATALOG[i].name: column
            for i, column in self._columns.items()
        }

    def is_enabled(self, name: str) -> bool:
        index = lookup(name)
        return index is not None and self._enabled[index]

    def _check_mutable(self) -> None:
        if self._initialized:
            raise ConfigurationError(
                "attributes cannot be changed after output has begun"
            )

    def enable(self, name: str) -> bool:
        """Enable the attribute called *name*.

        Returns:
            False if *name* is not in the catalog, True otherwise.
        """
        self._check_mutable()
        index = lookup(name)
        if index is None:
            return False
        self._enabled[index] = True
        return True

    def enable_all(self, exclude_observer_group: bool = False) -> None:
        """Enable every attribute.

        Args:
            exclude_observer_group: If True, observer-relative attributes
                are disabled instead, whatever their previous state.
        """
        self._check_mutable()
        for index in range(len(ATTRIBUTE_CATALOG)):
            self._enabled[index] = not (
                exclude_observer_group and index in OBSERVER_GROUP
            )

    def set_observer(self, station: ObserverStation) -> None:
        self._check_mutable()
        self.observer = station
        logger.info(
            "Observer station at lat %.6f, lon %.6f, alt %.3f km",
            station.latitude_deg,
            station.longitude_deg,
            station.altitude_km,
        )

    def validate(self) -> None:
        """Check that observer attributes have a station to refer to.

        Raises:
            ConfigurationError: Naming every enabled observer attribute,
                if no observer station has been set.
        """
        if self.observer is not None:
            return
        missing = [
            ATTRIBUTE_CATALOG[i].name
            for i in OBSERVER_GROUP
            if self._enabled[i]
        ]
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} attribute(s) require an --observer"
            )

    def initialize_columns(self, table: Any) -> None:
        """Create one table column per enabled attribute, in catalog order.

        Args:
            table: Attribute table offering ``add_column``.

        Raises:
            OutputError: If the table rejects a column, or columns were
                already initialized.
        """
        if self._initialized:
            raise OutputError("attribute columns are already initialized")
        for index, descriptor in enumerate(ATTRIBUTE_CATALOG):
            if not self._enabled[index]:
                continue
            try:
                column = table.add_column(
                    descriptor.name,
                    descriptor.kind,
                    descriptor.width,
                    descriptor.decimals,
                )
            except OutputError as exc:
                raise OutputError(
                    f"cannot create attribute field: {descriptor.name}"
                ) from exc
            self._columns[index] = column
        self._initialized = True
        logger.debug("Attribute columns: %s", self.columns)

    def write_row(
        self,
        table: Any,
        row: int,
        fix: GeodeticFix,
        geometry: Optional[ObserverGeometry] = None,
    ) -> None:
        """Write the enabled attribute values of *fix* at *row*.

        Args:
            table: Attribute table the columns were created in.
            row: Row index returned by the geometry write.
            fix: Fix the attributes describe.
            geometry: Look angle from the observer station to *fix*;
                required when observer attributes are enabled.
        """
        if not self._initialized:
            raise OutputError("attribute columns are not initialized")
        for index, column in self._columns.items():
            descriptor = ATTRIBUTE_CATALOG[index]
            if descriptor.requires_observer and geometry is None:
                raise ConfigurationError(
                    f"{descriptor.name} attribute requires an --observer"
                )
            value = descriptor.value(fix, geometry)
            if descriptor.kind is AttributeKind.FLOAT:
                table.write_float(row, column, float(value))
            elif descriptor.kind is AttributeKind.INTEGER:
                table.write_int(row, column, int(value))
            else:
                table.write_string(row, column, value)


def apply_attribute_names(
    selection: AttributeSelection,
    names: Sequence[str],
) -> None:
    """Enable attributes by name on *selection*.

    ``all`` enables every attribute and ``standard`` every attribute
    that does not need an observer.

    Raises:
        ConfigurationError: Naming every unknown attribute.
    """
    unknown = []
    for name in names:
        if name == "all":
            selection.enable_all()
        elif name == "standard":
            selection.enable_all(exclude_observer_group=True)
        elif not selection.enable(name):
            unknown.append(name)
    if unknown:
        raise ConfigurationError(f"invalid attribute(s): {', '.join(unknown)}")
