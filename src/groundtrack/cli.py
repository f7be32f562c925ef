"""Command-line entry point: satellite ground tracks as shapefiles.

Propagates one satellite from a TLE file (or a CelesTrak download) over
a span of time and writes its ground track as point or line features,
with an attribute table of the measurements selected on the command
line.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .attributes import (
    ATTRIBUTE_NAMES,
    AttributeSelection,
    apply_attribute_names,
)
from .config import (
    DEFAULT_INTERVAL_S,
    DEFAULT_STEPS,
    FeatureKind,
    TrackConfig,
    parse_interval,
    parse_time,
    steps_between,
)
from .dataset import read_attribute_table, write_prj
from .errors import ConfigurationError, OutputError
from .ingest import DEFAULT_DATA_DIR, fetch_tle_data
from .propagation import (
    ObserverStation,
    OrbitSource,
    load_tle_objects,
    select_satellite,
)
from .writer import TrackWriter, write_track

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure root logger with appropriate level and format.

    Args:
        verbose: If True, set log level to DEBUG; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="groundtrack",
        description=(
            "Write a satellite ground track as a point or line "
            "shapefile with selected attributes."
        ),
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--tle",
        type=Path,
        help="File of two- or three-line element sets.",
    )
    source.add_argument(
        "--fetch",
        type=int,
        metavar="CATNR",
        help="Download the element set for this catalog number.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DEFAULT_DATA_DIR,
        help="Directory for downloaded TLE files (default: data/).",
    )
    parser.add_argument(
        "--satellite",
        help="Satellite name or catalog number (default: first in file).",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Shapefile base path (default: the catalog number).",
    )
    parser.add_argument(
        "--features",
        choices=[kind.value for kind in FeatureKind],
        default=FeatureKind.POINT.value,
        help="Feature type (default: point).",
    )
    parser.add_argument(
        "--start",
        default="now",
        help="Start time: now, epoch, unix seconds or ISO 8601 (default: now).",
    )
    span = parser.add_mutually_exclusive_group()
    span.add_argument(
        "--end",
        help="End time, in the same forms as --start.",
    )
    span.add_argument(
        "--steps",
        type=int,
        default=DEFAULT_STEPS,
        help=f"Number of features (default: {DEFAULT_STEPS}).",
    )
    parser.add_argument(
        "--interval",
        default=f"{DEFAULT_INTERVAL_S:g}s",
        help="Time between fixes, e.g. 30s, 5m, 1h (default: 60s).",
    )
    parser.add_argument(
        "--attributes",
        nargs="+",
        default=[],
        metavar="NAME",
        help=(
            "Attributes to write: all, standard, or any of "
            f"{', '.join(ATTRIBUTE_NAMES)}."
        ),
    )
    parser.add_argument(
        "--observer",
        nargs="+",
        type=float,
        metavar=("LAT", "LON"),
        help="Observer station latitude, longitude and optional altitude (km).",
    )
    parser.add_argument(
        "--split",
        action="store_true",
        help="Split line segments that cross the antimeridian.",
    )
    parser.add_argument(
        "--prj",
        action="store_true",
        help="Write a WGS84 .prj file.",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print a summary of the written attribute table.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )
    return parser


def parse_observer(values: Optional[List[float]]) -> Optional[ObserverStation]:
    if values is None:
        return None
    if len(values) not in (2, 3):
        raise ConfigurationError(
            "--observer takes latitude, longitude and optional altitude"
        )
    return ObserverStation(*values)


def build_config(args: argparse.Namespace, satellite) -> TrackConfig:
    """Turn parsed arguments into a run configuration for *satellite*."""
    epoch = satellite.epoch.utc_datetime()
    kind = FeatureKind(args.features)
    start = parse_time(args.start, epoch=epoch)
    interval_s = parse_interval(args.interval)

    if args.end is not None:
        count = steps_between(start, parse_time(args.end, epoch=epoch), interval_s)
        steps = count - 1 if kind is FeatureKind.LINE else count
    else:
        steps = args.steps
    if steps < 1:
        if kind is FeatureKind.LINE:
            raise ConfigurationError(
                "line output requires two points; only one received"
            )
        raise ConfigurationError("at least one step is required")

    output = args.output or Path(str(satellite.model.satnum))
    return TrackConfig(
        output=output,
        feature_kind=kind,
        start=start,
        interval_s=interval_s,
        steps=steps,
        split=args.split,
        prj=args.prj,
    )


def print_summary(basepath: Path) -> None:
    df: pd.DataFrame = read_attribute_table(basepath)
    print(f"\n=== {basepath}: {len(df)} features ===\n")
    print(df.head())
    numeric = df.select_dtypes("number")
    if not numeric.empty:
        print(numeric.describe())


def run(args: argparse.Namespace) -> Path:
    """Generate the shapefile described by *args*; return its base path."""
    tle_path = args.tle
    if tle_path is None:
        tle_path = fetch_tle_data(args.fetch, data_dir=args.data_dir)
    satellite = select_satellite(
        load_tle_objects(tle_path),
        args.satellite or (str(args.fetch) if args.fetch else None),
    )
    config = build_config(args, satellite)
    logger.info("Generating %s", config.describe())

    selection = AttributeSelection()
    apply_attribute_names(selection, args.attributes)
    station = parse_observer(args.observer)
    if station is not None:
        selection.set_observer(station)
    selection.validate()

    with TrackWriter(
        config.output, config.feature_kind, selection, split=config.split
    ) as writer:
        source = OrbitSource(
            satellite, config.start, config.interval_s, config.fix_count
        )
        count = write_track(writer, source)
    logger.info("Wrote %d features to %s", count, config.output)

    if config.prj:
        write_prj(config.output)
    return config.output


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ground track generator CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)

    try:
        output = run(args)
        if args.summary:
            print_summary(output)
    except (
        ConfigurationError,
        OutputError,
        FileNotFoundError,
        RuntimeError,
    ) as exc:
        logger.critical("Fatal error: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
