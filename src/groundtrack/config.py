"""Run configuration for ground track generation.

Holds the settings the CLI collects and the parsers that turn its
time and interval arguments into values.
"""

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from .errors import ConfigurationError

DEFAULT_INTERVAL_S: float = 60.0
DEFAULT_STEPS: int = 100

INTERVAL_UNITS: Dict[str, float] = {
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}

_INTERVAL_RE = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*([smhd]?)\s*$")


class FeatureKind(enum.Enum):
    """Geometry written for each fix: a point, or a segment to the next."""

    POINT = "point"
    LINE = "line"


@dataclass
class TrackConfig:
    """Settings for one ground track output run.

    Attributes:
        output: Shapefile base path.
        feature_kind: Point or line features.
        start: Time of the first fix (timezone-aware, UTC).
        interval_s: Seconds between fixes.
        steps: Number of features to write.
        split: Split line segments at the antimeridian.
        prj: Write a WGS84 ``.prj`` file alongside the shapefile.
    """

    output: Path
    feature_kind: FeatureKind = FeatureKind.POINT
    start: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    interval_s: float = DEFAULT_INTERVAL_S
    steps: int = DEFAULT_STEPS
    split: bool = False
    prj: bool = False

    @property
    def fix_count(self) -> int:
        """Fixes needed for *steps* features; lines need one extra."""
        if self.feature_kind is FeatureKind.LINE:
            return self.steps + 1
        return self.steps

    def describe(self) -> str:
        return (
            f"{self.steps} {self.feature_kind.value} feature(s) from "
            f"{self.start.isoformat()} every {self.interval_s:g} s"
            + (", split at antimeridian" if self.split else "")
        )


def parse_time(text: str, epoch: Optional[datetime] = None) -> datetime:
    """Parse a start or end time argument.

    Accepts ``now``, ``epoch`` (the element set epoch, which must be
    given), whole Unix seconds, or an ISO 8601 timestamp. Timestamps
    without a timezone are taken as UTC.

    Raises:
        ConfigurationError: If *text* is not a recognised time.
    """
    value = text.strip()
    if value.lower() == "now":
        return datetime.now(timezone.utc)
    if value.lower() == "epoch":
        if epoch is None:
            raise ConfigurationError("no element set epoch available")
        return epoch.astimezone(timezone.utc)
    if re.fullmatch(r"-?\d+", value):
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ConfigurationError(f"invalid time: {text!r}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_interval(text: str) -> float:
    """Parse an interval such as ``30``, ``30s``, ``5m``, ``1.5h``, ``1d``.

    Returns:
        Interval in seconds.

    Raises:
        ConfigurationError: If *text* is malformed or not positive.
    """
    match = _INTERVAL_RE.match(text)
    if match is None:
        raise ConfigurationError(f"invalid interval: {text!r}")
    seconds = float(match.group(1)) * INTERVAL_UNITS[match.group(2) or "s"]
    if seconds <= 0:
        raise ConfigurationError(f"interval must be positive: {text!r}")
    return seconds


def steps_between(start: datetime, end: datetime, interval_s: float) -> int:
    """Number of fixes from *start* to *end* inclusive at *interval_s*.

    Raises:
        ConfigurationError: If *end* is before *start*.
    """
    span = (end - start).total_seconds()
    if span < 0:
        raise ConfigurationError("end time is before start time")
    return int(span // interval_s) + 1
