"""CelesTrak element set download.

Lets the generator start from a NORAD catalog number alone: the
satellite's current element set is queried from CelesTrak's GP endpoint
and stored as ``<catnr>.tle`` in the data directory.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import List

import requests

logger = logging.getLogger(__name__)

CELESTRAK_GP_URL: str = "https://celestrak.org/NORAD/elements/gp.php"
DEFAULT_DATA_DIR: Path = Path("data")
REQUEST_TIMEOUT: int = 15


def tle_filename(catalog_number: int) -> str:
    return f"{catalog_number}.tle"


def element_lines(text: str, catalog_number: int) -> List[str]:
    """Non-blank lines of a GP response that holds an element set.

    CelesTrak answers unknown catalog numbers with HTTP 200 and a plain
    message, so the body must contain a TLE line 1.
    """
    lines = [line.rstrip() for line in text.splitlines() if line.strip()]
    if not any(line.startswith("1 ") for line in lines):
        raise RuntimeError(f"no element set for catalog number {catalog_number}")
    return lines


def save_lines(lines: List[str], target: Path) -> None:
    """Write *lines* next to *target*, then rename over it."""
    fd, tmp_name = tempfile.mkstemp(suffix=".tle.tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.writelines(line + "\n" for line in lines)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        logger.debug("Removed partial download %s", tmp_name)
        raise


def fetch_tle_data(
    catalog_number: int,
    data_dir: Path = DEFAULT_DATA_DIR,
    url: str = CELESTRAK_GP_URL,
) -> Path:
    """Download one satellite's TLE from CelesTrak.

    Args:
        catalog_number: NORAD catalog number of the satellite.
        data_dir: Directory the TLE file is stored in.
        url: CelesTrak GP query endpoint.

    Returns:
        Path to the saved TLE file.

    Raises:
        RuntimeError: If the request fails or CelesTrak returns no
            element set for *catalog_number*.
    """
    logger.info("Requesting TLE for catalog number %d from %s", catalog_number, url)
    try:
        response = requests.get(
            url,
            params={"CATNR": catalog_number, "FORMAT": "tle"},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.critical("Failed to download TLE data: %s", exc)
        raise RuntimeError(f"TLE download failed: {exc}") from exc

    lines = element_lines(response.text, catalog_number)

    data_dir.mkdir(parents=True, exist_ok=True)
    target = data_dir / tle_filename(catalog_number)
    save_lines(lines, target)
    logger.info("Saved %d TLE lines to %s", len(lines), target)
    return target
