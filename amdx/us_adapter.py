"""Fixed-width US AM registry adapter.

The US export is a columnar text dump in which only the call sign and
frequency sit at reliable offsets. Every other field drifts from record to
record, so it is located by searching for literal anchor substrings and
reading fixed-size windows relative to each anchor:

    line[1:14]              call sign
    line[14:23]             frequency
    " US "                  country anchor
        us - 30 .. us - 3   city
        us - 3 .. us - 1    state
    " N  " (after US)       latitude anchor
        N + 4 .. W          latitude "deg min sec" triplet
    " W  " (after N)        longitude anchor
        W + 4 .. W + 20     longitude "deg min sec" triplet
        W + 20 .. W + 100   operator window
    "kW" (after US)         power anchor
        kW - 20 .. kW       power lookback; last token is the value

Only daytime-licensed entries are kept. Lines that fail any structural check
are skipped and counted by reason; the adapter never raises to its caller.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Final

from amdx.records import (
    AdapterResult,
    StationRecord,
    coerce_power,
    coordinates_in_range,
    make_station_id,
    parse_float_prefix,
    parse_int_prefix,
)

logger = logging.getLogger(__name__)

SOURCE_LABEL: Final[str] = "us_fixed_width"

_MIN_LINE_LENGTH: Final[int] = 250
_DAYTIME_MARKER: Final[str] = "Daytime"

_CALL_SIGN_COLUMNS: Final[slice] = slice(1, 14)
_FREQUENCY_COLUMNS: Final[slice] = slice(14, 23)

_COUNTRY_ANCHOR: Final[str] = " US "
_LAT_ANCHOR: Final[str] = " N  "
_LON_ANCHOR: Final[str] = " W  "
_POWER_ANCHOR: Final[str] = "kW"

# Offsets relative to the country anchor (lookback).
_CITY_LOOKBACK: Final[tuple[int, int]] = (30, 3)
_STATE_LOOKBACK: Final[tuple[int, int]] = (3, 1)

# Both hemisphere anchors are four characters wide.
_HEMISPHERE_ANCHOR_WIDTH: Final[int] = 4
_LON_TRIPLET_WIDTH: Final[int] = 16

_OPERATOR_OFFSET: Final[int] = 20
_OPERATOR_WINDOW: Final[int] = 80
_OPERATOR_FALLBACK_WIDTH: Final[int] = 60
_OPERATOR_STOP: Final[re.Pattern[str]] = re.compile(r"\s{2,}|\d{2,}")

_POWER_LOOKBACK: Final[int] = 20

_MAX_LAT_DEGREES: Final[int] = 90
_MAX_LON_DEGREES: Final[int] = 180


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LineRejected(Exception):
    """Raised inside the scanner when a line fails a structural check.

    Attributes:
        reason: Short machine-readable rejection label.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


# ---------------------------------------------------------------------------
# Anchor scanner
# ---------------------------------------------------------------------------


class AnchorScanner:
    """Locate anchors and read windows within a single registry line."""

    def __init__(self, line: str) -> None:
        self.line = line

    def columns(self, columns: slice) -> str:
        """Return a fixed column range, trimmed."""
        return self.line[columns].strip()

    def find(self, anchor: str, start: int = 0) -> int:
        """Return the index of ``anchor`` at or after ``start``.

        Raises:
            LineRejected: If the anchor does not occur.
        """
        index = self.line.find(anchor, start)
        if index == -1:
            raise LineRejected(f"missing_anchor:{anchor.strip()}")
        return index

    def window(self, start: int, end: int) -> str:
        """Return ``line[start:end]`` with both bounds clamped at zero."""
        return self.line[max(start, 0) : max(end, 0)]

    def lookback(self, anchor_index: int, span: tuple[int, int]) -> str:
        """Return the trimmed text ``span`` characters before an anchor."""
        far, near = span
        return self.window(anchor_index - far, anchor_index - near).strip()


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def _parse_triplet(text: str, axis: str) -> tuple[int, int, float]:
    """Parse a whitespace-separated ``deg min sec`` triplet.

    Raises:
        LineRejected: If fewer than three tokens are present or any token
            is not numeric.
    """
    parts = text.strip().split()
    if len(parts) < 3:
        raise LineRejected(f"short_{axis}_triplet")

    degrees = parse_int_prefix(parts[0])
    minutes = parse_int_prefix(parts[1])
    seconds = parse_float_prefix(parts[2])
    if degrees is None or minutes is None or seconds is None:
        raise LineRejected(f"malformed_{axis}_triplet")
    return degrees, minutes, seconds


def _to_decimal_degrees(degrees: int, minutes: int, seconds: float) -> float:
    return degrees + minutes / 60 + seconds / 3600


def _extract_operator(scanner: AnchorScanner, lon_index: int) -> str:
    """Read the operator name that follows the longitude window.

    Stops at the first run of two or more whitespace characters or two or
    more digits. Falls back to the first 60 characters of the window when
    the stop pattern is absent or matches at the very start.
    """
    start = lon_index + _OPERATOR_OFFSET
    text = scanner.window(start, start + _OPERATOR_WINDOW).strip()
    match = _OPERATOR_STOP.search(text)
    operator = text[: match.start()].strip() if match else ""
    return operator or text[:_OPERATOR_FALLBACK_WIDTH].strip()


def _extract_power(scanner: AnchorScanner, country_index: int) -> float:
    """Read the kilowatt value preceding the ``kW`` anchor, or 0.0."""
    kw_index = scanner.line.find(_POWER_ANCHOR, country_index)
    if kw_index <= 0:
        return 0.0
    tokens = scanner.window(kw_index - _POWER_LOOKBACK, kw_index).split()
    if not tokens:
        return 0.0
    return coerce_power(parse_float_prefix(tokens[-1]))


def _extract_record(scanner: AnchorScanner, call_sign: str) -> StationRecord:
    """Extract all anchored fields from a line that passed pre-screening.

    Raises:
        LineRejected: On any structural failure.
    """
    frequency = scanner.columns(_FREQUENCY_COLUMNS)

    country_index = scanner.find(_COUNTRY_ANCHOR)
    state = scanner.lookback(country_index, _STATE_LOOKBACK)
    city = scanner.lookback(country_index, _CITY_LOOKBACK)

    lat_index = scanner.find(_LAT_ANCHOR, country_index)
    lon_index = scanner.find(_LON_ANCHOR, lat_index)

    lat_text = scanner.window(lat_index + _HEMISPHERE_ANCHOR_WIDTH, lon_index)
    lon_start = lon_index + _HEMISPHERE_ANCHOR_WIDTH
    lon_text = scanner.window(lon_start, lon_start + _LON_TRIPLET_WIDTH)
    lat_deg, lat_min, lat_sec = _parse_triplet(lat_text, "latitude")
    lon_deg, lon_min, lon_sec = _parse_triplet(lon_text, "longitude")

    if not (0 <= lat_deg <= _MAX_LAT_DEGREES and 0 <= lon_deg <= _MAX_LON_DEGREES):
        raise LineRejected("coordinate_out_of_range")

    lat = _to_decimal_degrees(lat_deg, lat_min, lat_sec)
    # All supported input is in the Western hemisphere.
    lon = -_to_decimal_degrees(lon_deg, lon_min, lon_sec)
    if not coordinates_in_range(lat, lon):
        raise LineRejected("coordinate_out_of_range")

    return StationRecord(
        call_sign=call_sign,
        frequency=frequency,
        power=_extract_power(scanner, country_index),
        city=city,
        state=state,
        operator=_extract_operator(scanner, lon_index),
        lat=lat,
        lon=lon,
        id=make_station_id(call_sign, frequency),
    )


# ---------------------------------------------------------------------------
# Adapter entry points
# ---------------------------------------------------------------------------


def scan_us_registry(text: str) -> AdapterResult:
    """Scan the full US registry text and collect daytime station records.

    Deduplicates by call sign with the first occurrence winning. A call sign
    is claimed as soon as its line passes the length and daytime screens, so
    a later duplicate is dropped even when the first line fails extraction.

    Args:
        text: Complete contents of the US fixed-width export.

    Returns:
        AdapterResult with accepted records in input order.
    """
    lines = text.strip().split("\n")
    records: list[StationRecord] = []
    rejections: Counter[str] = Counter()
    seen: set[str] = set()

    for line in lines:
        if not line.strip() or len(line) < _MIN_LINE_LENGTH:
            rejections["short_line"] += 1
            continue
        if _DAYTIME_MARKER not in line:
            rejections["not_daytime"] += 1
            continue

        scanner = AnchorScanner(line)
        call_sign = scanner.columns(_CALL_SIGN_COLUMNS)
        if not call_sign:
            rejections["missing_call_sign"] += 1
            continue
        if call_sign in seen:
            rejections["duplicate_call_sign"] += 1
            continue
        seen.add(call_sign)

        try:
            records.append(_extract_record(scanner, call_sign))
        except LineRejected as exc:
            rejections[exc.reason] += 1
        except Exception as exc:
            logger.debug("Unparsable US line for %s: %s", call_sign, exc)
            rejections["unparsable"] += 1

    logger.info("Total lines: %d, stations parsed: %d", len(lines), len(records))
    if rejections:
        logger.debug("US rejections: %s", dict(rejections))

    return AdapterResult(
        source=SOURCE_LABEL,
        records=tuple(records),
        rows_scanned=len(lines),
        rejections=dict(rejections),
    )


def parse_us_stations(text: str) -> list[StationRecord]:
    """Parse the US registry text into station records."""
    return list(scan_us_registry(text).records)
