"""Delimited Canadian AM registry adapter.

Parses the Canadian CSV export into station records. The export has shipped
in two schemas (see ``amdx.contracts``); the header row selects which parsing
strategy runs:

  CURRENT: naive comma split with quotes stripped, MHz -> kHz and W -> kW
           conversion, auxiliary-transmitter suffixes (``-AX1``) removed, and
           the highest-power row kept per base call sign and frequency.
  LEGACY:  quoted rows read with ``csv.reader``, frequency already in kHz,
           exact (call sign, frequency) dedup with the first row winning.

Rows that fail to parse are skipped and counted; the adapter never raises to
its caller.
"""

from __future__ import annotations

import csv
import logging
import math
from collections import Counter
from collections.abc import Callable
from enum import Enum
from typing import Final

from amdx.contracts import (
    CANADIAN_CURRENT_CONTRACT,
    CANADIAN_LEGACY_CONTRACT,
)
from amdx.records import (
    AdapterResult,
    StationRecord,
    coerce_power,
    coordinates_in_range,
    format_frequency_khz,
    make_station_id,
    mhz_to_frequency,
    parse_float_prefix,
    round_half_up,
    watts_to_kilowatts,
)

logger = logging.getLogger(__name__)

SOURCE_LABEL: Final[str] = "canada_csv"

DEFAULT_OPERATOR: Final[str] = "Canadian Broadcaster"
DEFAULT_CITY: Final[str] = "Canada"
DEFAULT_PROVINCE: Final[str] = "CA"

_SECONDARY_HEADER: Final[str] = "Call sign"
_AUX_SUFFIX_DELIMITER: Final[str] = "-"


class CanadianSchema(Enum):
    """Export schema variant, selected by sniffing the header row."""

    CURRENT = "current"
    LEGACY = "legacy"


def _split_lines(text: str) -> list[str]:
    return text.strip().split("\n")


def sniff_schema(text: str) -> CanadianSchema:
    """Pick the schema whose contract matches the export's header row.

    Files whose header carries every legacy column parse as LEGACY;
    everything else parses as CURRENT, the authoritative schema.
    """
    header_line = _split_lines(text)[0]
    try:
        header = next(csv.reader([header_line]), [])
    except csv.Error:
        logger.warning("Unreadable Canadian header row, assuming current schema")
        return CanadianSchema.CURRENT
    if CANADIAN_LEGACY_CONTRACT.matches_header(header):
        return CanadianSchema.LEGACY
    return CanadianSchema.CURRENT


def base_call_sign(call_sign: str) -> str:
    """Strip an auxiliary-transmitter suffix such as ``-AX1``."""
    return call_sign.split(_AUX_SUFFIX_DELIMITER)[0]


def _numeric_rejection(lat: float, lon: float, frequency: float) -> str | None:
    """Return the rejection reason for unusable coordinates or frequency."""
    if not all(math.isfinite(v) for v in (lat, lon, frequency)):
        return "unparsable_number"
    # (0, 0) marks a row without coordinate data
    if lat == 0 and lon == 0:
        return "missing_coordinates"
    if not coordinates_in_range(lat, lon):
        return "coordinate_out_of_range"
    return None


# ---------------------------------------------------------------------------
# CURRENT schema strategy
# ---------------------------------------------------------------------------


def _split_current_row(line: str) -> list[str]:
    """Split on commas and strip quote characters and whitespace."""
    return [col.replace('"', "").strip() for col in line.split(",")]


def _parse_current_row(columns: list[str]) -> StationRecord | str:
    """Build a record from a current-schema row, or return a rejection reason."""
    contract = CANADIAN_CURRENT_CONTRACT
    frequency_mhz = parse_float_prefix(columns[contract.index_of("Frequency(MHz)")])
    power_w = parse_float_prefix(columns[contract.index_of("Power(W)")])
    call_sign = columns[contract.index_of("Call sign")]
    lat = parse_float_prefix(columns[contract.index_of("Lat")])
    lon = parse_float_prefix(columns[contract.index_of("Lon")])
    licensee = columns[contract.index_of("Licensee")] or DEFAULT_OPERATOR

    if lat is None or lon is None or power_w is None or frequency_mhz is None:
        return "unparsable_number"
    if not call_sign:
        return "missing_call_sign"
    reason = _numeric_rejection(lat, lon, frequency_mhz)
    if reason is not None:
        return reason

    frequency = mhz_to_frequency(frequency_mhz)
    base = base_call_sign(call_sign)
    return StationRecord(
        call_sign=base,
        frequency=frequency,
        power=coerce_power(watts_to_kilowatts(power_w)),
        city=DEFAULT_CITY,
        state=DEFAULT_PROVINCE,
        operator=licensee,
        lat=lat,
        lon=lon,
        id=make_station_id(base, frequency),
    )


def _parse_current(lines: list[str], rejections: Counter[str]) -> list[StationRecord]:
    """Parse current-schema rows, keeping the strongest transmitter per id."""
    best: dict[str, StationRecord] = {}
    min_columns = len(CANADIAN_CURRENT_CONTRACT.columns)
    call_sign_index = CANADIAN_CURRENT_CONTRACT.index_of("Call sign")

    for line in lines[1:]:
        if not line.strip():
            rejections["blank_row"] += 1
            continue

        columns = _split_current_row(line)
        is_header = (
            len(columns) > call_sign_index
            and columns[call_sign_index] == _SECONDARY_HEADER
        )
        if is_header:
            rejections["repeated_header"] += 1
            continue
        if len(columns) < min_columns:
            rejections["short_row"] += 1
            continue

        try:
            outcome = _parse_current_row(columns)
        except Exception as exc:
            logger.debug("Unparsable Canadian row %r: %s", line[:80], exc)
            rejections["unparsable"] += 1
            continue
        if isinstance(outcome, str):
            rejections[outcome] += 1
            continue

        existing = best.get(outcome.id)
        if existing is None or outcome.power > existing.power:
            best[outcome.id] = outcome
        else:
            rejections["weaker_duplicate"] += 1

    return list(best.values())


# ---------------------------------------------------------------------------
# LEGACY schema strategy
# ---------------------------------------------------------------------------


def _parse_legacy_row(row: list[str]) -> StationRecord | str:
    """Build a record from a legacy-schema row, or return a rejection reason."""
    contract = CANADIAN_LEGACY_CONTRACT
    columns = [col.strip() for col in row]
    call_sign = columns[contract.index_of("Call sign")]
    khz = parse_float_prefix(columns[contract.index_of("Frequency (kHz)")])
    power_w = parse_float_prefix(columns[contract.index_of("Power (W)")])
    lat = parse_float_prefix(columns[contract.index_of("Latitude")])
    lon = parse_float_prefix(columns[contract.index_of("Longitude")])

    if lat is None or lon is None or power_w is None or khz is None:
        return "unparsable_number"
    if not call_sign:
        return "missing_call_sign"
    reason = _numeric_rejection(lat, lon, khz)
    if reason is not None:
        return reason

    frequency = format_frequency_khz(round_half_up(khz))
    return StationRecord(
        call_sign=call_sign,
        frequency=frequency,
        power=coerce_power(watts_to_kilowatts(power_w)),
        city=columns[contract.index_of("City")] or DEFAULT_CITY,
        state=columns[contract.index_of("Province")] or DEFAULT_PROVINCE,
        operator=columns[contract.index_of("Licensee")] or DEFAULT_OPERATOR,
        lat=lat,
        lon=lon,
        id=make_station_id(call_sign, frequency),
    )


def _parse_legacy(lines: list[str], rejections: Counter[str]) -> list[StationRecord]:
    """Parse legacy-schema rows with exact (call sign, frequency) dedup."""
    records: list[StationRecord] = []
    seen: set[str] = set()
    min_columns = len(CANADIAN_LEGACY_CONTRACT.columns)

    for line in lines[1:]:
        try:
            row = next(csv.reader([line]), [])
            if not any(col.strip() for col in row):
                rejections["blank_row"] += 1
                continue
            if len(row) < min_columns:
                rejections["short_row"] += 1
                continue
            outcome = _parse_legacy_row(row)
        except Exception as exc:
            logger.debug("Unparsable legacy Canadian row %r: %s", line[:80], exc)
            rejections["unparsable"] += 1
            continue

        if isinstance(outcome, str):
            rejections[outcome] += 1
            continue
        if outcome.id in seen:
            rejections["duplicate_station"] += 1
            continue

        seen.add(outcome.id)
        records.append(outcome)

    return records


_STRATEGIES: Final[
    dict[CanadianSchema, Callable[[list[str], Counter[str]], list[StationRecord]]]
] = {
    CanadianSchema.CURRENT: _parse_current,
    CanadianSchema.LEGACY: _parse_legacy,
}


# ---------------------------------------------------------------------------
# Adapter entry points
# ---------------------------------------------------------------------------


def scan_canadian_registry(
    text: str,
    schema: CanadianSchema | None = None,
) -> AdapterResult:
    """Scan the Canadian CSV export and collect station records.

    Args:
        text: Complete contents of the Canadian CSV export.
        schema: Force a schema variant. Sniffed from the header when None.

    Returns:
        AdapterResult with one record per station identity.
    """
    if not text.strip():
        logger.warning("Canadian registry export is empty")
        return AdapterResult(source=SOURCE_LABEL, records=(), rows_scanned=0)

    selected = schema if schema is not None else sniff_schema(text)
    lines = _split_lines(text)
    rejections: Counter[str] = Counter()
    records = _STRATEGIES[selected](lines, rejections)

    logger.info(
        "Canadian stations parsed: %d (%s schema, %d rows)",
        len(records),
        selected.value,
        len(lines) - 1,
    )
    if rejections:
        logger.debug("Canadian rejections: %s", dict(rejections))

    return AdapterResult(
        source=SOURCE_LABEL,
        records=tuple(records),
        rows_scanned=len(lines) - 1,
        rejections=dict(rejections),
    )


def parse_canadian_stations(
    text: str,
    schema: CanadianSchema | None = None,
) -> list[StationRecord]:
    """Parse the Canadian CSV export into station records."""
    return list(scan_canadian_registry(text, schema).records)
