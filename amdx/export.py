"""Output writers for the merged station record set.

Writes the published artifact consumed by map clients as JSON (an array of
wire-form objects) and CSV (UTF-8, no BOM, wire column order), and exposes
the same records as a pandas DataFrame for proximity queries.
"""

from __future__ import annotations

import csv
import json
import logging
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from amdx.records import WIRE_COLUMNS, StationRecord

logger = logging.getLogger(__name__)


def write_stations_json(records: Sequence[StationRecord], path: Path) -> Path:
    """Write station records as a JSON array of wire-form objects.

    Args:
        records: Records in publication order.
        path: Output file path. Parent directories are created.

    Returns:
        Path of the written JSON file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump([r.to_dict() for r in records], f, indent=2, ensure_ascii=False)
    logger.info("Wrote %d stations to %s", len(records), path)
    return path


def load_stations_json(path: Path) -> list[StationRecord]:
    """Load station records previously written by ``write_stations_json``."""
    with path.open(encoding="utf-8") as f:
        data: list[dict[str, object]] = json.load(f)
    return [StationRecord.from_dict(item) for item in data]


def write_stations_csv(records: Sequence[StationRecord], path: Path) -> Path:
    """Write station records to CSV with a wire-form header row.

    Args:
        records: Records in publication order.
        path: Output file path. Parent directories are created.

    Returns:
        Path of the written CSV file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=WIRE_COLUMNS)
        writer.writeheader()
        writer.writerows(r.to_dict() for r in records)
    logger.info("Wrote %d stations to %s", len(records), path)
    return path


def records_to_frame(records: Sequence[StationRecord]) -> pd.DataFrame:
    """Return the records as a DataFrame with wire-form column names."""
    return pd.DataFrame([r.to_dict() for r in records], columns=WIRE_COLUMNS)
