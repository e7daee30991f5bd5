"""Pipeline orchestrator for the AM station normalizer.

Sequences download, encoding normalization, parsing, and export for both
registry exports. Each source processes independently: a failure in one
registry does not block the other, and whatever was parsed is still
published. The merged output lists US stations first, then Canadian.

Usage:
    python -m amdx.ingest --all
    python -m amdx.ingest --source canada_am_registry --skip-download
    python -m amdx.ingest --all --near 40.7128 -74.0060
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Final

import httpx

from amdx.canadian_adapter import scan_canadian_registry
from amdx.config import (
    SOURCES,
    FileFormat,
    Jurisdiction,
    RegistrySource,
    configure_logging,
    get_source_by_name,
)
from amdx.download import (
    LEDGER_FILENAME,
    DownloadError,
    FetchLedger,
    download_source,
)
from amdx.export import write_stations_csv, write_stations_json
from amdx.geo import closest_station, haversine_distance
from amdx.normalize import merge_stations
from amdx.records import AdapterResult, StationRecord
from amdx.search import classify_power
from amdx.transform import EncodingError, normalize_encoding
from amdx.us_adapter import scan_us_registry

logger: Final[logging.Logger] = logging.getLogger(__name__)

_RAW_DIR: Final[Path] = Path("data/raw")
_WORKING_DIR: Final[Path] = Path("data/working")
_OUTPUT_DIR: Final[Path] = Path("data/output")

_OUTPUT_JSON: Final[str] = "stations.json"
_OUTPUT_CSV: Final[str] = "stations.csv"

_ADAPTERS: Final[dict[FileFormat, Callable[[str], AdapterResult]]] = {
    FileFormat.FIXED_WIDTH: scan_us_registry,
    FileFormat.CSV: scan_canadian_registry,
}


# ---- Status enums ------------------------------------------------------------


class PipelineStage(Enum):
    """Stage a source reached before finishing or failing."""

    DOWNLOAD = "download"
    NORMALIZE = "normalize"
    PARSE = "parse"


class SourceStatus(Enum):
    """Final outcome for one registry source."""

    SUCCESS = "success"
    FAILED = "failed"


# ---- Result dataclasses -----------------------------------------------------


@dataclass(frozen=True, slots=True)
class SourceResult:
    """Outcome of processing a single registry through the pipeline.

    Attributes:
        source_name: Machine-readable source identifier.
        stage: Last pipeline stage attempted.
        stations_parsed: Number of station records accepted.
        rows_scanned: Number of lines or rows examined by the adapter.
        rows_rejected: Number of lines or rows skipped by the adapter.
        elapsed_seconds: Wall-clock time for the source.
        status: Final outcome status.
        error_message: Description of failure, if any.
    """

    source_name: str
    stage: PipelineStage
    stations_parsed: int
    rows_scanned: int
    rows_rejected: int
    elapsed_seconds: float
    status: SourceStatus
    error_message: str = ""


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Aggregate outcome of a full pipeline execution.

    Attributes:
        sources_processed: Per-source results.
        stations: Merged records, US first.
        output_paths: Files written by the export stage.
        total_elapsed_seconds: Wall-clock time for the full pipeline.
        success: True only if every source succeeded.
    """

    sources_processed: list[SourceResult] = field(default_factory=list)
    stations: list[StationRecord] = field(default_factory=list)
    output_paths: list[Path] = field(default_factory=list)
    total_elapsed_seconds: float = 0.0
    success: bool = True

    @property
    def total_stations(self) -> int:
        """Return the number of merged station records."""
        return len(self.stations)


# ---- Stage executors ---------------------------------------------------------


def _run_download(source: RegistrySource, raw_dir: Path) -> None:
    """Execute the download stage for a single registry."""
    ledger = FetchLedger.load(raw_dir / LEDGER_FILENAME)
    result = download_source(source, raw_dir, ledger)
    if result.fetched and not result.changed:
        logger.info("[%s] Export unchanged since the last fetch", source.name)


def _run_normalize(source: RegistrySource, raw_dir: Path, working_dir: Path) -> str:
    """Transcode the raw export to UTF-8 and return its text."""
    decoded = normalize_encoding(
        raw_dir / source.filename, working_dir / source.filename
    )
    return decoded.text


def _run_parse(source: RegistrySource, text: str) -> AdapterResult:
    """Run the source's adapter. Rejected rows never fail the source."""
    result = _ADAPTERS[source.file_format](text)
    if not result.records:
        logger.warning("[%s] Adapter accepted no stations", source.name)
    return result


def _run_export(stations: list[StationRecord], output_dir: Path) -> list[Path]:
    """Write the merged record set as JSON and CSV."""
    return [
        write_stations_json(stations, output_dir / _OUTPUT_JSON),
        write_stations_csv(stations, output_dir / _OUTPUT_CSV),
    ]


# ---- Pipeline orchestration --------------------------------------------------


def _failed(
    source: RegistrySource,
    stage: PipelineStage,
    started: float,
    exc: Exception,
) -> SourceResult:
    logger.error("FAILED [%s] %s: %s", source.name, stage.value, exc)
    return SourceResult(
        source_name=source.name,
        stage=stage,
        stations_parsed=0,
        rows_scanned=0,
        rows_rejected=0,
        elapsed_seconds=round(time.monotonic() - started, 3),
        status=SourceStatus.FAILED,
        error_message=str(exc),
    )


def _process_single_source(
    source: RegistrySource,
    skip_download: bool,
    raw_dir: Path,
    working_dir: Path,
) -> tuple[SourceResult, AdapterResult | None]:
    """Run download, normalize, and parse for one registry.

    Failures are captured in the returned SourceResult rather than raised.
    """
    started = time.monotonic()

    if not skip_download:
        logger.info("[%s] Stage: DOWNLOAD", source.name)
        try:
            _run_download(source, raw_dir)
        except (DownloadError, httpx.HTTPError) as exc:
            return _failed(source, PipelineStage.DOWNLOAD, started, exc), None

    logger.info("[%s] Stage: NORMALIZE", source.name)
    try:
        text = _run_normalize(source, raw_dir, working_dir)
    except (EncodingError, FileNotFoundError, UnicodeDecodeError) as exc:
        return _failed(source, PipelineStage.NORMALIZE, started, exc), None

    logger.info("[%s] Stage: PARSE", source.name)
    parsed = _run_parse(source, text)

    elapsed = time.monotonic() - started
    logger.info(
        "SUCCESS [%s] %d stations in %.1fs", source.name, len(parsed.records), elapsed
    )
    result = SourceResult(
        source_name=source.name,
        stage=PipelineStage.PARSE,
        stations_parsed=len(parsed.records),
        rows_scanned=parsed.rows_scanned,
        rows_rejected=parsed.rejected_count,
        elapsed_seconds=round(elapsed, 3),
        status=SourceStatus.SUCCESS,
    )
    return result, parsed


def run_pipeline(
    sources: list[str] | None = None,
    skip_download: bool = False,
    raw_dir: Path = _RAW_DIR,
    working_dir: Path = _WORKING_DIR,
    output_dir: Path = _OUTPUT_DIR,
) -> PipelineResult:
    """Execute the normalization pipeline for the selected registries.

    Args:
        sources: Source names to process. None processes all.
        skip_download: Re-process already-downloaded exports.
        raw_dir: Directory holding downloaded exports.
        working_dir: Directory for UTF-8 normalized copies.
        output_dir: Directory for the published JSON and CSV.

    Returns:
        PipelineResult with per-source outcomes and the merged records.
    """
    pipeline_start = time.monotonic()
    selected = [get_source_by_name(n) for n in sources] if sources else list(SOURCES)

    results: list[SourceResult] = []
    parsed: dict[Jurisdiction, tuple[StationRecord, ...]] = {}

    for source in selected:
        logger.info("Processing source: %s", source.name)
        result, adapter_result = _process_single_source(
            source, skip_download, raw_dir, working_dir
        )
        results.append(result)
        if adapter_result is not None:
            parsed[source.jurisdiction] = adapter_result.records

    stations = merge_stations(
        parsed.get(Jurisdiction.US, ()),
        parsed.get(Jurisdiction.CANADA, ()),
    )

    output_paths: list[Path] = []
    if stations:
        output_paths = _run_export(stations, output_dir)
    else:
        logger.warning("No stations parsed; skipping export")

    return PipelineResult(
        sources_processed=results,
        stations=stations,
        output_paths=output_paths,
        total_elapsed_seconds=round(time.monotonic() - pipeline_start, 3),
        success=all(r.status == SourceStatus.SUCCESS for r in results),
    )


# ---- CLI ---------------------------------------------------------------------


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the pipeline CLI."""
    parser = argparse.ArgumentParser(
        description="Normalize the US and Canadian AM station registries.",
    )
    parser.add_argument(
        "--all",
        dest="run_all",
        action="store_true",
        help="Process both registries.",
    )
    parser.add_argument(
        "--source",
        type=str,
        default=None,
        help="Process a single registry by name.",
    )
    parser.add_argument(
        "--skip-download",
        action="store_true",
        help="Skip download stage; re-process already-downloaded exports.",
    )
    parser.add_argument(
        "--raw-dir",
        type=Path,
        default=_RAW_DIR,
        help="Directory holding downloaded exports.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=_OUTPUT_DIR,
        help="Directory for stations.json and stations.csv.",
    )
    parser.add_argument(
        "--near",
        type=float,
        nargs=2,
        metavar=("LAT", "LON"),
        default=None,
        help="Report the station closest to this point.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug-level logging.",
    )
    return parser


def _print_summary(result: PipelineResult) -> None:
    """Print structured execution summary to stdout."""
    header = (
        f"{'Source':<22} {'Stage':<10} {'Status':<8} "
        f"{'Stations':<9} {'Rejected':<9} {'Time (s)'}"
    )
    print(f"\n{'=' * 80}")
    print("Pipeline Execution Summary")
    print(f"{'=' * 80}")
    print(header)
    print("-" * 80)

    for src in result.sources_processed:
        print(
            f"{src.source_name:<22} "
            f"{src.stage.value:<10} "
            f"{src.status.value:<8} "
            f"{src.stations_parsed:<9} "
            f"{src.rows_rejected:<9} "
            f"{src.elapsed_seconds:.1f}"
        )
        if src.error_message:
            print(f"  ! {src.error_message}")

    print("-" * 80)
    print(
        f"Total stations: {result.total_stations}  "
        f"Elapsed: {result.total_elapsed_seconds:.1f}s  "
        f"Result: {'SUCCESS' if result.success else 'FAILED'}"
    )
    print(f"{'=' * 80}\n")


def _print_closest(stations: list[StationRecord], lat: float, lon: float) -> None:
    """Print the station nearest to a point."""
    station = closest_station(stations, lat, lon)
    if station is None:
        print("No stations loaded.")
        return
    distance = haversine_distance(lat, lon, station.lat, station.lon)
    print(
        f"Closest station: {station.call_sign} {station.frequency} "
        f"({station.city}, {station.state}) {station.power} kW "
        f"[{classify_power(station.power).value}] {distance:.1f} miles"
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the normalization pipeline.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code: 0 if all sources succeed, 1 if any fail.
    """
    parser = _build_arg_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    configure_logging(args.verbose)

    if not args.run_all and args.source is None:
        parser.error("Specify --all or --source <name>")
        return 1

    source_list: list[str] | None = None
    if args.source is not None:
        source_list = [args.source]

    result = run_pipeline(
        sources=source_list,
        skip_download=args.skip_download,
        raw_dir=args.raw_dir,
        output_dir=args.output_dir,
    )

    _print_summary(result)
    if args.near is not None:
        _print_closest(result.stations, args.near[0], args.near[1])
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
