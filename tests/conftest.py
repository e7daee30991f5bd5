"""Shared pytest fixtures for adapter, pipeline, and encoding tests.

Generates registry fixtures programmatically to avoid committing export
snapshots. US fixtures are assembled column by column to match the
fixed-width listing; Canadian fixtures are literal CSV text; encoding
fixtures use explicit byte encoding.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import pytest

from amdx.records import StationRecord

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# US fixed-width listing
# ---------------------------------------------------------------------------

_US_LINE_WIDTH: int = 259


def build_us_line(
    call_sign: str = "WABC",
    frequency: str = "770   kHz",
    city: str = "NEW YORK",
    state: str = "NY",
    lat: str = "40 52 50.0",
    lon: str = "74 04 10.0",
    operator: str = "ABC Radio Inc",
    power: str = "50.0",
    license_class: str = "Daytime",
    country: str = "US",
) -> str:
    """Assemble one listing line with fields at the positions the scanner expects.

    The line starts and ends with a pipe so that stripping the full export
    never shifts the fixed call sign and frequency columns.
    """
    line = (
        "|"
        + call_sign.ljust(13)
        + frequency.ljust(9)
        + f" {license_class}  "
        + city.ljust(27)
        + state.ljust(2)
        + " "
        + f" {country} "
        + "  "
        + " N  "
        + lat
        + " "
        + " W  "
        + lon.ljust(16)
        + operator
        + "  "
        + power
        + " kW"
    )
    return line.ljust(_US_LINE_WIDTH) + "|"


@pytest.fixture()
def us_line() -> Callable[..., str]:
    """Return the US listing line builder."""
    return build_us_line


@pytest.fixture()
def us_registry_text() -> str:
    """A small US listing: two daytime stations and one nighttime entry."""
    lines = [
        "AM Query Results",
        build_us_line(),
        build_us_line(
            call_sign="KFI",
            frequency="640   kHz",
            city="LOS ANGELES",
            state="CA",
            lat="33 52 46.0",
            lon="118 00 28.0",
            operator="iHM Licenses LLC",
            power="50.0",
        ),
        build_us_line(call_sign="WXYZ", license_class="Nighttime"),
    ]
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Canadian CSV exports
# ---------------------------------------------------------------------------

CANADIAN_CURRENT_CSV: str = (
    '"Channel Type","Frequency(MHz)","Power(W)","Call sign","Lat","Lon","Licensee"\n'
    '"AM","0.54","50000","CBK","51.7","-105.45","Canadian Broadcasting Corporation"\n'
    '"AM","0.99","50000","CBW","49.85","-97.5","Canadian Broadcasting Corporation"\n'
    '"AM","0.99","10000","CBW-AX1","49.9","-97.2","CBC Auxiliary"\n'
    '"AM","1.01","50000","CFRB","43.5","-79.6",""\n'
)

CANADIAN_LEGACY_CSV: str = (
    "Call sign,Frequency (kHz),City,Province,Power (W),Latitude,Longitude,Licensee\n"
    'CJBC,860,Toronto,ON,50000,43.58,-79.6,"Canadian Broadcasting Corporation, '
    'Radio-Canada"\n'
    "CJBC,860,Toronto,ON,5000,43.58,-79.6,Duplicate Licensee\n"
    "CKAC,730,,,50000,45.4,-73.6,\n"
)


@pytest.fixture()
def canadian_current_csv() -> str:
    """Current-schema Canadian export with an auxiliary transmitter row."""
    return CANADIAN_CURRENT_CSV


@pytest.fixture()
def canadian_legacy_csv() -> str:
    """Legacy-schema Canadian export with quoted commas and blank cities."""
    return CANADIAN_LEGACY_CSV


# ---------------------------------------------------------------------------
# Station records
# ---------------------------------------------------------------------------


def make_station(
    call_sign: str = "WABC",
    frequency: str = "770   kHz",
    power: float = 50.0,
    city: str = "NEW YORK",
    state: str = "NY",
    operator: str = "ABC Radio Inc",
    lat: float = 40.88,
    lon: float = -74.07,
) -> StationRecord:
    """Build a StationRecord with a consistent id."""
    return StationRecord(
        call_sign=call_sign,
        frequency=frequency,
        power=power,
        city=city,
        state=state,
        operator=operator,
        lat=lat,
        lon=lon,
        id=f"{call_sign}-{frequency}",
    )


@pytest.fixture()
def sample_stations() -> list[StationRecord]:
    """A mixed US and Canadian record set spanning all power tiers."""
    return [
        make_station(),
        make_station(
            call_sign="KFI",
            frequency="640   kHz",
            city="LOS ANGELES",
            state="CA",
            operator="iHM Licenses LLC",
            lat=33.88,
            lon=-118.01,
        ),
        make_station(
            call_sign="WSCR",
            frequency="670   kHz",
            power=5.0,
            city="CHICAGO",
            state="IL",
            operator="Audacy License LLC",
            lat=41.93,
            lon=-88.0,
        ),
        make_station(
            call_sign="CFRB",
            frequency="1010   kHz",
            power=0.5,
            city="Canada",
            state="CA",
            operator="Canadian Broadcaster",
            lat=43.5,
            lon=-79.6,
        ),
    ]


# ---------------------------------------------------------------------------
# Encoding fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def windows_1252_csv(tmp_path: Path) -> Path:
    """Create a Canadian export encoded in Windows-1252 with French accents."""
    csv_path = tmp_path / "windows_1252.csv"
    content = (
        '"Channel Type","Frequency(MHz)","Power(W)","Call sign","Lat","Lon","Licensee"\n'
        '"AM","0.69","50000","CBF","45.5","-73.6","Société Radio-Canada"\n'
        '"AM","0.80","10000","CJAD","45.4","-73.7","Bell Média Radio Québec"\n'
    )
    csv_path.write_bytes(content.encode("windows-1252"))
    return csv_path


@pytest.fixture()
def utf8_bom_csv(tmp_path: Path) -> Path:
    """Create a UTF-8 export with a BOM prefix."""
    csv_path = tmp_path / "utf8_bom.csv"
    bom = b"\xef\xbb\xbf"
    csv_path.write_bytes(bom + CANADIAN_CURRENT_CSV.encode("utf-8"))
    return csv_path


@pytest.fixture()
def raw_registry_dir(tmp_path: Path, us_registry_text: str) -> Path:
    """Create data/raw with both registry exports as the downloader names them."""
    raw_dir = tmp_path / "raw"
    raw_dir.mkdir()
    (raw_dir / "amRadioSta.txt").write_text(us_registry_text, encoding="utf-8")
    (raw_dir / "canadianStations.csv").write_text(
        CANADIAN_CURRENT_CSV, encoding="utf-8"
    )
    return raw_dir


@pytest.fixture()
def station() -> Callable[..., StationRecord]:
    """Return the StationRecord builder."""
    return make_station
