"""Canonical station record shared by both registry adapters.

Defines the immutable ``StationRecord`` produced by the US fixed-width and
Canadian CSV adapters, the helpers that build its canonical frequency and
identity strings, and lenient numeric parsing that reads the leading number
from a field the way map clients have always read the exports
(``"50.0kW"`` reads as ``50.0``, ``"abc"`` reads as nothing).
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Final

# Three spaces between number and unit is the historical display form.
FREQUENCY_UNIT_SEPARATOR: Final[str] = "   "
FREQUENCY_UNIT: Final[str] = "kHz"

_FLOAT_PREFIX: Final[re.Pattern[str]] = re.compile(
    r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)
_INT_PREFIX: Final[re.Pattern[str]] = re.compile(r"^\s*([+-]?\d+)")

_MAX_LAT: Final[float] = 90.0
_MAX_LON: Final[float] = 180.0


@dataclass(frozen=True, slots=True)
class StationRecord:
    """One normalized AM broadcast station.

    Attributes:
        call_sign: Trimmed station identifier.
        frequency: Frequency text, e.g. ``"540   kHz"``.
        power: Transmitter power in kilowatts, never negative.
        city: Free-text city, or ``"Canada"`` when the source has none.
        state: State or province code.
        operator: Licensee or broadcaster name.
        lat: Latitude in signed decimal degrees.
        lon: Longitude in signed decimal degrees (negative west).
        id: ``"<call_sign>-<frequency>"`` identity key.
    """

    call_sign: str
    frequency: str
    power: float
    city: str
    state: str
    operator: str
    lat: float
    lon: float
    id: str

    def to_dict(self) -> dict[str, object]:
        """Return the external wire form consumed by map and search clients."""
        return {
            "callSign": self.call_sign,
            "frequency": self.frequency,
            "power": self.power,
            "city": self.city,
            "state": self.state,
            "operator": self.operator,
            "lat": self.lat,
            "lon": self.lon,
            "id": self.id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> StationRecord:
        """Rebuild a record from its wire form."""
        return cls(
            call_sign=str(data["callSign"]),
            frequency=str(data["frequency"]),
            power=float(str(data["power"])),
            city=str(data["city"]),
            state=str(data["state"]),
            operator=str(data["operator"]),
            lat=float(str(data["lat"])),
            lon=float(str(data["lon"])),
            id=str(data["id"]),
        )


WIRE_COLUMNS: Final[list[str]] = [
    "callSign",
    "frequency",
    "power",
    "city",
    "state",
    "operator",
    "lat",
    "lon",
    "id",
]


@dataclass(frozen=True, slots=True)
class AdapterResult:
    """Outcome of scanning one registry export.

    Attributes:
        source: Adapter label used in log lines and summaries.
        records: Accepted records in output order.
        rows_scanned: Number of input lines or rows examined.
        rejections: Count of skipped rows keyed by rejection reason.
    """

    source: str
    records: tuple[StationRecord, ...]
    rows_scanned: int
    rejections: dict[str, int] = field(default_factory=dict)

    @property
    def rejected_count(self) -> int:
        """Return the total number of rows skipped for any reason."""
        return sum(self.rejections.values())


def parse_float_prefix(text: str) -> float | None:
    """Parse the leading decimal number of a field.

    Args:
        text: Raw field text.

    Returns:
        The parsed number, or None when the field does not start with one.
    """
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return None
    return float(match.group(1))


def parse_int_prefix(text: str) -> int | None:
    """Parse the leading integer of a field, ignoring any fraction."""
    match = _INT_PREFIX.match(text)
    if match is None:
        return None
    return int(match.group(1))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded toward +inf."""
    return math.floor(value + 0.5)


def format_frequency_khz(khz: int) -> str:
    """Render an integer kHz value in canonical ``"<n>   kHz"`` form."""
    return f"{khz}{FREQUENCY_UNIT_SEPARATOR}{FREQUENCY_UNIT}"


def mhz_to_frequency(mhz: float) -> str:
    """Convert a MHz reading to the canonical kHz frequency string."""
    return format_frequency_khz(round_half_up(mhz * 1000))


def watts_to_kilowatts(watts: float) -> float:
    """Convert transmitter power from watts to kilowatts."""
    return watts / 1000


def make_station_id(call_sign: str, frequency: str) -> str:
    """Build the identity key used for deduplication and external lookup."""
    return f"{call_sign}-{frequency}"


def frequency_khz(frequency: str) -> int | None:
    """Return the integer kHz prefix of a stored frequency string."""
    return parse_int_prefix(frequency.strip())


def coerce_power(kilowatts: float | None) -> float:
    """Clamp a parsed power reading to a publishable value.

    Missing, NaN, infinite and negative readings all publish as 0 kW.
    """
    if kilowatts is None or not math.isfinite(kilowatts) or kilowatts < 0:
        return 0.0
    return kilowatts


def coordinates_in_range(lat: float, lon: float) -> bool:
    """Return True when both coordinates are finite and on the globe."""
    return -_MAX_LAT <= lat <= _MAX_LAT and -_MAX_LON <= lon <= _MAX_LON
