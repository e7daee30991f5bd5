"""Station lookup and power-tier classification.

Implements the rules map clients use to highlight stations: exact,
case-insensitive call sign lookup; frequency lookup rounded to the 10 kHz
AM channel grid; and the three power tiers that drive marker color and
labeling.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from amdx.records import StationRecord, frequency_khz, parse_float_prefix, round_half_up

logger = logging.getLogger(__name__)

_HIGH_POWER_KW: Final[float] = 10.0
_MEDIUM_POWER_KW: Final[float] = 1.0
_CHANNEL_STEP_KHZ: Final[int] = 10


class SearchError(ValueError):
    """Raised when a search query cannot be interpreted.

    Attributes:
        query: The raw query text.
    """

    def __init__(self, query: str, message: str) -> None:
        self.query = query
        super().__init__(message)


class PowerTier(Enum):
    """Display tier derived from transmitter power in kW."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def classify_power(power: float) -> PowerTier:
    """Map kilowatts to a tier: >= 10 high, >= 1 medium, otherwise low."""
    if power >= _HIGH_POWER_KW:
        return PowerTier.HIGH
    if power >= _MEDIUM_POWER_KW:
        return PowerTier.MEDIUM
    return PowerTier.LOW


def find_by_call_sign(
    stations: Sequence[StationRecord],
    query: str,
) -> StationRecord | None:
    """Return the first station whose call sign equals ``query``.

    Comparison ignores case and surrounding whitespace. An empty query
    matches nothing.
    """
    needle = query.strip().lower()
    if not needle:
        return None
    for station in stations:
        if station.call_sign and station.call_sign.lower() == needle:
            return station
    return None


def round_frequency(value: float) -> int:
    """Round a kHz value to the nearest 10 kHz channel."""
    return round_half_up(value / _CHANNEL_STEP_KHZ) * _CHANNEL_STEP_KHZ


@dataclass(frozen=True, slots=True)
class FrequencyMatch:
    """Outcome of a frequency search.

    Attributes:
        requested: Number parsed from the query.
        channel_khz: Requested value rounded to the channel grid.
        stations: Matching stations in input order.
    """

    requested: float
    channel_khz: int
    stations: list[StationRecord] = field(default_factory=list)

    @property
    def was_rounded(self) -> bool:
        """Return True when the query was not already on a channel."""
        return self.requested != self.channel_khz

    @property
    def call_signs(self) -> list[str]:
        """Return the call signs to highlight."""
        return [s.call_sign for s in self.stations]


def find_by_frequency(
    stations: Sequence[StationRecord],
    query: str,
) -> FrequencyMatch:
    """Find every station broadcasting on the channel nearest ``query``.

    Args:
        stations: Records to search.
        query: Frequency text in kHz, e.g. ``"540"`` or ``"1013"``.

    Returns:
        FrequencyMatch whose ``stations`` may be empty.

    Raises:
        SearchError: If the query does not start with a number.
    """
    requested = parse_float_prefix(query.strip())
    if requested is None:
        raise SearchError(query, "Please enter a valid frequency number")

    channel = round_frequency(requested)
    if requested != channel:
        logger.debug("Rounded %s kHz to %d kHz", requested, channel)

    matches = [
        s for s in stations if s.frequency and frequency_khz(s.frequency) == channel
    ]
    return FrequencyMatch(requested=requested, channel_khz=channel, stations=matches)
