"""Tests for station lookup and power tiers (amdx/search.py)."""

from __future__ import annotations

import pytest

from amdx.records import StationRecord
from amdx.search import (
    PowerTier,
    SearchError,
    classify_power,
    find_by_call_sign,
    find_by_frequency,
    round_frequency,
)


class TestClassifyPower:
    """Tier boundaries are inclusive at 10 kW and 1 kW."""

    @pytest.mark.parametrize(
        ("power", "tier"),
        [
            (50.0, PowerTier.HIGH),
            (10.0, PowerTier.HIGH),
            (9.99, PowerTier.MEDIUM),
            (1.0, PowerTier.MEDIUM),
            (0.99, PowerTier.LOW),
            (0.0, PowerTier.LOW),
        ],
    )
    def test_tiers(self, power: float, tier: PowerTier) -> None:
        assert classify_power(power) == tier


class TestFindByCallSign:
    """Case-insensitive exact lookup."""

    def test_case_insensitive(self, sample_stations: list[StationRecord]) -> None:
        result = find_by_call_sign(sample_stations, "  kfi ")
        assert result is not None
        assert result.call_sign == "KFI"

    def test_no_partial_match(self, sample_stations: list[StationRecord]) -> None:
        assert find_by_call_sign(sample_stations, "WAB") is None

    def test_empty_query(self, sample_stations: list[StationRecord]) -> None:
        assert find_by_call_sign(sample_stations, "   ") is None


class TestFindByFrequency:
    """Channel-grid frequency lookup."""

    def test_exact_channel(self, sample_stations: list[StationRecord]) -> None:
        match = find_by_frequency(sample_stations, "770")

        assert match.channel_khz == 770
        assert match.call_signs == ["WABC"]
        assert not match.was_rounded

    def test_rounds_to_nearest_channel(
        self, sample_stations: list[StationRecord]
    ) -> None:
        match = find_by_frequency(sample_stations, "1013")

        assert match.channel_khz == 1010
        assert match.was_rounded
        assert match.call_signs == ["CFRB"]

    def test_no_stations_on_channel(
        self, sample_stations: list[StationRecord]
    ) -> None:
        match = find_by_frequency(sample_stations, "1500")
        assert match.stations == []

    def test_invalid_query_raises(self, sample_stations: list[StationRecord]) -> None:
        with pytest.raises(SearchError, match="valid frequency") as exc_info:
            find_by_frequency(sample_stations, "AM radio")
        assert exc_info.value.query == "AM radio"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(540, 540), (545, 550), (544.9, 540), (1013, 1010), (1699, 1700)],
)
def test_round_frequency(value: float, expected: int) -> None:
    assert round_frequency(value) == expected
