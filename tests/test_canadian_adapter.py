"""Tests for the Canadian CSV registry adapter (amdx/canadian_adapter.py).

Covers schema sniffing, unit conversion, auxiliary-transmitter collapsing,
defaults for missing text fields, and the legacy quoted export.
"""

from __future__ import annotations

import pytest

from amdx.canadian_adapter import (
    DEFAULT_CITY,
    DEFAULT_OPERATOR,
    DEFAULT_PROVINCE,
    CanadianSchema,
    base_call_sign,
    parse_canadian_stations,
    scan_canadian_registry,
    sniff_schema,
)

_HEADER = '"Channel Type","Frequency(MHz)","Power(W)","Call sign","Lat","Lon","Licensee"'


def _export(*rows: str) -> str:
    return "\n".join([_HEADER, *rows]) + "\n"


class TestSniffSchema:
    """Header-driven schema selection."""

    def test_current_header(self, canadian_current_csv: str) -> None:
        assert sniff_schema(canadian_current_csv) == CanadianSchema.CURRENT

    def test_legacy_header(self, canadian_legacy_csv: str) -> None:
        assert sniff_schema(canadian_legacy_csv) == CanadianSchema.LEGACY

    def test_unknown_header_defaults_to_current(self) -> None:
        assert sniff_schema("a,b,c\n1,2,3\n") == CanadianSchema.CURRENT


class TestCurrentSchema:
    """Seven-column export with MHz frequencies and watt power."""

    def test_converts_units(self, canadian_current_csv: str) -> None:
        stations = parse_canadian_stations(canadian_current_csv)
        cbk = stations[0]

        assert cbk.call_sign == "CBK"
        assert cbk.frequency == "540   kHz"
        assert cbk.power == 50.0
        assert cbk.lat == 51.7
        assert cbk.lon == -105.45
        assert cbk.id == "CBK-540   kHz"

    def test_fills_location_defaults(self, canadian_current_csv: str) -> None:
        cbk = parse_canadian_stations(canadian_current_csv)[0]

        assert cbk.city == DEFAULT_CITY
        assert cbk.state == DEFAULT_PROVINCE
        assert cbk.operator == "Canadian Broadcasting Corporation"

    def test_blank_licensee_uses_default_operator(
        self, canadian_current_csv: str
    ) -> None:
        stations = parse_canadian_stations(canadian_current_csv)
        cfrb = next(s for s in stations if s.call_sign == "CFRB")

        assert cfrb.operator == DEFAULT_OPERATOR
        assert cfrb.frequency == "1010   kHz"

    def test_auxiliary_transmitter_collapsed(self, canadian_current_csv: str) -> None:
        result = scan_canadian_registry(canadian_current_csv)
        cbw = [s for s in result.records if s.call_sign == "CBW"]

        assert len(cbw) == 1
        assert cbw[0].power == 50.0
        assert result.rejections["weaker_duplicate"] == 1

    def test_stronger_later_row_replaces_earlier(self) -> None:
        text = _export(
            '"AM","0.99","10000","CBW-AX1","49.9","-97.2","Aux"',
            '"AM","0.99","50000","CBW","49.85","-97.5","Main"',
            '"AM","0.54","50000","CBK","51.7","-105.45","Other"',
        )
        stations = parse_canadian_stations(text)

        assert [s.call_sign for s in stations] == ["CBW", "CBK"]
        assert stations[0].operator == "Main"
        assert stations[0].power == 50.0

    def test_equal_power_keeps_first(self) -> None:
        text = _export(
            '"AM","0.99","50000","CBW","49.85","-97.5","First"',
            '"AM","0.99","50000","CBW-1","49.9","-97.2","Second"',
        )
        stations = parse_canadian_stations(text)

        assert len(stations) == 1
        assert stations[0].operator == "First"

    def test_frequency_rounds_to_nearest_khz(self) -> None:
        text = _export('"AM","1.4106","1000","CKXX","45.0","-75.0","X"')
        assert parse_canadian_stations(text)[0].frequency == "1411   kHz"

    def test_zero_coordinates_rejected(self) -> None:
        text = _export('"AM","0.54","50000","CBK","0","0","X"')
        result = scan_canadian_registry(text)

        assert result.records == ()
        assert result.rejections["missing_coordinates"] == 1

    def test_unparsable_number_rejected(self) -> None:
        text = _export('"AM","0.54","50000","CBK","n/a","-105.45","X"')
        result = scan_canadian_registry(text)

        assert result.records == ()
        assert result.rejections["unparsable_number"] == 1

    def test_negative_power_coerced_to_zero(self) -> None:
        text = _export(
            '"AM","0.54","50000","CBK","51.7","-105.45","X"',
            '"AM","0.99","-1","CBU","49.2","-123.1","Y"',
        )
        stations = parse_canadian_stations(text)

        assert [s.call_sign for s in stations] == ["CBK", "CBU"]
        assert stations[0].power == 50.0
        assert stations[1].power == 0.0

    def test_infinite_frequency_skips_only_that_row(self) -> None:
        text = _export(
            '"AM","1e999","50000","CBX","53.5","-113.5","X"',
            '"AM","0.54","50000","CBK","51.7","-105.45","X"',
        )
        result = scan_canadian_registry(text)

        assert [s.call_sign for s in result.records] == ["CBK"]
        assert result.rejections["unparsable_number"] == 1

    def test_infinite_power_coerced_to_zero(self) -> None:
        text = _export('"AM","0.54","1e999","CBK","51.7","-105.45","X"')
        stations = parse_canadian_stations(text)

        assert stations[0].power == 0.0

    def test_coordinates_off_the_globe_rejected(self) -> None:
        text = _export(
            '"AM","0.54","50000","CBK","51.7","-205.45","X"',
            '"AM","1.01","50000","CFRB","43.5","-79.6","Y"',
        )
        result = scan_canadian_registry(text)

        assert [s.call_sign for s in result.records] == ["CFRB"]
        assert result.rejections["coordinate_out_of_range"] == 1

    def test_row_that_raises_is_counted_not_propagated(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(mhz: float) -> str:
            raise OverflowError("cannot convert float infinity to integer")

        monkeypatch.setattr("amdx.canadian_adapter.mhz_to_frequency", explode)
        result = scan_canadian_registry(
            _export('"AM","0.54","50000","CBK","51.7","-105.45","X"')
        )

        assert result.records == ()
        assert result.rejections["unparsable"] == 1

    def test_short_rows_rejected(self) -> None:
        text = _export('"AM","0.54","50000"')
        result = scan_canadian_registry(text)

        assert result.records == ()
        assert result.rejections["short_row"] == 1

    def test_repeated_header_skipped(self) -> None:
        text = _export(_HEADER, '"AM","0.54","50000","CBK","51.7","-105.45","X"')
        result = scan_canadian_registry(text)

        assert len(result.records) == 1
        assert result.rejections["repeated_header"] == 1

    def test_blank_rows_skipped(self) -> None:
        text = _export(
            '"AM","0.54","50000","CBK","51.7","-105.45","X"',
            "",
            '"AM","1.01","50000","CFRB","43.5","-79.6","Y"',
        )
        result = scan_canadian_registry(text)

        assert len(result.records) == 2
        assert result.rejections["blank_row"] == 1


class TestLegacySchema:
    """Older quoted export with city, province and kHz frequency."""

    def test_quoted_comma_kept_in_operator(self, canadian_legacy_csv: str) -> None:
        cjbc = parse_canadian_stations(canadian_legacy_csv)[0]

        assert cjbc.operator == "Canadian Broadcasting Corporation, Radio-Canada"
        assert cjbc.city == "Toronto"
        assert cjbc.state == "ON"
        assert cjbc.frequency == "860   kHz"
        assert cjbc.power == 50.0

    def test_exact_duplicate_first_wins(self, canadian_legacy_csv: str) -> None:
        result = scan_canadian_registry(canadian_legacy_csv)
        cjbc = [s for s in result.records if s.call_sign == "CJBC"]

        assert len(cjbc) == 1
        assert cjbc[0].power == 50.0
        assert result.rejections["duplicate_station"] == 1

    def test_blank_location_uses_defaults(self, canadian_legacy_csv: str) -> None:
        ckac = parse_canadian_stations(canadian_legacy_csv)[-1]

        assert ckac.call_sign == "CKAC"
        assert ckac.city == DEFAULT_CITY
        assert ckac.state == DEFAULT_PROVINCE
        assert ckac.operator == DEFAULT_OPERATOR

    def test_forced_schema_overrides_sniffing(self, canadian_legacy_csv: str) -> None:
        result = scan_canadian_registry(
            canadian_legacy_csv, schema=CanadianSchema.LEGACY
        )
        assert len(result.records) == 2

    def test_infinite_frequency_and_negative_power(
        self, canadian_legacy_csv: str
    ) -> None:
        text = canadian_legacy_csv + (
            "CBX,1e999,Edmonton,AB,50000,53.5,-113.5,X\n"
            "CBU,690,Vancouver,BC,-1,49.2,-123.1,Y\n"
        )
        result = scan_canadian_registry(text)

        assert [s.call_sign for s in result.records] == ["CJBC", "CKAC", "CBU"]
        assert result.records[-1].power == 0.0
        assert result.rejections["unparsable_number"] == 1


class TestBaseCallSign:
    """Auxiliary suffix stripping."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("CBW-AX1", "CBW"), ("CBW", "CBW"), ("CJBC-1-FM", "CJBC")],
    )
    def test_strips_suffix(self, raw: str, expected: str) -> None:
        assert base_call_sign(raw) == expected


def test_empty_export_returns_empty_result() -> None:
    result = scan_canadian_registry("  \n")

    assert result.records == ()
    assert result.rows_scanned == 0


def test_rows_scanned_excludes_header(canadian_current_csv: str) -> None:
    assert scan_canadian_registry(canadian_current_csv).rows_scanned == 4
