"""Column contracts for the Canadian AM registry CSV exports.

Two export schemas are in circulation:

  CURRENT: the seven-column extract (channel type, frequency in MHz, power
           in watts, call sign, decimal coordinates, licensee). Rows carry
           no location text.
  LEGACY:  the older quoted export with city and province columns and the
           frequency already in kHz. Fields may contain embedded commas.

Column positions are fixed within each schema. The contracts are used to
sniff which schema a file follows from its header row.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True, slots=True)
class ColumnContract:
    """Schema expectation for a single column in a registry export.

    Attributes:
        name: Column header as it appears in the source CSV.
        expected_dtype: Logical data type, one of STRING or DECIMAL.
        nullable: Whether the column permits empty values.
    """

    name: str
    expected_dtype: str
    nullable: bool


@dataclass(frozen=True, slots=True)
class SchemaContract:
    """Full schema contract for one Canadian export variant.

    Attributes:
        schema_name: Machine-readable schema identifier.
        columns: Ordered tuple of expected column definitions.
    """

    schema_name: str
    columns: tuple[ColumnContract, ...]

    @property
    def column_names(self) -> tuple[str, ...]:
        """Return ordered tuple of expected column names."""
        return tuple(c.name for c in self.columns)

    @property
    def required_columns(self) -> frozenset[str]:
        """Return normalized names of every contracted column."""
        return frozenset(normalize_header(c.name) for c in self.columns)

    def index_of(self, name: str) -> int:
        """Return the fixed position of a column within the schema.

        Raises:
            KeyError: If the column is not part of the contract.
        """
        for index, column in enumerate(self.columns):
            if column.name == name:
                return index
        raise KeyError(f"Column '{name}' not in {self.schema_name} contract")

    def matches_header(self, header: list[str]) -> bool:
        """Return True when every contracted column appears in ``header``."""
        actual = {normalize_header(col) for col in header}
        return self.required_columns <= actual


def normalize_header(name: str) -> str:
    """Fold a header cell for comparison: no quotes, spaces or case."""
    return name.replace('"', "").replace(" ", "").strip().lower()


# ---------------------------------------------------------------------------
# Current seven-column export
# Frequency is MHz and power is watts; both are converted on parse.
# ---------------------------------------------------------------------------
CANADIAN_CURRENT_CONTRACT: Final[SchemaContract] = SchemaContract(
    schema_name="current",
    columns=(
        ColumnContract(name="Channel Type", expected_dtype="STRING", nullable=True),
        ColumnContract(name="Frequency(MHz)", expected_dtype="DECIMAL", nullable=False),
        ColumnContract(name="Power(W)", expected_dtype="DECIMAL", nullable=False),
        ColumnContract(name="Call sign", expected_dtype="STRING", nullable=False),
        ColumnContract(name="Lat", expected_dtype="DECIMAL", nullable=False),
        ColumnContract(name="Lon", expected_dtype="DECIMAL", nullable=False),
        ColumnContract(name="Licensee", expected_dtype="STRING", nullable=True),
    ),
)

# ---------------------------------------------------------------------------
# Legacy quoted export
# Frequency is already kHz. City and Province are blank for some rows.
# ---------------------------------------------------------------------------
CANADIAN_LEGACY_CONTRACT: Final[SchemaContract] = SchemaContract(
    schema_name="legacy",
    columns=(
        ColumnContract(name="Call sign", expected_dtype="STRING", nullable=False),
        ColumnContract(name="Frequency (kHz)", expected_dtype="DECIMAL", nullable=False),
        ColumnContract(name="City", expected_dtype="STRING", nullable=True),
        ColumnContract(name="Province", expected_dtype="STRING", nullable=True),
        ColumnContract(name="Power (W)", expected_dtype="DECIMAL", nullable=False),
        ColumnContract(name="Latitude", expected_dtype="DECIMAL", nullable=False),
        ColumnContract(name="Longitude", expected_dtype="DECIMAL", nullable=False),
        ColumnContract(name="Licensee", expected_dtype="STRING", nullable=True),
    ),
)

CONTRACTS: Final[dict[str, SchemaContract]] = {
    CANADIAN_CURRENT_CONTRACT.schema_name: CANADIAN_CURRENT_CONTRACT,
    CANADIAN_LEGACY_CONTRACT.schema_name: CANADIAN_LEGACY_CONTRACT,
}
