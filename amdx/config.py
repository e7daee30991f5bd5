"""Registry source configuration for the AM station normalizer.

Defines typed configuration for the two source registries: the US AM station
listing (fixed-width text) and the Canadian AM station extract (CSV).
Configuration drives the download and ingest modules with a deterministic
file layout under data/raw/.

Source URLs can be overridden with the AMDX_US_REGISTRY_URL and
AMDX_CANADA_REGISTRY_URL environment variables, e.g. to serve a mirrored
copy of an export. Both CLIs share the logging setup defined here.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, replace
from enum import Enum
from typing import Final


class Jurisdiction(Enum):
    """Licensing authority that publishes a registry."""

    US = "us"
    CANADA = "canada"


class FileFormat(Enum):
    """Layout of a registry export."""

    FIXED_WIDTH = "fixed_width"
    CSV = "csv"


@dataclass(frozen=True, slots=True)
class RegistrySource:
    """Immutable configuration for a single registry export.

    Attributes:
        name: Machine-readable source identifier (snake_case).
        jurisdiction: Publishing authority; also fixes merge order.
        url: Download URL for the export.
        url_env_var: Environment variable that overrides ``url``.
        file_format: Export layout, selecting the parsing adapter.
        filename: File name under data/raw/ for the downloaded export.
        timeout_seconds: HTTP timeout for the download.
    """

    name: str
    jurisdiction: Jurisdiction
    url: str
    url_env_var: str
    file_format: FileFormat
    filename: str
    timeout_seconds: int

    def resolved_url(self) -> str:
        """Return the environment override when set, else the default URL."""
        return os.environ.get(self.url_env_var, "") or self.url


# FCC AM Query fixed-width listing covering the full AM band
_FCC_AM_QUERY_URL: Final[str] = (
    "https://transition.fcc.gov/fcc-bin/amq?freq=530&fre2=1700&type=0&list=4&size=9"
)

# ISED Broadcasting Station Data extract, AM band
_ISED_AM_EXTRACT_URL: Final[str] = (
    "https://ised-isde.canada.ca/site/spectrum-management-telecommunications/"
    "sites/default/files/documents/am_stations.csv"
)

_DEFAULT_TIMEOUT: Final[int] = 120


SOURCES: Final[tuple[RegistrySource, ...]] = (
    RegistrySource(
        name="us_am_registry",
        jurisdiction=Jurisdiction.US,
        url=_FCC_AM_QUERY_URL,
        url_env_var="AMDX_US_REGISTRY_URL",
        file_format=FileFormat.FIXED_WIDTH,
        filename="amRadioSta.txt",
        timeout_seconds=_DEFAULT_TIMEOUT,
    ),
    RegistrySource(
        name="canada_am_registry",
        jurisdiction=Jurisdiction.CANADA,
        url=_ISED_AM_EXTRACT_URL,
        url_env_var="AMDX_CANADA_REGISTRY_URL",
        file_format=FileFormat.CSV,
        filename="canadianStations.csv",
        timeout_seconds=_DEFAULT_TIMEOUT,
    ),
)


def get_source_by_name(name: str) -> RegistrySource:
    """Look up a registry source by its machine-readable name.

    Args:
        name: Source name matching RegistrySource.name field.

    Returns:
        Matching RegistrySource instance.

    Raises:
        KeyError: If no source matches the given name.
    """
    for source in SOURCES:
        if source.name == name:
            return source
    valid_names = ", ".join(s.name for s in SOURCES)
    raise KeyError(f"Unknown source '{name}'. Valid names: {valid_names}")


def with_url(source: RegistrySource, url: str) -> RegistrySource:
    """Return a copy of ``source`` pinned to ``url``, ignoring any override."""
    return replace(source, url=url, url_env_var="")


_LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATE_FORMAT: Final[str] = "%Y-%m-%dT%H:%M:%S"


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr at INFO, or DEBUG when ``verbose``."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
        datefmt=_LOG_DATE_FORMAT,
        stream=sys.stderr,
    )
