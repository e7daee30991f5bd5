"""Registry export acquisition for the AM station normalizer.

Fetches each configured registry export into data/raw/. A JSON fetch ledger,
keyed by source name, records the URL and SHA-256 digest of the export last
written for each source. A source is fetched again only when its URL has
changed or the file on disk no longer hashes to the recorded digest.

Usage:
    python -m amdx.download --all
    python -m amdx.download --source us_am_registry
    python -m amdx.download --source canada_am_registry --url https://mirror/am.csv
"""

from __future__ import annotations

import argparse
import hashlib
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

import httpx

from amdx.config import (
    SOURCES,
    RegistrySource,
    configure_logging,
    get_source_by_name,
    with_url,
)

logger: Final[logging.Logger] = logging.getLogger(__name__)

LEDGER_FILENAME: Final[str] = ".fetch-ledger.json"

_CHUNK_SIZE: Final[int] = 65_536
_RETRIES: Final[int] = 3


class DownloadError(Exception):
    """Raised when a registry host answers with an error status."""

    def __init__(self, url: str, status_code: int, body: str) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"HTTP {status_code} for {url}: {body[:200]}")


@dataclass(frozen=True, slots=True)
class DownloadResult:
    """Outcome of fetching one registry export.

    Attributes:
        source_name: Registry source the export belongs to.
        path: Export location under the raw directory.
        url: URL the export was (or would have been) fetched from.
        sha256: Digest of the export on disk.
        fetched: False when the ledger showed the file on disk was current.
        changed: True when the export differs from the previously recorded one.
    """

    source_name: str
    path: Path
    url: str
    sha256: str
    fetched: bool
    changed: bool


# ---------------------------------------------------------------------------
# Fetch ledger
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """The export last written for one source."""

    url: str
    sha256: str
    byte_size: int
    fetched_at: str


def file_sha256(path: Path) -> str:
    """Return the hex SHA-256 digest of a file's contents."""
    with path.open("rb") as fh:
        return hashlib.file_digest(fh, "sha256").hexdigest()


class FetchLedger:
    """Per-source record of fetched exports, persisted as a JSON object."""

    def __init__(
        self, path: Path, entries: dict[str, LedgerEntry] | None = None
    ) -> None:
        self.path = path
        self.entries: dict[str, LedgerEntry] = dict(entries or {})

    @classmethod
    def load(cls, path: Path) -> FetchLedger:
        """Read a ledger from disk. A missing or unreadable file starts empty."""
        if not path.exists():
            return cls(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            entries = {name: LedgerEntry(**fields) for name, fields in data.items()}
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning("Ignoring unreadable fetch ledger %s: %s", path, exc)
            return cls(path)
        return cls(path, entries)

    def save(self) -> None:
        """Write the ledger atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {name: asdict(e) for name, e in sorted(self.entries.items())}
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def is_current(self, source_name: str, url: str, path: Path) -> bool:
        """Return True when ``path`` still holds the export recorded for ``url``."""
        entry = self.entries.get(source_name)
        if entry is None or entry.url != url or not path.is_file():
            return False
        return file_sha256(path) == entry.sha256

    def record(self, source_name: str, entry: LedgerEntry) -> None:
        """Store the latest export for a source and persist the ledger."""
        self.entries[source_name] = entry
        self.save()


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


def _build_client(source: RegistrySource) -> httpx.Client:
    """Construct an httpx client configured for a registry host."""
    return httpx.Client(
        timeout=source.timeout_seconds,
        transport=httpx.HTTPTransport(retries=_RETRIES),
        follow_redirects=True,
    )


def _fetch_to(client: httpx.Client, url: str, dest: Path) -> tuple[str, int]:
    """Stream ``url`` into ``dest`` and return its digest and size.

    The body lands in a ``.part`` sibling first, so ``dest`` only ever holds
    a complete export.

    Raises:
        DownloadError: On HTTP 4xx/5xx responses.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    part = dest.with_name(dest.name + ".part")
    hasher = hashlib.sha256()
    size = 0
    with client.stream("GET", url) as response:
        if response.is_error:
            body = response.read().decode("utf-8", errors="replace")
            raise DownloadError(url, response.status_code, body)
        with part.open("wb") as fh:
            for chunk in response.iter_bytes(chunk_size=_CHUNK_SIZE):
                fh.write(chunk)
                hasher.update(chunk)
                size += len(chunk)
    os.replace(part, dest)
    return hasher.hexdigest(), size


def download_source(
    source: RegistrySource,
    raw_dir: Path,
    ledger: FetchLedger | None = None,
) -> DownloadResult:
    """Fetch one registry export to ``<raw_dir>/<filename>``.

    Args:
        source: Registry source configuration.
        raw_dir: Directory for raw exports (e.g., data/raw).
        ledger: Fetch ledger consulted before fetching and updated after.

    Returns:
        DownloadResult describing what is now on disk.

    Raises:
        DownloadError: On HTTP errors from the registry host.
    """
    url = source.resolved_url()
    dest = raw_dir / source.filename

    if ledger is not None and ledger.is_current(source.name, url, dest):
        logger.info("[%s] %s is current, not fetching", source.name, dest)
        return DownloadResult(
            source_name=source.name,
            path=dest,
            url=url,
            sha256=ledger.entries[source.name].sha256,
            fetched=False,
            changed=False,
        )

    previous = ledger.entries.get(source.name) if ledger is not None else None
    logger.info("[%s] Fetching %s -> %s", source.name, url, dest)
    with _build_client(source) as client:
        digest, size = _fetch_to(client, url, dest)

    if ledger is not None:
        ledger.record(
            source.name,
            LedgerEntry(
                url=url,
                sha256=digest,
                byte_size=size,
                fetched_at=datetime.now(tz=UTC).isoformat(),
            ),
        )

    return DownloadResult(
        source_name=source.name,
        path=dest,
        url=url,
        sha256=digest,
        fetched=True,
        changed=previous is None or previous.sha256 != digest,
    )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _build_arg_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""
    valid_names = ", ".join(s.name for s in SOURCES)
    parser = argparse.ArgumentParser(
        description="Download the US and Canadian AM registry exports.",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        dest="fetch_all",
        help="Fetch every configured registry export.",
    )
    parser.add_argument(
        "--source",
        type=str,
        default=None,
        help=f"Fetch one registry by name. Valid: {valid_names}",
    )
    parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="Override the download URL (only with --source).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("data/raw"),
        help="Directory for raw exports (default: data/raw).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug-level logging.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the download module.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code: 0 when every selected source is on disk, 1 otherwise.
    """
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.fetch_all and args.source is None:
        parser.error("Specify --all or --source <name>")
    if args.url is not None and args.source is None:
        parser.error("--url requires --source")

    if args.source is not None:
        source = get_source_by_name(args.source)
        selected = [with_url(source, args.url) if args.url else source]
    else:
        selected = list(SOURCES)

    ledger = FetchLedger.load(args.output_dir / LEDGER_FILENAME)
    failures = 0
    changed = 0
    for source in selected:
        try:
            result = download_source(source, args.output_dir, ledger)
        except (DownloadError, httpx.HTTPError) as exc:
            logger.error("[%s] Download failed: %s", source.name, exc)
            failures += 1
            continue
        changed += result.changed

    logger.info(
        "Acquisition complete: %d of %d sources changed, %d failed",
        changed,
        len(selected),
        failures,
    )
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
