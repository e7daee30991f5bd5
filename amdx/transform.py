"""Decoding of raw registry exports.

The Canadian export is not reliably UTF-8 (licensee names carry French
accents in whatever code page the extract was produced with) and either
file may arrive with a byte-order mark. A leading BOM settles the codec
outright; otherwise charset-normalizer picks one, and a pick below the
confidence floor is refused rather than guessed at. Decoded text is written
to the working directory as BOM-free UTF-8.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)

_MIN_CONFIDENCE: Final[float] = 0.7

_BOM_CODECS: Final[tuple[tuple[bytes, str], ...]] = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


class EncodingError(Exception):
    """Raised when no codec can be trusted for a registry export."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        super().__init__(f"Cannot decode '{path}': {detail}")


@dataclass(frozen=True, slots=True)
class DecodedExport:
    """A registry export decoded to text.

    Attributes:
        source_path: Raw export that was decoded.
        encoding: Codec used for decoding.
        confidence: 1.0 for a BOM-selected codec, else the detector's score.
        had_bom: Whether the raw bytes began with a byte-order mark.
        text: Decoded contents with any BOM removed.
    """

    source_path: Path
    encoding: str
    confidence: float
    had_bom: bool
    text: str


def _bom_codec(raw: bytes) -> str | None:
    for bom, codec in _BOM_CODECS:
        if raw.startswith(bom):
            return codec
    return None


def decode_export(path: Path) -> DecodedExport:
    """Decode a raw export, choosing the codec from its BOM or its bytes.

    Raises:
        EncodingError: If detection finds no codec above the confidence floor.
        FileNotFoundError: If ``path`` does not exist.
    """
    raw = path.read_bytes()

    codec = _bom_codec(raw)
    if codec is not None:
        return DecodedExport(path, codec, 1.0, True, raw.decode(codec))
    if not raw:
        return DecodedExport(path, "utf-8", 1.0, False, "")

    matches = from_bytes(raw)
    best = matches.best()
    if best is None:
        raise EncodingError(path, "no candidate encodings")

    # charset-normalizer scores chaos, 0.0 being a clean decode
    confidence = 1.0 - best.chaos
    if confidence < _MIN_CONFIDENCE:
        candidates = ", ".join(
            f"{m.encoding} ({1.0 - m.chaos:.2f})" for m in list(matches)[:3]
        )
        raise EncodingError(
            path, f"confidence {confidence:.2f} is too low; candidates: {candidates}"
        )
    return DecodedExport(path, best.encoding, round(confidence, 4), False, str(best))


def normalize_encoding(
    input_path: Path,
    output_path: Path | None = None,
) -> DecodedExport:
    """Decode an export and write it out as BOM-free UTF-8.

    Args:
        input_path: Raw export.
        output_path: Destination for the UTF-8 copy. Rewrites the input when None.

    Returns:
        The decoded export; its ``text`` is what was written.
    """
    decoded = decode_export(input_path)
    target = output_path if output_path is not None else input_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(decoded.text, encoding="utf-8", newline="")

    logger.info(
        "Decoded %s as %s (%.2f)%s",
        input_path.name,
        decoded.encoding,
        decoded.confidence,
        " [BOM stripped]" if decoded.had_bom else "",
    )
    return decoded
