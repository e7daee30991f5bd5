"""Merge of normalized station records from both registries.

The merged sequence is US records first, then Canadian records, with no
cross-border deduplication: call sign allocation is jurisdiction-scoped, so
an identity collision between the two registries is reported and both
records are kept.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from amdx.records import StationRecord

logger = logging.getLogger(__name__)


def merge_stations(
    us_stations: Sequence[StationRecord],
    canadian_stations: Sequence[StationRecord],
) -> list[StationRecord]:
    """Concatenate both adapters' output into the published record set.

    Args:
        us_stations: Records from the US fixed-width adapter.
        canadian_stations: Records from the Canadian CSV adapter.

    Returns:
        US records followed by Canadian records, each in adapter order.
    """
    us_ids = {s.id for s in us_stations}
    collisions = sorted(s.id for s in canadian_stations if s.id in us_ids)
    if collisions:
        logger.warning(
            "%d station ids appear in both registries (kept both): %s",
            len(collisions),
            ", ".join(collisions[:10]),
        )

    merged = [*us_stations, *canadian_stations]
    logger.info(
        "Total stations: %d (%d US, %d Canadian)",
        len(merged),
        len(us_stations),
        len(canadian_stations),
    )
    return merged

