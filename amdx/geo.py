"""Geographic proximity computation utilities.

Provides Haversine great-circle distance in statute miles and nearest-station
discovery over normalized station records. All distance math uses the
standard library ``math`` module with no external geospatial dependencies.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

import pandas as pd

from amdx.records import StationRecord

_EARTH_RADIUS_MI: float = 3_959.0


def haversine_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Compute great-circle distance between two coordinate pairs.

    Applies the Haversine formula:
    ``a = sin²(dlat/2) + cos(lat1) * cos(lat2) * sin²(dlon/2)``
    ``c = 2 * atan2(sqrt(a), sqrt(1 - a))``
    ``d = R * c``

    Args:
        lat1: Latitude of the first point in decimal degrees.
        lon1: Longitude of the first point in decimal degrees.
        lat2: Latitude of the second point in decimal degrees.
        lon2: Longitude of the second point in decimal degrees.

    Returns:
        Distance in miles. Returns ``nan`` when any input is not finite;
        callers are expected to guard against that.
    """
    if not all(math.isfinite(v) for v in (lat1, lon1, lat2, lon2)):
        return math.nan
    if lat1 == lat2 and lon1 == lon2:
        return 0.0

    rlat1 = math.radians(lat1)
    rlat2 = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return _EARTH_RADIUS_MI * c


def closest_station(
    stations: Iterable[StationRecord],
    lat: float,
    lon: float,
) -> StationRecord | None:
    """Return the station nearest to a point, or None for an empty input.

    Stations whose distance is not a number are ignored. Ties keep the
    earlier station.
    """
    best: StationRecord | None = None
    best_distance = math.inf
    for station in stations:
        distance = haversine_distance(lat, lon, station.lat, station.lon)
        if distance < best_distance:
            best, best_distance = station, distance
    return best


def find_nearby_stations(
    ref_lat: float,
    ref_lon: float,
    stations_df: pd.DataFrame,
    *,
    lat_col: str = "lat",
    lon_col: str = "lon",
    n: int = 10,
    exclude_key: str | None = None,
    key_col: str = "id",
) -> pd.DataFrame:
    """Rank stations by Haversine proximity to a reference point.

    Computes the great-circle distance from ``(ref_lat, ref_lon)`` to
    every station in the DataFrame, excludes rows with missing
    coordinates and the optionally excluded station, then returns the
    N nearest sorted by distance ascending.

    Args:
        ref_lat: Reference point latitude in decimal degrees.
        ref_lon: Reference point longitude in decimal degrees.
        stations_df: Station DataFrame, e.g. from ``records_to_frame``.
        lat_col: Column name for latitude values.
        lon_col: Column name for longitude values.
        n: Maximum number of nearby stations to return.
        exclude_key: Station id to leave out of the results.
        key_col: Column containing station id values.

    Returns:
        DataFrame with the N nearest stations sorted by distance
        ascending, with an appended ``distance_mi`` column rounded
        to 1 decimal place.
    """
    df = stations_df.copy()
    df = df.dropna(subset=[lat_col, lon_col])

    if exclude_key is not None and key_col in df.columns:
        df = df.loc[df[key_col] != exclude_key]

    if df.empty:
        result = df.copy()
        result["distance_mi"] = pd.Series(dtype="float64")
        return result

    df["distance_mi"] = df.apply(
        lambda row: round(
            haversine_distance(
                ref_lat,
                ref_lon,
                float(row[lat_col]),
                float(row[lon_col]),
            ),
            1,
        ),
        axis=1,
    )

    return (
        df.sort_values("distance_mi", ascending=True, kind="stable")
        .head(n)
        .reset_index(drop=True)
    )
