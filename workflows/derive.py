from __future__ import annotations

import logging
import re
from typing import Iterator

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0
DEFAULT_CHUNK_SIZE = 20_000
WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
COORDINATE_FIELDS = ["start_lat", "start_lng", "end_lat", "end_lng"]
INPUT_FIELDS = ["started_at", "ended_at", *COORDINATE_FIELDS]
DISTANCE_FIELDS = ["great_circle_dist_m", "manhattan_dist_m"]
# Trailing "Z", "-05:00" or "+0000" after a clock time.
OFFSET_SUFFIX = re.compile(r"^(.*\d:\d{2}(?::\d{2}(?:\.\d+)?)?)\s*(?:Z|[+-]\d{2}(?::?\d{2})?)$")


def as_wall_clock(series: pd.Series, errors: str = "raise") -> pd.Series:
    """Naive local timestamps. A UTC offset is dropped, never applied.

    Text stamps have their offset suffix removed before parsing, so an export
    that mixes ``-05:00`` and ``-06:00`` across a fall-back still reads as
    local wall-clock time.
    """
    if isinstance(series.dtype, pd.DatetimeTZDtype):
        return series.dt.tz_localize(None)
    if pd.api.types.is_datetime64_dtype(series.dtype):
        return series
    text = series.astype("string").str.strip().str.replace(OFFSET_SUFFIX, r"\1", regex=True)
    stamps = pd.to_datetime(text, errors=errors)
    if isinstance(stamps.dtype, pd.DatetimeTZDtype):
        stamps = stamps.dt.tz_localize(None)
    return stamps


def haversine_m(lat1, lng1, lat2, lng2) -> np.ndarray:
    """Great-circle distance in meters on a spherical earth."""
    lat1, lng1, lat2, lng2 = map(np.radians, [lat1, lng1, lat2, lng2])
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def iter_chunks(df: pd.DataFrame, chunk_size: int) -> Iterator[pd.DataFrame]:
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    for start in range(0, len(df), chunk_size):
        yield df.iloc[start : start + chunk_size]


def compute_durations(df: pd.DataFrame) -> pd.Series:
    elapsed = as_wall_clock(df["ended_at"]) - as_wall_clock(df["started_at"])
    return elapsed.dt.total_seconds().round().astype("int64").rename("duration_secs")


def compute_distances(df: pd.DataFrame, chunk_size: int = DEFAULT_CHUNK_SIZE) -> pd.DataFrame:
    """Direct and taxicab distance per row, evaluated one chunk at a time.

    The taxicab leg runs from the start point to the corner
    ``(start_lng, end_lat)`` and from there to the end point, so it is never
    shorter than the direct distance.
    """
    parts = []
    for chunk in iter_chunks(df[COORDINATE_FIELDS], chunk_size):
        start_lat = chunk["start_lat"].to_numpy(dtype=float)
        start_lng = chunk["start_lng"].to_numpy(dtype=float)
        end_lat = chunk["end_lat"].to_numpy(dtype=float)
        end_lng = chunk["end_lng"].to_numpy(dtype=float)

        direct = haversine_m(start_lat, start_lng, end_lat, end_lng)
        manhattan = haversine_m(start_lat, start_lng, end_lat, start_lng) + haversine_m(
            end_lat, start_lng, end_lat, end_lng
        )
        parts.append(
            pd.DataFrame(
                {"great_circle_dist_m": direct, "manhattan_dist_m": manhattan},
                index=chunk.index,
            )
        )
    logger.debug("Computed distances for %s rows in %s chunks", len(df), len(parts))
    if not parts:
        return pd.DataFrame(columns=DISTANCE_FIELDS, index=df.index, dtype=float)
    return pd.concat(parts)


def add_calendar_fields(df: pd.DataFrame, column: str, prefix: str) -> pd.DataFrame:
    stamps = as_wall_clock(df[column])
    weekday = pd.Categorical(stamps.dt.day_name(), categories=WEEKDAYS, ordered=True)
    return df.assign(
        **{
            f"{prefix}_year": stamps.dt.year,
            f"{prefix}_month": stamps.dt.month,
            f"{prefix}_day": stamps.dt.day,
            f"{prefix}_hour": stamps.dt.hour,
            f"{prefix}_weekday": weekday,
            f"{prefix}_is_weekend": stamps.dt.dayofweek >= 5,
        }
    )


def derive_trip_metrics(df: pd.DataFrame, chunk_size: int = DEFAULT_CHUNK_SIZE) -> pd.DataFrame:
    missing = [column for column in INPUT_FIELDS if column not in df.columns]
    if missing:
        raise KeyError(f"Trip table is missing columns: {missing}")

    derived = df.copy()
    derived["duration_secs"] = compute_durations(derived)
    distances = compute_distances(derived, chunk_size)
    for column in DISTANCE_FIELDS:
        derived[column] = distances[column]
    derived = add_calendar_fields(derived, "started_at", "start")
    derived = add_calendar_fields(derived, "ended_at", "end")
    logger.info("Derived trip metrics for %s rows", len(derived))
    return derived
