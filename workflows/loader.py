from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Sequence, Tuple, get_args

import pandas as pd

from tripmetrics.schemas import MemberCasual, RideableType, TripRecord

from .derive import as_wall_clock
from .paths import discover_trip_files

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = list(TripRecord.model_fields)
TIMESTAMP_FIELDS = ["started_at", "ended_at"]
COORDINATE_BOUNDS = {
    "start_lat": (-90.0, 90.0),
    "start_lng": (-180.0, 180.0),
    "end_lat": (-90.0, 90.0),
    "end_lng": (-180.0, 180.0),
}
RIDEABLE_TYPES = list(get_args(RideableType))
MEMBER_TYPES = list(get_args(MemberCasual))

COLUMN_ALIASES = {
    "trip_id": "ride_id",
    "tripid": "ride_id",
    "start_time": "started_at",
    "starttime": "started_at",
    "end_time": "ended_at",
    "stoptime": "ended_at",
    "start_lon": "start_lng",
    "end_lon": "end_lng",
    "bike_type": "rideable_type",
    "usertype": "member_casual",
    "user_type": "member_casual",
}

RIDEABLE_MAP = {
    "classic_bike": "classic",
    "docked_bike": "docked",
    "electric_bike": "electric",
}

MEMBER_MAP = {
    "subscriber": "member",
    "annual": "member",
    "customer": "casual",
}


def _normalize_column_name(name: str) -> str:
    clean = name.strip().lower()
    clean = re.sub(r"[^0-9a-z]+", "_", clean)
    return clean.strip("_")


def _string_series(series: pd.Series) -> pd.Series:
    converted = series.astype("string").str.strip()
    return converted.replace({"": pd.NA, "none": pd.NA, "nan": pd.NA})


def _categorical(series: pd.Series, aliases: dict, allowed: List[str]) -> pd.Series:
    lowered = _string_series(series).str.lower()
    mapped = lowered.map(aliases).fillna(lowered)
    return mapped.where(mapped.isin(allowed))


def normalize_trips(df: pd.DataFrame) -> pd.DataFrame:
    """Map a raw monthly extract onto the TripRecord columns.

    Timestamps are parsed as naive wall-clock values. Offsets are dropped and
    nothing is converted to UTC. Labels outside the known categories and
    out-of-range coordinates become missing, and every row with a missing
    field is dropped.
    """
    if df.empty:
        return pd.DataFrame(columns=REQUIRED_FIELDS)

    df = df.rename(columns=_normalize_column_name)
    df = df.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if k in df.columns})

    for column in REQUIRED_FIELDS:
        if column not in df.columns:
            df[column] = pd.NA

    df["ride_id"] = _string_series(df["ride_id"])
    for column in TIMESTAMP_FIELDS:
        df[column] = as_wall_clock(_string_series(df[column]), errors="coerce")

    for column, (low, high) in COORDINATE_BOUNDS.items():
        values = pd.to_numeric(df[column], errors="coerce")
        df[column] = values.where(values.between(low, high))

    df["rideable_type"] = _categorical(df["rideable_type"], RIDEABLE_MAP, RIDEABLE_TYPES)
    df["member_casual"] = _categorical(df["member_casual"], MEMBER_MAP, MEMBER_TYPES)

    normalized = df[REQUIRED_FIELDS].dropna(how="any")
    return normalized.reset_index(drop=True)


def read_trip_file(path: Path) -> pd.DataFrame:
    raw = pd.read_csv(path, dtype=str)
    normalized = normalize_trips(raw)
    dropped = len(raw) - len(normalized)
    logger.info("Loaded %s rows from %s (%s dropped)", len(normalized), path.name, dropped)
    return normalized


def load_trips(files: Sequence[Path], drop_duplicate_rides: bool = False) -> pd.DataFrame:
    frames: List[pd.DataFrame] = [
        frame for frame in (read_trip_file(path) for path in files) if not frame.empty
    ]
    if not frames:
        return pd.DataFrame(columns=REQUIRED_FIELDS)
    trips = pd.concat(frames, ignore_index=True)

    duplicates = int(trips.duplicated(subset=["ride_id"]).sum())
    if duplicates and drop_duplicate_rides:
        trips = trips.drop_duplicates(subset=["ride_id"], keep="first").reset_index(drop=True)
        logger.info("Dropped %s duplicate ride_id rows, first occurrence kept", duplicates)
    elif duplicates:
        logger.warning("%s rows share a ride_id with an earlier row", duplicates)
    return trips


def load_trip_directory(
    data_dir: Path, pattern: str, drop_duplicate_rides: bool = False
) -> Tuple[pd.DataFrame, List[Path]]:
    files = discover_trip_files(data_dir, pattern)
    if not files:
        raise FileNotFoundError(f"No trip files matching {pattern!r} under {data_dir}")
    logger.info("Discovered %s trip files under %s", len(files), data_dir)
    return load_trips(files, drop_duplicate_rides=drop_duplicate_rides), files
