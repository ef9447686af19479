from __future__ import annotations

import logging
from typing import Dict

from pandas import DataFrame

from .derive import as_wall_clock

logger = logging.getLogger(__name__)

VALIDITY_FIELDS = ["duration_secs", "great_circle_dist_m", "manhattan_dist_m"]


def profile_trips(df: DataFrame) -> Dict[str, int]:
    """Issue counts on a derived trip table, before any row is dropped."""
    if df.empty:
        return {"records": 0, "issues_found": 0}

    duplicates = int(df.duplicated(subset=["ride_id"]).sum())
    non_positive = int((df["duration_secs"] <= 0).sum())
    zero_distance = int((df["great_circle_dist_m"] <= 0).sum())
    start_after_end = int(
        (as_wall_clock(df["started_at"]) > as_wall_clock(df["ended_at"])).sum()
    )
    return {
        "records": int(len(df)),
        "issues_found": duplicates + non_positive + zero_distance,
        "duplicate_ids": duplicates,
        "non_positive_duration": non_positive,
        "zero_distance": zero_distance,
        "start_after_end": start_after_end,
    }


def filter_valid_trips(df: DataFrame) -> DataFrame:
    """Keep trips with positive duration and positive distances.

    Same-point round trips have zero distance and are dropped here along
    with degenerate records.
    """
    missing = [column for column in VALIDITY_FIELDS if column not in df.columns]
    if missing:
        raise KeyError(f"Trip table is missing derived columns: {missing}")

    mask = (
        (df["duration_secs"] > 0)
        & (df["great_circle_dist_m"] > 0)
        & (df["manhattan_dist_m"] > 0)
    )
    valid = df.loc[mask].reset_index(drop=True)
    logger.info("Validity filter kept %s of %s trips", len(valid), len(df))
    return valid


__all__ = ["filter_valid_trips", "profile_trips"]
