from __future__ import annotations

import logging
from typing import Iterable, Tuple

import pandas as pd

from tripmetrics.schemas import RollbackWindow

from .derive import as_wall_clock

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_THRESHOLD = 1
DEFAULT_ROLLBACK_THRESHOLD = -100
CORRECTED_FLAG = "rollback_corrected"


def _with_rollback_flag(df: pd.DataFrame) -> pd.DataFrame:
    flagged = df.copy()
    if CORRECTED_FLAG not in flagged.columns:
        flagged[CORRECTED_FLAG] = False
    return flagged


def find_anomaly_candidates(
    df: pd.DataFrame, threshold: int = DEFAULT_CANDIDATE_THRESHOLD
) -> pd.DataFrame:
    """Negative and near-zero durations."""
    return df.loc[df["duration_secs"] < threshold]


def find_rollback_rides(
    df: pd.DataFrame,
    window: RollbackWindow,
    candidate_threshold: int = DEFAULT_CANDIDATE_THRESHOLD,
    rollback_threshold: int = DEFAULT_ROLLBACK_THRESHOLD,
) -> pd.Index:
    """Ride ids whose end time sits in the repeated hour of a fall-back.

    A ride that starts before the clocks go back and ends after it reads
    as one hour too short, usually negative. ``rollback_threshold`` keeps
    trivially short rides near zero out of the repair set. Rows already
    flagged as repaired are never matched again.
    """
    candidates = find_anomaly_candidates(df, candidate_threshold)
    if CORRECTED_FLAG in candidates.columns:
        candidates = candidates.loc[~candidates[CORRECTED_FLAG].astype(bool)]
    ended = as_wall_clock(candidates["ended_at"])
    in_window = (ended >= pd.Timestamp(window.start)) & (ended < pd.Timestamp(window.end))
    affected = candidates.loc[in_window & (candidates["duration_secs"] < rollback_threshold)]
    return pd.Index(affected["ride_id"].unique(), name="ride_id")


def apply_rollback_offset(
    df: pd.DataFrame, ride_ids: Iterable[str], offset_seconds: int
) -> pd.DataFrame:
    """Add the offset to matching rides and flag them as repaired."""
    corrected = _with_rollback_flag(df)
    mask = corrected["ride_id"].isin(list(ride_ids)) & ~corrected[CORRECTED_FLAG].astype(bool)
    corrected.loc[mask, "duration_secs"] = corrected.loc[mask, "duration_secs"] + offset_seconds
    corrected[CORRECTED_FLAG] = corrected[CORRECTED_FLAG].astype(bool) | mask
    return corrected


def correct_rollback_anomalies(
    df: pd.DataFrame,
    window: RollbackWindow,
    candidate_threshold: int = DEFAULT_CANDIDATE_THRESHOLD,
    rollback_threshold: int = DEFAULT_ROLLBACK_THRESHOLD,
) -> Tuple[pd.DataFrame, pd.Index]:
    if df["ride_id"].duplicated().any():
        logger.warning(
            "Duplicate ride_id values present; rollback repair applies to every row sharing an id"
        )
    ride_ids = find_rollback_rides(df, window, candidate_threshold, rollback_threshold)
    if ride_ids.empty:
        logger.info("No rides ended inside the rollback window %s..%s", window.start, window.end)
        return _with_rollback_flag(df), ride_ids
    corrected = apply_rollback_offset(df, ride_ids, window.offset_seconds)
    logger.info(
        "Added %ss to %s rides ending in the rollback window",
        window.offset_seconds,
        len(ride_ids),
    )
    return corrected, ride_ids
