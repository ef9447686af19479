from __future__ import annotations

from typing import Dict

import pandas as pd

SEGMENT_COLUMN = "member_casual"
USAGE_DIMENSIONS = ("start_hour", "start_weekday", "start_month", "rideable_type")


def segment_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Member vs casual headline figures."""
    summary = (
        df.groupby(SEGMENT_COLUMN, observed=True)
        .agg(
            trips=("ride_id", "count"),
            mean_duration_secs=("duration_secs", "mean"),
            median_duration_secs=("duration_secs", "median"),
            mean_great_circle_m=("great_circle_dist_m", "mean"),
            mean_manhattan_m=("manhattan_dist_m", "mean"),
            weekend_share=("start_is_weekend", "mean"),
        )
        .reset_index()
    )
    total = summary["trips"].sum()
    summary["trip_share"] = summary["trips"] / total if total else 0.0
    return summary


def usage_by(df: pd.DataFrame, column: str) -> pd.DataFrame:
    if column not in USAGE_DIMENSIONS:
        raise KeyError(f"Unsupported usage dimension: {column}")
    return (
        df.groupby([SEGMENT_COLUMN, column], observed=True)
        .agg(trips=("ride_id", "count"), mean_duration_secs=("duration_secs", "mean"))
        .reset_index()
        .sort_values([SEGMENT_COLUMN, column])
        .reset_index(drop=True)
    )


def build_summaries(df: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    summaries = {"segment_summary": segment_summary(df)}
    for column in USAGE_DIMENSIONS:
        name = column.replace("start_", "")
        summaries[f"usage_by_{name}"] = usage_by(df, column)
    return summaries
