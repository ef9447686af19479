from __future__ import annotations

import logging
from typing import Tuple

import pandas as pd

from tripmetrics.config import Settings
from tripmetrics.metrics import CleaningMetrics

from .anomalies import CORRECTED_FLAG, correct_rollback_anomalies, find_anomaly_candidates
from .derive import derive_trip_metrics
from .quality import filter_valid_trips, profile_trips

logger = logging.getLogger(__name__)


def clean_trips(raw: pd.DataFrame, settings: Settings) -> Tuple[pd.DataFrame, CleaningMetrics]:
    """Derive metrics, repair rollback durations and drop invalid trips."""
    metrics = CleaningMetrics(rows_loaded=len(raw))

    derived = derive_trip_metrics(raw, chunk_size=settings.chunk_size)
    metrics.anomaly_candidates = len(
        find_anomaly_candidates(derived, settings.anomaly_threshold_seconds)
    )

    corrected, _ = correct_rollback_anomalies(
        derived,
        settings.rollback_window,
        candidate_threshold=settings.anomaly_threshold_seconds,
        rollback_threshold=settings.rollback_threshold_seconds,
    )
    metrics.rollback_corrected = int(corrected[CORRECTED_FLAG].sum())

    logger.info("Pre-filter profile: %s", profile_trips(corrected))

    clean = filter_valid_trips(corrected)
    metrics.rows_retained = len(clean)
    metrics.rows_dropped = metrics.rows_loaded - metrics.rows_retained
    logger.info("Cleaning metrics: %s", metrics.as_dict())
    return clean, metrics
