"""
Tests for the daylight-saving rollback repair.
File: tests/test_anomalies.py
"""

import logging
from datetime import datetime

import pandas as pd
import pytest
from pydantic import ValidationError

from tripmetrics.schemas import RollbackWindow
from workflows.anomalies import (
    apply_rollback_offset,
    correct_rollback_anomalies,
    find_anomaly_candidates,
    find_rollback_rides,
)
from workflows.derive import derive_trip_metrics

WINDOW = RollbackWindow(transition=datetime(2023, 11, 5, 2, 0), offset_seconds=3600)


def _duration(df, ride_id):
    return int(df.loc[df["ride_id"] == ride_id, "duration_secs"].iloc[0])


class TestRollbackWindow:
    def test_window_is_the_repeated_hour(self):
        assert WINDOW.start == datetime(2023, 11, 5, 1, 0)
        assert WINDOW.end == datetime(2023, 11, 5, 2, 0)

    def test_offset_must_be_positive(self):
        with pytest.raises(ValidationError):
            RollbackWindow(offset_seconds=0)


class TestDetection:
    def test_candidates_include_zero_and_negative(self, trip_factory):
        trips = derive_trip_metrics(
            trip_factory(
                {"ride_id": "ZERO", "ended_at": "2023-07-01 08:00:00"},
                {"ride_id": "NEG", "started_at": "2023-07-01 08:00:05", "ended_at": "2023-07-01 08:00:00"},
                {"ride_id": "OK"},
            )
        )
        assert set(find_anomaly_candidates(trips)["ride_id"]) == {"ZERO", "NEG"}

    def test_only_window_rides_are_isolated(self, scenario_trips):
        derived = derive_trip_metrics(scenario_trips)
        assert list(find_rollback_rides(derived, WINDOW)) == ["DST"]

    def test_negative_ride_outside_window_is_ignored(self, trip_factory):
        trips = derive_trip_metrics(
            trip_factory(
                {"ride_id": "OTHER_DAY", "started_at": "2023-11-06 01:45:00", "ended_at": "2023-11-06 01:15:00"},
                {"ride_id": "AFTER_WINDOW", "started_at": "2023-11-05 02:45:00", "ended_at": "2023-11-05 02:15:00"},
            )
        )
        assert find_rollback_rides(trips, WINDOW).empty

    def test_short_negative_ride_in_window_is_ignored(self, trip_factory):
        trips = derive_trip_metrics(
            trip_factory(
                {"ride_id": "JITTER", "started_at": "2023-11-05 01:20:50", "ended_at": "2023-11-05 01:20:00"}
            )
        )
        assert _duration(trips, "JITTER") == -50
        assert find_rollback_rides(trips, WINDOW).empty


class TestCorrection:
    def test_dst_trip_is_repaired(self, scenario_trips):
        derived = derive_trip_metrics(scenario_trips)
        corrected, ride_ids = correct_rollback_anomalies(derived, WINDOW)
        assert list(ride_ids) == ["DST"]
        assert _duration(derived, "DST") == -1800
        assert _duration(corrected, "DST") == 1800

    def test_degenerate_trip_is_left_alone(self, scenario_trips):
        derived = derive_trip_metrics(scenario_trips)
        corrected, _ = correct_rollback_anomalies(derived, WINDOW)
        assert _duration(corrected, "DEGENERATE") == -5

    def test_only_duration_changes(self, scenario_trips):
        derived = derive_trip_metrics(scenario_trips)
        corrected = apply_rollback_offset(derived, ["DST"], 3600)
        pd.testing.assert_frame_equal(
            corrected.drop(columns=["duration_secs", "rollback_corrected"]),
            derived.drop(columns=["duration_secs"]),
        )
        assert corrected.loc[corrected["rollback_corrected"], "ride_id"].tolist() == ["DST"]
        assert _duration(derived, "DST") == -1800

    def test_correction_is_idempotent(self, scenario_trips):
        derived = derive_trip_metrics(scenario_trips)
        once, _ = correct_rollback_anomalies(derived, WINDOW)
        twice, second_ids = correct_rollback_anomalies(once, WINDOW)
        assert second_ids.empty
        pd.testing.assert_frame_equal(once, twice)

    def test_long_negative_ride_is_repaired_once(self, trip_factory):
        trips = derive_trip_metrics(
            trip_factory(
                {"ride_id": "LONG", "started_at": "2023-11-05 02:30:00", "ended_at": "2023-11-05 01:15:00"}
            )
        )
        assert _duration(trips, "LONG") == -4500
        once, _ = correct_rollback_anomalies(trips, WINDOW)
        twice, second_ids = correct_rollback_anomalies(once, WINDOW)
        assert _duration(once, "LONG") == -900
        assert second_ids.empty
        pd.testing.assert_frame_equal(once, twice)

    def test_flag_column_added_when_nothing_matches(self, trip_factory):
        trips = derive_trip_metrics(trip_factory({"ride_id": "OK"}))
        corrected, ride_ids = correct_rollback_anomalies(trips, WINDOW)
        assert ride_ids.empty
        assert corrected["rollback_corrected"].tolist() == [False]
        assert "rollback_corrected" not in trips.columns

    def test_other_year_window(self, trip_factory):
        trips = derive_trip_metrics(
            trip_factory(
                {"ride_id": "DST_2024", "started_at": "2024-11-03 01:50:00", "ended_at": "2024-11-03 01:05:00"},
                {"ride_id": "DST_2023", "started_at": "2023-11-05 01:45:00", "ended_at": "2023-11-05 01:15:00"},
            )
        )
        window = RollbackWindow(transition=datetime(2024, 11, 3, 2, 0))
        corrected, ride_ids = correct_rollback_anomalies(trips, window)
        assert list(ride_ids) == ["DST_2024"]
        assert _duration(corrected, "DST_2024") == 900
        assert _duration(corrected, "DST_2023") == -1800

    def test_custom_thresholds(self, trip_factory):
        trips = derive_trip_metrics(
            trip_factory(
                {"ride_id": "JITTER", "started_at": "2023-11-05 01:20:50", "ended_at": "2023-11-05 01:20:00"}
            )
        )
        corrected, ride_ids = correct_rollback_anomalies(trips, WINDOW, rollback_threshold=-10)
        assert list(ride_ids) == ["JITTER"]
        assert _duration(corrected, "JITTER") == 3550

    def test_duplicate_ids_are_reported(self, trip_factory, caplog):
        trips = derive_trip_metrics(trip_factory({"ride_id": "SAME"}, {"ride_id": "SAME"}))
        with caplog.at_level(logging.WARNING, logger="workflows.anomalies"):
            correct_rollback_anomalies(trips, WINDOW)
        assert "Duplicate ride_id" in caplog.text
