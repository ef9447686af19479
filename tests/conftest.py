"""
Shared fixtures for the trip metrics test suite.
File: tests/conftest.py
"""

import pandas as pd
import pytest

BASE_TRIP = {
    "ride_id": "NORMAL",
    "rideable_type": "classic",
    "started_at": "2023-07-01 08:00:00",
    "ended_at": "2023-07-01 08:10:00",
    "start_lat": 41.88,
    "start_lng": -87.63,
    "end_lat": 41.90,
    "end_lng": -87.64,
    "member_casual": "member",
}

# Fall-back trip: starts before 02:00 CDT, ends in the repeated 01:00 hour.
DST_TRIP = {
    "ride_id": "DST",
    "started_at": "2023-11-05 01:45:00",
    "ended_at": "2023-11-05 01:15:00",
    "member_casual": "casual",
}

DEGENERATE_TRIP = {
    "ride_id": "DEGENERATE",
    "started_at": "2023-07-01 08:00:05",
    "ended_at": "2023-07-01 08:00:00",
}

ROUND_TRIP = {
    "ride_id": "ROUND",
    "end_lat": 41.88,
    "end_lng": -87.63,
    "member_casual": "casual",
}


def build_trips(*overrides):
    rows = [{**BASE_TRIP, **override} for override in overrides]
    df = pd.DataFrame(rows, columns=list(BASE_TRIP))
    df["started_at"] = pd.to_datetime(df["started_at"])
    df["ended_at"] = pd.to_datetime(df["ended_at"])
    return df


@pytest.fixture
def trip_factory():
    return build_trips


@pytest.fixture
def scenario_trips():
    return build_trips({}, DST_TRIP, DEGENERATE_TRIP, ROUND_TRIP)


@pytest.fixture
def spread_trips():
    """Trips going in every compass direction, plus axis-aligned ones."""
    return build_trips(
        {"ride_id": "NE", "end_lat": 41.95, "end_lng": -87.60},
        {"ride_id": "SW", "end_lat": 41.80, "end_lng": -87.70},
        {"ride_id": "NW", "end_lat": 41.93, "end_lng": -87.75},
        {"ride_id": "SE", "end_lat": 41.85, "end_lng": -87.55},
        {"ride_id": "NORTH", "end_lat": 41.99, "end_lng": -87.63},
        {"ride_id": "EAST", "end_lat": 41.88, "end_lng": -87.52},
        {"ride_id": "TINY", "end_lat": 41.88001, "end_lng": -87.63001},
    )
