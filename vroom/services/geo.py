"""Distance and duration calculations for recorded trips."""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping

EARTH_RADIUS_M = 6371e3


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two (lat, lng) pairs in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) * math.sin(d_lat / 2)
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) * math.sin(d_lng / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def calculate_duration(start: datetime, end: datetime) -> int:
    """Absolute difference between two instants, in milliseconds."""
    return abs(round((end - start).total_seconds() * 1000))


def calculate_trip_distance(trip: Mapping[str, Any]) -> float:
    """Straight-line distance between the trip's start and end points.

    Intermediate path samples are not summed; a winding route reports the
    same distance as a direct one.
    """
    start = trip.get("start_point")
    end = trip.get("end_point")
    if not start or not end:
        return 0
    return haversine_distance(start["lat"], start["lng"], end["lat"], end["lng"])


def calculate_trip_duration(trip: Mapping[str, Any]) -> int:
    start_time = trip.get("start_time")
    end_time = trip.get("end_time")
    if not start_time or not end_time:
        return 0
    return calculate_duration(start_time, end_time)
