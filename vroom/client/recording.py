"""
Client-side trip recording.

A RecordingSession owns one trip from start to finish. Position fixes update
the local polyline immediately; the server only sees one sample per flush
window, sent either from on_position() or from the periodic tick().
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

import httpx
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vroom.client.api import VroomAPIError, VroomClient
from vroom.config import get_settings
from vroom.services.geo import haversine_distance

settings = get_settings()
log = logging.getLogger(__name__)

IDLE = "idle"
RECORDING = "recording"
PAUSED = "paused"
FINALIZED = "finalized"


class RecordingStateError(Exception):
    """Operation not allowed in the session's current state."""


@dataclass(frozen=True)
class RecordingSnapshot:
    state: str
    trip_id: int | None
    polyline: tuple[tuple[float, float], ...]
    elapsed_ms: int
    distance_m: float


class RecordingSession:
    def __init__(
        self,
        client: VroomClient,
        flush_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.flush_interval = flush_interval if flush_interval is not None else settings.TRIP_FLUSH_INTERVAL_SECONDS
        self.clock = clock

        self.state = IDLE
        self.trip_id: int | None = None
        self.polyline: list[tuple[float, float]] = []
        self.distance_m = 0.0
        self.last_position: tuple[float, float] | None = None
        self.last_flush_at: float | None = None
        self.started_at: float | None = None
        self.trip: dict | None = None

        self._scheduler: BackgroundScheduler | None = None
        self._lock = threading.Lock()

    def _require(self, *states: str) -> None:
        if self.state not in states:
            raise RecordingStateError(f"Cannot do that while {self.state}")

    def _extend(self, lat: float, lng: float) -> None:
        if self.polyline:
            prev_lat, prev_lng = self.polyline[-1]
            self.distance_m += haversine_distance(prev_lat, prev_lng, lat, lng)
        self.polyline.append((lat, lng))
        self.last_position = (lat, lng)

    def _window_elapsed(self) -> bool:
        if self.last_flush_at is None:
            return True
        return self.clock() - self.last_flush_at >= self.flush_interval

    def _flush(self, fix: tuple[float, float] | None = None) -> bool:
        """
        Send the latest position if the current window is still open.

        The window is claimed under the lock before the network call, so the
        timer thread and the position callback cannot both flush in one
        window. A failed send gives the window back; the next call retries.
        """
        with self._lock:
            if self.state != RECORDING:
                return False
            if fix is not None:
                self._extend(*fix)
            if self.last_position is None or not self._window_elapsed():
                return False
            trip_id = self.trip_id
            lat, lng = self.last_position
            previous_flush_at = self.last_flush_at
            claimed_at = self.clock()
            self.last_flush_at = claimed_at

        try:
            self.client.append_point(trip_id, lat, lng)
        except (httpx.HTTPError, VroomAPIError) as e:
            log.warning(f"[Recording] Flush for trip {trip_id} failed: {e}")
            with self._lock:
                if self.last_flush_at == claimed_at:
                    self.last_flush_at = previous_flush_at
            return False
        return True

    def start(self, lat: float, lng: float) -> dict:
        """Create the trip on the server and begin recording."""
        self._require(IDLE)
        self.trip = self.client.start_trip(lat, lng)
        self.trip_id = self.trip["id"]
        self.started_at = self.clock()
        # The server already holds the start point as the first sample
        self.last_flush_at = self.started_at
        self._extend(lat, lng)
        self.state = RECORDING
        log.info(f"[Recording] Trip {self.trip_id} started")
        return self.trip

    def on_position(self, lat: float, lng: float) -> bool:
        """
        Handle a position fix. Returns True when the fix was sent to the server.

        Fixes while paused are ignored.
        """
        return self._flush((lat, lng))

    def tick(self) -> bool:
        """Timer path: send the latest known position once per window."""
        return self._flush()

    def start_timer(self) -> None:
        if self._scheduler is not None:
            return
        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.flush_interval),
            id="trip_flush",
            name="Flush latest trip position",
            replace_existing=True,
            max_instances=1,
        )
        self._scheduler.start()

    def stop_timer(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None

    def pause(self) -> None:
        with self._lock:
            self._require(RECORDING)
            self.state = PAUSED
        log.info(f"[Recording] Trip {self.trip_id} paused")

    def resume(self) -> None:
        with self._lock:
            self._require(PAUSED)
            self.state = RECORDING
        log.info(f"[Recording] Trip {self.trip_id} resumed")

    def finish(self, lat: float, lng: float, is_public: bool = True) -> dict:
        """End the trip on the server; the session cannot record afterwards."""
        self._require(RECORDING, PAUSED)
        self.trip = self.client.end_trip(self.trip_id, lat, lng, is_public=is_public)
        self.stop_timer()
        with self._lock:
            self._extend(lat, lng)
            self.state = FINALIZED
        log.info(f"[Recording] Trip {self.trip_id} finished")
        return self.trip

    def snapshot(self) -> RecordingSnapshot:
        if self.started_at is None:
            elapsed_ms = 0
        else:
            elapsed_ms = round((self.clock() - self.started_at) * 1000)
        return RecordingSnapshot(
            state=self.state,
            trip_id=self.trip_id,
            polyline=tuple(self.polyline),
            elapsed_ms=elapsed_ms,
            distance_m=self.distance_m,
        )
