"""Tests for the client-side recording session."""
import threading
from unittest.mock import MagicMock

import httpx
import pytest

from vroom.client.api import VroomAPIError
from vroom.client.recording import (
    FINALIZED,
    IDLE,
    PAUSED,
    RECORDING,
    RecordingSession,
    RecordingStateError,
)
from vroom.services.geo import haversine_distance


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def api():
    client = MagicMock()
    client.start_trip.return_value = {"id": 11, "status": "recording"}
    client.end_trip.return_value = {"id": 11, "status": "finalized"}
    return client


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(api, clock):
    return RecordingSession(api, flush_interval=5, clock=clock)


def test_start_creates_trip(session, api):
    trip = session.start(-6.2, 106.8)

    assert trip["id"] == 11
    assert session.state == RECORDING
    assert session.trip_id == 11
    api.start_trip.assert_called_once_with(-6.2, 106.8)
    assert session.snapshot().polyline == ((-6.2, 106.8),)


def test_positions_are_throttled(session, api, clock):
    """Only one sample per window reaches the server; all of them stay local"""
    session.start(-6.2, 106.8)

    clock.advance(1)
    assert session.on_position(-6.201, 106.801) is False
    clock.advance(1)
    assert session.on_position(-6.202, 106.802) is False
    clock.advance(3)
    assert session.on_position(-6.203, 106.803) is True

    api.append_point.assert_called_once_with(11, -6.203, 106.803)
    assert len(session.snapshot().polyline) == 4


def test_tick_flushes_latest_position(session, api, clock):
    session.start(-6.2, 106.8)
    clock.advance(2)
    session.on_position(-6.21, 106.81)

    assert session.tick() is False
    clock.advance(3)
    assert session.tick() is True
    api.append_point.assert_called_once_with(11, -6.21, 106.81)

    # Nothing new to send until the next window
    assert session.tick() is False


def test_pause_stops_sampling(session, api, clock):
    session.start(-6.2, 106.8)
    session.pause()
    assert session.state == PAUSED

    clock.advance(10)
    assert session.on_position(-6.3, 106.9) is False
    assert session.tick() is False
    api.append_point.assert_not_called()
    assert len(session.snapshot().polyline) == 1

    session.resume()
    assert session.state == RECORDING
    assert session.on_position(-6.3, 106.9) is True
    assert session.trip_id == 11


def test_flush_failure_is_retried_next_window(session, api, clock):
    session.start(-6.2, 106.8)
    api.append_point.side_effect = httpx.ConnectError("offline")

    clock.advance(5)
    assert session.on_position(-6.21, 106.81) is False
    assert session.state == RECORDING
    assert len(session.snapshot().polyline) == 2

    api.append_point.side_effect = None
    clock.advance(1)
    assert session.tick() is True
    assert api.append_point.call_args.args == (11, -6.21, 106.81)


def test_server_rejection_is_logged_not_raised(session, api, clock):
    session.start(-6.2, 106.8)
    api.append_point.side_effect = VroomAPIError(409, "Trip already ended")

    clock.advance(5)

    assert session.on_position(-6.21, 106.81) is False


def test_finish(session, api, clock):
    session.start(-6.2, 106.8)
    clock.advance(60)

    trip = session.finish(-6.22, 106.82, is_public=False)

    assert trip["status"] == "finalized"
    assert session.state == FINALIZED
    api.end_trip.assert_called_once_with(11, -6.22, 106.82, is_public=False)
    assert session.on_position(-6.3, 106.9) is False
    with pytest.raises(RecordingStateError):
        session.pause()


def test_finish_while_paused(session, api):
    session.start(-6.2, 106.8)
    session.pause()

    session.finish(-6.22, 106.82)

    assert session.state == FINALIZED


def test_invalid_transitions(session):
    assert session.state == IDLE
    with pytest.raises(RecordingStateError):
        session.pause()
    with pytest.raises(RecordingStateError):
        session.resume()
    with pytest.raises(RecordingStateError):
        session.finish(0, 0)

    session.start(0, 0)
    with pytest.raises(RecordingStateError):
        session.start(0, 0)
    with pytest.raises(RecordingStateError):
        session.resume()


def test_snapshot_reports_elapsed_and_distance(session, clock):
    session.start(-6.2, 106.8)
    clock.advance(2.5)
    session.on_position(-6.21, 106.81)
    clock.advance(2.5)
    session.on_position(-6.22, 106.82)

    snap = session.snapshot()

    assert snap.state == RECORDING
    assert snap.elapsed_ms == 5000
    expected = haversine_distance(-6.2, 106.8, -6.21, 106.81) + haversine_distance(-6.21, 106.81, -6.22, 106.82)
    assert snap.distance_m == pytest.approx(expected)
    with pytest.raises(AttributeError):
        snap.state = PAUSED


def test_timer_lifecycle(session):
    session.start(0, 0)

    session.start_timer()
    scheduler = session._scheduler
    assert scheduler is not None
    assert scheduler.get_job("trip_flush") is not None

    session.stop_timer()
    assert session._scheduler is None


def test_timer_and_position_share_one_window(session, api, clock):
    """A fix arriving while the timer's send is in flight must not send again"""
    session.start(0, 0)
    clock.advance(5)
    in_flight = threading.Event()
    release = threading.Event()

    def slow_append(*args):
        in_flight.set()
        release.wait(2)

    api.append_point.side_effect = slow_append
    results = {}
    timer = threading.Thread(target=lambda: results.setdefault("tick", session.tick()))
    timer.start()
    assert in_flight.wait(2)

    results["position"] = session.on_position(0.001, 0.001)
    release.set()
    timer.join(2)

    assert results == {"tick": True, "position": False}
    assert api.append_point.call_count == 1
    # The fix still extends the local polyline
    assert session.snapshot().polyline[-1] == (0.001, 0.001)


def test_concurrent_fixes_flush_once_per_window(session, api, clock):
    session.start(0, 0)
    clock.advance(5)
    barrier = threading.Barrier(5)

    def send_fix(i):
        barrier.wait()
        session.on_position(i * 0.001, i * 0.001)

    threads = [threading.Thread(target=send_fix, args=(i,)) for i in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert api.append_point.call_count == 1
    assert len(session.snapshot().polyline) == 6


def test_finish_before_start_raises_state_error(session, api):
    with pytest.raises(RecordingStateError):
        session.finish(1, 1)

    api.end_trip.assert_not_called()
