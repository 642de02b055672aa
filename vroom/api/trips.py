"""Trip recording endpoints"""
import logging
from typing import Optional

import sqlalchemy
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field

from vroom import database as db
from vroom.api import auth
from vroom.api.common import CamelModel, parse_datetime, to_iso8601, utcnow
from vroom.services.geo import calculate_trip_distance, calculate_trip_duration

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/trips",
    tags=["trips"],
    dependencies=[Depends(auth.get_current_user_id)]
)

TRIP_COLUMNS = """
    id, user_id, start_lat, start_lng, end_lat, end_lng,
    start_time, end_time, distance, duration, is_public, created_at
"""


class Coordinates(CamelModel):
    lat: float = Field(ge=-90, le=90, strict=True)
    lng: float = Field(ge=-180, le=180, strict=True)


class TripStart(CamelModel):
    start_point: Coordinates


class TripEnd(CamelModel):
    end_point: Coordinates
    is_public: Optional[bool] = False


class PathPoint(CamelModel):
    lat: float
    lng: float
    timestamp: str


class TripResponse(CamelModel):
    id: int
    user_id: int
    status: str  # "recording" or "finalized"
    start_point: Coordinates
    end_point: Coordinates | None
    start_time: str
    end_time: str | None
    path: list[PathPoint]
    distance: float | None
    duration: int | None
    is_public: bool
    created_at: str | None


class TripEnvelope(CamelModel):
    message: str
    trip: TripResponse


def fetch_trip_row(connection, trip_id: int):
    return connection.execute(
        sqlalchemy.text(f"SELECT {TRIP_COLUMNS} FROM trips WHERE id = :trip_id"),
        {"trip_id": trip_id}
    ).mappings().fetchone()


def fetch_path(connection, trip_id: int) -> list[PathPoint]:
    """Path samples in the order they were appended."""
    rows = connection.execute(
        sqlalchemy.text(
            """
            SELECT lat, lng, timestamp
            FROM trip_path_points
            WHERE trip_id = :trip_id
            ORDER BY id
            """
        ),
        {"trip_id": trip_id}
    ).fetchall()
    return [PathPoint(lat=r.lat, lng=r.lng, timestamp=to_iso8601(r.timestamp)) for r in rows]


def build_trip_response(connection, trip) -> TripResponse:
    has_end = trip["end_lat"] is not None and trip["end_lng"] is not None
    return TripResponse(
        id=trip["id"],
        user_id=trip["user_id"],
        status="finalized" if trip["end_time"] is not None else "recording",
        start_point=Coordinates(lat=trip["start_lat"], lng=trip["start_lng"]),
        end_point=Coordinates(lat=trip["end_lat"], lng=trip["end_lng"]) if has_end else None,
        start_time=to_iso8601(trip["start_time"]),
        end_time=to_iso8601(trip["end_time"]),
        path=fetch_path(connection, trip["id"]),
        distance=trip["distance"],
        duration=trip["duration"],
        is_public=bool(trip["is_public"]),
        created_at=to_iso8601(trip["created_at"]),
    )


def get_trip_response(connection, trip_id: int) -> TripResponse | None:
    trip = fetch_trip_row(connection, trip_id)
    if not trip:
        return None
    return build_trip_response(connection, trip)


def _insert_path_point(connection, trip_id: int, lat: float, lng: float, timestamp) -> None:
    connection.execute(
        sqlalchemy.text(
            """
            INSERT INTO trip_path_points (trip_id, lat, lng, timestamp)
            VALUES (:trip_id, :lat, :lng, :timestamp)
            """
        ),
        {"trip_id": trip_id, "lat": lat, "lng": lng, "timestamp": timestamp.isoformat()}
    )


def _get_owned_trip(connection, trip_id: int, user_id: int):
    trip = fetch_trip_row(connection, trip_id)
    if not trip:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Trip not found"
        )
    if trip["user_id"] != user_id:
        log.warning(f"[Trips] user_id={user_id} tried to modify trip {trip_id} owned by {trip['user_id']}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not own this trip"
        )
    return trip


@router.post("", response_model=TripEnvelope, status_code=status.HTTP_201_CREATED)
def start_trip(body: TripStart, user_id: int = Depends(auth.get_current_user_id)):
    """Start recording a trip at the given point"""
    now = utcnow()
    log.info(f"[Trips] Starting trip for user_id={user_id} at ({body.start_point.lat}, {body.start_point.lng})")

    with db.engine.begin() as connection:
        result = connection.execute(
            sqlalchemy.text(
                """
                INSERT INTO trips (
                    user_id, start_lat, start_lng, start_time,
                    is_public, created_at, updated_at
                ) VALUES (
                    :user_id, :start_lat, :start_lng, :start_time,
                    :is_public, :created_at, :updated_at
                )
                RETURNING id
                """
            ),
            {
                "user_id": user_id,
                "start_lat": body.start_point.lat,
                "start_lng": body.start_point.lng,
                "start_time": now.isoformat(),
                "is_public": False,
                "created_at": now.isoformat(),
                "updated_at": now.isoformat(),
            }
        )
        row = result.fetchone()
        assert row is not None
        trip_id = row[0]

        # The path always begins with the start point
        _insert_path_point(connection, trip_id, body.start_point.lat, body.start_point.lng, now)

        trip = get_trip_response(connection, trip_id)
        assert trip is not None

    log.info(f"[Trips] Trip {trip_id} recording")
    return TripEnvelope(message="Trip started successfully", trip=trip)


@router.patch("/{trip_id}/edit", response_model=TripEnvelope)
def append_path_point(
    trip_id: int,
    body: Coordinates,
    user_id: int = Depends(auth.get_current_user_id)
):
    """Append one GPS sample to a trip that is still recording"""
    now = utcnow()
    with db.engine.begin() as connection:
        _get_owned_trip(connection, trip_id, user_id)

        # Guarded insert: the trip must still be recording at write time
        result = connection.execute(
            sqlalchemy.text(
                """
                INSERT INTO trip_path_points (trip_id, lat, lng, timestamp)
                SELECT :trip_id, :lat, :lng, :timestamp
                WHERE EXISTS (
                    SELECT 1 FROM trips WHERE id = :trip_id AND end_time IS NULL
                )
                """
            ),
            {"trip_id": trip_id, "lat": body.lat, "lng": body.lng, "timestamp": now.isoformat()}
        )
        if result.rowcount == 0:
            log.info(f"[Trips] Rejected point for finalized trip {trip_id}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Trip already ended"
            )

        connection.execute(
            sqlalchemy.text("UPDATE trips SET updated_at = :now WHERE id = :trip_id"),
            {"now": now.isoformat(), "trip_id": trip_id}
        )

        trip = get_trip_response(connection, trip_id)
        assert trip is not None

    log.debug(f"[Trips] Trip {trip_id} path length {len(trip.path)}")
    return TripEnvelope(message="Path updated successfully", trip=trip)


@router.patch("/{trip_id}/end", response_model=TripEnvelope)
def end_trip(
    trip_id: int,
    body: TripEnd,
    user_id: int = Depends(auth.get_current_user_id)
):
    """Finalize a trip: set the end point and compute distance and duration"""
    now = utcnow()
    with db.engine.begin() as connection:
        existing = _get_owned_trip(connection, trip_id, user_id)
        if existing["end_time"] is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Trip already ended"
            )

        end_point = {"lat": body.end_point.lat, "lng": body.end_point.lng}
        metrics_input = {
            "start_point": {"lat": existing["start_lat"], "lng": existing["start_lng"]},
            "end_point": end_point,
            "start_time": parse_datetime(existing["start_time"]),
            "end_time": now,
        }
        distance = calculate_trip_distance(metrics_input)
        duration = calculate_trip_duration(metrics_input)

        result = connection.execute(
            sqlalchemy.text(
                """
                UPDATE trips
                SET end_lat = :end_lat, end_lng = :end_lng, end_time = :end_time,
                    is_public = :is_public, distance = :distance, duration = :duration,
                    updated_at = :end_time
                WHERE id = :trip_id AND end_time IS NULL
                """
            ),
            {
                "trip_id": trip_id,
                "end_lat": end_point["lat"],
                "end_lng": end_point["lng"],
                "end_time": now.isoformat(),
                "is_public": bool(body.is_public),
                "distance": distance,
                "duration": duration,
            }
        )
        if result.rowcount == 0:
            # Another request finalized the trip first
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Trip already ended"
            )

        # The end point closes the path
        _insert_path_point(connection, trip_id, end_point["lat"], end_point["lng"], now)

        trip = get_trip_response(connection, trip_id)
        assert trip is not None

    log.info(f"[Trips] Trip {trip_id} ended: distance={distance:.1f}m duration={duration}ms")
    return TripEnvelope(message="Trip ended successfully", trip=trip)


@router.get("/{trip_id}", response_model=TripResponse)
def get_trip(trip_id: int, user_id: int = Depends(auth.get_current_user_id)):
    """Get a trip with its full path; public trips are visible to everyone"""
    with db.engine.begin() as connection:
        trip = fetch_trip_row(connection, trip_id)
        if not trip or (trip["user_id"] != user_id and not trip["is_public"]):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Trip not found"
            )
        return build_trip_response(connection, trip)


@router.get("", response_model=list[TripResponse])
def get_trips(
    public: bool = Query(False),
    user_id: int = Depends(auth.get_current_user_id)
):
    """List the caller's trips, or every public finalized trip with ?public=true"""
    if public:
        where = "is_public = :is_public AND end_time IS NOT NULL"
        params = {"is_public": True}
    else:
        where = "user_id = :user_id"
        params = {"user_id": user_id}

    with db.engine.begin() as connection:
        trips = connection.execute(
            sqlalchemy.text(
                f"""
                SELECT {TRIP_COLUMNS}
                FROM trips
                WHERE {where}
                ORDER BY created_at DESC, id DESC
                """
            ),
            params
        ).mappings().fetchall()

        return [build_trip_response(connection, t) for t in trips]
