"""Follow relationships between users (toggle)"""
import logging

import sqlalchemy
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from vroom import database as db
from vroom.api import auth
from vroom.api.common import CamelModel, UserSummary, fetch_user_summary, to_iso8601, utcnow

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/follow",
    tags=["follow"]
)

FOLLOW_TYPES = ("followers", "following")


class FollowToggle(CamelModel):
    following_id: int


class FollowRecord(CamelModel):
    id: int
    follower_id: int
    following_id: int
    user: UserSummary | None
    created_at: str | None


class FollowList(CamelModel):
    data: list[FollowRecord]
    total: int
    type: str


class FollowStatus(CamelModel):
    message: str | None = None
    is_following: bool
    followers_count: int
    following_count: int


def follow_counts(connection, user_id: int) -> tuple[int, int]:
    """(followers, following) for a user."""
    followers = connection.execute(
        sqlalchemy.text("SELECT COUNT(*) FROM follows WHERE following_id = :user_id"),
        {"user_id": user_id}
    ).scalar_one()
    following = connection.execute(
        sqlalchemy.text("SELECT COUNT(*) FROM follows WHERE follower_id = :user_id"),
        {"user_id": user_id}
    ).scalar_one()
    return followers, following


def add_follow(connection, follower_id: int, following_id: int) -> bool:
    """Insert the follow unless it already exists. Returns True when a row was added."""
    return connection.execute(
        sqlalchemy.text(
            """
            INSERT INTO follows (follower_id, following_id, created_at)
            VALUES (:follower_id, :following_id, :created_at)
            ON CONFLICT (follower_id, following_id) DO NOTHING
            """
        ),
        {"follower_id": follower_id, "following_id": following_id, "created_at": utcnow().isoformat()}
    ).rowcount > 0


@router.get("", response_model=FollowList)
def get_follows(
    user_id: int | None = Query(None, alias="userId"),
    follow_type: str | None = Query(None, alias="type"),
):
    """List a user's followers, or the users they follow"""
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User ID is required"
        )
    if follow_type not in FOLLOW_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Type must be 'followers' or 'following'"
        )

    with db.engine.begin() as connection:
        if fetch_user_summary(connection, user_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        # followers: rows pointing at the user; following: rows the user created
        match_column = "following_id" if follow_type == "followers" else "follower_id"
        rows = connection.execute(
            sqlalchemy.text(
                f"""
                SELECT id, follower_id, following_id, created_at
                FROM follows
                WHERE {match_column} = :user_id
                ORDER BY id
                """
            ),
            {"user_id": user_id}
        ).fetchall()

        data = []
        for row in rows:
            other_id = row.follower_id if follow_type == "followers" else row.following_id
            data.append(FollowRecord(
                id=row.id,
                follower_id=row.follower_id,
                following_id=row.following_id,
                user=fetch_user_summary(connection, other_id),
                created_at=to_iso8601(row.created_at),
            ))

    return FollowList(data=data, total=len(data), type=follow_type)


@router.post("", response_model=FollowStatus)
def toggle_follow(
    body: FollowToggle,
    response: Response,
    follower_id: int = Depends(auth.get_current_user_id)
):
    """Follow a user, or unfollow if already following"""
    if follower_id == body.following_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot follow yourself"
        )

    with db.engine.begin() as connection:
        if fetch_user_summary(connection, body.following_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User to follow not found"
            )

        removed = connection.execute(
            sqlalchemy.text(
                "DELETE FROM follows WHERE follower_id = :follower_id AND following_id = :following_id"
            ),
            {"follower_id": follower_id, "following_id": body.following_id}
        ).rowcount

        if not removed:
            add_follow(connection, follower_id, body.following_id)

        followers_count, _ = follow_counts(connection, body.following_id)
        _, following_count = follow_counts(connection, follower_id)

    if removed:
        log.info(f"[Follow] user_id={follower_id} unfollowed {body.following_id}")
        response.status_code = status.HTTP_200_OK
        message = "User unfollowed successfully"
    else:
        log.info(f"[Follow] user_id={follower_id} followed {body.following_id}")
        response.status_code = status.HTTP_201_CREATED
        message = "User followed successfully"

    return FollowStatus(
        message=message,
        is_following=not removed,
        followers_count=followers_count,
        following_count=following_count,
    )


@router.put("", response_model=FollowStatus)
def get_follow_status(
    following_id: int | None = Query(None, alias="followingId"),
    follower_id: int = Depends(auth.get_current_user_id)
):
    """Whether the caller follows a user, without changing anything"""
    if following_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Following user ID is required"
        )

    with db.engine.begin() as connection:
        existing = connection.execute(
            sqlalchemy.text(
                "SELECT 1 FROM follows WHERE follower_id = :follower_id AND following_id = :following_id"
            ),
            {"follower_id": follower_id, "following_id": following_id}
        ).fetchone()
        followers_count, _ = follow_counts(connection, following_id)
        _, following_count = follow_counts(connection, follower_id)

    return FollowStatus(
        is_following=existing is not None,
        followers_count=followers_count,
        following_count=following_count,
    )
