"""Post likes (toggle)"""
import logging

import sqlalchemy
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from vroom import database as db
from vroom.api import auth
from vroom.api.common import CamelModel, UserSummary, fetch_user_summary, to_iso8601, utcnow
from vroom.api.posts import require_post

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/likes",
    tags=["likes"]
)


class LikeToggle(CamelModel):
    post_id: int


class LikeRecord(CamelModel):
    id: int
    user_id: int
    post_id: int
    user: UserSummary | None
    created_at: str | None


class LikeList(CamelModel):
    data: list[LikeRecord]
    total: int
    like_count: int


class LikeStatus(CamelModel):
    message: str | None = None
    is_liked: bool
    like_count: int


def count_likes(connection, post_id: int) -> int:
    return connection.execute(
        sqlalchemy.text("SELECT COUNT(*) FROM likes WHERE post_id = :post_id"),
        {"post_id": post_id}
    ).scalar_one()


def add_like(connection, user_id: int, post_id: int) -> bool:
    """Insert the like unless it already exists. Returns True when a row was added.

    Unique (user_id, post_id) keeps concurrent likes from duplicating.
    """
    return connection.execute(
        sqlalchemy.text(
            """
            INSERT INTO likes (user_id, post_id, created_at)
            VALUES (:user_id, :post_id, :created_at)
            ON CONFLICT (user_id, post_id) DO NOTHING
            """
        ),
        {"user_id": user_id, "post_id": post_id, "created_at": utcnow().isoformat()}
    ).rowcount > 0


def _require_post_id(post_id: int | None) -> int:
    if post_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Post ID is required"
        )
    return post_id


@router.get("", response_model=LikeList)
def get_likes(post_id: int | None = Query(None, alias="postId")):
    """List who liked a post"""
    post_id = _require_post_id(post_id)
    with db.engine.begin() as connection:
        require_post(connection, post_id)

        likes = connection.execute(
            sqlalchemy.text(
                """
                SELECT id, user_id, post_id, created_at
                FROM likes
                WHERE post_id = :post_id
                ORDER BY id
                """
            ),
            {"post_id": post_id}
        ).fetchall()

        data = [
            LikeRecord(
                id=like.id,
                user_id=like.user_id,
                post_id=like.post_id,
                user=fetch_user_summary(connection, like.user_id),
                created_at=to_iso8601(like.created_at),
            )
            for like in likes
        ]

    return LikeList(data=data, total=len(data), like_count=len(data))


@router.post("", response_model=LikeStatus)
def toggle_like(
    body: LikeToggle,
    response: Response,
    user_id: int = Depends(auth.get_current_user_id)
):
    """Like a post, or unlike it if the caller already liked it"""
    with db.engine.begin() as connection:
        require_post(connection, body.post_id)

        # Delete first; the affected row count decides the direction of the toggle
        removed = connection.execute(
            sqlalchemy.text("DELETE FROM likes WHERE user_id = :user_id AND post_id = :post_id"),
            {"user_id": user_id, "post_id": body.post_id}
        ).rowcount

        if removed:
            like_count = count_likes(connection, body.post_id)
            log.info(f"[Likes] user_id={user_id} unliked post {body.post_id}")
            response.status_code = status.HTTP_200_OK
            return LikeStatus(message="Post unliked successfully", is_liked=False, like_count=like_count)

        add_like(connection, user_id, body.post_id)
        like_count = count_likes(connection, body.post_id)

    log.info(f"[Likes] user_id={user_id} liked post {body.post_id}")
    response.status_code = status.HTTP_201_CREATED
    return LikeStatus(message="Post liked successfully", is_liked=True, like_count=like_count)


@router.put("", response_model=LikeStatus)
def get_like_status(
    post_id: int | None = Query(None, alias="postId"),
    user_id: int = Depends(auth.get_current_user_id)
):
    """Whether the caller likes a post, without changing anything"""
    post_id = _require_post_id(post_id)
    with db.engine.begin() as connection:
        liked = connection.execute(
            sqlalchemy.text("SELECT 1 FROM likes WHERE user_id = :user_id AND post_id = :post_id"),
            {"user_id": user_id, "post_id": post_id}
        ).fetchone()
        like_count = count_likes(connection, post_id)

    return LikeStatus(is_liked=liked is not None, like_count=like_count)
