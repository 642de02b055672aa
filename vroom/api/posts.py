"""Trip posts and the public feed"""
import json
import logging

import sqlalchemy
from fastapi import APIRouter, Depends, HTTPException, status

from vroom import database as db
from vroom.api import auth
from vroom.api.common import CamelModel, UserSummary, fetch_user_summary, parse_json_field, to_iso8601, utcnow
from vroom.api.trips import TripResponse, get_trip_response

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/post",
    tags=["posts"]
)


class PostCreate(CamelModel):
    trip_id: int
    caption: str | None = None
    image_urls: list[str] = []


class PostResponse(CamelModel):
    id: int
    user_id: int
    trip_id: int
    caption: str | None
    image_urls: list[str]
    created_at: str | None
    updated_at: str | None
    trip: TripResponse | None = None
    user: UserSummary | None = None
    comment_count: int = 0
    like_count: int = 0
    is_liked: bool = False


class PostFeed(CamelModel):
    posts: list[PostResponse]


class PostEnvelope(CamelModel):
    message: str
    post: PostResponse


class PostDetail(CamelModel):
    post: PostResponse


def fetch_post_row(connection, post_id: int):
    return connection.execute(
        sqlalchemy.text(
            """
            SELECT id, user_id, trip_id, caption, image_urls, created_at, updated_at
            FROM posts
            WHERE id = :post_id
            """
        ),
        {"post_id": post_id}
    ).mappings().fetchone()


def require_post(connection, post_id: int):
    post = fetch_post_row(connection, post_id)
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )
    return post


def build_post_response(connection, post, **counts) -> PostResponse:
    """Join a post row with its trip and author."""
    return PostResponse(
        id=post["id"],
        user_id=post["user_id"],
        trip_id=post["trip_id"],
        caption=post["caption"],
        image_urls=parse_json_field(post["image_urls"], list),
        created_at=to_iso8601(post["created_at"]),
        updated_at=to_iso8601(post["updated_at"]),
        trip=get_trip_response(connection, post["trip_id"]),
        user=fetch_user_summary(connection, post["user_id"]),
        **counts
    )


@router.get("", response_model=PostFeed)
def get_posts(viewer_id: int | None = Depends(auth.get_optional_user_id)):
    """Feed of all posts, newest first, with counts and the viewer's like state"""
    with db.engine.begin() as connection:
        posts = connection.execute(
            sqlalchemy.text(
                """
                SELECT p.id, p.user_id, p.trip_id, p.caption, p.image_urls,
                       p.created_at, p.updated_at,
                       (SELECT COUNT(*) FROM comments c WHERE c.post_id = p.id) AS comment_count,
                       (SELECT COUNT(*) FROM likes l WHERE l.post_id = p.id) AS like_count,
                       (SELECT COUNT(*) FROM likes l
                        WHERE l.post_id = p.id AND l.user_id = :viewer_id) AS viewer_likes
                FROM posts p
                ORDER BY p.created_at DESC, p.id DESC
                """
            ),
            {"viewer_id": viewer_id}
        ).mappings().fetchall()

        return PostFeed(posts=[
            build_post_response(
                connection,
                p,
                comment_count=p["comment_count"],
                like_count=p["like_count"],
                is_liked=viewer_id is not None and p["viewer_likes"] > 0,
            )
            for p in posts
        ])


@router.post("", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
def create_post(body: PostCreate, user_id: int = Depends(auth.get_current_user_id)):
    """Share a recorded trip with a caption and photos"""
    with db.engine.begin() as connection:
        trip = connection.execute(
            sqlalchemy.text("SELECT id, user_id FROM trips WHERE id = :trip_id"),
            {"trip_id": body.trip_id}
        ).fetchone()

        if not trip or trip.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Trip not found or not owned by user"
            )

        now = utcnow().isoformat()
        result = connection.execute(
            sqlalchemy.text(
                """
                INSERT INTO posts (user_id, trip_id, caption, image_urls, created_at, updated_at)
                VALUES (:user_id, :trip_id, :caption, :image_urls, :created_at, :updated_at)
                RETURNING id
                """
            ),
            {
                "user_id": user_id,
                "trip_id": body.trip_id,
                "caption": body.caption or None,
                "image_urls": json.dumps(body.image_urls),
                "created_at": now,
                "updated_at": now,
            }
        )
        row = result.fetchone()
        assert row is not None

        post = fetch_post_row(connection, row[0])
        assert post is not None
        response = build_post_response(connection, post)

    log.info(f"[Posts] user_id={user_id} posted trip {body.trip_id} as post {response.id}")
    return PostEnvelope(message="Post created", post=response)


@router.get("/{post_id}", response_model=PostDetail)
def get_post(post_id: int):
    """Get a single post with its trip and author"""
    with db.engine.begin() as connection:
        post = require_post(connection, post_id)
        return PostDetail(post=build_post_response(connection, post))
