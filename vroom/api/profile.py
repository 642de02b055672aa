"""User profile endpoint"""

import sqlalchemy
from fastapi import APIRouter, Depends, HTTPException, status

from vroom import database as db
from vroom.api import auth
from vroom.api.common import CamelModel, to_iso8601
from vroom.api.follow import follow_counts
from vroom.api.posts import PostResponse, build_post_response

router = APIRouter(
    prefix="/api/v1/profile",
    tags=["profile"],
    dependencies=[Depends(auth.get_current_user_id)]
)


class ProfileUser(CamelModel):
    id: int
    name: str
    email: str
    created_at: str | None = None
    followers_count: int
    following_count: int
    posts: list[PostResponse]


class ProfileResponse(CamelModel):
    user: ProfileUser


@router.get("", response_model=ProfileResponse)
def get_profile(user_id: int = Depends(auth.get_current_user_id)):
    """Get the current user's profile with their posts and follow counts"""
    with db.engine.begin() as connection:
        user = connection.execute(
            sqlalchemy.text(
                """
                SELECT id, name, email, created_at
                FROM users
                WHERE id = :user_id
                """
            ),
            {"user_id": user_id}
        ).fetchone()

        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        posts = connection.execute(
            sqlalchemy.text(
                """
                SELECT id, user_id, trip_id, caption, image_urls, created_at, updated_at
                FROM posts
                WHERE user_id = :user_id
                ORDER BY created_at DESC, id DESC
                """
            ),
            {"user_id": user_id}
        ).mappings().fetchall()

        followers_count, following_count = follow_counts(connection, user_id)

        return ProfileResponse(user=ProfileUser(
            id=user.id,
            name=user.name,
            email=user.email,
            created_at=to_iso8601(user.created_at),
            followers_count=followers_count,
            following_count=following_count,
            posts=[build_post_response(connection, p) for p in posts],
        ))
