"""Comments on posts"""
import logging

import sqlalchemy
from fastapi import APIRouter, Depends, HTTPException, Query, status

from vroom import database as db
from vroom.api import auth
from vroom.api.common import CamelModel, UserSummary, fetch_user_summary, to_iso8601, utcnow
from vroom.api.posts import require_post

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/comments",
    tags=["comments"]
)


class CommentCreate(CamelModel):
    post_id: int
    content: str


class CommentResponse(CamelModel):
    id: int
    user_id: int
    post_id: int
    content: str
    user: UserSummary | None
    created_at: str | None
    updated_at: str | None


class CommentList(CamelModel):
    data: list[CommentResponse]
    total: int


class CommentEnvelope(CamelModel):
    message: str
    data: CommentResponse


class MessageResponse(CamelModel):
    message: str


def _comment_response(connection, comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        user_id=comment.user_id,
        post_id=comment.post_id,
        content=comment.content,
        user=fetch_user_summary(connection, comment.user_id),
        created_at=to_iso8601(comment.created_at),
        updated_at=to_iso8601(comment.updated_at),
    )


@router.get("", response_model=CommentList)
def get_comments(post_id: int | None = Query(None, alias="postId")):
    """Comments on a post, oldest first"""
    if post_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Post ID is required"
        )

    with db.engine.begin() as connection:
        require_post(connection, post_id)
        comments = connection.execute(
            sqlalchemy.text(
                """
                SELECT id, user_id, post_id, content, created_at, updated_at
                FROM comments
                WHERE post_id = :post_id
                ORDER BY created_at ASC, id ASC
                """
            ),
            {"post_id": post_id}
        ).fetchall()

        data = [_comment_response(connection, c) for c in comments]

    return CommentList(data=data, total=len(data))


@router.post("", response_model=CommentEnvelope, status_code=status.HTTP_201_CREATED)
def create_comment(body: CommentCreate, user_id: int = Depends(auth.get_current_user_id)):
    """Comment on a post"""
    content = body.content.strip()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Comment content cannot be empty"
        )

    with db.engine.begin() as connection:
        require_post(connection, body.post_id)

        now = utcnow().isoformat()
        comment = connection.execute(
            sqlalchemy.text(
                """
                INSERT INTO comments (user_id, post_id, content, created_at, updated_at)
                VALUES (:user_id, :post_id, :content, :created_at, :updated_at)
                RETURNING id, user_id, post_id, content, created_at, updated_at
                """
            ),
            {
                "user_id": user_id,
                "post_id": body.post_id,
                "content": content,
                "created_at": now,
                "updated_at": now,
            }
        ).fetchone()
        assert comment is not None

        response = _comment_response(connection, comment)

    log.info(f"[Comments] user_id={user_id} commented on post {body.post_id}")
    return CommentEnvelope(message="Comment created successfully", data=response)


@router.delete("", response_model=MessageResponse)
def delete_comment(
    comment_id: int | None = Query(None, alias="commentId"),
    user_id: int = Depends(auth.get_current_user_id)
):
    """Delete one of the caller's comments"""
    if comment_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Comment ID is required"
        )

    with db.engine.begin() as connection:
        comment = connection.execute(
            sqlalchemy.text("SELECT id, user_id FROM comments WHERE id = :comment_id"),
            {"comment_id": comment_id}
        ).fetchone()

        if not comment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Comment not found"
            )

        if comment.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Unauthorized to delete this comment"
            )

        connection.execute(
            sqlalchemy.text("DELETE FROM comments WHERE id = :comment_id"),
            {"comment_id": comment_id}
        )

    return MessageResponse(message="Comment deleted successfully")
