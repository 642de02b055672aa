"""Tests for comments API endpoints"""
import pytest
from fastapi import HTTPException

from vroom.api.comments import CommentCreate, create_comment, delete_comment, get_comments
from vroom.api.posts import PostCreate, create_post
from vroom.api.trips import Coordinates, TripStart, start_trip


def _post(user_id: int) -> int:
    trip = start_trip(TripStart(start_point=Coordinates(lat=-6.2, lng=106.8)), user_id=user_id).trip
    return create_post(PostCreate(trip_id=trip.id), user_id=user_id).post.id


def test_create_and_list_comments(create_user):
    author_id = create_user(email="author@vroomapp.com", name="Author")
    reader_id = create_user(email="reader@vroomapp.com", name="Reader")
    post_id = _post(author_id)

    first = create_comment(CommentCreate(post_id=post_id, content="  Great views  "), user_id=reader_id)
    create_comment(CommentCreate(post_id=post_id, content="Thank you"), user_id=author_id)

    assert first.message == "Comment created successfully"
    assert first.data.content == "Great views"
    assert first.data.user.name == "Reader"

    comments = get_comments(post_id=post_id)
    assert comments.total == 2
    assert [c.content for c in comments.data] == ["Great views", "Thank you"]


def test_blank_comment_rejected(create_user):
    user_id = create_user()
    post_id = _post(user_id)

    with pytest.raises(HTTPException) as exc_info:
        create_comment(CommentCreate(post_id=post_id, content="   "), user_id=user_id)

    assert exc_info.value.status_code == 400


def test_comment_on_missing_post(create_user):
    user_id = create_user()

    with pytest.raises(HTTPException) as exc_info:
        create_comment(CommentCreate(post_id=1234567, content="Hello"), user_id=user_id)

    assert exc_info.value.status_code == 404


def test_get_comments_requires_post_id():
    with pytest.raises(HTTPException) as exc_info:
        get_comments(post_id=None)

    assert exc_info.value.status_code == 400


def test_delete_own_comment(create_user):
    user_id = create_user()
    post_id = _post(user_id)
    comment = create_comment(CommentCreate(post_id=post_id, content="Oops"), user_id=user_id).data

    result = delete_comment(comment_id=comment.id, user_id=user_id)

    assert result.message == "Comment deleted successfully"
    assert get_comments(post_id=post_id).total == 0


def test_cannot_delete_others_comment(create_user):
    author_id = create_user(email="author@vroomapp.com")
    other_id = create_user(email="other@vroomapp.com")
    post_id = _post(author_id)
    comment = create_comment(CommentCreate(post_id=post_id, content="Mine"), user_id=author_id).data

    with pytest.raises(HTTPException) as exc_info:
        delete_comment(comment_id=comment.id, user_id=other_id)

    assert exc_info.value.status_code == 403
    assert get_comments(post_id=post_id).total == 1


def test_delete_missing_comment(create_user):
    user_id = create_user()

    with pytest.raises(HTTPException) as exc_info:
        delete_comment(comment_id=99999, user_id=user_id)
    assert exc_info.value.status_code == 404

    with pytest.raises(HTTPException) as exc_info:
        delete_comment(comment_id=None, user_id=user_id)
    assert exc_info.value.status_code == 400
