"""Wishlist of places the user wants to visit"""
import json
import logging

import sqlalchemy
from fastapi import APIRouter, Depends, HTTPException, Query, status

from vroom import database as db
from vroom.api import auth
from vroom.api.common import CamelModel, parse_json_field, to_iso8601, utcnow

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/wishlist",
    tags=["wishlist"],
    dependencies=[Depends(auth.get_current_user_id)]
)

# No filter (or anything unrecognised) shows visited items only
FILTER_ALL = "all"
FILTER_UNVISITED = "unvisited"
FILTER_VISITED = "visited"


class WishlistSource(CamelModel):
    name: str
    description: str = ""
    location: str
    category: str = "all"
    estimated_cost: str = ""
    rating: float = 0
    highlights: list[str] = []
    ai_recommendation_id: str | None = None


class WishlistCreate(CamelModel):
    source: WishlistSource


class WishlistToggle(CamelModel):
    wishlist_id: int


class WishlistItem(CamelModel):
    id: int
    user_id: int
    is_visited: bool
    source: WishlistSource
    created_at: str | None
    updated_at: str | None


class WishlistList(CamelModel):
    data: list[WishlistItem]
    total: int
    filter: str


class WishlistEnvelope(CamelModel):
    message: str
    data: WishlistItem


class MessageResponse(CamelModel):
    message: str


def _item_from_row(row) -> WishlistItem:
    return WishlistItem(
        id=row.id,
        user_id=row.user_id,
        is_visited=bool(row.is_visited),
        source=WishlistSource.model_validate(parse_json_field(row.source, dict)),
        created_at=to_iso8601(row.created_at),
        updated_at=to_iso8601(row.updated_at),
    )


def _fetch_user_items(connection, user_id: int) -> list[WishlistItem]:
    rows = connection.execute(
        sqlalchemy.text(
            """
            SELECT id, user_id, is_visited, source, created_at, updated_at
            FROM wishlists
            WHERE user_id = :user_id
            ORDER BY created_at DESC, id DESC
            """
        ),
        {"user_id": user_id}
    ).fetchall()
    return [_item_from_row(r) for r in rows]


def _get_owned_item(connection, wishlist_id: int, user_id: int):
    item = connection.execute(
        sqlalchemy.text(
            """
            SELECT id, user_id, is_visited, source, created_at, updated_at
            FROM wishlists
            WHERE id = :wishlist_id
            """
        ),
        {"wishlist_id": wishlist_id}
    ).fetchone()

    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Wishlist item not found"
        )
    if item.user_id != user_id:
        log.warning(f"[Wishlist] user_id={user_id} denied access to item {wishlist_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized access to wishlist item"
        )
    return item


@router.get("", response_model=WishlistList)
def get_wishlist(
    filter: str | None = Query(None),
    user_id: int = Depends(auth.get_current_user_id)
):
    """The caller's wishlist; ?filter=all or ?filter=unvisited widen the default visited-only view"""
    with db.engine.begin() as connection:
        items = _fetch_user_items(connection, user_id)

    if filter == FILTER_ALL:
        selected = items
    elif filter == FILTER_UNVISITED:
        selected = [i for i in items if not i.is_visited]
    else:
        selected = [i for i in items if i.is_visited]

    return WishlistList(data=selected, total=len(selected), filter=filter or FILTER_VISITED)


@router.post("", response_model=WishlistEnvelope, status_code=status.HTTP_201_CREATED)
def add_to_wishlist(body: WishlistCreate, user_id: int = Depends(auth.get_current_user_id)):
    """Save a place, typically one of the AI recommendations"""
    source = body.source
    if not source.name.strip() or not source.location.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Source data is required"
        )

    with db.engine.begin() as connection:
        existing = [
            i for i in _fetch_user_items(connection, user_id)
            if i.source.name == source.name and i.source.location == source.location
        ]
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Item already exists in wishlist"
            )

        now = utcnow().isoformat()
        row = connection.execute(
            sqlalchemy.text(
                """
                INSERT INTO wishlists (user_id, is_visited, source, created_at, updated_at)
                VALUES (:user_id, :is_visited, :source, :created_at, :updated_at)
                RETURNING id, user_id, is_visited, source, created_at, updated_at
                """
            ),
            {
                "user_id": user_id,
                "is_visited": False,
                "source": json.dumps(source.model_dump(by_alias=True)),
                "created_at": now,
                "updated_at": now,
            }
        ).fetchone()
        assert row is not None

    log.info(f"[Wishlist] user_id={user_id} saved '{source.name}'")
    return WishlistEnvelope(message="Item added to wishlist successfully", data=_item_from_row(row))


@router.put("", response_model=WishlistEnvelope)
def toggle_visited(body: WishlistToggle, user_id: int = Depends(auth.get_current_user_id)):
    """Flip an item between visited and not visited"""
    with db.engine.begin() as connection:
        item = _get_owned_item(connection, body.wishlist_id, user_id)

        row = connection.execute(
            sqlalchemy.text(
                """
                UPDATE wishlists
                SET is_visited = :is_visited, updated_at = :updated_at
                WHERE id = :wishlist_id
                RETURNING id, user_id, is_visited, source, created_at, updated_at
                """
            ),
            {
                "wishlist_id": body.wishlist_id,
                "is_visited": not bool(item.is_visited),
                "updated_at": utcnow().isoformat(),
            }
        ).fetchone()
        assert row is not None

    return WishlistEnvelope(message="Item updated successfully", data=_item_from_row(row))


@router.delete("", response_model=MessageResponse)
def remove_from_wishlist(
    wishlist_id: int | None = Query(None, alias="id"),
    user_id: int = Depends(auth.get_current_user_id)
):
    """Remove one of the caller's wishlist items"""
    if wishlist_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Wishlist ID is required"
        )

    with db.engine.begin() as connection:
        _get_owned_item(connection, wishlist_id, user_id)
        connection.execute(
            sqlalchemy.text("DELETE FROM wishlists WHERE id = :wishlist_id"),
            {"wishlist_id": wishlist_id}
        )

    log.info(f"[Wishlist] user_id={user_id} removed item {wishlist_id}")
    return MessageResponse(message="Item removed from wishlist successfully")
