"""Tests for wishlist API endpoints"""
import pytest
from fastapi import HTTPException

from vroom.api.wishlist import (
    WishlistCreate,
    WishlistSource,
    WishlistToggle,
    add_to_wishlist,
    get_wishlist,
    remove_from_wishlist,
    toggle_visited,
)


def _source(name: str = "Kota Tua", location: str = "Jakarta Barat") -> WishlistSource:
    return WishlistSource(
        name=name,
        description="Old town",
        location=location,
        category="wisata_budaya",
        estimated_cost="Rp 25.000 - 75.000",
        rating=4.5,
        highlights=["Museum", "Architecture"],
    )


def test_add_to_wishlist(create_user):
    user_id = create_user()

    envelope = add_to_wishlist(WishlistCreate(source=_source()), user_id=user_id)

    assert envelope.message == "Item added to wishlist successfully"
    item = envelope.data
    assert item.user_id == user_id
    assert item.is_visited is False
    assert item.source.name == "Kota Tua"
    assert item.source.highlights == ["Museum", "Architecture"]


def test_add_accepts_camel_case_source(create_user):
    """AI recommendations hand over wishlistData in camelCase"""
    user_id = create_user()
    body = WishlistCreate.model_validate({
        "source": {
            "name": "Monas",
            "location": "Jakarta Pusat",
            "estimatedCost": "Rp 20.000",
            "aiRecommendationId": "17",
        }
    })

    item = add_to_wishlist(body, user_id=user_id).data

    assert item.source.estimated_cost == "Rp 20.000"
    assert item.source.ai_recommendation_id == "17"


def test_add_requires_name_and_location(create_user):
    user_id = create_user()

    with pytest.raises(HTTPException) as exc_info:
        add_to_wishlist(WishlistCreate(source=_source(name="  ")), user_id=user_id)

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Source data is required"


def test_duplicate_rejected(create_user):
    user_id = create_user()
    add_to_wishlist(WishlistCreate(source=_source()), user_id=user_id)

    with pytest.raises(HTTPException) as exc_info:
        add_to_wishlist(WishlistCreate(source=_source()), user_id=user_id)

    assert exc_info.value.status_code == 409


def test_filters(create_user):
    """Default view is visited items; 'all' and 'unvisited' widen or flip it"""
    user_id = create_user()
    visited = add_to_wishlist(WishlistCreate(source=_source(name="Monas")), user_id=user_id).data
    add_to_wishlist(WishlistCreate(source=_source(name="Ancol")), user_id=user_id)
    toggle_visited(WishlistToggle(wishlist_id=visited.id), user_id=user_id)

    default = get_wishlist(filter=None, user_id=user_id)
    assert default.filter == "visited"
    assert [i.source.name for i in default.data] == ["Monas"]

    unvisited = get_wishlist(filter="unvisited", user_id=user_id)
    assert [i.source.name for i in unvisited.data] == ["Ancol"]

    everything = get_wishlist(filter="all", user_id=user_id)
    assert everything.total == 2


def test_toggle_visited_flips(create_user):
    user_id = create_user()
    item = add_to_wishlist(WishlistCreate(source=_source()), user_id=user_id).data

    first = toggle_visited(WishlistToggle(wishlist_id=item.id), user_id=user_id).data
    second = toggle_visited(WishlistToggle(wishlist_id=item.id), user_id=user_id).data

    assert first.is_visited is True
    assert second.is_visited is False


def test_wishlists_are_per_user(create_user):
    alice = create_user(email="alice@vroomapp.com")
    bob = create_user(email="bob@vroomapp.com")
    add_to_wishlist(WishlistCreate(source=_source()), user_id=alice)

    assert get_wishlist(filter="all", user_id=bob).total == 0
    # Same place is not a duplicate for another user
    add_to_wishlist(WishlistCreate(source=_source()), user_id=bob)
    assert get_wishlist(filter="all", user_id=bob).total == 1


def test_remove_item(create_user):
    user_id = create_user()
    item = add_to_wishlist(WishlistCreate(source=_source()), user_id=user_id).data

    result = remove_from_wishlist(wishlist_id=item.id, user_id=user_id)

    assert result.message == "Item removed from wishlist successfully"
    assert get_wishlist(filter="all", user_id=user_id).total == 0


def test_cannot_remove_someone_elses_item(create_user):
    """Deleting another user's item is forbidden and leaves it in place"""
    owner_id = create_user(email="owner@vroomapp.com")
    other_id = create_user(email="other@vroomapp.com")
    item = add_to_wishlist(WishlistCreate(source=_source()), user_id=owner_id).data

    with pytest.raises(HTTPException) as exc_info:
        remove_from_wishlist(wishlist_id=item.id, user_id=other_id)

    assert exc_info.value.status_code == 403
    remaining = get_wishlist(filter="all", user_id=owner_id).data
    assert [i.id for i in remaining] == [item.id]


def test_cannot_toggle_someone_elses_item(create_user):
    owner_id = create_user(email="owner@vroomapp.com")
    other_id = create_user(email="other@vroomapp.com")
    item = add_to_wishlist(WishlistCreate(source=_source()), user_id=owner_id).data

    with pytest.raises(HTTPException) as exc_info:
        toggle_visited(WishlistToggle(wishlist_id=item.id), user_id=other_id)

    assert exc_info.value.status_code == 403


def test_remove_missing_item(create_user):
    user_id = create_user()

    with pytest.raises(HTTPException) as exc_info:
        remove_from_wishlist(wishlist_id=424242, user_id=user_id)
    assert exc_info.value.status_code == 404

    with pytest.raises(HTTPException) as exc_info:
        remove_from_wishlist(wishlist_id=None, user_id=user_id)
    assert exc_info.value.status_code == 400
