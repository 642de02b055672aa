"""Tests for the AI recommendation endpoint"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import sqlalchemy
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from vroom import database as db
from vroom.api.ai_recommendation import RecommendationRequest, recommend, service_info
from vroom.services import ai_recommendations


def _saved_rows():
    with db.engine.begin() as connection:
        return connection.execute(
            sqlalchemy.text("SELECT id, user_id, location, category, response FROM ai_recommendations")
        ).fetchall()


@pytest.mark.asyncio
async def test_unreachable_model_returns_fallback():
    """Jakarta with the model unreachable still gets one recommendation located in Jakarta"""
    with patch.object(ai_recommendations.settings, "GEMINI_API_KEY", "test-key"):
        with patch("vroom.services.ai_recommendations.httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance
            mock_instance.post.side_effect = httpx.ConnectError("Connection refused")

            result = await recommend(RecommendationRequest(location="Jakarta"), user_id=None)

    assert result.success is True
    assert result.is_fallback is True
    assert result.location == "Jakarta"
    assert len(result.data.recommendations) == 1
    rec = result.data.recommendations[0]
    assert rec.location == "Jakarta"
    assert rec.wishlist_data.location == "Jakarta"
    assert rec.wishlist_data.ai_recommendation_id == result.request_id


@pytest.mark.asyncio
async def test_missing_key_returns_fallback_and_saves(create_user):
    user_id = create_user()

    result = await recommend(
        RecommendationRequest(location="  Bandung ", budget="murah", interests="kuliner"),
        user_id=user_id
    )

    assert result.is_fallback is True
    assert result.location == "Bandung"
    rows = _saved_rows()
    assert len(rows) == 1
    assert rows[0].user_id == user_id
    assert rows[0].category == "kuliner"
    assert result.request_id == str(rows[0].id)
    assert json.loads(rows[0].response)["recommendations"][0]["location"] == "Bandung"


@pytest.mark.asyncio
async def test_model_reply_is_passed_through():
    reply = {
        "recommendations": [
            {
                "name": "Tangkuban Perahu",
                "description": "Volcano crater",
                "location": "Lembang",
                "category": "wisata_alam",
                "estimatedCost": "Rp 30.000",
                "rating": 4.6,
                "highlights": ["Crater", "Sulfur vents"],
            }
        ],
        "summary": "Nature near Bandung",
        "tips": ["Bring a jacket"],
    }

    with patch.object(ai_recommendations.settings, "GEMINI_API_KEY", "test-key"):
        with patch("vroom.services.ai_recommendations.httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance

            mock_resp = MagicMock()
            mock_resp.status_code = 200
            mock_resp.json.return_value = {"candidates": [{"content": {"parts": [{"text": json.dumps(reply)}]}}]}
            mock_instance.post.return_value = mock_resp

            result = await recommend(RecommendationRequest(location="Bandung", interests="alam"), user_id=None)

    assert result.is_fallback is False
    assert result.data.summary == "Nature near Bandung"
    rec = result.data.recommendations[0]
    assert rec.name == "Tangkuban Perahu"
    assert rec.wishlist_data.estimated_cost == "Rp 30.000"
    assert rec.wishlist_data.rating == 4.6


@pytest.mark.asyncio
async def test_storage_failure_uses_temporary_id():
    with patch("vroom.api.ai_recommendation.db.engine") as mock_engine:
        mock_engine.begin.side_effect = SQLAlchemyError("database is down")

        result = await recommend(RecommendationRequest(location="Jakarta"), user_id=None)

    assert result.request_id.startswith("temp_")
    assert result.data.recommendations[0].location == "Jakarta"


@pytest.mark.asyncio
async def test_empty_location_rejected():
    for location in (None, "", "   "):
        with pytest.raises(HTTPException) as exc_info:
            await recommend(RecommendationRequest(location=location), user_id=None)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Location is required and cannot be empty"


def test_service_info():
    info = service_info()

    assert info["success"] is True
    assert "location" in info["endpoints"]["POST /api/v1/ai-recommendation"]["required"]


@pytest.mark.asyncio
async def test_non_text_reply_part_returns_fallback():
    with patch.object(ai_recommendations.settings, "GEMINI_API_KEY", "test-key"):
        with patch("vroom.services.ai_recommendations.httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_client.return_value.__aenter__.return_value = mock_instance

            mock_resp = MagicMock()
            mock_resp.status_code = 200
            mock_resp.json.return_value = {"candidates": [{"content": {"parts": [{"text": 42}]}}]}
            mock_instance.post.return_value = mock_resp

            result = await recommend(RecommendationRequest(location="Jakarta"), user_id=None)

    assert result.success is True
    assert result.is_fallback is True
    assert result.data.recommendations[0].location == "Jakarta"
