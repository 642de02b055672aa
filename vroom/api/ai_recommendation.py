"""AI travel recommendations"""
import json
import logging
import time

import sqlalchemy
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from vroom import database as db
from vroom.api import auth
from vroom.api.common import CamelModel, utcnow
from vroom.api.wishlist import WishlistSource
from vroom.services.ai_recommendations import (
    RecommendationQuery,
    determine_category,
    generate_recommendations,
)

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/ai-recommendation",
    tags=["ai"]
)


class RecommendationRequest(CamelModel):
    location: str | None = None
    budget: str | None = None
    duration: str | None = None
    interests: str | None = None
    travel_type: str | None = None


class Recommendation(CamelModel):
    name: str
    description: str
    location: str
    category: str
    estimated_cost: str
    rating: float | None = None
    highlights: list[str]
    wishlist_data: WishlistSource


class RecommendationData(CamelModel):
    recommendations: list[Recommendation]
    summary: str
    tips: list[str]


class RecommendationResponse(CamelModel):
    success: bool = True
    data: RecommendationData
    location: str
    request_id: str
    timestamp: str
    is_fallback: bool
    wishlist_info: dict


WISHLIST_INFO = {
    "addToWishlistEndpoint": "/api/v1/wishlist",
    "method": "POST",
    "note": "Use wishlistData from each recommendation to add to wishlist",
}


def save_recommendation(query: RecommendationQuery, response: dict, category: str, user_id: int | None) -> int | None:
    """Persist the request and reply; storage problems never fail the request."""
    try:
        with db.engine.begin() as connection:
            row = connection.execute(
                sqlalchemy.text(
                    """
                    INSERT INTO ai_recommendations (
                        user_id, location, category, budget, duration,
                        prompt, response, is_public, created_at
                    ) VALUES (
                        :user_id, :location, :category, :budget, :duration,
                        :prompt, :response, :is_public, :created_at
                    )
                    RETURNING id
                    """
                ),
                {
                    "user_id": user_id,
                    "location": query.location,
                    "category": category,
                    "budget": query.budget,
                    "duration": query.duration,
                    "prompt": (
                        f"Location: {query.location}, Budget: {query.budget}, Duration: {query.duration}, "
                        f"Interests: {query.interests}, Travel Type: {query.travel_type}"
                    ),
                    "response": json.dumps(response),
                    "is_public": True,
                    "created_at": utcnow().isoformat(),
                }
            ).fetchone()
            return row[0] if row else None
    except SQLAlchemyError as e:
        log.warning(f"[AI] Could not save recommendation: {type(e).__name__}: {e}")
        return None


@router.post("", response_model=RecommendationResponse)
async def recommend(
    body: RecommendationRequest,
    user_id: int | None = Depends(auth.get_optional_user_id)
):
    """Recommend places for a location; falls back to a templated answer if the model is unavailable"""
    if not body.location or not body.location.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Location is required and cannot be empty"
        )

    query = RecommendationQuery(
        location=body.location.strip(),
        budget=body.budget,
        duration=body.duration,
        interests=body.interests,
        travel_type=body.travel_type,
    )
    category = determine_category(query.interests)

    result, used_fallback = await generate_recommendations(query)
    saved_id = save_recommendation(query, result, category, user_id)
    request_id = str(saved_id) if saved_id is not None else f"temp_{int(time.time() * 1000)}"

    log.info(f"[AI] {len(result['recommendations'])} recommendations for '{query.location}' (fallback={used_fallback})")

    recommendations = []
    for rec in result["recommendations"]:
        wishlist_data = WishlistSource(
            name=rec["name"],
            description=rec["description"],
            location=rec["location"] or query.location,
            category=rec["category"],
            estimated_cost=rec["estimatedCost"],
            rating=rec["rating"] or 0,
            highlights=rec["highlights"],
            ai_recommendation_id=request_id,
        )
        recommendations.append(Recommendation(
            **rec,
            wishlist_data=wishlist_data,
        ))

    return RecommendationResponse(
        data=RecommendationData(
            recommendations=recommendations,
            summary=result["summary"],
            tips=result["tips"],
        ),
        location=query.location,
        request_id=request_id,
        timestamp=utcnow().isoformat(),
        is_fallback=used_fallback,
        wishlist_info=WISHLIST_INFO,
    )


@router.get("")
def service_info():
    """Describe the recommendation service and its supported options"""
    return {
        "success": True,
        "message": "AI Travel Recommendation Service",
        "version": "1.0.0",
        "status": "active",
        "endpoints": {
            "POST /api/v1/ai-recommendation": {
                "description": "Generate travel recommendations using AI",
                "required": ["location"],
                "optional": ["budget", "duration", "interests", "travelType"],
                "example": {
                    "location": "Jakarta",
                    "budget": "sedang",
                    "duration": "dua_hari",
                    "interests": "wisata alam, kuliner",
                    "travelType": "family trip",
                },
            },
            "GET /api/v1/ai-recommendation": "Get service information",
        },
        "supportedOptions": {
            "budgetOptions": ["murah", "sedang", "mahal", "luxury"],
            "categories": ["wisata_alam", "wisata_budaya", "kuliner", "belanja", "hiburan"],
            "durations": ["setengah_hari", "satu_hari", "dua_hari", "tiga_hari_lebih"],
            "travelTypes": ["solo travel", "family trip", "romantic getaway", "adventure trip", "business trip"],
        },
    }
