"""Travel recommendations from a generative model, with a deterministic fallback."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

import httpx

from vroom.config import get_settings

settings = get_settings()
log = logging.getLogger(__name__)

FALLBACK_RATING = 4.2

# Interest keywords (Indonesian and English) to recommendation category
CATEGORY_KEYWORDS = [
    (("alam", "nature"), "wisata_alam"),
    (("budaya", "culture"), "wisata_budaya"),
    (("kuliner", "food", "culinary"), "kuliner"),
    (("belanja", "shopping"), "belanja"),
    (("hiburan", "entertainment"), "hiburan"),
]

BUDGET_COST_RANGES = {
    "murah": "Rp 25.000 - 75.000",
    "sedang": "Rp 75.000 - 150.000",
    "mahal": "Rp 150.000 - 300.000",
}

_CODE_FENCE = re.compile(r"```(?:json)?")


@dataclass
class RecommendationQuery:
    location: str
    budget: str | None = None
    duration: str | None = None
    interests: str | None = None
    travel_type: str | None = None


def determine_category(interests: str | None) -> str:
    if not interests:
        return "all"
    lowered = interests.lower()
    for keywords, category in CATEGORY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return category
    return "all"


def build_prompt(query: RecommendationQuery) -> str:
    return f"""
You are an experienced Indonesian travel recommendation assistant.
Recommend places to visit for:
- Location: {query.location}
- Budget: {query.budget or 'Varies'}
- Duration: {query.duration or 'Flexible'}
- Interests: {query.interests or 'General'}
- Travel type: {query.travel_type or 'General sightseeing'}

Give 5-7 suitable recommendations. Reply with valid JSON only, in this shape:
{{
    "recommendations": [
        {{
            "name": "Place name",
            "description": "Short description (at most 100 words)",
            "location": "Specific address",
            "category": "wisata_alam",
            "estimatedCost": "Rp 50.000 - 100.000",
            "rating": 4.5,
            "highlights": ["Scenic views", "Photo spots", "Local food"]
        }}
    ],
    "summary": "One or two sentence summary",
    "tips": ["Practical tip 1", "Practical tip 2", "Practical tip 3"]
}}
No characters outside the JSON.
""".strip()


def fallback_response(query: RecommendationQuery, category: str) -> dict:
    """Single templated recommendation derived only from the request."""
    return {
        "recommendations": [
            {
                "name": f"Destinasi Wisata di {query.location}",
                "description": (
                    f"Berbagai pilihan tempat wisata menarik di {query.location} "
                    f"yang cocok untuk {query.travel_type or 'wisata umum'}."
                ),
                "location": query.location,
                "category": category,
                "estimatedCost": BUDGET_COST_RANGES.get(query.budget or "", "Bervariasi"),
                "rating": FALLBACK_RATING,
                "highlights": ["Destinasi populer", "Mudah diakses", "Cocok untuk keluarga"],
            }
        ],
        "summary": (
            f"Rekomendasi wisata di {query.location} dengan budget {query.budget or 'bervariasi'} "
            f"dan durasi {query.duration or 'fleksibel'}."
        ),
        "tips": [
            "Cek cuaca sebelum berangkat",
            "Siapkan budget tambahan untuk keperluan tak terduga",
            "Datang lebih pagi untuk menghindari keramaian",
        ],
    }


def parse_model_reply(text: str, category: str) -> dict:
    """Parse the model's text into the recommendation shape.

    Raises ValueError when the reply is not JSON or has no usable
    recommendations array.
    """
    cleaned = _CODE_FENCE.sub("", text).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f"Reply is not JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise ValueError("Reply is not a JSON object")

    raw_recs = parsed.get("recommendations")
    if not isinstance(raw_recs, list):
        raise ValueError("Invalid AI response structure")

    recommendations = []
    for rec in raw_recs:
        if not isinstance(rec, dict) or not rec.get("name"):
            continue
        highlights = rec.get("highlights")
        rating = rec.get("rating")
        recommendations.append({
            "name": str(rec["name"]),
            "description": str(rec.get("description") or ""),
            "location": str(rec.get("location") or ""),
            "category": str(rec.get("category") or category),
            "estimatedCost": str(rec.get("estimatedCost") or "Bervariasi"),
            "rating": float(rating) if isinstance(rating, (int, float)) else None,
            "highlights": [str(h) for h in highlights] if isinstance(highlights, list) else [],
        })

    if not recommendations:
        raise ValueError("AI response has no recommendations")

    tips = parsed.get("tips")
    return {
        "recommendations": recommendations,
        "summary": str(parsed.get("summary") or ""),
        "tips": [str(t) for t in tips] if isinstance(tips, list) else [],
    }


def _reply_text(payload: dict) -> str:
    """Text of the first candidate in a generateContent response."""
    if not isinstance(payload, dict):
        raise ValueError("Model response is not a JSON object")
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        raise ValueError("No candidates in model response")
    content = candidates[0].get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise ValueError("No content parts in model response")
    text = "".join(
        p["text"] for p in parts
        if isinstance(p, dict) and isinstance(p.get("text"), str)
    )
    if not text:
        raise ValueError("Empty model response")
    return text


async def generate_recommendations(query: RecommendationQuery) -> tuple[dict, bool]:
    """Ask the model for recommendations.

    Returns (response, used_fallback). Never raises for upstream problems:
    missing configuration, network failures, non-200 replies and unparseable
    text all produce the fallback response.
    """
    category = determine_category(query.interests)

    if not settings.GEMINI_API_KEY:
        log.warning("[AI] GEMINI_API_KEY not configured, using fallback recommendation")
        return fallback_response(query, category), True

    url = f"{settings.GEMINI_API_URL}/{settings.GEMINI_MODEL}:generateContent"
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                url,
                params={"key": settings.GEMINI_API_KEY},
                json={"contents": [{"parts": [{"text": build_prompt(query)}]}]},
                timeout=settings.AI_TIMEOUT_SECONDS
            )

            if response.status_code != 200:
                log.warning(f"[AI] Model returned {response.status_code}, using fallback")
                return fallback_response(query, category), True

            text = _reply_text(response.json())
            return parse_model_reply(text, category), False

    except httpx.TimeoutException:
        log.warning(f"[AI] Model timeout for location '{query.location}', using fallback")
    except httpx.HTTPError as e:
        log.warning(f"[AI] Model request failed: {type(e).__name__}: {e}")
    except ValueError as e:
        # Covers JSON decoding of the HTTP body and of the reply text
        log.warning(f"[AI] Unusable model reply: {e}")

    return fallback_response(query, category), True
