"""Synchronous HTTP client for the Vroom API, used by the recording session."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from vroom.config import get_settings

settings = get_settings()
log = logging.getLogger(__name__)


class VroomAPIError(Exception):
    """Non-2xx reply from the API."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def sample_recommendations(location: str) -> dict:
    """Recommendation payload shown when the service cannot be reached."""
    names = [
        (f"Pusat Kota {location}", "wisata_budaya", "Rp 25.000 - 75.000", 4.5),
        (f"Taman Kota {location}", "wisata_alam", "Gratis", 4.3),
        (f"Kuliner Khas {location}", "kuliner", "Rp 50.000 - 100.000", 4.6),
    ]
    recommendations = []
    for name, category, cost, rating in names:
        rec = {
            "name": name,
            "description": f"Salah satu tempat yang sering dikunjungi di {location}.",
            "location": location,
            "category": category,
            "estimatedCost": cost,
            "rating": rating,
            "highlights": ["Populer", "Mudah diakses"],
        }
        rec["wishlistData"] = {**rec, "aiRecommendationId": None}
        recommendations.append(rec)

    return {
        "success": True,
        "data": {
            "recommendations": recommendations,
            "summary": f"Contoh rekomendasi untuk {location}.",
            "tips": ["Cek cuaca sebelum berangkat", "Bawa uang tunai secukupnya"],
        },
        "location": location,
        "isFallback": True,
        "isSample": True,
    }


class VroomClient:
    """Bearer-authenticated wrapper around the trip and recommendation routes."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.token = token
        self._http = httpx.Client(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> VroomClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self._http.request(method, path, headers=self._headers(), **kwargs)
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise VroomAPIError(response.status_code, str(detail))
        return response.json()

    def login(self, email: str, password: str) -> str:
        data = self._request("POST", "/api/v1/login", json={"email": email, "password": password})
        self.token = data["token"]
        return self.token

    def start_trip(self, lat: float, lng: float) -> dict:
        data = self._request("POST", "/api/v1/trips", json={"startPoint": {"lat": lat, "lng": lng}})
        return data["trip"]

    def append_point(self, trip_id: int, lat: float, lng: float) -> dict:
        data = self._request("PATCH", f"/api/v1/trips/{trip_id}/edit", json={"lat": lat, "lng": lng})
        return data["trip"]

    def end_trip(self, trip_id: int, lat: float, lng: float, is_public: bool = True) -> dict:
        data = self._request(
            "PATCH",
            f"/api/v1/trips/{trip_id}/end",
            json={"endPoint": {"lat": lat, "lng": lng}, "isPublic": is_public},
        )
        return data["trip"]

    def get_recommendations(self, location: str, **options: str) -> dict:
        """Ask for recommendations; unreachable or garbled replies give sample data."""
        payload = {"location": location, **options}
        try:
            data = self._request("POST", "/api/v1/ai-recommendation", json=payload)
        except httpx.HTTPError as e:
            log.warning(f"[Client] Recommendation service unreachable: {type(e).__name__}, showing sample data")
            return sample_recommendations(location)
        except VroomAPIError as e:
            if e.status_code < 500:
                raise
            log.warning(f"[Client] Recommendation service failed with {e.status_code}, showing sample data")
            return sample_recommendations(location)
        except ValueError:
            log.warning("[Client] Recommendation reply is not JSON, showing sample data")
            return sample_recommendations(location)

        recs = (data.get("data") or {}).get("recommendations") if isinstance(data, dict) else None
        if not recs:
            log.warning("[Client] Empty recommendation reply, showing sample data")
            return sample_recommendations(location)
        return data
