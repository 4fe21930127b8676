"""Google Maps geocoding, map embeds and YouTube search."""
from __future__ import annotations

from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from weatherapp.core.providers.base import GeoLocation, HTTPProvider, LocationNotFound


class GoogleProvider(HTTPProvider):
    name = "google"
    geocode_url = "https://maps.googleapis.com/maps/api/geocode/json"
    youtube_search_url = "https://www.googleapis.com/youtube/v3/search"
    map_embed_base = "https://www.google.com/maps/embed/v1/place"

    def geocode_address(self, address: str) -> GeoLocation:
        """Resolve a landmark or street address; the input becomes the place name."""
        self._log.info("Geocoding landmark with Google Maps: %s", address)
        data = self._get_json(self.geocode_url, {"address": address, "key": self.api_key})
        status = data.get("status") if isinstance(data, Mapping) else None
        results = data.get("results") if isinstance(data, Mapping) else None
        if status != "OK" or not results:
            message = (data or {}).get("error_message") if isinstance(data, Mapping) else None
            raise LocationNotFound(f"Location not found: {status} - {message or 'Unknown error'}")

        result = results[0]
        point = result["geometry"]["location"]
        return GeoLocation(
            latitude=float(point["lat"]),
            longitude=float(point["lng"]),
            name=address,
            country=_country_code(result.get("address_components")),
        )

    def search_video(self, query: str) -> Optional[str]:
        data = self._get_json(
            self.youtube_search_url,
            {
                "part": "snippet",
                "q": query,
                "key": self.api_key,
                "maxResults": 1,
                "type": "video",
            },
        )
        items = data.get("items") if isinstance(data, Mapping) else None
        if not items:
            self._log.info("No YouTube videos found for: %s", query)
            return None
        video_id = (items[0].get("id") or {}).get("videoId")
        if not video_id:
            return None
        return f"https://www.youtube.com/embed/{video_id}"

    def map_embed_url(self, latitude: float, longitude: float) -> Optional[str]:
        if not self.configured:
            return None
        query = urlencode({"key": self.api_key, "q": f"{latitude},{longitude}", "zoom": 12}, safe=",")
        return f"{self.map_embed_base}?{query}"


def _country_code(components: Any) -> Optional[str]:
    if not isinstance(components, list):
        return None
    for component in components:
        if "country" in (component.get("types") or ()):
            return component.get("short_name") or component.get("long_name") or None
    return None


__all__ = ["GoogleProvider"]
