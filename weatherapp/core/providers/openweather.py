"""OpenWeather geocoding and One Call forecast provider."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from weatherapp.core.forecast import DailyForecastEntry
from weatherapp.core.providers.base import GeoLocation, HTTPProvider, LocationNotFound, ProviderError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForecastBundle:
    """The parts of a One Call response the application uses."""

    current_temp: Optional[float] = None
    current_humidity: Optional[float] = None
    current_wind_speed: Optional[float] = None
    timezone: Optional[str] = None
    daily: List[DailyForecastEntry] = field(default_factory=list)


class OpenWeatherProvider(HTTPProvider):
    """Integration with the OpenWeather geocoding and One Call 3.0 APIs."""

    name = "openweather"
    base_url = "https://api.openweathermap.org"

    def __init__(self, *, base_url: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.base_url = (base_url or self.base_url).rstrip("/")

    # Geocoding ----------------------------------------------------------
    def geocode_zip(self, code: str) -> GeoLocation:
        self._log.info("Geocoding ZIP/Postal code: %s", code)
        data = self._get_json(f"{self.base_url}/geo/1.0/zip", {"zip": code, "appid": self.api_key})
        location = _geo_location(data) if isinstance(data, Mapping) else None
        if location is None:
            raise LocationNotFound("Could not get coordinates from ZIP code")
        return location

    def geocode_place(self, query: str) -> GeoLocation:
        self._log.info("Geocoding location: %s", query)
        data = self._get_json(
            f"{self.base_url}/geo/1.0/direct",
            {"q": query, "limit": 1, "appid": self.api_key},
        )
        if not isinstance(data, list) or not data:
            raise LocationNotFound("Location not found")
        location = _geo_location(data[0])
        if location is None:
            raise LocationNotFound("Could not get coordinates from location")
        return location

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[GeoLocation]:
        data = self._get_json(
            f"{self.base_url}/geo/1.0/reverse",
            {"lat": latitude, "lon": longitude, "limit": 5, "appid": self.api_key},
        )
        if not isinstance(data, list) or not data:
            return None
        return _geo_location(data[0])

    # Forecast -----------------------------------------------------------
    def one_call(self, latitude: float, longitude: float, units: str = "metric") -> ForecastBundle:
        self._log.info("Fetching weather data for lat=%s, lon=%s, units=%s", latitude, longitude, units)
        data = self._get_json(
            f"{self.base_url}/data/3.0/onecall",
            {
                "lat": latitude,
                "lon": longitude,
                "units": units,
                "exclude": "minutely,hourly,alerts",
                "appid": self.api_key,
            },
        )
        if not isinstance(data, Mapping):
            raise ProviderError("Weather API returned an unexpected payload")
        return parse_one_call(data)


def parse_one_call(data: Mapping[str, Any]) -> ForecastBundle:
    current = data.get("current") or {}
    daily = data.get("daily")
    entries: List[DailyForecastEntry] = []
    if isinstance(daily, list):
        for item in daily:
            if not isinstance(item, Mapping) or item.get("dt") is None:
                continue
            try:
                entry = DailyForecastEntry.from_payload(item)
                logger.debug("Daily forecast for %s UTC", entry.utc_date)
            except (TypeError, ValueError, OverflowError, OSError):
                logger.warning("Skipping daily forecast with unusable timestamp: %r", item.get("dt"))
                continue
            entries.append(entry)
    return ForecastBundle(
        current_temp=_safe_float(current.get("temp")),
        current_humidity=_safe_float(current.get("humidity")),
        current_wind_speed=_safe_float(current.get("wind_speed")),
        timezone=data.get("timezone"),
        daily=entries,
    )


def _geo_location(item: Any) -> Optional[GeoLocation]:
    if not isinstance(item, Mapping):
        return None
    latitude = _safe_float(item.get("lat"))
    longitude = _safe_float(item.get("lon"))
    if latitude is None or longitude is None:
        return None
    return GeoLocation(
        latitude=latitude,
        longitude=longitude,
        name=item.get("name") or None,
        country=item.get("country") or None,
        state=item.get("state") or None,
    )


def _safe_float(value: Optional[object]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):  # pragma: no cover - defensive
        return None


__all__ = ["OpenWeatherProvider", "ForecastBundle", "parse_one_call"]
