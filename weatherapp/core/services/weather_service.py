"""Weather lookup pipeline: classify, geocode, forecast, reduce, persist."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Union

from django.core.cache.backends.base import BaseCache

from weatherapp.core.forecast import (
    DateWindow,
    DailyForecastEntry,
    WindowSummary,
    format_date,
    format_date_value,
    parse_utc_date,
    summarize,
)
from weatherapp.core.location import GpsCoordinates, LocationQuery, LocationType, classify
from weatherapp.core.models import HistoryStore, WeatherHistoryRecord
from weatherapp.core.providers.base import GeoLocation, ProviderError
from weatherapp.core.providers.google import GoogleProvider
from weatherapp.core.providers.openweather import ForecastBundle, OpenWeatherProvider


logger = logging.getLogger(__name__)

UNIT_SYSTEMS = {"celsius": "metric", "fahrenheit": "imperial"}
DEFAULT_UNIT = "celsius"


class WeatherServiceError(RuntimeError):
    """Base error for failed weather lookups."""


class InvalidLocation(WeatherServiceError):
    """The location string was rejected by the classifier."""


class ConfigurationError(WeatherServiceError):
    """A provider API key is missing."""


@dataclass(frozen=True)
class ResolvedLocation:
    query: LocationQuery
    geo: GeoLocation

    @property
    def latitude(self) -> float:
        return self.geo.latitude

    @property
    def longitude(self) -> float:
        return self.geo.longitude


@dataclass
class WeatherReport:
    location: str
    location_type: LocationType
    unit: str
    resolved: ResolvedLocation
    forecast: ForecastBundle
    summary: WindowSummary
    history_id: Optional[int] = None
    map_url: Optional[str] = None
    youtube_url: Optional[str] = None

    def as_payload(self) -> Dict[str, Any]:
        window = self.summary.window
        geo = self.resolved.geo
        return {
            "success": True,
            "message": "API call successful",
            "currentTemp": self.forecast.current_temp,
            "currentHumidity": self.forecast.current_humidity,
            "currentWindSpeed": self.forecast.current_wind_speed,
            "avgTemp": self.summary.average_temperature,
            "daily": [entry.as_dict() for entry in self.summary.entries],
            "timezone": self.forecast.timezone,
            "placeName": geo.name,
            "country": geo.country,
            "state": geo.state,
            "location": self.location,
            "locationType": self.location_type.value,
            "temperatureUnit": self.unit,
            "startDate": format_date(window.start),
            "endDate": format_date(window.end),
            "daysAhead": window.days,
            "historyId": self.history_id,
            "mapUrl": self.map_url,
            "youtubeUrl": self.youtube_url,
            "lat": geo.latitude,
            "lon": geo.longitude,
        }


def units_for(unit: Optional[str]) -> str:
    return UNIT_SYSTEMS.get(unit or DEFAULT_UNIT, UNIT_SYSTEMS[DEFAULT_UNIT])


class WeatherLookupService:
    """Glue between the pure core, the HTTP providers and the history store."""

    cache_key_template = "weather:forecast:{lat:.4f}:{lon:.4f}:{units}"

    def __init__(
        self,
        *,
        weather_provider: OpenWeatherProvider,
        google_provider: GoogleProvider,
        history_store: HistoryStore,
        cache: BaseCache,
        ttl: int,
    ) -> None:
        self.weather = weather_provider
        self.google = google_provider
        self.history = history_store
        self._cache = cache
        self._ttl = ttl

    # Public API ---------------------------------------------------------
    def lookup(
        self,
        location: str,
        start_date: Union[str, date],
        days: int,
        unit: str = DEFAULT_UNIT,
    ) -> WeatherReport:
        classification = classify(location)
        query = classification.query
        if not classification.is_valid or query is None:
            raise InvalidLocation(classification.error or "Location is required")

        window = DateWindow.from_days(start_date, days)
        if unit not in UNIT_SYSTEMS:
            unit = DEFAULT_UNIT
        units = units_for(unit)

        logger.info(
            "Weather request: location=%r type=%s (%s) window=%s..%s days=%s unit=%s",
            query.normalized,
            query.type.value,
            query.type.description,
            format_date(window.start),
            format_date(window.end),
            window.days,
            unit,
        )
        self._ensure_configured()

        resolved = self.resolve_location(query)
        bundle = self.fetch_forecast(resolved.latitude, resolved.longitude, units)
        logger.info("Total daily forecasts available: %s", len(bundle.daily))

        summary = summarize(bundle.daily, window, bundle.current_temp)
        logger.info("Filtered to %s days (expected: %s days)", len(summary.entries), window.days)

        report = WeatherReport(
            location=query.normalized,
            location_type=query.type,
            unit=unit,
            resolved=resolved,
            forecast=bundle,
            summary=summary,
        )
        report.history_id = self._save_history(report)
        report.map_url = self.google.map_embed_url(resolved.latitude, resolved.longitude)
        report.youtube_url = self._find_video(resolved.geo.name or query.normalized)
        return report

    def resolve_location(self, query: LocationQuery) -> ResolvedLocation:
        strategy = query.type.geocoding_strategy
        if isinstance(query, GpsCoordinates):
            geo = self._describe_coordinates(query.latitude, query.longitude)
        elif strategy == "postal":
            geo = self.weather.geocode_zip(query.normalized)
        elif strategy == "landmark":
            geo = self.google.geocode_address(query.normalized)
        else:
            geo = self.weather.geocode_place(query.normalized)
        logger.info(
            "Geocoded to: lat=%s, lon=%s, name=%s, country=%s",
            geo.latitude,
            geo.longitude,
            geo.name or "N/A",
            geo.country or "N/A",
        )
        return ResolvedLocation(query=query, geo=geo)

    def fetch_forecast(self, latitude: float, longitude: float, units: str) -> ForecastBundle:
        cache_key = self.cache_key_template.format(lat=latitude, lon=longitude, units=units)
        cached = self._cache.get(cache_key)
        if cached:
            return self._deserialize(cached)
        bundle = self.weather.one_call(latitude, longitude, units)
        self._cache.set(cache_key, self._serialize(bundle), self._ttl)
        return bundle

    def list_history(self) -> List[WeatherHistoryRecord]:
        return self.history.list_records()

    def get_history(self, record_id: int) -> Optional[WeatherHistoryRecord]:
        return self.history.get(record_id)

    def delete_history(self, record_id: int) -> bool:
        return self.history.delete(record_id)

    def update_history(
        self, record_id: int, changes: Mapping[str, Any]
    ) -> Optional[WeatherHistoryRecord]:
        existing = self.history.get(record_id)
        if existing is None:
            return None

        updates = {name: value for name, value in changes.items() if name != "avg_temp"}
        end_date = changes.get("end_date")
        if "end_date" in changes and end_date != existing.end_date:
            start = format_date_value(changes.get("start_date", existing.start_date))
            end = format_date_value(end_date)
            avg_temp = self._recalculate_average(record_id, existing, start, end)
            if avg_temp is not None:
                updates["avg_temp"] = avg_temp
        elif "avg_temp" in changes:
            updates["avg_temp"] = changes["avg_temp"]

        return self.history.update(record_id, updates)

    # Helpers ------------------------------------------------------------
    def _ensure_configured(self) -> None:
        if not self.weather.configured:
            raise ConfigurationError(
                "Weather API key is not configured. Please set OPENWEATHER_API_KEY"
            )
        if not self.google.configured:
            raise ConfigurationError(
                "Google Maps API key is not configured. Please set GOOGLE_API_KEY"
            )

    def _describe_coordinates(self, latitude: float, longitude: float) -> GeoLocation:
        logger.info("Using GPS coordinates: lat=%s, lon=%s", latitude, longitude)
        try:
            place = self.weather.reverse_geocode(latitude, longitude)
        except ProviderError as exc:
            logger.warning("Reverse geocoding failed, keeping place name empty: %s", exc)
            place = None
        if place is None:
            return GeoLocation(latitude=latitude, longitude=longitude)
        return GeoLocation(
            latitude=latitude,
            longitude=longitude,
            name=place.name,
            country=place.country,
            state=place.state,
        )

    def _save_history(self, report: WeatherReport) -> Optional[int]:
        geo = report.resolved.geo
        window = report.summary.window
        try:
            record = self.history.insert(
                {
                    "location_name": geo.name or report.location,
                    "location_type": report.location_type.value,
                    "lat": geo.latitude,
                    "lon": geo.longitude,
                    "start_date": format_date(window.start),
                    "end_date": format_date(window.end),
                    "avg_temp": report.summary.average_temperature,
                    "humidity": report.forecast.current_humidity,
                    "wind_speed": report.forecast.current_wind_speed,
                    "description": report.summary.description,
                }
            )
        except Exception as exc:  # noqa: BLE001 - history is best effort
            logger.error("Error saving weather data to database: %s", exc)
            return None
        logger.info("Weather data saved to database with ID: %s", record.id)
        return record.id

    def _find_video(self, query: str) -> Optional[str]:
        if not query or not self.google.configured:
            return None
        try:
            return self.google.search_video(query)
        except ProviderError as exc:
            logger.warning("Error fetching YouTube video: %s", exc)
            return None

    def _recalculate_average(
        self,
        record_id: int,
        record: WeatherHistoryRecord,
        start: Optional[str],
        end: Optional[str],
    ) -> Optional[float]:
        if record.lat is None or record.lon is None:
            logger.error("Record %s has no stored coordinates, keeping avg_temp", record_id)
            return None
        try:
            if not start or not end:
                raise ValueError("Invalid date format")
            window = DateWindow(start=parse_utc_date(start), end=parse_utc_date(end))
            bundle = self.fetch_forecast(record.lat, record.lon, units_for(DEFAULT_UNIT))
        except (ValueError, ProviderError) as exc:
            logger.error("Could not recalculate avg_temp for record %s: %s", record_id, exc)
            return None
        avg_temp = summarize(bundle.daily, window, bundle.current_temp).average_temperature
        logger.info("New avg_temp for record %s over %s..%s: %s", record_id, start, end, avg_temp)
        return avg_temp

    def _serialize(self, bundle: ForecastBundle) -> dict:
        payload = asdict(bundle)
        payload["daily"] = [entry.as_dict() for entry in bundle.daily]
        return payload

    def _deserialize(self, payload: dict) -> ForecastBundle:
        return ForecastBundle(
            current_temp=payload.get("current_temp"),
            current_humidity=payload.get("current_humidity"),
            current_wind_speed=payload.get("current_wind_speed"),
            timezone=payload.get("timezone"),
            daily=[DailyForecastEntry.from_payload(item) for item in payload.get("daily") or []],
        )


__all__ = [
    "WeatherLookupService",
    "WeatherReport",
    "ResolvedLocation",
    "WeatherServiceError",
    "InvalidLocation",
    "ConfigurationError",
    "units_for",
    "UNIT_SYSTEMS",
]
