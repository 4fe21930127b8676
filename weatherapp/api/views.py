"""REST API views for weather lookups and the lookup history."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict

from django.conf import settings
from django.core.cache import caches
from pydantic import ValidationError
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from weatherapp.api.apps import get_history_store
from weatherapp.api.schemas import HistoryUpdate, LocationRequest, WeatherRequest, first_error
from weatherapp.core.forecast import format_date_value
from weatherapp.core.location import classify
from weatherapp.core.models import WeatherHistoryRecord
from weatherapp.core.providers.base import ProviderError, RequestConfig
from weatherapp.core.providers.google import GoogleProvider
from weatherapp.core.providers.openweather import OpenWeatherProvider
from weatherapp.core.services.weather_service import WeatherLookupService, WeatherServiceError


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_weather_service() -> WeatherLookupService:
    request_config = RequestConfig(timeout=settings.PROVIDER_TIMEOUT)
    return WeatherLookupService(
        weather_provider=OpenWeatherProvider(
            api_key=settings.OPENWEATHER_API_KEY, request_config=request_config
        ),
        google_provider=GoogleProvider(api_key=settings.GOOGLE_API_KEY, request_config=request_config),
        history_store=get_history_store(),
        cache=caches[settings.WEATHER_CACHE_ALIAS],
        ttl=settings.WEATHER_CACHE_TIMEOUT,
    )


def _failure(message: str, status_code: int, **extra: Any) -> Response:
    return Response({"success": False, "message": message, **extra}, status=status_code)


def serialize_record(record: WeatherHistoryRecord) -> Dict[str, Any]:
    payload = record.as_dict()
    payload["start_date"] = format_date_value(record.start_date)
    payload["end_date"] = format_date_value(record.end_date)
    return payload


class HealthView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):  # noqa: D401
        return Response({"ok": True})


class LocationValidationView(APIView):
    """Classify a location string without geocoding it."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):  # noqa: D401
        try:
            body = LocationRequest.model_validate(request.data)
        except ValidationError as exc:
            return _failure(first_error(exc), status.HTTP_400_BAD_REQUEST)
        result = classify(body.location)
        code = status.HTTP_200_OK if result.is_valid else status.HTTP_400_BAD_REQUEST
        return Response(result.as_dict(), status=code)


class WeatherView(APIView):
    """Forecast summary for a location over 1-5 days starting at ``startDate``."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):  # noqa: D401
        try:
            body = WeatherRequest.model_validate(request.data)
        except ValidationError as exc:
            return _failure(first_error(exc), status.HTTP_400_BAD_REQUEST)

        try:
            report = get_weather_service().lookup(
                body.location,
                body.start_date,
                body.days_ahead,
                body.temperature_unit,
            )
        except (WeatherServiceError, ProviderError) as exc:
            logger.error("Error fetching weather data: %s", exc)
            return _failure(
                f"Failed to get weather data: {exc}",
                status.HTTP_400_BAD_REQUEST,
                error=str(exc),
            )
        return Response(report.as_payload(), status=status.HTTP_200_OK)


class WeatherHistoryListView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):  # noqa: D401
        records = get_weather_service().list_history()
        return Response({"success": True, "data": [serialize_record(r) for r in records]})


class WeatherHistoryDetailView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, record_id: int, *args, **kwargs):  # noqa: D401
        record = get_weather_service().get_history(record_id)
        if record is None:
            return _failure("Weather history record not found", status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "data": serialize_record(record)})

    def put(self, request, record_id: int, *args, **kwargs):  # noqa: D401
        try:
            body = HistoryUpdate.model_validate(request.data)
        except ValidationError as exc:
            return _failure(first_error(exc), status.HTTP_400_BAD_REQUEST)

        record = get_weather_service().update_history(record_id, body.changes())
        if record is None:
            return _failure("Weather history record not found", status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "data": serialize_record(record)})

    def delete(self, request, record_id: int, *args, **kwargs):  # noqa: D401
        if not get_weather_service().delete_history(record_id):
            return _failure("Weather history record not found", status.HTTP_404_NOT_FOUND)
        return Response({"success": True, "message": "Weather history record deleted successfully"})
