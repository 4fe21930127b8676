"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from weatherapp.api.views import (
    HealthView,
    LocationValidationView,
    WeatherHistoryDetailView,
    WeatherHistoryListView,
    WeatherView,
)

urlpatterns = [
    path("health", HealthView.as_view(), name="health"),
    path("location/validate", LocationValidationView.as_view(), name="location-validate"),
    path("weather", WeatherView.as_view(), name="weather"),
    path("weather/history", WeatherHistoryListView.as_view(), name="weather-history"),
    path(
        "weather/history/<int:record_id>",
        WeatherHistoryDetailView.as_view(),
        name="weather-history-detail",
    ),
]
