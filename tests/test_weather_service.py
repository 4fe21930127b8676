from __future__ import annotations

from datetime import datetime, timezone

import pytest
from django.core.cache import cache

from weatherapp.core.location import classify
from weatherapp.core.models import HistoryStore
from weatherapp.core.providers.base import LocationNotFound
from weatherapp.core.providers.google import GoogleProvider
from weatherapp.core.providers.openweather import OpenWeatherProvider
from weatherapp.core.services.weather_service import (
    ConfigurationError,
    InvalidLocation,
    WeatherLookupService,
)


OW = "https://ow.test"
ONE_CALL = f"{OW}/data/3.0/onecall"


def ts(year: int, month: int, day: int, hour: int = 12) -> int:
    return int(datetime(year, month, day, hour, tzinfo=timezone.utc).timestamp())


def one_call_payload(current_temp=9.876):
    return {
        "timezone": "America/New_York",
        "current": {"temp": current_temp, "humidity": 64, "wind_speed": 5.1},
        "daily": [
            {"dt": ts(2024, 5, 9), "temp": {"day": 50.0}, "weather": [{"main": "Rain", "description": "rain"}]},
            {"dt": ts(2024, 5, 10), "temp": {"day": 10.0}, "weather": [{"main": "Clouds", "description": "overcast clouds"}]},
            {"dt": ts(2024, 5, 11), "temp": {"day": 20.0}},
            {"dt": ts(2024, 5, 12), "temp": {"day": 30.0}},
            {"dt": ts(2024, 5, 13), "temp": {"day": 90.0}},
        ],
    }


@pytest.fixture()
def store():
    with HistoryStore("sqlite:///:memory:") as history:
        yield history


@pytest.fixture()
def service(store) -> WeatherLookupService:
    cache.clear()
    return WeatherLookupService(
        weather_provider=OpenWeatherProvider(api_key="ow-key", base_url=OW),
        google_provider=GoogleProvider(api_key="g-key"),
        history_store=store,
        cache=cache,
        ttl=60,
    )


@pytest.fixture()
def no_video(requests_mock):
    requests_mock.get(GoogleProvider.youtube_search_url, json={"items": []})
    return requests_mock


def test_city_lookup_filters_window_and_persists(requests_mock, no_video, service, store):
    requests_mock.get(
        f"{OW}/geo/1.0/direct",
        json=[{"name": "New York", "lat": 40.71, "lon": -74.0, "country": "US", "state": "New York"}],
    )
    requests_mock.get(ONE_CALL, json=one_call_payload())

    report = service.lookup("New York", "2024-05-10", 3, "celsius")
    payload = report.as_payload()

    assert payload["avgTemp"] == 20.0
    assert [day["temp"]["day"] for day in payload["daily"]] == [10.0, 20.0, 30.0]
    assert payload["startDate"] == "2024-05-10"
    assert payload["endDate"] == "2024-05-12"
    assert payload["daysAhead"] == 3
    assert payload["locationType"] == "CITY"
    assert payload["placeName"] == "New York"
    assert payload["mapUrl"].startswith("https://www.google.com/maps/embed/v1/place?")
    assert payload["youtubeUrl"] is None

    record = store.get(payload["historyId"])
    assert record.location_name == "New York"
    assert record.location_type == "CITY"
    assert record.start_date == "2024-05-10"
    assert record.end_date == "2024-05-12"
    assert record.avg_temp == 20.0
    assert record.humidity == 64.0
    assert record.description == "overcast clouds"


def test_gps_lookup_uses_coordinates_and_reverse_geocodes(requests_mock, no_video, service):
    requests_mock.get(f"{OW}/geo/1.0/reverse", json=[{"name": "Lower Manhattan", "country": "US", "lat": 40.7, "lon": -74.0}])
    requests_mock.get(ONE_CALL, json=one_call_payload())

    report = service.lookup("40.7128, -74.0060", "2024-05-10", 1)

    assert report.resolved.latitude == 40.7128
    assert report.resolved.longitude == -74.006
    assert report.resolved.geo.name == "Lower Manhattan"
    assert report.summary.average_temperature == 10.0
    assert ONE_CALL in requests_mock.request_history[1].url


def test_gps_lookup_tolerates_reverse_geocoding_failure(requests_mock, no_video, service):
    requests_mock.get(f"{OW}/geo/1.0/reverse", status_code=500, text="boom")
    requests_mock.get(ONE_CALL, json=one_call_payload())

    report = service.lookup("10.5,20.25", "2024-05-10", 1)

    assert report.resolved.geo.name is None
    assert report.history_id is not None


def test_zip_and_postal_codes_use_zip_geocoder(requests_mock, no_video, service):
    zip_mock = requests_mock.get(f"{OW}/geo/1.0/zip", json={"name": "London", "lat": 51.5, "lon": -0.14, "country": "GB"})
    requests_mock.get(ONE_CALL, json=one_call_payload())

    service.lookup("sw1a 1aa", "2024-05-10", 1)
    service.lookup("10001", "2024-05-10", 1)

    assert zip_mock.call_count == 2
    assert [request.qs["zip"] for request in zip_mock.request_history] == [["sw1a 1aa"], ["10001"]]


def test_landmark_uses_google_geocoder(requests_mock, service):
    requests_mock.get(
        GoogleProvider.geocode_url,
        json={
            "status": "OK",
            "results": [
                {
                    "geometry": {"location": {"lat": 48.8584, "lng": 2.2945}},
                    "address_components": [{"short_name": "FR", "types": ["country"]}],
                }
            ],
        },
    )
    requests_mock.get(GoogleProvider.youtube_search_url, json={"items": [{"id": {"videoId": "xyz"}}]})
    requests_mock.get(ONE_CALL, json=one_call_payload())

    report = service.lookup("Eiffel Tower", "2024-05-10", 2, "fahrenheit")

    assert report.resolved.geo.country == "FR"
    assert report.youtube_url == "https://www.youtube.com/embed/xyz"
    assert report.unit == "fahrenheit"
    one_call = [r for r in requests_mock.request_history if r.url.startswith(ONE_CALL)][0]
    assert one_call.qs["units"] == ["imperial"]


def test_empty_window_falls_back_to_current_temperature(requests_mock, no_video, service):
    requests_mock.get(f"{OW}/geo/1.0/direct", json=[{"name": "Oslo", "lat": 59.9, "lon": 10.7}])
    requests_mock.get(ONE_CALL, json=one_call_payload(current_temp=9.876))

    report = service.lookup("Oslo", "2030-01-01", 5)

    assert report.summary.entries == ()
    assert report.summary.average_temperature == 9.88


def test_forecast_is_cached(requests_mock, no_video, service):
    requests_mock.get(f"{OW}/geo/1.0/direct", json=[{"name": "Oslo", "lat": 59.9, "lon": 10.7}])
    forecast = requests_mock.get(ONE_CALL, json=one_call_payload())

    first = service.lookup("Oslo", "2024-05-10", 3)
    second = service.lookup("Oslo", "2024-05-10", 3)

    assert forecast.call_count == 1
    assert first.summary.average_temperature == second.summary.average_temperature == 20.0


def test_invalid_location_is_rejected_before_any_request(requests_mock, service):
    with pytest.raises(InvalidLocation, match="Latitude"):
        service.lookup("95.0,200.0", "2024-05-10", 1)

    assert requests_mock.call_count == 0


def test_missing_api_key(requests_mock, store):
    service = WeatherLookupService(
        weather_provider=OpenWeatherProvider(api_key="", base_url=OW),
        google_provider=GoogleProvider(api_key="g-key"),
        history_store=store,
        cache=cache,
        ttl=60,
    )

    with pytest.raises(ConfigurationError, match="OPENWEATHER_API_KEY"):
        service.lookup("Oslo", "2024-05-10", 1)


def test_geocoding_failure_propagates(requests_mock, service):
    requests_mock.get(f"{OW}/geo/1.0/direct", json=[])

    with pytest.raises(LocationNotFound):
        service.lookup("Atlantis", "2024-05-10", 1)


def test_history_failure_does_not_fail_lookup(requests_mock, no_video, service, store):
    requests_mock.get(f"{OW}/geo/1.0/direct", json=[{"name": "Oslo", "lat": 59.9, "lon": 10.7}])
    requests_mock.get(ONE_CALL, json=one_call_payload())
    store.close()

    report = service.lookup("Oslo", "2024-05-10", 1)

    assert report.history_id is None
    assert report.summary.average_temperature == 10.0


def _seed(store):
    return store.insert(
        {
            "location_name": "Oslo",
            "location_type": "CITY",
            "lat": 59.9,
            "lon": 10.7,
            "start_date": "2024-05-10",
            "end_date": "2024-05-10",
            "avg_temp": 10.0,
        }
    )


def test_update_recalculates_average_when_end_date_changes(requests_mock, service, store):
    record = _seed(store)
    requests_mock.get(ONE_CALL, json=one_call_payload())

    updated = service.update_history(record.id, {"end_date": "2024-05-12", "avg_temp": 99.0})

    assert updated.end_date == "2024-05-12"
    assert updated.avg_temp == 20.0
    assert requests_mock.last_request.qs["units"] == ["metric"]


def test_update_keeps_average_when_recalculation_fails(requests_mock, service, store):
    record = _seed(store)
    requests_mock.get(ONE_CALL, status_code=503, text="unavailable")

    updated = service.update_history(record.id, {"end_date": "2024-05-11", "description": "edited"})

    assert updated.end_date == "2024-05-11"
    assert updated.avg_temp == 10.0
    assert updated.description == "edited"


def test_update_applies_explicit_average_without_end_date_change(requests_mock, service, store):
    record = _seed(store)

    updated = service.update_history(record.id, {"avg_temp": 12.5, "location_name": "Oslo, NO"})

    assert updated.avg_temp == 12.5
    assert updated.location_name == "Oslo, NO"
    assert requests_mock.call_count == 0


def test_update_unknown_record(service):
    assert service.update_history(12345, {"avg_temp": 1.0}) is None


def test_resolve_location_uses_gps_coordinates_directly(requests_mock, service):
    requests_mock.get(f"{OW}/geo/1.0/reverse", json=[])
    query = classify("12.5, -8.25").query

    resolved = service.resolve_location(query)

    assert (resolved.latitude, resolved.longitude) == (12.5, -8.25)
    assert [r.url.split("?")[0] for r in requests_mock.request_history] == [f"{OW}/geo/1.0/reverse"]


def test_blank_location_is_rejected(requests_mock, service):
    with pytest.raises(InvalidLocation, match="Location cannot be empty"):
        service.lookup("   ", "2024-05-10", 1)

    assert requests_mock.call_count == 0
