from __future__ import annotations

import pytest

from weatherapp.core.location import (
    GpsCoordinates,
    LocationType,
    PostalCode,
    classify,
)


@pytest.mark.parametrize(
    "raw, latitude, longitude",
    [
        ("40.7128,-74.0060", 40.7128, -74.006),
        ("40.7128, -74.0060", 40.7128, -74.006),
        ("-33.8688 , 151.2093", -33.8688, 151.2093),
        ("90,180", 90.0, 180.0),
        ("-90, -180", -90.0, -180.0),
        ("51.5°N, 0.1278W", 51.5, 0.1278),
        ("0, 0", 0.0, 0.0),
    ],
)
def test_gps_coordinates_round_trip(raw: str, latitude: float, longitude: float) -> None:
    result = classify(raw)

    assert result.is_valid
    assert result.type is LocationType.GPS_COORDINATES
    lat_text, lon_text = result.normalized.split(",")
    assert float(lat_text) == latitude
    assert float(lon_text) == longitude
    assert isinstance(result.query, GpsCoordinates)
    assert result.query.latitude == latitude


def test_gps_normalized_form_drops_spaces_and_trailing_zeros() -> None:
    assert classify(" 40.7128 ,  -74.0060 ").normalized == "40.7128,-74.006"
    assert classify("40.0, 10").normalized == "40,10"


@pytest.mark.parametrize("raw", ["95.0,200.0", "91, 0", "0, -180.5"])
def test_gps_out_of_range_is_rejected(raw: str) -> None:
    result = classify(raw)

    assert not result.is_valid
    assert result.type is None
    assert result.normalized is None
    assert "Latitude must be between -90 and 90" in result.error


def test_gps_ignores_text_after_the_longitude() -> None:
    result = classify("40.7128, -74.0060 NYC")

    assert result.type is LocationType.GPS_COORDINATES
    assert result.normalized == "40.7128,-74.006"


def test_gps_range_is_checked_even_with_trailing_text() -> None:
    result = classify("95, 200 foo")

    assert not result.is_valid
    assert "Latitude must be between -90 and 90" in result.error


def test_more_than_two_comma_parts_is_not_gps() -> None:
    result = classify("40.7, -74.0, New York")

    assert result.is_valid
    assert result.type is not LocationType.GPS_COORDINATES

def test_city() -> None:
    result = classify("New York")

    assert result.as_dict() == {
        "isValid": True,
        "error": None,
        "normalized": "New York",
        "type": "CITY",
    }


@pytest.mark.parametrize(
    "raw",
    ["Eiffel Tower", "Golden Gate Bridge", "Central Park", "Trafalgar Square", "british museum"],
)
def test_landmarks(raw: str) -> None:
    assert classify(raw).type is LocationType.LANDMARK


@pytest.mark.parametrize("raw", ["São Paulo", "St. Louis", "Zürich", "O'Fallon", "Winston-Salem", "Paris, France"])
def test_unicode_and_punctuated_city_names(raw: str) -> None:
    result = classify(raw)

    assert result.type is LocationType.CITY
    assert result.normalized == raw


def test_city_whitespace_is_collapsed() -> None:
    assert classify("  Los    Angeles ").normalized == "Los Angeles"


@pytest.mark.parametrize("raw", ["10001", "90210-1234", "1234", "75008"])
def test_zip_codes(raw: str) -> None:
    result = classify(raw)

    assert result.type is LocationType.ZIP_CODE
    assert result.normalized == raw


def test_zip_code_needs_four_digits() -> None:
    # starts with a digit but only three digits overall, so it is a postal code
    assert classify("123AB").type is LocationType.POSTAL_CODE



@pytest.mark.parametrize("raw", ["1234\u017f", "\u212a1A 0B1"])
def test_postal_alphabet_is_ascii_only(raw: str) -> None:
    assert classify(raw).type not in (LocationType.ZIP_CODE, LocationType.POSTAL_CODE)


@pytest.mark.parametrize(
    "raw, normalized",
    [("SW1A 1AA", "SW1A 1AA"), ("k1a 0b1", "K1A 0B1"), ("sw1a   1aa", "SW1A 1AA")],
)
def test_postal_codes(raw: str, normalized: str) -> None:
    result = classify(raw)

    assert result.type is LocationType.POSTAL_CODE
    assert result.normalized == normalized
    assert isinstance(result.query, PostalCode)


def test_names_with_digits_fall_back_to_city_or_landmark() -> None:
    assert classify("Pier 39 Fisherman's Wharf").type is LocationType.CITY
    assert classify("Area 51 Visitor Park").type is LocationType.LANDMARK


def test_other_formats_are_accepted() -> None:
    result = classify("221B Baker St. #2, London")

    assert result.is_valid
    assert result.type is LocationType.OTHER
    assert result.normalized == "221B Baker St. #2, London"


@pytest.mark.parametrize(
    "raw, message",
    [
        ("", "Location is required"),
        (None, "Location is required"),
        (42, "Location is required"),
        ("   ", "Location cannot be empty"),
        ("x" * 101, "Location is too long (maximum 100 characters)"),
    ],
)
def test_invalid_input(raw, message: str) -> None:
    result = classify(raw)

    assert not result.is_valid
    assert result.error == message
    assert result.as_dict()["type"] is None


def test_geocoding_strategy_per_type() -> None:
    assert LocationType.GPS_COORDINATES.geocoding_strategy == "coordinates"
    assert LocationType.ZIP_CODE.geocoding_strategy == "postal"
    assert LocationType.POSTAL_CODE.geocoding_strategy == "postal"
    assert LocationType.LANDMARK.geocoding_strategy == "landmark"
    assert LocationType.CITY.geocoding_strategy == "place"
    assert LocationType.OTHER.geocoding_strategy == "place"
