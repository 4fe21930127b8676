"""Classification of free-text location input.

The classifier decides which geocoding strategy fits a user supplied string:
raw coordinates, a numeric ZIP code, an alphanumeric postal code, a city or
landmark name, or anything else that is handed to the free-text geocoder.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Optional, Tuple


logger = logging.getLogger(__name__)

MAX_LOCATION_LENGTH = 100

LANDMARK_KEYWORDS = (
    "tower",
    "bridge",
    "monument",
    "statue",
    "palace",
    "cathedral",
    "museum",
    "park",
    "plaza",
    "square",
)

_NUMBER = r"(-?\d+(?:\.\d*)?)"
_DIRECTION = r"\s*°?\s*[NSEW]?"
_GPS_PATTERN = re.compile(rf"^{_NUMBER}{_DIRECTION}\s*,\s*{_NUMBER}", re.IGNORECASE | re.ASCII)
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_NAME_PATTERN = re.compile(r"^(?:[^\W\d_]|[\s'.,\-]){2,100}$")
_NAME_WITH_DIGITS_PATTERN = re.compile(r"^(?:[^\W_]|[\s'.,\-]){2,100}$")
_ZIP_PATTERN = re.compile(r"^[A-Za-z0-9\s\-]{4,10}$")
_POSTAL_PATTERN = re.compile(r"^[A-Za-z0-9\s\-]{5,10}$")
_DIGIT = re.compile(r"[0-9]")
_ASCII_LETTER = re.compile(r"[A-Za-z]")
_LETTER = re.compile(r"[^\W\d_]")


class LocationType(str, Enum):
    GPS_COORDINATES = "GPS_COORDINATES"
    ZIP_CODE = "ZIP_CODE"
    POSTAL_CODE = "POSTAL_CODE"
    CITY = "CITY"
    LANDMARK = "LANDMARK"
    OTHER = "OTHER"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def geocoding_strategy(self) -> str:
        """Name of the geocoder that resolves this kind of input."""
        if self is LocationType.GPS_COORDINATES:
            return "coordinates"
        if self in (LocationType.ZIP_CODE, LocationType.POSTAL_CODE):
            return "postal"
        if self is LocationType.LANDMARK:
            return "landmark"
        return "place"


_DESCRIPTIONS = {
    LocationType.GPS_COORDINATES: "GPS Coordinates (lat,lon)",
    LocationType.ZIP_CODE: "ZIP Code (US numeric postal code)",
    LocationType.POSTAL_CODE: "Postal Code (International alphanumeric)",
    LocationType.CITY: "City/Town name",
    LocationType.LANDMARK: "Landmark or Point of Interest",
    LocationType.OTHER: "Other format (country, address, etc.)",
}


class LocationValidationError(ValueError):
    """Raised by a classification rule that recognises but rejects the input."""


@dataclass(frozen=True)
class LocationQuery:
    """A classified location string.

    ``text`` is the trimmed user input, ``normalized`` the form handed to the
    geocoders. Each subclass pins ``type`` to one :class:`LocationType`.
    """

    text: str
    normalized: str

    type: ClassVar[LocationType] = LocationType.OTHER


@dataclass(frozen=True)
class GpsCoordinates(LocationQuery):
    latitude: float = 0.0
    longitude: float = 0.0

    type: ClassVar[LocationType] = LocationType.GPS_COORDINATES


@dataclass(frozen=True)
class ZipCode(LocationQuery):
    type: ClassVar[LocationType] = LocationType.ZIP_CODE


@dataclass(frozen=True)
class PostalCode(LocationQuery):
    type: ClassVar[LocationType] = LocationType.POSTAL_CODE


@dataclass(frozen=True)
class City(LocationQuery):
    type: ClassVar[LocationType] = LocationType.CITY


@dataclass(frozen=True)
class Landmark(LocationQuery):
    type: ClassVar[LocationType] = LocationType.LANDMARK


@dataclass(frozen=True)
class OtherLocation(LocationQuery):
    type: ClassVar[LocationType] = LocationType.OTHER


@dataclass(frozen=True)
class Classification:
    is_valid: bool
    error: Optional[str] = None
    query: Optional[LocationQuery] = None

    @property
    def normalized(self) -> Optional[str]:
        return self.query.normalized if self.query else None

    @property
    def type(self) -> Optional[LocationType]:
        return self.query.type if self.query else None

    def as_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "error": self.error,
            "normalized": self.normalized,
            "type": self.type.value if self.type else None,
        }

    @classmethod
    def invalid(cls, error: str) -> "Classification":
        return cls(is_valid=False, error=error)


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def format_coordinate(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _is_landmark(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in LANDMARK_KEYWORDS)


def _named_place(text: str) -> LocationQuery:
    normalized = collapse_whitespace(text)
    if _is_landmark(text):
        return Landmark(text=text, normalized=normalized)
    return City(text=text, normalized=normalized)


def _leading_float(part: str) -> float:
    """Parse the number a coordinate part starts with; trailing text is ignored."""
    match = _FLOAT_PREFIX.match(part.strip())
    if not match:
        raise LocationValidationError("Invalid GPS coordinates")
    return float(match.group(0))


# Rules ---------------------------------------------------------------------
def _match_gps(text: str) -> Optional[LocationQuery]:
    if not _GPS_PATTERN.match(text):
        return None
    parts = text.split(",")
    if len(parts) != 2:
        return None
    latitude, longitude = (_leading_float(part) for part in parts)
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        raise LocationValidationError(
            "Invalid GPS coordinates. Latitude must be between -90 and 90, "
            "longitude between -180 and 180"
        )
    return GpsCoordinates(
        text=text,
        normalized=f"{format_coordinate(latitude)},{format_coordinate(longitude)}",
        latitude=latitude,
        longitude=longitude,
    )


def _match_name(text: str) -> Optional[LocationQuery]:
    if not _NAME_PATTERN.match(text) or _DIGIT.search(text):
        return None
    return _named_place(text)


def _match_zip(text: str) -> Optional[LocationQuery]:
    if not _ZIP_PATTERN.match(text) or not _DIGIT.match(text):
        return None
    if len(_DIGIT.findall(text)) < 4:
        return None
    return ZipCode(text=text, normalized=collapse_whitespace(text))


def _match_postal(text: str) -> Optional[LocationQuery]:
    if not _POSTAL_PATTERN.match(text):
        return None
    if not (_ASCII_LETTER.search(text) and _DIGIT.search(text)):
        return None
    return PostalCode(text=text, normalized=collapse_whitespace(text).upper())


def _match_name_with_digits(text: str) -> Optional[LocationQuery]:
    if not _NAME_WITH_DIGITS_PATTERN.match(text) or not _LETTER.search(text):
        return None
    return _named_place(text)


Rule = Callable[[str], Optional[LocationQuery]]

# Evaluated in order; anything left over is OTHER.
RULES: Tuple[Rule, ...] = (
    _match_gps,
    _match_name,
    _match_zip,
    _match_postal,
    _match_name_with_digits,
)


def classify(raw: object) -> Classification:
    """Classify ``raw`` into one of the :class:`LocationType` variants.

    Never raises: rejected input comes back as an invalid
    :class:`Classification` carrying a human readable error.
    """
    if not raw or not isinstance(raw, str):
        return Classification.invalid("Location is required")

    text = raw.strip()
    if not text:
        return Classification.invalid("Location cannot be empty")
    if len(text) > MAX_LOCATION_LENGTH:
        return Classification.invalid(
            f"Location is too long (maximum {MAX_LOCATION_LENGTH} characters)"
        )

    for rule in RULES:
        try:
            query = rule(text)
        except LocationValidationError as exc:
            logger.debug("Rejected location %r: %s", text, exc)
            return Classification.invalid(str(exc))
        if query is not None:
            return Classification(is_valid=True, query=query)

    # Stricter validation is left to the free-text geocoder.
    return Classification(
        is_valid=True,
        query=OtherLocation(text=text, normalized=collapse_whitespace(text)),
    )


__all__ = [
    "LocationType",
    "LocationQuery",
    "GpsCoordinates",
    "ZipCode",
    "PostalCode",
    "City",
    "Landmark",
    "OtherLocation",
    "Classification",
    "LocationValidationError",
    "classify",
    "collapse_whitespace",
    "LANDMARK_KEYWORDS",
    "MAX_LOCATION_LENGTH",
]
