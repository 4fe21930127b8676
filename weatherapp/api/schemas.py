"""Request payload schemas for the weather API."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from weatherapp.core.forecast import MAX_DAYS_AHEAD, format_date_value, parse_utc_date
from weatherapp.core.services.weather_service import DEFAULT_UNIT, UNIT_SYSTEMS

__all__ = ["WeatherRequest", "LocationRequest", "HistoryUpdate", "first_error"]


class WeatherRequest(BaseModel):
    """Body of ``POST /api/weather``; accepts the camelCase names of the web client."""

    model_config = ConfigDict(populate_by_name=True)

    location: str
    start_date: str = Field(alias="startDate")
    days_ahead: int = Field(alias="daysAhead")
    temperature_unit: str = Field(default=DEFAULT_UNIT, alias="temperatureUnit")

    @field_validator("start_date")
    @classmethod
    def check_start_date(cls, value: str) -> str:
        parse_utc_date(value)
        return value

    @field_validator("days_ahead", mode="before")
    @classmethod
    def coerce_days(cls, value: Any) -> int:
        try:
            days = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"daysAhead must be a number between 1 and {MAX_DAYS_AHEAD}") from None
        if not 1 <= days <= MAX_DAYS_AHEAD:
            raise ValueError(f"daysAhead must be a number between 1 and {MAX_DAYS_AHEAD}")
        return days

    @field_validator("temperature_unit", mode="before")
    @classmethod
    def default_unit(cls, value: Any) -> str:
        if isinstance(value, str) and value.lower() in UNIT_SYSTEMS:
            return value.lower()
        return DEFAULT_UNIT


class LocationRequest(BaseModel):
    location: Optional[Any] = None


class HistoryUpdate(BaseModel):
    """Partial update of a history record; only sent fields are applied."""

    model_config = ConfigDict(extra="ignore")

    location_name: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    avg_temp: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    description: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalise_date(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        formatted = format_date_value(value)
        if formatted is None:
            raise ValueError("Invalid date format. Expected YYYY-MM-DD")
        parse_utc_date(formatted)
        return formatted

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def first_error(exc) -> str:
    """Human readable message for the first pydantic validation error."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    error = errors[0]
    message = str(error.get("msg", "Invalid request"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    if error.get("type") == "missing":
        field = ".".join(str(part) for part in error.get("loc", ()))
        return f"{field} is required"
    return message
