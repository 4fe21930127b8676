"""Daily forecast entities and the date-window reducer.

Forecast entries arrive with UTC epoch timestamps. A request asks for an
inclusive range of calendar days, so every entry is bucketed by the UTC date
of its timestamp and compared on (year, month, day) rather than on epoch
distance.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union


logger = logging.getLogger(__name__)

MIN_DAYS_AHEAD = 1
MAX_DAYS_AHEAD = 5

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class TemperatureTriple:
    day: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class Condition:
    code: Optional[int]
    main: Optional[str]
    description: Optional[str]
    icon: Optional[str] = None


@dataclass(frozen=True)
class DailyForecastEntry:
    """One day of a provider forecast.

    ``dt`` is the provider timestamp in seconds since the epoch (UTC).
    Temperatures use whatever unit system the forecast was requested in.
    """

    dt: int
    temp: TemperatureTriple = field(default_factory=TemperatureTriple)
    weather: Tuple[Condition, ...] = ()
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    summary: Optional[str] = None

    @property
    def utc_date(self) -> date:
        return datetime.fromtimestamp(self.dt, tz=timezone.utc).date()

    @property
    def description(self) -> Optional[str]:
        if not self.weather:
            return None
        return self.weather[0].description

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DailyForecastEntry":
        temp = payload.get("temp") or {}
        if not isinstance(temp, Mapping):
            temp = {}
        conditions = tuple(
            Condition(
                code=item.get("id"),
                main=item.get("main"),
                description=item.get("description"),
                icon=item.get("icon"),
            )
            for item in payload.get("weather") or ()
            if isinstance(item, Mapping)
        )
        return cls(
            dt=int(payload["dt"]),
            temp=TemperatureTriple(
                day=_safe_float(temp.get("day")),
                min=_safe_float(temp.get("min")),
                max=_safe_float(temp.get("max")),
            ),
            weather=conditions,
            humidity=_safe_float(payload.get("humidity")),
            wind_speed=_safe_float(payload.get("wind_speed")),
            summary=payload.get("summary"),
        )

    def as_dict(self) -> dict:
        return {
            "dt": self.dt,
            "summary": self.summary,
            "temp": {"min": self.temp.min, "max": self.temp.max, "day": self.temp.day},
            "weather": [
                {"id": c.code, "main": c.main, "description": c.description, "icon": c.icon}
                for c in self.weather
            ],
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
        }


@dataclass(frozen=True)
class DateWindow:
    """Inclusive range of UTC calendar dates."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"window start {self.start} is after end {self.end}")

    @classmethod
    def from_days(cls, start: Union[str, date], days: int) -> "DateWindow":
        if isinstance(start, str):
            start = parse_utc_date(start)
        if not MIN_DAYS_AHEAD <= days <= MAX_DAYS_AHEAD:
            raise ValueError(
                f"days must be a number between {MIN_DAYS_AHEAD} and {MAX_DAYS_AHEAD}"
            )
        return cls(start=start, end=start + timedelta(days=days - 1))

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        key = (day.year, day.month, day.day)
        return (self.start.year, self.start.month, self.start.day) <= key <= (
            self.end.year,
            self.end.month,
            self.end.day,
        )


@dataclass(frozen=True)
class WindowSummary:
    window: DateWindow
    entries: Tuple[DailyForecastEntry, ...]
    average_temperature: Optional[float]

    @property
    def description(self) -> Optional[str]:
        if not self.entries:
            return None
        return self.entries[0].description


def parse_utc_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` as a UTC calendar date."""
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise ValueError("Invalid date format. Expected YYYY-MM-DD")
    year, month, day = (int(part) for part in value.split("-"))
    return date(year, month, day)


def format_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_date_value(value: Any) -> Optional[str]:
    """Render dates coming back from storage as ``YYYY-MM-DD``."""
    if not value:
        return None
    if isinstance(value, datetime):
        return format_date(value.astimezone(timezone.utc) if value.tzinfo else value)
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, str):
        if _DATE_PATTERN.match(value):
            return value
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return format_date_value(parsed)
    return None


def filter_by_window(
    entries: Optional[Sequence[DailyForecastEntry]],
    window: DateWindow,
) -> List[DailyForecastEntry]:
    if not entries or not isinstance(entries, (list, tuple)):
        return []

    selected: List[DailyForecastEntry] = []
    for entry in entries:
        day = entry.utc_date
        included = window.contains(day)
        if included:
            logger.debug("Including %s UTC (timestamp: %s)", format_date(day), entry.dt)
            selected.append(entry)
        else:
            logger.debug(
                "Excluding %s UTC (window %s..%s)",
                format_date(day),
                format_date(window.start),
                format_date(window.end),
            )
    return selected


def round_half_up(value: float) -> float:
    """Round to two decimals, ties away from zero, on the exact binary value."""
    if not math.isfinite(value):
        return value
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def average_temperature(
    entries: Optional[Iterable[DailyForecastEntry]],
    fallback: Optional[float] = None,
) -> Optional[float]:
    temperatures = [
        entry.temp.day for entry in entries or () if entry.temp.day is not None
    ]
    if temperatures:
        return round_half_up(sum(temperatures) / len(temperatures))
    if fallback is None:
        return None
    return round_half_up(fallback)


def summarize(
    entries: Optional[Sequence[DailyForecastEntry]],
    window: DateWindow,
    fallback: Optional[float] = None,
) -> WindowSummary:
    selected = filter_by_window(entries, window)
    return WindowSummary(
        window=window,
        entries=tuple(selected),
        average_temperature=average_temperature(selected, fallback),
    )


def _safe_float(value: Optional[object]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "TemperatureTriple",
    "Condition",
    "DailyForecastEntry",
    "DateWindow",
    "WindowSummary",
    "parse_utc_date",
    "format_date",
    "format_date_value",
    "filter_by_window",
    "average_temperature",
    "round_half_up",
    "summarize",
    "MAX_DAYS_AHEAD",
]
