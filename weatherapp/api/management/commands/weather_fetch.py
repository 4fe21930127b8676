"""Management command to fetch weather using the same stack as the API."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from weatherapp.api.views import get_weather_service
from weatherapp.core.forecast import MAX_DAYS_AHEAD, format_date
from weatherapp.core.providers.base import ProviderError
from weatherapp.core.services.weather_service import UNIT_SYSTEMS, WeatherServiceError


class Command(BaseCommand):
    help = "Fetch a forecast summary for a location and date window"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--location", required=True, help="City, landmark, ZIP/postal code or 'lat,lon'")
        parser.add_argument("--start", help="First day (YYYY-MM-DD, UTC). Defaults to today")
        parser.add_argument("--days", type=int, default=1, help=f"Number of days, 1-{MAX_DAYS_AHEAD}")
        parser.add_argument("--units", choices=sorted(UNIT_SYSTEMS), default="celsius")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        start = options.get("start") or format_date(datetime.now(timezone.utc).date())
        try:
            report = get_weather_service().lookup(
                options["location"],
                start,
                options["days"],
                options["units"],
            )
        except ValueError as exc:
            raise CommandError(str(exc)) from exc
        except (WeatherServiceError, ProviderError) as exc:
            raise CommandError(f"Failed to get weather data: {exc}") from exc

        self.stdout.write(json.dumps(report.as_payload()))
