from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from weatherapp.core.location import classify


class Command(BaseCommand):
    help = "Show how a location string would be classified for geocoding"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("location", help="Location text as a user would type it")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        result = classify(options["location"])
        if not result.is_valid:
            raise CommandError(result.error)
        payload = result.as_dict()
        payload["strategy"] = result.type.geocoding_strategy
        self.stdout.write(json.dumps(payload))
