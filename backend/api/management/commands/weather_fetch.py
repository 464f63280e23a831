"""Management command to query the proxy using the same stack as the API."""
from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from backend.api.views import get_weather_service
from backend.core import mapper
from backend.core.errors import WeatherApiError


class Command(BaseCommand):
    help = "Fetch the current forecast for coordinates or search cities by name"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--lat", type=float, help="Latitude")
        parser.add_argument("--lon", type=float, help="Longitude")
        parser.add_argument("--timezone", type=str, default=None, help="Timezone (defaults to auto)")
        parser.add_argument("--city", type=str, help="City name to search for")
        parser.add_argument("--count", type=int, default=None, help="Maximum number of search results")
        parser.add_argument("--language", type=str, default=None, help="Result language")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        city = options.get("city")
        latitude = options.get("lat")
        longitude = options.get("lon")
        service = get_weather_service()

        try:
            if city:
                results = service.search_city(city, options.get("count"), options.get("language"))
                payload = mapper.search_to_dict(results)
            else:
                if latitude is None or longitude is None:
                    raise CommandError("--lat and --lon are required unless --city is given")
                weather = service.get_forecast(latitude, longitude, options.get("timezone"))
                payload = mapper.forecast_to_dict(weather)
        except WeatherApiError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(json.dumps(payload))
