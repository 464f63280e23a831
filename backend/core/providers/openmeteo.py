"""Open-Meteo forecast and geocoding transport."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..abstractions import ForecastRequest, GeocodingRequest
from .base import HttpTransport


class OpenMeteoTransport(HttpTransport):
    forecast_url = "https://api.open-meteo.com/v1/forecast"
    geocoding_url = "https://geocoding-api.open-meteo.com/v1/search"

    def __init__(
        self,
        forecast_url: Optional[str] = None,
        geocoding_url: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.forecast_url = forecast_url or self.forecast_url
        self.geocoding_url = geocoding_url or self.geocoding_url

    def fetch_forecast(self, request: ForecastRequest) -> Mapping[str, Any]:
        params = {
            "latitude": request.latitude,
            "longitude": request.longitude,
            "current": ",".join(request.fields),
            "timezone": request.timezone,
        }
        self._log.debug("Calling Open-Meteo forecast: lat=%s, lon=%s", request.latitude, request.longitude)
        return self._get_json(self.forecast_url, params)

    def search_city(self, request: GeocodingRequest) -> Mapping[str, Any]:
        params = {
            "name": request.name,
            "count": request.count,
            "language": request.language,
            "format": request.format,
        }
        self._log.debug("Calling Open-Meteo geocoding: name=%r, count=%s", request.name, request.count)
        payload = self._get_json(self.geocoding_url, params, not_found_ok=True)
        if payload is None:
            return _no_results()
        return payload


def _no_results() -> Dict[str, Any]:
    return {"results": []}


__all__ = ["OpenMeteoTransport"]
