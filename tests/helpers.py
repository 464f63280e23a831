from __future__ import annotations

from typing import Any, List

from backend.core.abstractions import ForecastRequest, GeocodingRequest


class TimeController:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self) -> float:
        return self.now


class FakeTransport:
    """Scripted transport; each queued item is returned or raised in order.

    When the queue runs dry the last item is repeated.
    """

    def __init__(self) -> None:
        self.forecast_requests: List[ForecastRequest] = []
        self.search_requests: List[GeocodingRequest] = []
        self.forecast_replies: List[Any] = [forecast_payload()]
        self.search_replies: List[Any] = [geocoding_payload()]

    def fetch_forecast(self, request: ForecastRequest):
        self.forecast_requests.append(request)
        return self._next(self.forecast_replies)

    def search_city(self, request: GeocodingRequest):
        self.search_requests.append(request)
        return self._next(self.search_replies)

    @staticmethod
    def _next(replies: List[Any]):
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply


def forecast_payload(**current: Any) -> dict:
    block = {
        "time": "2024-01-15T12:00",
        "temperature_2m": 3.4,
        "weather_code": 61,
        "wind_speed_10m": 12.5,
        "relative_humidity_2m": 81,
    }
    block.update(current)
    return {"latitude": 40.71, "longitude": -74.01, "timezone": "America/New_York", "current": block}


def geocoding_payload() -> dict:
    return {
        "results": [
            {"name": "New York", "latitude": 40.71427, "longitude": -74.00597, "country": "United States", "admin1": "New York"},
            {"name": "New York Mills", "latitude": 46.51802, "longitude": -95.37615, "country": "United States", "admin1": "Minnesota"},
        ]
    }


