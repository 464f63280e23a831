"""Core abstractions for the weather proxy domain."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Protocol

EARTH_RADIUS_KM = 6371.0


def _format(value: Optional[float]) -> str:
    return "None" if value is None else f"{value:.4f}"


def _in_range(value: Optional[float], bound: float) -> bool:
    if value is None:
        return False
    try:
        return -bound <= value <= bound
    except TypeError:
        return False


@dataclass(frozen=True)
class Location:
    """Geographical coordinates in decimal degrees."""

    latitude: Optional[float]
    longitude: Optional[float]

    def is_valid(self) -> bool:
        return _in_range(self.latitude, 90.0) and _in_range(self.longitude, 180.0)

    def distance_to(self, other: "Location") -> float:
        """Great-circle distance in kilometres (haversine)."""
        lat_distance = math.radians(other.latitude - self.latitude)
        lon_distance = math.radians(other.longitude - self.longitude)
        a = (
            math.sin(lat_distance / 2) ** 2
            + math.cos(math.radians(self.latitude))
            * math.cos(math.radians(other.latitude))
            * math.sin(lon_distance / 2) ** 2
        )
        return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    def __str__(self) -> str:
        return f"({_format(self.latitude)}, {_format(self.longitude)})"


@dataclass(frozen=True)
class Weather:
    """Current weather conditions for a point.

    ``humidity`` stays ``None`` when the upstream omits it.
    """

    time: datetime
    temperature: Optional[float]
    weather_code: Optional[int]
    wind_speed: Optional[float]
    humidity: Optional[int]
    latitude: Optional[float]
    longitude: Optional[float]
    timezone: Optional[str]

    @property
    def location(self) -> Location:
        return Location(self.latitude, self.longitude)

    def is_valid(self) -> bool:
        return (
            self.temperature is not None
            and self.weather_code is not None
            and self.wind_speed is not None
            and self.location.is_valid()
        )


@dataclass(frozen=True)
class GeocodingResult:
    id: str
    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    country: Optional[str] = None
    admin1: Optional[str] = None

    @property
    def display_name(self) -> str:
        parts = [self.name]
        if self.admin1:
            parts.append(self.admin1)
        if self.country:
            parts.append(self.country)
        return ", ".join(parts)

    @property
    def location(self) -> Location:
        return Location(self.latitude, self.longitude)

    def is_valid(self) -> bool:
        return bool(self.name) and self.location.is_valid()


@dataclass(frozen=True)
class ForecastRequest:
    latitude: float
    longitude: float
    timezone: str
    fields: tuple = ("temperature_2m", "relative_humidity_2m", "weather_code", "wind_speed_10m")


@dataclass(frozen=True)
class GeocodingRequest:
    name: str
    count: int
    language: str
    format: str = "json"


class WeatherTransport(Protocol):
    """Performs the actual upstream calls and returns decoded JSON payloads.

    Implementations raise :class:`backend.core.errors.TransportError` on
    failure.  A geocoding "not found" is returned as a payload without
    results, not raised.
    """

    def fetch_forecast(self, request: ForecastRequest) -> Mapping[str, Any]:
        ...

    def search_city(self, request: GeocodingRequest) -> Mapping[str, Any]:
        ...
