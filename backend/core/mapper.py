"""Translate Open-Meteo payloads into domain entities and back into API shapes."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .abstractions import GeocodingResult, Weather
from .errors import MappingError


def to_weather(payload: Optional[Mapping[str, Any]]) -> Weather:
    if not isinstance(payload, Mapping):
        raise MappingError("forecast payload is not an object")
    current = payload.get("current")
    if not isinstance(current, Mapping):
        raise MappingError("missing current weather block")
    try:
        return Weather(
            time=_parse_time(current.get("time")),
            temperature=_optional(float, current.get("temperature_2m")),
            weather_code=_optional(int, current.get("weather_code")),
            wind_speed=_optional(float, current.get("wind_speed_10m")),
            humidity=_optional(int, current.get("relative_humidity_2m")),
            latitude=_optional(float, payload.get("latitude")),
            longitude=_optional(float, payload.get("longitude")),
            timezone=payload.get("timezone"),
        )
    except (TypeError, ValueError) as exc:
        raise MappingError(f"malformed forecast payload: {exc}") from exc


def to_geocoding_results(
    payload: Optional[Mapping[str, Any]],
    id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> List[GeocodingResult]:
    """Map every upstream result; a missing or empty ``results`` list maps to ``[]``."""
    if payload is None:
        return []
    if not isinstance(payload, Mapping):
        raise MappingError("geocoding payload is not an object")
    results = payload.get("results") or []
    mapped: List[GeocodingResult] = []
    for item in results:
        if not isinstance(item, Mapping):
            raise MappingError("geocoding result is not an object")
        try:
            mapped.append(
                GeocodingResult(
                    id=id_factory(),
                    name=item.get("name") or "",
                    latitude=_optional(float, item.get("latitude")),
                    longitude=_optional(float, item.get("longitude")),
                    country=item.get("country"),
                    admin1=item.get("admin1"),
                )
            )
        except (TypeError, ValueError) as exc:
            raise MappingError(f"malformed geocoding result: {exc}") from exc
    return mapped


# Output shapes --------------------------------------------------------------
def forecast_to_dict(weather: Weather) -> Dict[str, Any]:
    return {
        "latitude": weather.latitude,
        "longitude": weather.longitude,
        "timezone": weather.timezone,
        "current": {
            "time": weather.time.isoformat(),
            "temperature": weather.temperature,
            "weatherCode": weather.weather_code,
            "windSpeed": weather.wind_speed,
            "humidity": weather.humidity,
        },
    }


def geocoding_to_dict(result: GeocodingResult) -> Dict[str, Any]:
    return {
        "id": result.id,
        "name": result.name,
        "latitude": result.latitude,
        "longitude": result.longitude,
        "country": result.country,
        "admin1": result.admin1,
        "displayName": result.display_name,
    }


def search_to_dict(results: Optional[Sequence[GeocodingResult]]) -> Dict[str, Any]:
    return {"results": [geocoding_to_dict(result) for result in results or []]}


# helpers ------------------------------------------------------------------
def _parse_time(value: Optional[str]) -> datetime:
    if not value:
        raise MappingError("missing observation time")
    if not isinstance(value, str):
        raise MappingError(f"observation time is not a string: {value!r}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise MappingError(f"invalid observation time: {value!r}") from exc


def _optional(cast: Callable[[Any], Any], value: Any) -> Any:
    if value is None:
        return None
    return cast(value)


__all__ = [
    "to_weather",
    "to_geocoding_results",
    "forecast_to_dict",
    "geocoding_to_dict",
    "search_to_dict",
]
