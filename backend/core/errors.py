"""Error taxonomy shared by the weather proxy core.

Every error raised to callers carries an :class:`Outcome` tag so the API layer
can map it without inspecting the concrete class.  Domain outcomes (bad input,
no results) are kept apart from faults (upstream unavailable, internal).
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class Outcome(str, Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    INTERNAL = "internal"


class WeatherApiError(Exception):
    """Base error for everything the proxy core raises to its callers."""

    outcome: Outcome = Outcome.INTERNAL


# Domain outcomes ---------------------------------------------------------
class InvalidInput(WeatherApiError, ValueError):
    outcome = Outcome.INVALID_INPUT


class InvalidCoordinates(InvalidInput):
    def __init__(self, latitude: Optional[float], longitude: Optional[float]) -> None:
        super().__init__(
            "Invalid coordinates: latitude=%s (must be -90 to 90), longitude=%s (must be -180 to 180)"
            % (_format_coordinate(latitude), _format_coordinate(longitude))
        )
        self.latitude = latitude
        self.longitude = longitude


class InvalidQuery(InvalidInput):
    pass


class CityNotFound(WeatherApiError):
    outcome = Outcome.NOT_FOUND

    def __init__(self, city_name: str) -> None:
        super().__init__(f"No results found for city: {city_name}")
        self.city_name = city_name


# Faults ------------------------------------------------------------------
class UpstreamUnavailable(WeatherApiError):
    """Retries exhausted or the circuit breaker refused the call."""

    outcome = Outcome.UPSTREAM_UNAVAILABLE


class InternalError(WeatherApiError):
    outcome = Outcome.INTERNAL


class MappingError(InternalError):
    """Upstream payload could not be turned into a domain entity."""


class TransportError(RuntimeError):
    """Raised by transports; never escapes the resilient client."""

    def __init__(self, message: str, status_code: Optional[int] = None, transient: bool = True) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


def _format_coordinate(value: Optional[float]) -> str:
    if value is None:
        return "None"
    return f"{value:.4f}"


__all__ = [
    "Outcome",
    "WeatherApiError",
    "InvalidInput",
    "InvalidCoordinates",
    "InvalidQuery",
    "CityNotFound",
    "UpstreamUnavailable",
    "InternalError",
    "MappingError",
    "TransportError",
]
