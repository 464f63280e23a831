"""Input validation for coordinates and city search queries."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .abstractions import Location
from .errors import InvalidCoordinates, InvalidQuery

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "auto"
DEFAULT_LANGUAGE = "en"
DEFAULT_COUNT = 10
MAX_COUNT = 20
MIN_NAME_LENGTH = 2


@dataclass(frozen=True)
class CityQuery:
    name: str
    count: int
    language: str

    def as_key(self) -> tuple:
        return (self.name, self.count, self.language)


def validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> Location:
    location = Location(latitude, longitude)
    if not location.is_valid():
        logger.error("Invalid coordinates: %s", location)
        raise InvalidCoordinates(latitude, longitude)
    return location


def validate_city_query(
    name: Optional[str],
    count: Optional[int] = None,
    language: Optional[str] = None,
) -> CityQuery:
    """Normalize a city search; only a too-short name is rejected.

    ``count`` falls back to 10 when missing or below 1 and is capped at 20.
    """
    trimmed = (name or "").strip()
    if len(trimmed) < MIN_NAME_LENGTH:
        raise InvalidQuery("City name must be at least 2 characters long")
    if count is None or count < 1:
        count = DEFAULT_COUNT
    count = min(count, MAX_COUNT)
    return CityQuery(name=trimmed, count=count, language=language or DEFAULT_LANGUAGE)


def normalize_timezone(timezone: Optional[str]) -> str:
    return timezone or DEFAULT_TIMEZONE


__all__ = ["CityQuery", "validate_coordinates", "validate_city_query", "normalize_timezone"]
