"""REST API views for the weather proxy."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Optional

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from backend.core import mapper
from backend.core.errors import InvalidInput, Outcome, WeatherApiError
from backend.core.health import HealthRegistry
from backend.core.providers.base import RequestConfig
from backend.core.resilience import BreakerConfig, RetryConfig
from backend.core.services.weather_service import ProxyConfig, WeatherProxyService, build_weather_service

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Weather service is temporarily unavailable. Please try again later."
INTERNAL_MESSAGE = "An error occurred while processing your request"

_STATUS_BY_OUTCOME = {
    Outcome.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    Outcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    Outcome.UPSTREAM_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    Outcome.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class MissingParameter(InvalidInput):
    def __init__(self, name: str) -> None:
        super().__init__(f"Required parameter '{name}' is missing")


class InvalidParameter(InvalidInput):
    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid value for parameter '{name}'")


def proxy_config_from_settings() -> ProxyConfig:
    return ProxyConfig(
        cache_ttl=settings.WEATHER_CACHE_TTL_SECONDS,
        cache_max_size=settings.WEATHER_CACHE_MAX_SIZE,
        retry=RetryConfig(
            max_attempts=settings.WEATHER_RETRY_MAX_ATTEMPTS,
            wait_seconds=settings.WEATHER_RETRY_WAIT_SECONDS,
            backoff_multiplier=settings.WEATHER_RETRY_BACKOFF_MULTIPLIER,
        ),
        breaker=BreakerConfig(
            failure_threshold=settings.WEATHER_BREAKER_FAILURE_THRESHOLD,
            open_seconds=settings.WEATHER_BREAKER_OPEN_SECONDS,
        ),
        request=RequestConfig(timeout=settings.WEATHER_HTTP_TIMEOUT_SECONDS),
        forecast_url=settings.OPEN_METEO_FORECAST_URL,
        geocoding_url=settings.OPEN_METEO_GEOCODING_URL,
    )


@lru_cache(maxsize=1)
def get_health_registry() -> HealthRegistry:
    return HealthRegistry()


@lru_cache(maxsize=1)
def get_weather_service() -> WeatherProxyService:
    return build_weather_service(proxy_config_from_settings(), health=get_health_registry())


def error_payload(status_code: int, error: str, message: str) -> dict:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "status": status_code,
        "error": error,
        "message": message,
    }


class WeatherAPIView(APIView):
    """Base view translating proxy errors into the standard error body."""

    permission_classes = [AllowAny]

    def handle_exception(self, exc):
        if not isinstance(exc, WeatherApiError):
            return super().handle_exception(exc)
        status_code = _STATUS_BY_OUTCOME[exc.outcome]
        if exc.outcome in (Outcome.INVALID_INPUT, Outcome.NOT_FOUND):
            logger.warning("%s: %s", exc.__class__.__name__, exc)
            message = str(exc)
        elif exc.outcome is Outcome.UPSTREAM_UNAVAILABLE:
            logger.error("Upstream unavailable: %s", exc, exc_info=exc)
            message = UNAVAILABLE_MESSAGE
        else:
            logger.error("Internal error while handling %s", self.request.get_full_path(), exc_info=exc)
            message = INTERNAL_MESSAGE
        reason = _reason_phrase(status_code)
        return Response(error_payload(status_code, reason, message), status=status_code)

    def _param(self, request, name: str, cast: Callable[[str], Any], required: bool = False) -> Optional[Any]:
        raw = request.query_params.get(name)
        if raw is None or raw == "":
            if required:
                raise MissingParameter(name)
            return None
        try:
            return cast(raw)
        except ValueError:
            raise InvalidParameter(name) from None


class ForecastView(WeatherAPIView):
    """Return current conditions for the requested coordinates."""

    def get(self, request, *args, **kwargs):
        latitude = self._param(request, "latitude", float, required=True)
        longitude = self._param(request, "longitude", float, required=True)
        tz = request.query_params.get("timezone")
        logger.info("GET /api/v1/weather/forecast - lat: %s, lon: %s, timezone: %s", latitude, longitude, tz)
        weather = get_weather_service().get_forecast(latitude, longitude, tz)
        return Response(mapper.forecast_to_dict(weather), status=status.HTTP_200_OK)


class CitySearchView(WeatherAPIView):
    """Search cities by name."""

    def get(self, request, *args, **kwargs):
        name = request.query_params.get("name")
        if name is None:
            raise MissingParameter("name")
        count = self._param(request, "count", int)
        language = request.query_params.get("language")
        logger.info("GET /api/v1/weather/search - name: %r, count: %s, language: %s", name, count, language)
        results = get_weather_service().search_city(name, count, language)
        return Response(mapper.search_to_dict(results), status=status.HTTP_200_OK)


class HealthView(WeatherAPIView):
    def get(self, request, *args, **kwargs):
        get_weather_service()
        return Response(get_health_registry().snapshot(), status=status.HTTP_200_OK)


def _reason_phrase(status_code: int) -> str:
    return {
        400: "Bad Request",
        404: "Not Found",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }[status_code]
