"""Weather proxy service combining validation, caching and resilient upstream calls."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from backend.core import mapper
from backend.core.abstractions import ForecastRequest, GeocodingRequest, GeocodingResult, Weather, WeatherTransport
from backend.core.cache import DEFAULT_MAX_SIZE, DEFAULT_TTL_SECONDS, TTLCache
from backend.core.errors import CityNotFound, InternalError
from backend.core.health import HealthRegistry
from backend.core.providers.base import RequestConfig
from backend.core.providers.openmeteo import OpenMeteoTransport
from backend.core.resilience import BreakerConfig, CircuitBreaker, ResilientClient, RetryConfig
from backend.core.validation import normalize_timezone, validate_city_query, validate_coordinates

FORECAST = "forecast"
GEOCODING = "geocoding"

ForecastKey = Tuple[float, float]
SearchKey = Tuple[str, int, str]


class WeatherProxyService:
    """Serve forecasts and city searches on top of an unreliable upstream."""

    def __init__(
        self,
        *,
        transport: WeatherTransport,
        forecast_cache: TTLCache[ForecastKey, Weather],
        search_cache: TTLCache[SearchKey, List[GeocodingResult]],
        forecast_client: ResilientClient,
        geocoding_client: ResilientClient,
    ) -> None:
        self.transport = transport
        self.forecast_cache = forecast_cache
        self.search_cache = search_cache
        self.forecast_client = forecast_client
        self.geocoding_client = geocoding_client
        self._log = logging.getLogger(self.__class__.__name__)

    # Public API ---------------------------------------------------------
    def get_forecast(
        self,
        latitude: Optional[float],
        longitude: Optional[float],
        timezone: Optional[str] = None,
        cancelled: Optional[Callable[[], bool]] = None,
    ) -> Weather:
        self._log.info("Getting weather forecast for coordinates: (%s, %s)", latitude, longitude)
        validate_coordinates(latitude, longitude)
        key = (latitude, longitude)
        cached = self.forecast_cache.get(key)
        if cached is not None:
            self._log.debug("Forecast cache hit for %s", key)
            return cached

        request = ForecastRequest(latitude=latitude, longitude=longitude, timezone=normalize_timezone(timezone))
        payload = self.forecast_client.execute(
            lambda: self.transport.fetch_forecast(request),
            cancelled=cancelled,
        )
        weather = mapper.to_weather(payload)
        if not weather.is_valid():
            self._log.error("Upstream returned incomplete forecast for %s: %r", key, payload)
            raise InternalError("incomplete forecast data from upstream")
        self.forecast_cache.put(key, weather)
        self._log.info(
            "Weather forecast retrieved successfully: temp=%s, code=%s", weather.temperature, weather.weather_code
        )
        return weather

    def search_city(
        self,
        name: Optional[str],
        count: Optional[int] = None,
        language: Optional[str] = None,
        cancelled: Optional[Callable[[], bool]] = None,
    ) -> List[GeocodingResult]:
        self._log.info("Searching for city: %r with count=%s, language=%s", name, count, language)
        query = validate_city_query(name, count, language)
        key = query.as_key()
        cached = self.search_cache.get(key)
        if cached is not None:
            self._log.debug("Search cache hit for %s", key)
            return list(cached)

        request = GeocodingRequest(name=query.name, count=query.count, language=query.language)
        payload = self.geocoding_client.execute(
            lambda: self.transport.search_city(request),
            cancelled=cancelled,
        )
        results = mapper.to_geocoding_results(payload)
        if not results:
            self._log.warning("No results found for city: %r", query.name)
            raise CityNotFound(query.name)
        self.search_cache.put(key, results)
        self._log.info("Found %s results for city: %r", len(results), query.name)
        return list(results)


@dataclass
class ProxyConfig:
    cache_ttl: float = DEFAULT_TTL_SECONDS
    cache_max_size: int = DEFAULT_MAX_SIZE
    retry: RetryConfig = field(default_factory=RetryConfig)
    breaker: BreakerConfig = field(default_factory=BreakerConfig)
    request: RequestConfig = field(default_factory=RequestConfig)
    forecast_url: Optional[str] = None
    geocoding_url: Optional[str] = None


def build_weather_service(
    config: Optional[ProxyConfig] = None,
    *,
    transport: Optional[WeatherTransport] = None,
    health: Optional[HealthRegistry] = None,
    time_func: Callable[[], float] = time.monotonic,
    sleep_func: Callable[[float], None] = time.sleep,
) -> WeatherProxyService:
    """Assemble the service with one cache and one breaker per endpoint category."""
    config = config or ProxyConfig()
    if transport is None:
        transport = OpenMeteoTransport(
            forecast_url=config.forecast_url,
            geocoding_url=config.geocoding_url,
            request_config=config.request,
        )
    listener = health.record_breaker_state if health is not None else None

    def client(name: str) -> ResilientClient:
        breaker = CircuitBreaker(name, config.breaker, time_func=time_func, listener=listener)
        return ResilientClient(name, breaker, config.retry, sleep_func=sleep_func, health=health)

    forecast_cache: TTLCache[ForecastKey, Weather] = TTLCache(
        "weatherForecast", ttl=config.cache_ttl, max_size=config.cache_max_size, time_func=time_func
    )
    search_cache: TTLCache[SearchKey, List[GeocodingResult]] = TTLCache(
        "citySearch", ttl=config.cache_ttl, max_size=config.cache_max_size, time_func=time_func
    )
    forecast_client = client(FORECAST)
    geocoding_client = client(GEOCODING)
    if health is not None:
        health.register_cache(forecast_cache)
        health.register_cache(search_cache)
        health.record_breaker_state(FORECAST, forecast_client.breaker.snapshot())
        health.record_breaker_state(GEOCODING, geocoding_client.breaker.snapshot())
    return WeatherProxyService(
        transport=transport,
        forecast_cache=forecast_cache,
        search_cache=search_cache,
        forecast_client=forecast_client,
        geocoding_client=geocoding_client,
    )


__all__ = ["WeatherProxyService", "ProxyConfig", "build_weather_service", "FORECAST", "GEOCODING"]
