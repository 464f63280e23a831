from __future__ import annotations

import pytest

from backend.core.cache import DEFAULT_TTL_SECONDS
from backend.core.errors import CityNotFound, InternalError, InvalidCoordinates, InvalidQuery, TransportError, UpstreamUnavailable
from backend.core.health import HealthRegistry
from backend.core.resilience import BreakerConfig, BreakerStatus, RetryConfig
from backend.core.services.weather_service import ProxyConfig, build_weather_service
from helpers import forecast_payload


@pytest.fixture()
def config() -> ProxyConfig:
    return ProxyConfig(
        retry=RetryConfig(max_attempts=2, wait_seconds=0.1),
        breaker=BreakerConfig(failure_threshold=3, open_seconds=60),
    )


@pytest.fixture()
def service(config, transport, clock):
    return build_weather_service(config, transport=transport, time_func=clock, sleep_func=clock.sleep)


def test_forecast_is_cached_within_ttl(service, transport, clock):
    first = service.get_forecast(40.7128, -74.006)
    clock.advance(DEFAULT_TTL_SECONDS)
    second = service.get_forecast(40.7128, -74.006)

    assert first is second
    assert len(transport.forecast_requests) == 1

    clock.advance(1)
    service.get_forecast(40.7128, -74.006)
    assert len(transport.forecast_requests) == 2


def test_forecast_defaults_timezone(service, transport):
    service.get_forecast(10.0, 20.0, "")
    service.get_forecast(11.0, 20.0, "Europe/Berlin")

    assert [r.timezone for r in transport.forecast_requests] == ["auto", "Europe/Berlin"]
    assert transport.forecast_requests[0].latitude == 10.0


def test_slightly_different_coordinates_are_distinct_keys(service, transport):
    service.get_forecast(40.7128, -74.006)
    service.get_forecast(40.71280001, -74.006)

    assert len(transport.forecast_requests) == 2


def test_invalid_coordinates_never_reach_cache_or_upstream(service, transport):
    with pytest.raises(InvalidCoordinates):
        service.get_forecast(91.0, 0.0)

    assert transport.forecast_requests == []
    assert service.forecast_cache.stats()["misses"] == 0


def test_incomplete_forecast_is_internal_and_not_cached(service, transport):
    transport.forecast_replies = [forecast_payload(temperature_2m=None), forecast_payload()]

    with pytest.raises(InternalError):
        service.get_forecast(1.0, 1.0)
    weather = service.get_forecast(1.0, 1.0)

    assert weather.temperature == 3.4
    assert len(transport.forecast_requests) == 2


def test_numeric_observation_time_is_internal_and_not_cached(service, transport):
    transport.forecast_replies = [forecast_payload(time=1705320000)]

    with pytest.raises(InternalError):
        service.get_forecast(1.0, 1.0)
    assert len(service.forecast_cache) == 0
    assert service.forecast_client.breaker.snapshot().consecutive_failures == 0


def test_search_normalizes_query_for_upstream_and_cache(service, transport):
    results = service.search_city(" New York ", 100, None)
    service.search_city("New York", 20, "en")

    assert len(transport.search_requests) == 1
    request = transport.search_requests[0]
    assert (request.name, request.count, request.language, request.format) == ("New York", 20, "en", "json")
    assert results[0].display_name == "New York, New York, United States"
    assert service.search_cache.get(("New York", 20, "en")) is not None


@pytest.mark.parametrize("count", [None, 0])
def test_search_default_count(service, transport, count):
    service.search_city("Paris", count)

    assert transport.search_requests[0].count == 10


def test_zero_results_raise_not_found_and_are_not_cached(service, transport):
    transport.search_replies = [{"results": []}]

    with pytest.raises(CityNotFound):
        service.search_city("Atlantis")
    with pytest.raises(CityNotFound):
        service.search_city("Atlantis")

    assert len(transport.search_requests) == 2
    assert len(service.search_cache) == 0
    assert service.geocoding_client.breaker.state is BreakerStatus.CLOSED


def test_short_query_is_rejected_before_upstream(service, transport):
    with pytest.raises(InvalidQuery):
        service.search_city(" x ")

    assert transport.search_requests == []


def test_search_results_get_new_ids_per_upstream_call(service, transport, clock):
    first = service.search_city("New York")
    clock.advance(DEFAULT_TTL_SECONDS + 1)
    second = service.search_city("New York")

    assert first[0].id != second[0].id


def test_breaker_opens_and_short_circuits(service, transport, clock):
    transport.forecast_replies = [TransportError("HTTP 503", 503)]

    with pytest.raises(UpstreamUnavailable):
        service.get_forecast(1.0, 1.0)
    with pytest.raises(UpstreamUnavailable):
        service.get_forecast(1.0, 1.0)
    assert len(transport.forecast_requests) == 3
    assert service.forecast_client.breaker.state is BreakerStatus.OPEN

    transport.forecast_replies = [forecast_payload()]
    with pytest.raises(UpstreamUnavailable):
        service.get_forecast(1.0, 1.0)
    assert len(transport.forecast_requests) == 3

    clock.advance(60)
    assert service.get_forecast(1.0, 1.0).temperature == 3.4
    assert len(transport.forecast_requests) == 4
    assert service.forecast_client.breaker.state is BreakerStatus.CLOSED


def test_breakers_are_independent_per_endpoint(service, transport):
    transport.forecast_replies = [TransportError("down")]
    for _ in range(2):
        with pytest.raises(UpstreamUnavailable):
            service.get_forecast(1.0, 1.0)

    assert service.forecast_client.breaker.state is BreakerStatus.OPEN
    assert service.search_city("New York")


def test_health_registry_tracks_breakers_and_caches(config, transport, clock):
    health = HealthRegistry()
    service = build_weather_service(config, transport=transport, health=health, time_func=clock, sleep_func=clock.sleep)
    transport.forecast_replies = [TransportError("down")]

    for _ in range(2):
        with pytest.raises(UpstreamUnavailable):
            service.get_forecast(1.0, 1.0)
    service.search_city("New York")

    snapshot = health.snapshot()
    assert snapshot["status"] == "DEGRADED"
    assert snapshot["breakers"]["forecast"]["state"] == "OPEN"
    assert snapshot["breakers"]["geocoding"]["state"] == "CLOSED"
    assert snapshot["upstream_errors"] == {"forecast": 3}
    assert snapshot["caches"]["citySearch"]["keys"] == 1
