from __future__ import annotations

import math

import pytest

from backend.core.errors import InvalidCoordinates, InvalidQuery
from backend.core.validation import normalize_timezone, validate_city_query, validate_coordinates


@pytest.mark.parametrize(
    "latitude, longitude",
    [(0.0, 0.0), (90.0, 180.0), (-90.0, -180.0), (40.7128, -74.006), (-33.8688, 151.2093)],
)
def test_valid_coordinates_pass(latitude, longitude):
    location = validate_coordinates(latitude, longitude)

    assert location.latitude == latitude
    assert location.longitude == longitude


@pytest.mark.parametrize(
    "latitude, longitude, expected",
    [
        (90.00001, 0.0, ("90.0000", "0.0000")),
        (-91.5, 10.25, ("-91.5000", "10.2500")),
        (45.0, 180.5, ("45.0000", "180.5000")),
        (12.34567, -200.0, ("12.3457", "-200.0000")),
    ],
)
def test_invalid_coordinates_report_both_values(latitude, longitude, expected):
    with pytest.raises(InvalidCoordinates) as excinfo:
        validate_coordinates(latitude, longitude)

    message = str(excinfo.value)
    assert f"latitude={expected[0]}" in message
    assert f"longitude={expected[1]}" in message


def test_missing_coordinate_is_rejected():
    with pytest.raises(InvalidCoordinates) as excinfo:
        validate_coordinates(None, 10.0)

    assert "latitude=None" in str(excinfo.value)
    assert "longitude=10.0000" in str(excinfo.value)


def test_missing_coordinate_is_logged(caplog):
    with pytest.raises(InvalidCoordinates):
        validate_coordinates(None, 10.0)

    assert "Invalid coordinates: (None, 10.0000)" in caplog.text


def test_nan_is_rejected():
    with pytest.raises(InvalidCoordinates):
        validate_coordinates(math.nan, 0.0)


def test_city_query_defaults():
    query = validate_city_query("Berlin")

    assert (query.name, query.count, query.language) == ("Berlin", 10, "en")


@pytest.mark.parametrize("count, expected", [(None, 10), (0, 10), (-3, 10), (1, 1), (20, 20), (21, 20), (100, 20)])
def test_city_query_count_is_defaulted_and_capped(count, expected):
    assert validate_city_query("Paris", count).count == expected


def test_city_query_trims_name_and_defaults_empty_language():
    query = validate_city_query("  New York ", 5, "")

    assert query.name == "New York"
    assert query.language == "en"
    assert query.as_key() == ("New York", 5, "en")


@pytest.mark.parametrize("name", [None, "", " ", "a", "  b  "])
def test_short_city_names_are_rejected(name):
    with pytest.raises(InvalidQuery):
        validate_city_query(name)


def test_timezone_defaults_to_auto():
    assert normalize_timezone(None) == "auto"
    assert normalize_timezone("") == "auto"
    assert normalize_timezone("Europe/Paris") == "Europe/Paris"
