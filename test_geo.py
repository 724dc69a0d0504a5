"""
Tests for great-circle distance and address geocoding.
"""

import math

import pytest
import requests

from conftest import FakeResponse, FakeSession
from grocery_planner.core.config import EARTH_RADIUS_MILES, GEOCODER_COUNTRY
from grocery_planner.core.geo import calculate_distance, distance_between, geocode_address
from grocery_planner.core.retry_utils import NotFoundError, TransientError


def test_same_point_is_zero():
    assert calculate_distance(39.14, -84.43, 39.14, -84.43) == 0.0


def test_distance_is_symmetric():
    a = calculate_distance(40.7128, -74.0060, 34.0522, -118.2437)
    b = calculate_distance(34.0522, -118.2437, 40.7128, -74.0060)
    assert a == pytest.approx(b)


def test_one_degree_of_latitude():
    expected = EARTH_RADIUS_MILES * math.pi / 180
    assert calculate_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected, rel=1e-9)


def test_new_york_to_los_angeles():
    miles = calculate_distance(40.7128, -74.0060, 34.0522, -118.2437)
    assert 2430 < miles < 2460


def test_distance_between_tuples():
    origin, destination = (39.1530, -84.4020), (39.1420, -84.4330)
    assert distance_between(origin, destination) == calculate_distance(*origin, *destination)


def test_geocode_returns_first_match():
    session = FakeSession([FakeResponse(200, [
        {"lat": "39.1031", "lon": "-84.5120", "display_name": "Cincinnati, OH"},
        {"lat": "0", "lon": "0"},
    ])])

    lat, lng = geocode_address("Cincinnati, OH", session=session)

    assert (lat, lng) == (39.1031, -84.5120)
    _, _, kwargs = session.calls[0]
    assert kwargs["params"]["limit"] == 1
    assert kwargs["params"]["countrycodes"] == GEOCODER_COUNTRY
    assert "User-Agent" in kwargs["headers"]


def test_geocode_no_match_raises_not_found():
    session = FakeSession([FakeResponse(200, [])])
    with pytest.raises(NotFoundError):
        geocode_address("nowhere at all", session=session)


def test_geocode_empty_address():
    session = FakeSession()
    with pytest.raises(NotFoundError):
        geocode_address("   ", session=session)
    assert session.calls == []


def test_geocode_network_failure_is_transient():
    session = FakeSession([requests.ConnectionError("offline")])
    with pytest.raises(TransientError):
        geocode_address("Cincinnati, OH", session=session)


def test_geocode_http_error_is_transient():
    session = FakeSession([FakeResponse(503)])
    with pytest.raises(TransientError):
        geocode_address("Cincinnati, OH", session=session)
