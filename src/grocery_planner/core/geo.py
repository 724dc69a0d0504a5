"""
Geographic helpers: great-circle distance and address geocoding.
"""

import logging
import math
from typing import Optional, Tuple

import requests

from .config import (
    EARTH_RADIUS_MILES,
    GEOCODER_URL,
    GEOCODER_COUNTRY,
    GEOCODER_USER_AGENT,
    HTTP_TIMEOUT,
)
from .retry_utils import NotFoundError, TransientError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

Coordinates = Tuple[float, float]


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in miles between two (lat, lng) points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def distance_between(origin: Coordinates, destination: Coordinates) -> float:
    return calculate_distance(origin[0], origin[1], destination[0], destination[1])


def geocode_address(address: str, session: Optional[requests.Session] = None) -> Coordinates:
    """
    Resolve a free-text address to coordinates with the public geocoder.

    Only the best match is requested, restricted to GEOCODER_COUNTRY.

    Raises:
        NotFoundError: nothing matched the address
        TransientError: the geocoder could not be reached
    """
    if not address or not address.strip():
        raise NotFoundError("Address is empty", "geocoder")

    http = session or requests
    logger.info(f"[GEOCODER] Resolving address: {address}")
    try:
        response = http.get(
            GEOCODER_URL,
            params={
                "q": address,
                "format": "json",
                "limit": 1,
                "countrycodes": GEOCODER_COUNTRY,
            },
            headers={"User-Agent": GEOCODER_USER_AGENT},
            timeout=HTTP_TIMEOUT
        )
        response.raise_for_status()
        results = response.json()
    except requests.RequestException as e:
        logger.error(f"[GEOCODER] Request failed: {e}")
        raise TransientError(f"Geocoding failed: {e}", "geocoder")

    if not results:
        logger.warning(f"[GEOCODER] No match for: {address}")
        raise NotFoundError(f"No location found for '{address}'", "geocoder")

    best = results[0]
    return float(best["lat"]), float(best["lon"])
