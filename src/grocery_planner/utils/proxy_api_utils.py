"""
Proxy API utilities - client side of the grocery API proxy functions.
Failures never propagate: they are logged, turned into a notice and an
empty result.
"""

import logging
from typing import List, Optional

import requests

from ..core.config import PROXY_API_BASE, HTTP_TIMEOUT, DEFAULT_STORE_RADIUS_MILES
from ..core.retry_utils import APIResponseValidator, APIError, TransientError
from ..models.api import ExternalProduct, Notice
from ..models.store import Store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

SOURCE = "proxy"


class GroceryProxyClient:
    """Calls the product search and location sync proxy functions."""

    def __init__(self, base_url: str = PROXY_API_BASE, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.notices: List[Notice] = []

    def _post(self, function: str, body: dict) -> dict:
        try:
            response = self.session.post(
                f"{self.base_url}/{function}",
                json=body,
                timeout=HTTP_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise TransientError(f"{function} call failed: {e}", SOURCE)
        except ValueError as e:
            raise TransientError(f"{function} returned invalid JSON: {e}", SOURCE)

    def _notify(self, title: str, description: str, variant: str = "default"):
        self.notices.append(Notice(title=title, description=description, variant=variant))

    def search_products(self, query: str, location_id: Optional[str] = None) -> List[ExternalProduct]:
        """Search the third-party catalog; [] on any failure."""
        try:
            logger.info(f"[PROXY] Searching products: {query!r}")
            data = self._post("kroger-products", {"query": query, "locationId": location_id})
            APIResponseValidator.validate_products_response(data, SOURCE)
            return [ExternalProduct.model_validate(p) for p in data["products"]]
        except (APIError, ValueError) as e:
            logger.error(f"[PROXY] Error searching Kroger products: {e}")
            self._notify(
                "Search failed",
                "Failed to search Kroger products. Please try again.",
                "destructive"
            )
            return []

    def sync_store_locations(self, lat: float, lng: float,
                             radius: float = DEFAULT_STORE_RADIUS_MILES) -> List[Store]:
        """Find and store nearby locations; [] on any failure."""
        try:
            logger.info(f"[PROXY] Syncing locations near ({lat}, {lng})")
            data = self._post("kroger-locations", {"lat": lat, "lng": lng, "radius": radius})
            APIResponseValidator.validate_stores_response(data, SOURCE)
            stores = [Store.model_validate(s) for s in data["stores"]]
        except (APIError, ValueError) as e:
            logger.error(f"[PROXY] Error syncing Kroger locations: {e}")
            self._notify(
                "Sync failed",
                "Failed to sync Kroger locations. Please try again.",
                "destructive"
            )
            return []

        self._notify("Success", f"Found and synced {data.get('count', len(stores))} Kroger locations")
        return stores
