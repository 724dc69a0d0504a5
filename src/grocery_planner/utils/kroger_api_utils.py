"""
Kroger API utilities - OAuth token exchange, product search and store
location search, with retry on transient failures.
"""

import json
import logging
import sqlite3
import time
from typing import Any, Dict, List, Optional

import requests

from ..core.config import (
    KROGER_CLIENT_ID,
    KROGER_CLIENT_SECRET,
    KROGER_API_BASE,
    KROGER_TOKEN_URL,
    KROGER_SCOPE,
    KROGER_STORE_PREFIX,
    HTTP_TIMEOUT,
    SEARCH_RESULT_LIMIT,
    DEFAULT_STORE_RADIUS_MILES,
)
from ..core.db import get_db_connection, PathLike
from ..core.retry_utils import (
    retry_with_backoff,
    RetryConfig,
    TransientError,
    PermanentError,
    ConfigurationError,
    QueryError,
)
from ..models.api import ExternalProduct
from ..models.store import Store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

SOURCE = "kroger"
LOCATION_RESULT_LIMIT = 50
TOKEN_EXPIRY_MARGIN = 60
RETRY_CONFIG = RetryConfig(max_retries=2, initial_backoff=1.0, backoff_multiplier=2.0)


def clean_store_name(name: str) -> str:
    """Drop a duplicated leading 'Kroger ' from location names ('Kroger Ralphs' -> 'Ralphs')."""
    if name.startswith("Kroger ") and not name.startswith("Kroger -"):
        rest = name[len("Kroger "):]
        if not rest.startswith("-") and rest.strip():
            return rest
    return name


def transform_product(product: Dict[str, Any], location_id: Optional[str] = None) -> ExternalProduct:
    """Map a Kroger product record onto ExternalProduct."""
    items = product.get("items") or [{}]
    first_item = items[0] or {}
    price = first_item.get("price") or {}
    brand = product.get("brand")
    categories = product.get("categories") or []

    image_url = None
    images = product.get("images") or []
    if images:
        sizes = images[0].get("sizes") or []
        preferred = next((img for img in sizes if img.get("size") in ("large", "medium")), None)
        chosen = preferred or (sizes[0] if sizes else None)
        image_url = chosen.get("url") if chosen else None

    return ExternalProduct(
        id=f"{KROGER_STORE_PREFIX}{product['productId']}",
        upc=product.get("upc") or product["productId"],
        name=product.get("description") or brand or "Unknown Product",
        brand=brand,
        size=first_item.get("size"),
        category=categories[0] if categories else None,
        image_url=image_url,
        price=price.get("regular"),
        sale_price=price.get("promo"),
        kroger_data={
            "productId": product["productId"],
            "locationId": location_id,
            "temperature": product.get("temperature"),
            "categories": categories,
            "tags": product.get("tags"),
        },
    )


def transform_location(location: Dict[str, Any]) -> Store:
    """Map a Kroger location record onto Store."""
    address = location.get("address") or {}
    geo = location.get("geolocation") or {}
    return Store(
        id=f"{KROGER_STORE_PREFIX}{location['locationId']}",
        name=clean_store_name(location.get("name", "")),
        address=address.get("addressLine1", ""),
        city=address.get("city", ""),
        state=address.get("state", ""),
        zip_code=address.get("zipCode", ""),
        latitude=float(geo.get("latitude", 0.0)),
        longitude=float(geo.get("longitude", 0.0)),
        phone=location.get("phone") or None,
        hours=location.get("hours") or {},
        supported_apis=["kroger_api"],
    )


def upsert_stores(stores: List[Store], db_path: Optional[PathLike] = None) -> int:
    """Insert or update stores keyed by id."""
    if not stores:
        return 0
    try:
        conn = get_db_connection(db_path)
    except sqlite3.Error as e:
        raise QueryError(f"Store upsert failed: {e}", "catalog")
    try:
        with conn:
            conn.executemany("""
                INSERT INTO stores
                (id, name, address, city, state, zip_code, latitude, longitude, phone, hours, supported_apis)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name, address = excluded.address, city = excluded.city,
                    state = excluded.state, zip_code = excluded.zip_code,
                    latitude = excluded.latitude, longitude = excluded.longitude,
                    phone = excluded.phone, hours = excluded.hours,
                    supported_apis = excluded.supported_apis, updated_at = CURRENT_TIMESTAMP
            """, [
                (
                    s.id, s.name, s.address, s.city, s.state, s.zip_code,
                    s.latitude, s.longitude, s.phone,
                    json.dumps(s.hours), json.dumps(s.supported_apis),
                )
                for s in stores
            ])
    except sqlite3.Error as e:
        logger.error(f"[KROGER] Error upserting stores: {e}")
        raise QueryError(f"Store upsert failed: {e}", "catalog")
    finally:
        conn.close()
    logger.info(f"[KROGER] Upserted {len(stores)} stores")
    return len(stores)


class KrogerClient:
    """Client-credentials access to the Kroger product and location APIs."""

    def __init__(self, client_id: str = KROGER_CLIENT_ID, client_secret: str = KROGER_CLIENT_SECRET,
                 api_base: str = KROGER_API_BASE, token_url: str = KROGER_TOKEN_URL,
                 session: Optional[requests.Session] = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_base = api_base.rstrip("/")
        self.token_url = token_url
        self.session = session or requests.Session()
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self.token_expires_in = 0

    def get_access_token(self) -> str:
        """Exchange client credentials for a bearer token, reusing a live one."""
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        if not self.client_id or not self.client_secret:
            logger.error("[KROGER] Missing Kroger API credentials")
            raise ConfigurationError("Kroger API credentials not configured", SOURCE)

        logger.info(f"[KROGER] Requesting token with client id {self.client_id[:8]}...")
        try:
            response = self.session.post(
                self.token_url,
                data={"grant_type": "client_credentials", "scope": KROGER_SCOPE},
                auth=(self.client_id, self.client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=HTTP_TIMEOUT
            )
        except requests.RequestException as e:
            logger.error(f"[KROGER] Token request failed: {e}")
            raise TransientError(f"Kroger authentication unreachable: {e}", SOURCE)

        if not response.ok:
            try:
                detail = response.json()
                reason = detail.get("error_description") or detail.get("error") or "Unknown error"
            except ValueError:
                reason = f"status {response.status_code}: {response.text}"
            logger.error(f"[KROGER] Auth error response: {reason}")
            raise ConfigurationError(f"Kroger authentication failed: {reason}", SOURCE)

        token_data = response.json()
        self._token = token_data["access_token"]
        self.token_expires_in = int(token_data.get("expires_in", 0))
        self._token_expires_at = time.monotonic() + max(0, self.token_expires_in - TOKEN_EXPIRY_MARGIN)
        logger.info("[KROGER] Obtained access token")
        return self._token

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        token = self.get_access_token()
        try:
            response = self.session.get(
                f"{self.api_base}{path}",
                params=params,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                timeout=HTTP_TIMEOUT
            )
        except requests.RequestException as e:
            logger.error(f"[KROGER] {path} request failed: {e}")
            raise TransientError(f"Kroger API error: {e}", SOURCE)

        if response.status_code == 401:
            self._token = None
        if response.status_code >= 500 or response.status_code in (401, 429):
            raise TransientError(f"Kroger {path} API failed: {response.status_code}", SOURCE)
        if not response.ok:
            raise PermanentError(f"Kroger {path} API failed: {response.status_code}", SOURCE)
        return response.json()

    @retry_with_backoff(config=RETRY_CONFIG)
    def search_products(self, query: str, location_id: Optional[str] = None) -> List[ExternalProduct]:
        """Search products by term, optionally scoped to a store location."""
        if not query:
            raise PermanentError("Search query is required", SOURCE)

        params = {"filter.term": query, "filter.limit": SEARCH_RESULT_LIMIT}
        if location_id:
            params["filter.locationId"] = location_id

        logger.info(f"[KROGER] Searching products: {query!r} (location {location_id})")
        data = self._get("/products", params)
        products = [transform_product(p, location_id) for p in data.get("data") or []]
        logger.info(f"[KROGER] Found {len(products)} products")
        return products

    @retry_with_backoff(config=RETRY_CONFIG)
    def search_locations(self, lat: float, lng: float,
                         radius: float = DEFAULT_STORE_RADIUS_MILES) -> List[Store]:
        """Store locations near a point."""
        logger.info(f"[KROGER] Searching locations near ({lat}, {lng}) within {radius} mi")
        data = self._get("/locations", {
            "filter.lat.near": lat,
            "filter.lon.near": lng,
            "filter.radiusInMiles": radius,
            "filter.limit": LOCATION_RESULT_LIMIT,
        })
        stores = [transform_location(loc) for loc in data.get("data") or []]
        logger.info(f"[KROGER] Found {len(stores)} locations")
        return stores

    def sync_locations(self, lat: float, lng: float, radius: float = DEFAULT_STORE_RADIUS_MILES,
                       db_path: Optional[PathLike] = None) -> List[Store]:
        """Search nearby locations and upsert them into the stores table."""
        stores = self.search_locations(lat, lng, radius)
        upsert_stores(stores, db_path)
        return stores
