"""
Product and price directory backed by the catalog database.
"""

import json
import logging
import sqlite3
import threading
from typing import Any, Callable, List, Optional, Tuple

from ..core.config import SEARCH_RESULT_LIMIT, DEFAULT_STORE_RADIUS_MILES
from ..core.db import get_db_connection, PathLike
from ..core.geo import calculate_distance
from ..core.retry_utils import RetryConfig, QueryError, retry_with_backoff
from ..models.product import Product, StoreSummary, StorePriceQuote, ProductDetails
from ..models.store import Store
from ..utils.history_utils import save_search

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

DETAIL_RETRY_CONFIG = RetryConfig.fixed(attempts=3, delay=1.0)


def escape_like(text: str) -> str:
    """Make LIKE match `text` literally (use with ESCAPE '\\')."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _load_json(value, default):
    if value is None or value == "":
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning(f"[DIRECTORY] Ignoring malformed JSON column: {value!r}")
        return default


def product_row_to_model(row: sqlite3.Row) -> Product:
    """Convert database row to Product model."""
    return Product(
        id=row["id"],
        upc=row["upc"],
        name=row["name"],
        brand=row["brand"],
        size=row["size"],
        category=row["category"],
        image_url=row["image_url"],
        ingredients=row["ingredients"],
        nutrition_facts=_load_json(row["nutrition_facts"], None),
        allergens=_load_json(row["allergens"], []),
    )


def store_row_to_model(row: sqlite3.Row) -> Store:
    """Convert database row to Store model."""
    return Store(
        id=row["id"],
        name=row["name"],
        address=row["address"],
        city=row["city"],
        state=row["state"],
        zip_code=row["zip_code"],
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        phone=row["phone"],
        hours=_load_json(row["hours"], {}),
        supported_apis=_load_json(row["supported_apis"], []),
    )


class ProductDirectory:
    """Search products, look them up by UPC and compare store prices."""

    def __init__(self, db_path: Optional[PathLike] = None, user_id: Optional[str] = None,
                 defer: Optional[Callable[..., Any]] = None):
        self.db_path = db_path
        self.user_id = user_id
        # Runs history writes off the request path, e.g. BackgroundTasks.add_task
        self.defer = defer

    def _record_search(self, upc: str):
        if not self.user_id:
            return
        if self.defer is not None:
            self.defer(save_search, self.user_id, upc, "barcode", db_path=self.db_path)
        else:
            save_search(self.user_id, upc, "barcode", db_path=self.db_path)

    def _find_by_upc(self, upc: str) -> Optional[Product]:
        rows = self._query("SELECT * FROM products WHERE upc = ?", (upc,))
        if not rows:
            logger.info(f"[DIRECTORY] No product for UPC {upc}")
            return None
        return product_row_to_model(rows[0])

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            conn = get_db_connection(self.db_path)
            try:
                return conn.execute(sql, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error(f"[DIRECTORY] Query failed: {e}")
            raise QueryError(f"Catalog query failed: {e}", "catalog")

    def search_products(self, text: str) -> List[Product]:
        """Case-insensitive partial match on name, brand or category."""
        pattern = f"%{escape_like((text or '').strip().lower())}%"
        logger.info(f"[DIRECTORY] Searching products: {text!r}")
        rows = self._query("""
            SELECT * FROM products
            WHERE LOWER(name) LIKE ? ESCAPE '\\'
               OR LOWER(COALESCE(brand, '')) LIKE ? ESCAPE '\\'
               OR LOWER(COALESCE(category, '')) LIKE ? ESCAPE '\\'
            LIMIT ?
        """, (pattern, pattern, pattern, SEARCH_RESULT_LIMIT))
        return [product_row_to_model(row) for row in rows]

    def get_product_by_identifier(self, upc: str) -> Optional[Product]:
        """Exact UPC lookup. Records the lookup in the user's search history."""
        self._record_search(upc)
        return self._find_by_upc(upc)

    def get_store_by_name(self, name: str) -> Optional[Store]:
        """The store with this display name, or None when absent or ambiguous."""
        rows = self._query("SELECT * FROM stores WHERE name = ? LIMIT 2", (name,))
        return store_row_to_model(rows[0]) if len(rows) == 1 else None

    def get_product(self, product_id: str) -> Optional[Product]:
        rows = self._query("SELECT * FROM products WHERE id = ?", (product_id,))
        return product_row_to_model(rows[0]) if rows else None

    def get_store(self, store_id: str) -> Optional[Store]:
        rows = self._query("SELECT * FROM stores WHERE id = ?", (store_id,))
        return store_row_to_model(rows[0]) if rows else None

    def get_prices_for_product(self, product_id: str,
                               user_coords: Optional[Tuple[float, float]] = None) -> List[StorePriceQuote]:
        """
        In-stock quotes for a product, cheapest effective price first.

        With user coordinates each quote carries its haversine distance.
        Equal prices keep fetch order.
        """
        rows = self._query("""
            SELECT pp.price, pp.sale_price, pp.in_stock,
                   s.id AS store_id, s.name, s.address, s.city, s.state, s.latitude, s.longitude
            FROM product_prices pp
            JOIN stores s ON s.id = pp.store_id
            WHERE pp.product_id = ? AND pp.in_stock = 1
            ORDER BY pp.id
        """, (product_id,))

        quotes = []
        for row in rows:
            quote = StorePriceQuote(
                store=StoreSummary(
                    id=row["store_id"],
                    name=row["name"],
                    address=row["address"],
                    city=row["city"],
                    state=row["state"],
                    latitude=row["latitude"],
                    longitude=row["longitude"],
                ),
                price=float(row["price"]),
                sale_price=float(row["sale_price"]) if row["sale_price"] is not None else None,
                in_stock=bool(row["in_stock"]),
            )
            if user_coords is not None and row["latitude"] is not None and row["longitude"] is not None:
                quote.distance = calculate_distance(
                    user_coords[0], user_coords[1], float(row["latitude"]), float(row["longitude"])
                )
            quotes.append(quote)

        quotes.sort(key=lambda q: q.effective_price)
        logger.info(f"[DIRECTORY] {len(quotes)} quotes for product {product_id}")
        return quotes

    def find_stores_near(self, lat: float, lng: float,
                         radius_miles: float = DEFAULT_STORE_RADIUS_MILES) -> List[Store]:
        """Stores within the radius, nearest first."""
        rows = self._query("SELECT * FROM stores")
        nearby = []
        for row in rows:
            store = store_row_to_model(row)
            store.distance = calculate_distance(lat, lng, store.latitude, store.longitude)
            if store.distance <= radius_miles:
                nearby.append(store)
        nearby.sort(key=lambda s: s.distance)
        return nearby

    def load_product_details(self, upc: str, config: Optional[RetryConfig] = None,
                             cancel_event: Optional[threading.Event] = None,
                             user_coords: Optional[Tuple[float, float]] = None) -> Optional[ProductDetails]:
        """
        Product plus quotes, retrying transient failures.

        Returns None when the UPC is unknown. Raises the last TransientError
        once attempts run out, or RetryCancelled when `cancel_event` fires.
        """
        self._record_search(upc)

        def _load() -> Optional[ProductDetails]:
            product = self._find_by_upc(upc)
            if product is None:
                return None
            prices = self.get_prices_for_product(product.id, user_coords)
            return ProductDetails(product=product, prices=prices)

        loader = retry_with_backoff(_load, config or DETAIL_RETRY_CONFIG, cancel_event=cancel_event)
        return loader()
