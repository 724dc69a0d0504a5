"""
Database initialization and management utilities.
Handles SQLite schema creation and CSV imports for the catalog backend.
"""

import csv
import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional, Union

from .config import DB_PATH, DATA_DIR

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS products (
        id TEXT PRIMARY KEY,
        upc TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        brand TEXT,
        size TEXT,
        category TEXT,
        image_url TEXT,
        ingredients TEXT,
        nutrition_facts TEXT,
        allergens TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stores (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        address TEXT NOT NULL,
        city TEXT NOT NULL,
        state TEXT NOT NULL,
        zip_code TEXT NOT NULL,
        latitude FLOAT NOT NULL,
        longitude FLOAT NOT NULL,
        phone TEXT,
        hours TEXT,
        supported_apis TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS product_prices (
        id INTEGER PRIMARY KEY,
        product_id TEXT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
        store_id TEXT NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
        price FLOAT NOT NULL,
        sale_price FLOAT,
        in_stock INTEGER DEFAULT 1,
        last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_store_roster (
        id INTEGER PRIMARY KEY,
        user_id TEXT NOT NULL,
        store_id TEXT NOT NULL REFERENCES stores(id) ON DELETE CASCADE,
        preference_order INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (user_id, store_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_locations (
        id INTEGER PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        address TEXT NOT NULL,
        city TEXT,
        state TEXT,
        zip_code TEXT,
        latitude FLOAT NOT NULL,
        longitude FLOAT NOT NULL,
        is_primary INTEGER DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_search_history (
        id INTEGER PRIMARY KEY,
        user_id TEXT NOT NULL,
        product_upc TEXT NOT NULL,
        search_type TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def get_db_connection(db_path: Optional[PathLike] = None) -> sqlite3.Connection:
    """Get SQLite database connection with row access by column name."""
    path = Path(db_path) if db_path else DB_PATH
    try:
        conn = sqlite3.connect(str(path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        logger.debug(f"Connected to database: {path}")
        return conn
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise


def init_database(db_path: Optional[PathLike] = None, seed: bool = True,
                  data_dir: Optional[PathLike] = None):
    """Initialize database schema and optionally seed the catalog from CSV."""
    path = Path(db_path) if db_path else DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_db_connection(path)

    try:
        for statement in SCHEMA:
            conn.execute(statement)
        conn.commit()
        logger.info("Database schema created successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
    finally:
        conn.close()

    if seed:
        import_csv_data(path, data_dir)


def _split_list(value: Optional[str]) -> str:
    items = [part.strip() for part in (value or "").split(";") if part.strip()]
    return json.dumps(items)


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    return float(value)


def import_csv_data(db_path: Optional[PathLike] = None, data_dir: Optional[PathLike] = None):
    """Import stores, products and prices from CSV files when present."""
    source = Path(data_dir) if data_dir else DATA_DIR
    stores_csv = source / "stores.csv"
    products_csv = source / "products.csv"
    prices_csv = source / "product_prices.csv"

    if not stores_csv.exists() or not products_csv.exists():
        logger.warning(f"Catalog CSV files not found in: {source}")
        return

    conn = get_db_connection(db_path)

    try:
        with open(stores_csv, "r", encoding="utf-8") as f:
            for row in csv.DictReader(f):
                conn.execute("""
                    INSERT INTO stores
                    (id, name, address, city, state, zip_code, latitude, longitude, phone, hours, supported_apis)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name, address = excluded.address, city = excluded.city,
                        state = excluded.state, zip_code = excluded.zip_code, latitude = excluded.latitude,
                        longitude = excluded.longitude, phone = excluded.phone,
                        supported_apis = excluded.supported_apis, updated_at = CURRENT_TIMESTAMP
                """, (
                    row["id"],
                    row["name"],
                    row["address"],
                    row["city"],
                    row["state"],
                    row["zip_code"],
                    float(row["latitude"]),
                    float(row["longitude"]),
                    row.get("phone") or None,
                    json.dumps({}),
                    _split_list(row.get("supported_apis"))
                ))

        with open(products_csv, "r", encoding="utf-8") as f:
            for row in csv.DictReader(f):
                conn.execute("""
                    INSERT INTO products
                    (id, upc, name, brand, size, category, image_url, ingredients, nutrition_facts, allergens)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        upc = excluded.upc, name = excluded.name, brand = excluded.brand, size = excluded.size,
                        category = excluded.category, image_url = excluded.image_url,
                        ingredients = excluded.ingredients, allergens = excluded.allergens,
                        updated_at = CURRENT_TIMESTAMP
                """, (
                    row["id"],
                    row["upc"],
                    row["name"],
                    row.get("brand") or None,
                    row.get("size") or None,
                    row.get("category") or None,
                    row.get("image_url") or None,
                    row.get("ingredients") or None,
                    None,
                    _split_list(row.get("allergens"))
                ))

        price_count = 0
        if prices_csv.exists():
            conn.execute("DELETE FROM product_prices")
            with open(prices_csv, "r", encoding="utf-8") as f:
                for row in csv.DictReader(f):
                    conn.execute("""
                        INSERT INTO product_prices (product_id, store_id, price, sale_price, in_stock)
                        VALUES (?, ?, ?, ?, ?)
                    """, (
                        row["product_id"],
                        row["store_id"],
                        float(row["price"]),
                        _optional_float(row.get("sale_price")),
                        0 if str(row.get("in_stock", "1")).strip().lower() in ("0", "false", "no") else 1
                    ))
                    price_count += 1

        conn.commit()
        logger.info(f"Imported catalog from {source} ({price_count} price rows)")

    except Exception as e:
        logger.error(f"Failed to import CSV data: {e}")
        raise
    finally:
        conn.close()
