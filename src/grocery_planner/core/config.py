"""
Configuration for the grocery planner.
Values come from the environment, optionally loaded from a .env file.
"""

import os
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parent.parent.parent.parent

load_dotenv(PROJECT_ROOT / ".env")

# Storage
DATA_DIR: Final[Path] = Path(os.getenv("GROCERY_DATA_DIR", str(PROJECT_ROOT / "data")))
DB_PATH: Final[Path] = Path(os.getenv("GROCERY_DB_PATH", str(DATA_DIR / "grocery_planner.db")))
STORAGE_DIR: Final[Path] = Path(os.getenv("GROCERY_STORAGE_DIR", str(DATA_DIR / "local_storage")))
SHOPPING_LIST_STORAGE_KEY: Final[str] = "shopping_list"

# Third-party grocery API (Kroger certification environment)
KROGER_CLIENT_ID: Final[str] = os.getenv("KROGER_CLIENT_ID", "")
KROGER_CLIENT_SECRET: Final[str] = os.getenv("KROGER_CLIENT_SECRET", "")
KROGER_API_BASE: Final[str] = os.getenv("KROGER_API_BASE", "https://api-ce.kroger.com/v1")
KROGER_TOKEN_URL: Final[str] = os.getenv("KROGER_TOKEN_URL", f"{KROGER_API_BASE}/connect/oauth2/token")
KROGER_SCOPE: Final[str] = "product.compact"
KROGER_STORE_PREFIX: Final[str] = "kroger-"

# Proxy functions as seen from a client
PROXY_API_BASE: Final[str] = os.getenv("PROXY_API_BASE", "http://localhost:8000/functions")

# Geocoding
GEOCODER_URL: Final[str] = os.getenv("GEOCODER_URL", "https://nominatim.openstreetmap.org/search")
GEOCODER_COUNTRY: Final[str] = os.getenv("GEOCODER_COUNTRY", "us")
GEOCODER_USER_AGENT: Final[str] = os.getenv("GEOCODER_USER_AGENT", "grocery-planner/0.1")

# HTTP service
APP_HOST: Final[str] = os.getenv("APP_HOST", "127.0.0.1")
APP_PORT: Final[int] = int(os.getenv("APP_PORT", "8000"))
HTTP_TIMEOUT: Final[float] = float(os.getenv("HTTP_TIMEOUT", "10"))

# Domain constants
EARTH_RADIUS_MILES: Final[float] = 3959.0
SEARCH_RESULT_LIMIT: Final[int] = 20
DEFAULT_STORE_RADIUS_MILES: Final[float] = 25.0
UNRANKED_ORDER: Final[int] = 999
MIN_STOP_MINUTES: Final[int] = 10
MINUTES_PER_ITEM: Final[int] = 2
