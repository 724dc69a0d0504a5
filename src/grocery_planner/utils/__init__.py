"""
Utils module initialization.
"""

from .history_utils import save_search, load_search_history, clear_search_history
from .kroger_api_utils import (
    KrogerClient,
    clean_store_name,
    transform_product,
    transform_location,
    upsert_stores,
)
from .proxy_api_utils import GroceryProxyClient

__all__ = [
    # Search history
    "save_search",
    "load_search_history",
    "clear_search_history",
    # Kroger API
    "KrogerClient",
    "clean_store_name",
    "transform_product",
    "transform_location",
    "upsert_stores",
    # Proxy client
    "GroceryProxyClient",
]
