"""
Services module initialization.
"""

from .product_directory import ProductDirectory, DETAIL_RETRY_CONFIG
from .store_roster import StoreRoster
from .shopping_list import ShoppingListStore
from .route_optimizer import RouteOptimizer
from .locations import UserLocationBook

__all__ = [
    "ProductDirectory",
    "DETAIL_RETRY_CONFIG",
    "StoreRoster",
    "ShoppingListStore",
    "RouteOptimizer",
    "UserLocationBook",
]
