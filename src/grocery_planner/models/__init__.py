"""
Models package - data validation schemas for the grocery planner.
"""

# Product models
from .product import Product, StoreSummary, StorePriceQuote, ProductDetails

# Store models
from .store import Store, RosterEntry, UserLocation

# Shopping list models
from .shopping_list import NewShoppingListItem, ShoppingListItem

# Route models
from .route import RouteStop, RouteSummary

# API models
from .api import (
    ExternalProduct,
    ProductSearchRequest,
    ProductSearchResponse,
    LocationSyncRequest,
    LocationSyncResponse,
    AccessTokenResponse,
    APIErrorResponse,
    Notice,
    RosterAddRequest,
    RosterReorderRequest,
    GeocodeRequest,
)

__all__ = [
    # Product
    "Product",
    "StoreSummary",
    "StorePriceQuote",
    "ProductDetails",
    # Store
    "Store",
    "RosterEntry",
    "UserLocation",
    # Shopping list
    "NewShoppingListItem",
    "ShoppingListItem",
    # Route
    "RouteStop",
    "RouteSummary",
    # API
    "ExternalProduct",
    "ProductSearchRequest",
    "ProductSearchResponse",
    "LocationSyncRequest",
    "LocationSyncResponse",
    "AccessTokenResponse",
    "APIErrorResponse",
    "Notice",
    "RosterAddRequest",
    "RosterReorderRequest",
    "GeocodeRequest",
]
