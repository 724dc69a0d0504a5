"""
API request/response models.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime, timezone

from .store import Store


class ExternalProduct(BaseModel):
    """Product returned by the third-party grocery API proxy."""
    id: str
    upc: str
    name: str
    brand: Optional[str] = None
    size: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[float] = None
    sale_price: Optional[float] = None
    kroger_data: Dict[str, Any] = Field(default_factory=dict)


class ProductSearchRequest(BaseModel):
    """Body of the product search proxy call."""
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = None
    location_id: Optional[str] = Field(default=None, alias="locationId")


class ProductSearchResponse(BaseModel):
    products: List[ExternalProduct] = Field(default_factory=list)
    count: int = 0
    source: str = "kroger"


class LocationSyncRequest(BaseModel):
    """Body of the store location sync proxy call."""
    lat: float
    lng: float
    radius: float = 25


class LocationSyncResponse(BaseModel):
    success: bool = True
    count: int = 0
    stores: List[Store] = Field(default_factory=list)


class AccessTokenResponse(BaseModel):
    access_token: str
    expires_in: int


class APIErrorResponse(BaseModel):
    """Structured API error response."""
    error: str
    source: Optional[str] = None
    retry_possible: bool = False


class Notice(BaseModel):
    """Transient user-facing notification (toast)."""
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RosterAddRequest(BaseModel):
    store_id: str


class RosterReorderRequest(BaseModel):
    new_index: int = Field(ge=0)


class GeocodeRequest(BaseModel):
    address: str
