"""
Product and per-store price models.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional


class Product(BaseModel):
    """Catalog product. Reference data synced from outside this service."""
    id: str
    upc: str
    name: str
    brand: Optional[str] = None
    size: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    ingredients: Optional[str] = None
    nutrition_facts: Optional[Dict[str, Any]] = None
    allergens: List[str] = Field(default_factory=list)


class StoreSummary(BaseModel):
    """Store columns joined onto a price row."""
    id: str
    name: str
    address: str
    city: str
    state: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class StorePriceQuote(BaseModel):
    """Price of one product at one store."""
    store: StoreSummary
    price: float
    sale_price: Optional[float] = None
    in_stock: bool = True
    distance: Optional[float] = None

    @field_validator("price", "sale_price")
    @classmethod
    def check_non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("Must be non-negative")
        return v

    @property
    def effective_price(self) -> float:
        return self.sale_price if self.sale_price is not None else self.price


class ProductDetails(BaseModel):
    """Product together with its current store quotes."""
    product: Product
    prices: List[StorePriceQuote] = Field(default_factory=list)
