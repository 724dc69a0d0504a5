"""
Shopping list models.
"""

from pydantic import BaseModel, field_validator
from typing import Optional


class NewShoppingListItem(BaseModel):
    """Item as submitted by the user, before an id and timestamp are assigned."""
    product_id: str
    product_name: str
    store: str
    store_id: Optional[str] = None
    price: float

    @field_validator("price")
    @classmethod
    def check_non_negative(cls, v):
        if v < 0:
            raise ValueError("Must be non-negative")
        return v


class ShoppingListItem(NewShoppingListItem):
    """Selected (product, store, price) snapshot kept in the user's list."""
    id: str
    added_at: str
    checked: bool = False

    @property
    def store_key(self) -> str:
        """Grouping key: the stable store id when known, the display name otherwise."""
        return self.store_id or self.store
