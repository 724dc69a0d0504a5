"""
Route models derived from the shopping list and store roster.
"""

from pydantic import BaseModel, Field, computed_field
from typing import List, Optional

from .shopping_list import ShoppingListItem


class RouteStop(BaseModel):
    """One store visit on the route."""
    store: str
    store_id: str = ""
    items: List[ShoppingListItem] = Field(default_factory=list)
    subtotal: float = 0.0
    estimated_minutes: int
    distance: Optional[float] = None
    roster_order: int

    @computed_field
    @property
    def estimated_time(self) -> str:
        return f"{self.estimated_minutes} min"

    @computed_field
    @property
    def distance_label(self) -> str:
        if self.distance is None:
            return "n/a"
        return f"{self.distance:.1f} mi"


class RouteSummary(BaseModel):
    """Ordered stops with aggregate cost, time and distance."""
    stops: List[RouteStop] = Field(default_factory=list)
    total_cost: float = 0.0
    total_minutes: int = 0
    total_distance: Optional[float] = None
