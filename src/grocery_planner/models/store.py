"""
Store, roster and saved-location models.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class Store(BaseModel):
    """Physical store location."""
    id: str
    name: str
    address: str
    city: str
    state: str
    zip_code: str
    latitude: float
    longitude: float
    phone: Optional[str] = None
    hours: Dict[str, Any] = Field(default_factory=dict)
    supported_apis: List[str] = Field(default_factory=list)
    distance: Optional[float] = None


class RosterEntry(BaseModel):
    """A store the user has chosen, with its preference rank (lower is preferred)."""
    id: str
    store_id: str
    preference_order: int
    store: Store


class UserLocation(BaseModel):
    """Saved address for a user."""
    id: Optional[str] = None
    name: str
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: float
    longitude: float
    is_primary: bool = False
