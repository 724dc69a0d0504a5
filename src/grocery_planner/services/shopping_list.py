"""
Shopping list kept in durable local storage.
"""

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import ValidationError

from ..core.config import SHOPPING_LIST_STORAGE_KEY
from ..core.storage import LocalStorage
from ..models.shopping_list import NewShoppingListItem, ShoppingListItem

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

_EMPTY_MARKERS = ("", "null", "undefined")


def new_item_id() -> str:
    """Millisecond timestamp plus a random suffix, unique across rapid calls."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class ShoppingListStore:
    """Selected (product, store, price) items for the local user."""

    def __init__(self, storage: LocalStorage, storage_key: str = SHOPPING_LIST_STORAGE_KEY):
        self.storage = storage
        self.storage_key = storage_key
        self.items: List[ShoppingListItem] = self._load()

    # --- Persistence ---------------------------------------------------------
    def _load(self) -> List[ShoppingListItem]:
        raw = self.storage.get_item(self.storage_key)
        if raw is None or raw.strip() in _EMPTY_MARKERS:
            return []

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning(f"[SHOPPING-LIST] Discarding malformed stored list under '{self.storage_key}'")
            return []

        if not isinstance(data, list):
            logger.warning(f"[SHOPPING-LIST] Stored list is {type(data).__name__}, expected list")
            return []

        items = []
        for entry in data:
            try:
                items.append(ShoppingListItem.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"[SHOPPING-LIST] Dropping malformed item: {e.error_count()} errors")
        return items

    def _save(self):
        payload = json.dumps([item.model_dump(mode="json") for item in self.items])
        self.storage.set_item(self.storage_key, payload)

    # --- Operations ----------------------------------------------------------
    def find(self, product_id: str, store: str) -> Optional[ShoppingListItem]:
        return next(
            (i for i in self.items if i.product_id == product_id and i.store == store),
            None
        )

    def add(self, item: NewShoppingListItem) -> ShoppingListItem:
        """Add an item; an existing (product, store) pair is returned unchanged."""
        existing = self.find(item.product_id, item.store)
        if existing is not None:
            logger.info(f"[SHOPPING-LIST] {item.product_name} at {item.store} already listed")
            return existing

        new_item = ShoppingListItem(
            **item.model_dump(),
            id=new_item_id(),
            added_at=datetime.now(timezone.utc).isoformat(),
            checked=False,
        )
        self.items.append(new_item)
        self._save()
        logger.info(f"[SHOPPING-LIST] Added {new_item.product_name} at {new_item.store}")
        return new_item

    def remove(self, item_id: str):
        remaining = [i for i in self.items if i.id != item_id]
        if len(remaining) == len(self.items):
            return
        self.items = remaining
        self._save()

    def toggle(self, item_id: str) -> Optional[ShoppingListItem]:
        for item in self.items:
            if item.id == item_id:
                item.checked = not item.checked
                self._save()
                return item
        return None

    def clear(self):
        self.items = []
        self.storage.remove_item(self.storage_key)
        logger.info("[SHOPPING-LIST] Cleared")

    def get_total_cost(self) -> float:
        return sum(item.price for item in self.items)

    def get_items_by_store(self) -> Dict[str, List[ShoppingListItem]]:
        """Items grouped by store display name, in encounter order."""
        groups: Dict[str, List[ShoppingListItem]] = {}
        for item in self.items:
            groups.setdefault(item.store, []).append(item)
        return groups

    def group_items(self) -> Dict[str, List[ShoppingListItem]]:
        """Items grouped by store id, falling back to the display name for items without one."""
        groups: Dict[str, List[ShoppingListItem]] = {}
        for item in self.items:
            groups.setdefault(item.store_key, []).append(item)
        return groups
