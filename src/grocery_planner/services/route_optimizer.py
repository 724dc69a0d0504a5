"""
Route optimizer: order store visits by roster preference, then distance.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from ..core.config import UNRANKED_ORDER, MIN_STOP_MINUTES, MINUTES_PER_ITEM
from ..core.geo import calculate_distance
from ..core.retry_utils import APIError
from ..models.route import RouteStop, RouteSummary
from ..models.shopping_list import ShoppingListItem
from ..models.store import RosterEntry
from .product_directory import ProductDirectory
from .shopping_list import ShoppingListStore
from .store_roster import StoreRoster

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


def estimate_minutes(item_count: int) -> int:
    return max(MIN_STOP_MINUTES, item_count * MINUTES_PER_ITEM)


def _sort_key(stop: RouteStop) -> Tuple[int, float]:
    distance = stop.distance if stop.distance is not None else math.inf
    return stop.roster_order, distance


class RouteOptimizer:
    """
    Builds route stops from the shopping list. Nothing is cached: every call
    reads the current list and roster.
    """

    def __init__(self, shopping_list: ShoppingListStore, roster: StoreRoster,
                 directory: Optional[ProductDirectory] = None,
                 user_coords: Optional[Tuple[float, float]] = None):
        self.shopping_list = shopping_list
        self.roster = roster
        self.directory = directory
        self.user_coords = user_coords

    def _resolve_store_id(self, item: ShoppingListItem, by_name: Dict[str, RosterEntry],
                          resolved_names: Dict[str, str]) -> str:
        """Item's store id, else the roster store or the single catalog store with its name, else ""."""
        if item.store_id:
            return item.store_id
        entry = by_name.get(item.store)
        if entry is not None:
            return entry.store_id
        if self.directory is None:
            return ""
        if item.store not in resolved_names:
            try:
                store = self.directory.get_store_by_name(item.store)
            except APIError as e:
                logger.warning(f"[ROUTE] Store lookup for {item.store!r} failed: {e.message}")
                store = None
            resolved_names[item.store] = store.id if store else ""
        return resolved_names[item.store]

    def _group_by_store(self, by_name: Dict[str, RosterEntry]) -> List[Tuple[str, List[ShoppingListItem]]]:
        """One group per store, in encounter order. Unresolved items group by display name."""
        groups: Dict[Tuple[str, str], Tuple[str, List[ShoppingListItem]]] = {}
        resolved_names: Dict[str, str] = {}
        for item in self.shopping_list.items:
            store_id = self._resolve_store_id(item, by_name, resolved_names)
            key = ("id", store_id) if store_id else ("name", item.store)
            groups.setdefault(key, (store_id, []))[1].append(item)
        return list(groups.values())

    def _store_coordinates(self, store_id: str,
                           entry: Optional[RosterEntry]) -> Optional[Tuple[float, float]]:
        if entry is not None:
            return entry.store.latitude, entry.store.longitude
        if store_id and self.directory is not None:
            try:
                store = self.directory.get_store(store_id)
            except APIError as e:
                logger.warning(f"[ROUTE] Store {store_id} lookup failed: {e.message}")
                return None
            if store is not None:
                return store.latitude, store.longitude
        return None

    def _distance_to(self, store_id: str, entry: Optional[RosterEntry]) -> Optional[float]:
        if self.user_coords is None:
            return None
        coords = self._store_coordinates(store_id, entry)
        if coords is None:
            return None
        return calculate_distance(self.user_coords[0], self.user_coords[1], coords[0], coords[1])

    def get_optimized_route(self) -> List[RouteStop]:
        entries = self.roster.list()
        by_id = {e.store_id: e for e in entries}
        by_name: Dict[str, RosterEntry] = {}
        for e in entries:
            by_name.setdefault(e.store.name, e)

        stops = []
        for store_id, items in self._group_by_store(by_name):
            entry = by_id.get(store_id) if store_id else None
            stops.append(RouteStop(
                store=items[0].store,
                store_id=store_id,
                items=items,
                subtotal=sum(item.price for item in items),
                estimated_minutes=estimate_minutes(len(items)),
                distance=self._distance_to(store_id, entry),
                roster_order=entry.preference_order if entry else UNRANKED_ORDER,
            ))

        stops.sort(key=_sort_key)
        logger.info(f"[ROUTE] Planned {len(stops)} stops")
        return stops

    def get_route_summary(self) -> RouteSummary:
        stops = self.get_optimized_route()
        distances = [s.distance for s in stops if s.distance is not None]
        return RouteSummary(
            stops=stops,
            total_cost=sum(s.subtotal for s in stops),
            total_minutes=sum(s.estimated_minutes for s in stops),
            total_distance=sum(distances) if distances else None,
        )
