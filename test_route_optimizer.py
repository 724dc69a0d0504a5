"""
Tests for ordering store visits.
"""

import pytest

from grocery_planner.core.config import UNRANKED_ORDER
from grocery_planner.models import NewShoppingListItem, RouteStop
from grocery_planner.services import ProductDirectory, RouteOptimizer, ShoppingListStore, StoreRoster
from grocery_planner.services.route_optimizer import estimate_minutes

KROGER_COORDS = (39.1420, -84.4330)


def add(shopping_list, product_id, store, price, store_id=None):
    return shopping_list.add(NewShoppingListItem(
        product_id=product_id, product_name=product_id, store=store, store_id=store_id, price=price
    ))


def test_roster_store_comes_before_unranked(db_path, storage):
    shopping_list = ShoppingListStore(storage)
    add(shopping_list, "prod-a", "Kroger", 2.79)
    add(shopping_list, "prod-b", "Walmart", 2.98)
    roster = StoreRoster("user-1", db_path)
    roster.add("walmart-001")

    stops = RouteOptimizer(shopping_list, roster).get_optimized_route()

    assert [s.store for s in stops] == ["Walmart", "Kroger"]
    assert [s.roster_order for s in stops] == [0, UNRANKED_ORDER]
    assert stops[0].subtotal == pytest.approx(2.98)
    assert stops[1].subtotal == pytest.approx(2.79)
    assert stops[0].store_id == "walmart-001"


def test_roster_order_drives_route(db_path, storage):
    shopping_list = ShoppingListStore(storage)
    add(shopping_list, "prod-a", "Walmart", 1.0, "walmart-001")
    add(shopping_list, "prod-b", "Target", 2.0, "target-001")
    add(shopping_list, "prod-c", "Kroger", 3.0, "kroger-001")
    roster = StoreRoster("user-1", db_path)
    for store_id in ("kroger-001", "target-001", "walmart-001"):
        roster.add(store_id)

    stops = RouteOptimizer(shopping_list, roster).get_optimized_route()

    assert [s.store_id for s in stops] == ["kroger-001", "target-001", "walmart-001"]
    orders = [s.roster_order for s in stops]
    assert orders == sorted(orders)


def test_store_id_separates_same_named_stores(db_path, storage):
    shopping_list = ShoppingListStore(storage)
    add(shopping_list, "prod-a", "Kroger", 2.79, "kroger-001")
    add(shopping_list, "prod-b", "Kroger", 3.10, "kroger-999")
    roster = StoreRoster("user-1", db_path)
    roster.add("kroger-001")

    stops = RouteOptimizer(shopping_list, roster).get_optimized_route()

    assert [(s.store_id, s.roster_order) for s in stops] == [("kroger-001", 0), ("kroger-999", UNRANKED_ORDER)]


def test_distance_breaks_ties(db_path, storage):
    shopping_list = ShoppingListStore(storage)
    add(shopping_list, "prod-a", "Walmart", 2.98, "walmart-001")
    add(shopping_list, "prod-b", "Kroger", 2.79, "kroger-001")
    add(shopping_list, "prod-c", "Corner Shop", 1.50)
    roster = StoreRoster("user-1", db_path)
    directory = ProductDirectory(db_path)

    stops = RouteOptimizer(shopping_list, roster, directory, KROGER_COORDS).get_optimized_route()

    assert [s.store for s in stops] == ["Kroger", "Walmart", "Corner Shop"]
    assert stops[0].distance == pytest.approx(0.0)
    assert stops[1].distance > 0
    assert stops[2].distance is None
    assert stops[2].distance_label == "n/a"


def test_no_coordinates_means_no_distance(db_path, storage):
    shopping_list = ShoppingListStore(storage)
    add(shopping_list, "prod-a", "Walmart", 2.98, "walmart-001")

    stop = RouteOptimizer(shopping_list, StoreRoster("user-1", db_path), ProductDirectory(db_path)).get_optimized_route()[0]

    assert stop.distance is None


def test_estimated_minutes():
    assert estimate_minutes(1) == 10
    assert estimate_minutes(5) == 10
    assert estimate_minutes(6) == 12
    assert estimate_minutes(12) == 24


def test_stop_labels():
    stop = RouteStop(store="Walmart", estimated_minutes=12, distance=3.456, roster_order=0)
    dumped = stop.model_dump()
    assert dumped["estimated_time"] == "12 min"
    assert dumped["distance_label"] == "3.5 mi"


def test_empty_list_gives_empty_route(db_path, storage):
    optimizer = RouteOptimizer(ShoppingListStore(storage), StoreRoster("user-1", db_path))
    assert optimizer.get_optimized_route() == []
    summary = optimizer.get_route_summary()
    assert summary.total_cost == 0
    assert summary.total_distance is None


def test_summary_totals(db_path, storage):
    shopping_list = ShoppingListStore(storage)
    for n in range(6):
        add(shopping_list, f"prod-{n}", "Walmart", 1.0, "walmart-001")
    add(shopping_list, "prod-x", "Kroger", 2.5, "kroger-001")
    optimizer = RouteOptimizer(
        shopping_list, StoreRoster("user-1", db_path), ProductDirectory(db_path), KROGER_COORDS
    )

    summary = optimizer.get_route_summary()

    assert summary.total_cost == pytest.approx(8.5)
    assert summary.total_minutes == 12 + 10
    assert summary.total_distance == pytest.approx(sum(s.distance for s in summary.stops))


def test_route_reflects_latest_list(db_path, storage):
    shopping_list = ShoppingListStore(storage)
    optimizer = RouteOptimizer(shopping_list, StoreRoster("user-1", db_path))
    add(shopping_list, "prod-a", "Walmart", 2.98)
    assert len(optimizer.get_optimized_route()) == 1
    shopping_list.clear()
    assert optimizer.get_optimized_route() == []


def test_named_and_identified_items_for_one_store_share_a_stop(db_path, storage):
    shopping_list = ShoppingListStore(storage)
    add(shopping_list, "prod-a", "Walmart", 1.0)
    add(shopping_list, "prod-b", "Walmart", 2.0, "walmart-001")
    roster = StoreRoster("user-1", db_path)
    roster.add("walmart-001")

    stops = RouteOptimizer(shopping_list, roster).get_optimized_route()

    assert len(stops) == 1
    assert (stops[0].store_id, stops[0].roster_order) == ("walmart-001", 0)
    assert stops[0].subtotal == pytest.approx(3.0)
    assert [i.product_id for i in stops[0].items] == ["prod-a", "prod-b"]


def test_store_name_resolved_through_catalog(db_path, storage):
    shopping_list = ShoppingListStore(storage)
    add(shopping_list, "prod-a", "Aldi", 0.49)
    add(shopping_list, "prod-b", "Aldi", 2.79, "aldi-001")

    stops = RouteOptimizer(
        shopping_list, StoreRoster("user-1", db_path), ProductDirectory(db_path), KROGER_COORDS
    ).get_optimized_route()

    assert [(s.store_id, len(s.items)) for s in stops] == [("aldi-001", 2)]
    assert stops[0].distance is not None
