"""
Tests for catalog search, UPC lookup and price comparison.
"""

import threading

import pytest

from grocery_planner.core.db import get_db_connection
from grocery_planner.core.retry_utils import QueryError, RetryCancelled, RetryConfig
from grocery_planner.services.product_directory import ProductDirectory
from grocery_planner.utils.history_utils import load_search_history

MILK_UPC = "041303001011"
NO_WAIT = RetryConfig.fixed(attempts=3, delay=0)


def test_search_by_name_is_case_insensitive(db_path):
    directory = ProductDirectory(db_path)
    names = {p.name for p in directory.search_products("MILK")}
    assert names == {"2% Reduced Fat Milk", "Oat Milk Original"}


def test_search_matches_brand_and_category(db_path):
    directory = ProductDirectory(db_path)
    assert [p.id for p in directory.search_products("jif")] == ["prod-peanut-butter"]
    assert {p.id for p in directory.search_products("produce")} == {"prod-bananas"}


def test_search_without_matches(db_path):
    assert ProductDirectory(db_path).search_products("caviar") == []


def test_search_is_limited_to_twenty(empty_db_path):
    conn = get_db_connection(empty_db_path)
    with conn:
        conn.executemany(
            "INSERT INTO products (id, upc, name) VALUES (?, ?, ?)",
            [(f"p{i}", f"upc{i}", f"Apple variety {i}") for i in range(25)]
        )
    conn.close()

    assert len(ProductDirectory(empty_db_path).search_products("apple")) == 20


def test_search_on_broken_backend_raises_query_error(tmp_path):
    directory = ProductDirectory(tmp_path / "no-schema.db")
    with pytest.raises(QueryError):
        directory.search_products("milk")


def test_lookup_by_upc(db_path):
    product = ProductDirectory(db_path).get_product_by_identifier(MILK_UPC)
    assert product.id == "prod-milk-2pct"
    assert product.allergens == ["milk"]


def test_lookup_unknown_upc_is_none(db_path):
    assert ProductDirectory(db_path).get_product_by_identifier("000") is None


def test_lookup_records_history_for_user(db_path):
    directory = ProductDirectory(db_path, user_id="user-1")
    directory.get_product_by_identifier(MILK_UPC)
    directory.get_product_by_identifier("000")

    history = load_search_history("user-1", db_path=db_path)

    assert [h["product_upc"] for h in history] == ["000", MILK_UPC]
    assert {h["search_type"] for h in history} == {"barcode"}


def test_anonymous_lookup_records_nothing(db_path):
    ProductDirectory(db_path).get_product_by_identifier(MILK_UPC)
    conn = get_db_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM user_search_history").fetchone()[0]
    conn.close()
    assert count == 0


def test_prices_sorted_by_effective_price_with_stable_ties(db_path):
    quotes = ProductDirectory(db_path).get_prices_for_product("prod-milk-2pct")

    assert [(q.store.id, q.effective_price) for q in quotes] == [
        ("kroger-001", 2.79),
        ("aldi-001", 2.79),
        ("walmart-001", 2.98),
        ("target-001", 3.49),
    ]
    assert quotes[0].sale_price == 2.79
    assert all(q.distance is None for q in quotes)


def test_out_of_stock_prices_excluded(db_path):
    quotes = ProductDirectory(db_path).get_prices_for_product("prod-milk-2pct")
    assert "meijer-001" not in {q.store.id for q in quotes}


def test_prices_with_user_coordinates(db_path):
    quotes = ProductDirectory(db_path).get_prices_for_product("prod-milk-2pct", (39.1420, -84.4330))
    by_store = {q.store.id: q.distance for q in quotes}
    assert by_store["kroger-001"] == pytest.approx(0.0)
    assert all(d is not None and d < 5 for d in by_store.values())


def test_prices_for_unknown_product(db_path):
    assert ProductDirectory(db_path).get_prices_for_product("nope") == []


def test_find_stores_near(db_path):
    stores = ProductDirectory(db_path).find_stores_near(39.1420, -84.4330, radius_miles=25)

    assert stores[0].id == "kroger-001"
    assert "meijer-001" not in {s.id for s in stores}
    distances = [s.distance for s in stores]
    assert distances == sorted(distances)


def test_load_product_details(db_path):
    details = ProductDirectory(db_path).load_product_details(MILK_UPC, config=NO_WAIT)
    assert details.product.id == "prod-milk-2pct"
    assert len(details.prices) == 4


def test_load_product_details_unknown_upc(db_path):
    assert ProductDirectory(db_path).load_product_details("000", config=NO_WAIT) is None


def test_load_product_details_gives_up_after_three_attempts(tmp_path, monkeypatch):
    directory = ProductDirectory(tmp_path / "no-schema.db")
    calls = []
    original = directory._query

    def counting_query(sql, params=()):
        calls.append(sql)
        return original(sql, params)

    monkeypatch.setattr(directory, "_query", counting_query)

    with pytest.raises(QueryError):
        directory.load_product_details(MILK_UPC, config=NO_WAIT)
    assert len(calls) == 3


def test_load_product_details_recovers_from_transient_failure(db_path, monkeypatch):
    directory = ProductDirectory(db_path)
    original = directory._query
    failures = []

    def flaky_query(sql, params=()):
        if not failures:
            failures.append(sql)
            raise QueryError("database is locked", "catalog")
        return original(sql, params)

    monkeypatch.setattr(directory, "_query", flaky_query)

    details = directory.load_product_details(MILK_UPC, config=NO_WAIT)

    assert details.product.upc == MILK_UPC
    assert len(failures) == 1


def test_load_product_details_cancelled(db_path):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(RetryCancelled):
        ProductDirectory(db_path).load_product_details(MILK_UPC, config=NO_WAIT, cancel_event=cancel)


@pytest.mark.parametrize("text", ["%", "_", "\\"])
def test_search_treats_wildcards_literally(db_path, text):
    assert ProductDirectory(db_path).search_products(text) == []


def test_search_matches_literal_percent(db_path):
    assert [p.id for p in ProductDirectory(db_path).search_products("2%")] == ["prod-milk-2pct"]


def test_store_by_name(db_path):
    directory = ProductDirectory(db_path)
    assert directory.get_store_by_name("Aldi").id == "aldi-001"
    assert directory.get_store_by_name("Piggly Wiggly") is None


def test_store_by_ambiguous_name(db_path):
    conn = get_db_connection(db_path)
    with conn:
        conn.execute("""
            INSERT INTO stores (id, name, address, city, state, zip_code, latitude, longitude)
            VALUES ('aldi-002', 'Aldi', '1 Elm St', 'Cincinnati', 'OH', '45202', 39.10, -84.51)
        """)
    conn.close()

    assert ProductDirectory(db_path).get_store_by_name("Aldi") is None


def test_retried_details_record_history_once(db_path, monkeypatch):
    directory = ProductDirectory(db_path, user_id="user-1")
    original = directory._query
    failures = []

    def flaky_query(sql, params=()):
        if len(failures) < 2:
            failures.append(sql)
            raise QueryError("database is locked", "catalog")
        return original(sql, params)

    monkeypatch.setattr(directory, "_query", flaky_query)

    assert directory.load_product_details(MILK_UPC, config=NO_WAIT) is not None
    assert [h["product_upc"] for h in load_search_history("user-1", db_path=db_path)] == [MILK_UPC]


def test_history_write_can_be_deferred(db_path):
    deferred = []
    directory = ProductDirectory(db_path, user_id="user-1",
                                 defer=lambda func, *args, **kwargs: deferred.append((func, args, kwargs)))

    assert directory.get_product_by_identifier(MILK_UPC).id == "prod-milk-2pct"
    assert load_search_history("user-1", db_path=db_path) == []

    for func, args, kwargs in deferred:
        func(*args, **kwargs)
    assert [h["product_upc"] for h in load_search_history("user-1", db_path=db_path)] == [MILK_UPC]
