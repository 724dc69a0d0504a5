"""
Tests for the proxy client used by the front end.
"""

import requests

from conftest import FakeResponse, FakeSession
from grocery_planner.utils.proxy_api_utils import GroceryProxyClient

STORE = {
    "id": "kroger-70300022", "name": "Ralphs", "address": "100 Main St", "city": "Los Angeles",
    "state": "CA", "zip_code": "90012", "latitude": 34.05, "longitude": -118.24,
    "supported_apis": ["kroger_api"],
}


def proxy_with(*responses):
    return GroceryProxyClient(base_url="http://proxy.test/functions/", session=FakeSession(responses))


def test_search_products():
    proxy = proxy_with(FakeResponse(200, {
        "products": [{"id": "kroger-1", "upc": "1", "name": "Milk", "price": 3.29}],
        "count": 1,
        "source": "kroger",
    }))

    products = proxy.search_products("milk", "70300022")

    assert [p.id for p in products] == ["kroger-1"]
    _, url, kwargs = proxy.session.calls[0]
    assert url == "http://proxy.test/functions/kroger-products"
    assert kwargs["json"] == {"query": "milk", "locationId": "70300022"}
    assert proxy.notices == []


def test_search_network_failure_returns_empty_with_notice():
    proxy = proxy_with(requests.ConnectionError("offline"))

    assert proxy.search_products("milk") == []
    assert [(n.title, n.variant) for n in proxy.notices] == [("Search failed", "destructive")]


def test_search_error_payload_returns_empty():
    proxy = proxy_with(FakeResponse(500, {"error": "Search query is required"}))
    assert proxy.search_products("") == []
    assert proxy.notices[0].variant == "destructive"


def test_sync_locations_success_notice():
    proxy = proxy_with(FakeResponse(200, {"success": True, "count": 1, "stores": [STORE]}))

    stores = proxy.sync_store_locations(34.05, -118.24, 10)

    assert [s.id for s in stores] == ["kroger-70300022"]
    assert proxy.notices[0].title == "Success"
    assert proxy.notices[0].description == "Found and synced 1 Kroger locations"
    assert proxy.session.calls[0][2]["json"] == {"lat": 34.05, "lng": -118.24, "radius": 10}


def test_sync_locations_failure():
    proxy = proxy_with(FakeResponse(200, {"error": "Kroger API credentials not configured", "success": False}))

    assert proxy.sync_store_locations(34.05, -118.24) == []
    assert [(n.title, n.variant) for n in proxy.notices] == [("Sync failed", "destructive")]
