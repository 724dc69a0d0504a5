"""
Shared fixtures: a seeded catalog database per test, per-test local storage
and canned HTTP sessions standing in for the third-party APIs.
"""

import sys
from pathlib import Path

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent / "src"))

from grocery_planner.core.db import init_database
from grocery_planner.core.storage import LocalStorage

SEED_DIR = Path(__file__).parent / "data"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Replays queued responses and records every call."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)


@pytest.fixture
def seed_dir():
    return SEED_DIR


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "catalog.db"
    init_database(path, seed=True, data_dir=SEED_DIR)
    return path


@pytest.fixture
def empty_db_path(tmp_path):
    path = tmp_path / "empty.db"
    init_database(path, seed=False)
    return path


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage")
