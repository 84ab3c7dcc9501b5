"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from restohub.core.cache import TTLCache
from restohub.services.backend_selector import BackendSelector
from restohub.services.data import DataService
from restohub.services.exporter import SpreadsheetExporter
from restohub.services.profiles import InMemoryProfileStore
from restohub.services.store import InMemoryDocumentStore, JsonFileStore

REMOTE_COLLECTIONS = ["menu", "orders", "availability"]


class FakeClock:
    """Monotonic-style clock the cache reads; tests move it forward by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUtcClock:
    """Wall clock for the migrator."""

    def __init__(self, start: datetime = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def order_payload(**overrides) -> dict:
    """A valid two-line dine-in order totalling 330."""
    payload = {
        "items": [
            {"id": "1", "name": "Paneer Butter Masala", "price": 240, "quantity": 1},
            {"id": "6", "name": "Garlic Naan", "price": 45, "quantity": 2},
        ],
        "orderType": "dine-in",
        "tableNumber": "4",
        "customerName": "Asha Rao",
    }
    payload.update(overrides)
    return payload


def inventory_payload(**overrides) -> dict:
    payload = {
        "name": "Sugar",
        "category": "Dry Goods",
        "currentStock": 20,
        "unit": "kg",
        "minimumStock": 5,
        "maximumStock": 50,
        "unitPrice": 45,
        "supplier": "Metro Wholesale",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Collection files land here; the directory is created on first write."""
    return tmp_path / "jsonfiles"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def local_store(data_dir: Path) -> JsonFileStore:
    return JsonFileStore(data_dir, lock_timeout=2)


@pytest.fixture
def selector(local_store: JsonFileStore, remote: InMemoryDocumentStore) -> BackendSelector:
    return BackendSelector(local_store, remote, REMOTE_COLLECTIONS)


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(clock=clock)


@pytest.fixture
def data(selector: BackendSelector, cache: TTLCache) -> DataService:
    return DataService(selector, cache)


@pytest.fixture
def profiles() -> InMemoryProfileStore:
    return InMemoryProfileStore([
        {
            "id": "cust_asha",
            "displayName": "Asha Rao",
            "phoneNumber": "+91 98765 43210",
            "addresses": [{"streetAddress": "12 MG Road", "city": "Bengaluru"}],
        },
        {
            "id": "cust_vikram",
            "displayName": "Vikram Shah",
            "phoneNumber": "9123456780",
            "addresses": [],
        },
    ])


@pytest.fixture
def exporter(tmp_path: Path) -> SpreadsheetExporter:
    return SpreadsheetExporter(tmp_path / "exports", lock_timeout=2)


@pytest.fixture
def client(
    data: DataService,
    profiles: InMemoryProfileStore,
    exporter: SpreadsheetExporter,
) -> Generator[TestClient, None, None]:
    """Test client wired to the fixture services."""
    from restohub.main import create_app

    app = create_app(data=data, profiles=profiles, exporter=exporter)
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
