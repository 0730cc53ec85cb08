"""Functional test bootstrap.

Every test gets its own application over an in-memory store seeded from the
JSON files shipped with the package, so tests never touch the shipped data
and never see each other's writes.
"""

from __future__ import annotations

import copy
import json
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

from consultant_service.config import DEFAULT_SEED_FILES, ApiConfig, AppConfig, StoreConfig
from consultant_service.logic.events import get_buffered_events
from consultant_service.logic.document_store import InMemoryDocumentStore
from consultant_service.main import create_app

PREFIX = "/consultant-service/v1"

_SEEDS: Dict[str, dict] = {
    variant: json.loads(path.read_text(encoding="utf-8")) for variant, path in DEFAULT_SEED_FILES.items()
}


def seed_documents(variant: str) -> dict:
    return copy.deepcopy(_SEEDS[variant])


def memory_config(variant: str) -> AppConfig:
    return AppConfig(store=StoreConfig(backend="memory"), api=ApiConfig(variant=variant, prefix=PREFIX))


@pytest.fixture(autouse=True)
def _clear_event_buffer():
    get_buffered_events(clear=True)
    yield
    get_buffered_events(clear=True)


@pytest.fixture
def snake_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(seed_documents("snake"))


@pytest.fixture
def envelope_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(seed_documents("envelope"))


@pytest.fixture
def client_factory() -> Callable[..., TestClient]:
    def _make(variant: str, store=None) -> TestClient:
        store = store if store is not None else InMemoryDocumentStore(seed_documents(variant))
        return TestClient(create_app(memory_config(variant), store=store))

    return _make


@pytest.fixture
def snake_client(client_factory, snake_store) -> TestClient:
    return client_factory("snake", snake_store)


@pytest.fixture
def envelope_client(client_factory, envelope_store) -> TestClient:
    return client_factory("envelope", envelope_store)


@pytest.fixture
def auth_headers(envelope_client) -> Dict[str, str]:
    res = envelope_client.post(f"{PREFIX}/auth/login", json={"username": "test", "password": "password"})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.json()['data']['accessToken']}"}
