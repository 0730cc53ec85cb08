"""Document store backends: in-memory, json file and SQL."""

from __future__ import annotations

import json
import shutil
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from consultant_service.config import DEFAULT_SEED_FILES, ApiConfig, AppConfig, StoreConfig
from consultant_service.db.base import dispose_engines, get_engine
from consultant_service.logic import validation
from consultant_service.logic.appointment_directory import DeviceAppointmentDirectory
from consultant_service.logic.document_store import (
    APPOINTMENTS,
    RESULT_ID_INDEX,
    RESULT_PAIR_INDEX,
    TEST_RESULTS,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    as_predicate,
)
from consultant_service.logic.errors import DuplicateKeyError
from consultant_service.logic.result_writer import ResultWriter
from consultant_service.logic.sql_document_store import SqlDocumentStore
from consultant_service.logic.store_factory import build_store
from consultant_service.logic.submission_service import SubmissionService, SubmissionState
from consultant_service.logic.validation import WriteIntent
from consultant_service.main import create_app
from consultant_service.models.submission import SNAKE_SHAPE
from consultant_service.models.test_result import TestType

from conftest import PREFIX, seed_documents

SUBMIT = f"{PREFIX}/appointment/test-result"
VALID = {"user_id": "USR-001", "appointment_id": "APT-2024-001", "test_type": "TEORICO", "result": {"score": 90}}


@pytest.fixture
def db_file(tmp_path):
    path = tmp_path / "db.json"
    shutil.copy(DEFAULT_SEED_FILES["snake"], path)
    return path


@pytest.fixture
def sql_url(tmp_path):
    yield f"sqlite+pysqlite:///{tmp_path / 'consultant.db'}"
    dispose_engines()


def test_predicate_accepts_mapping_callable_or_none():
    record = {"a": 1, "b": 2}

    assert as_predicate({"a": 1})(record)
    assert not as_predicate({"a": 1, "b": 3})(record)
    assert as_predicate(lambda r: r["b"] == 2)(record)
    assert as_predicate(None)(record)


def test_memory_store_returns_copies():
    store = InMemoryDocumentStore(seed_documents("snake"))

    found = store.find_one(APPOINTMENTS, {"resource_mac": "A1B2C3D4E5F6"})
    found["users"].clear()

    again = store.find_one(APPOINTMENTS, {"resource_mac": "A1B2C3D4E5F6"})
    assert len(again["users"]) == 2


def test_memory_store_unique_index_rejects_without_writing():
    store = InMemoryDocumentStore()
    store.append(TEST_RESULTS, {"appointment_id": "APT-1", "test_type": "TEORICO"})

    with pytest.raises(DuplicateKeyError) as info:
        store.append(TEST_RESULTS, {"appointment_id": "APT-1", "test_type": "TEORICO"})

    assert info.value.key == "APT-1|TEORICO"
    assert store.count(TEST_RESULTS) == 1


def test_memory_store_find_many_preserves_order():
    store = InMemoryDocumentStore()
    for n in range(3):
        store.append("sync_status", {"n": n})

    assert [r["n"] for r in store.find_many("sync_status")] == [0, 1, 2]
    assert store.find_many("unknown") == []
    assert store.count("unknown") == 0


def test_json_store_persists_appends(db_file):
    store = JsonFileDocumentStore(db_file)
    store.append(TEST_RESULTS, {"test_result_id": "TST-2024-001", "appointment_id": "APT-2024-001", "test_type": "TEORICO"})

    on_disk = json.loads(db_file.read_text(encoding="utf-8"))
    reloaded = JsonFileDocumentStore(db_file)

    assert on_disk[TEST_RESULTS][0]["test_result_id"] == "TST-2024-001"
    assert reloaded.count(TEST_RESULTS) == 1
    assert reloaded.count(APPOINTMENTS) == 2
    assert not list(db_file.parent.glob(".db-*.json"))


def test_json_store_duplicate_survives_restart(db_file):
    JsonFileDocumentStore(db_file).append(TEST_RESULTS, {"appointment_id": "APT-1", "test_type": "TEORICO"})

    with pytest.raises(DuplicateKeyError):
        JsonFileDocumentStore(db_file).append(TEST_RESULTS, {"appointment_id": "APT-1", "test_type": "TEORICO"})


def test_json_store_missing_file_starts_empty(tmp_path):
    store = JsonFileDocumentStore(tmp_path / "absent.json")

    assert store.count(APPOINTMENTS) == 0


def test_json_backend_app_continues_ids_after_restart(db_file):
    config = AppConfig(store=StoreConfig(backend="json", path=str(db_file)), api=ApiConfig(prefix=PREFIX))

    first = TestClient(create_app(config)).post(SUBMIT, json=VALID).json()
    second = TestClient(create_app(config)).post(SUBMIT, json={**VALID, "test_type": "VIA_PUBLICA"}).json()
    duplicate = TestClient(create_app(config)).post(SUBMIT, json=VALID)

    assert first["test_result_id"].endswith("-001")
    assert second["test_result_id"].endswith("-002")
    assert duplicate.status_code == 409


def test_sql_store_seed_and_queries(sql_url):
    store = SqlDocumentStore(get_engine(sql_url))
    store.seed(seed_documents("envelope"))
    store.seed(seed_documents("envelope"))

    assert store.count(APPOINTMENTS) == 3
    assert store.find_one(APPOINTMENTS, {"appointment_id": "APT-2024-002"})["user_id"] == "USR-002"
    assert [r["appointment_id"] for r in store.find_many(APPOINTMENTS, {"cale_id": "CALE-BOG-001"})] == [
        "APT-2024-001",
        "APT-2024-002",
    ]


def test_sql_store_unique_constraint(sql_url):
    store = SqlDocumentStore(get_engine(sql_url))
    store.append(TEST_RESULTS, {"appointment_id": "APT-1", "test_type": "TEORICO"})

    with pytest.raises(DuplicateKeyError):
        store.append(TEST_RESULTS, {"appointment_id": "APT-1", "test_type": "TEORICO"})

    store.append(TEST_RESULTS, {"appointment_id": "APT-1", "test_type": "VIA_PUBLICA"})
    assert store.count(TEST_RESULTS) == 2


def test_sql_constraint_reported_as_duplicate_when_check_is_bypassed(sql_url, monkeypatch):
    config = AppConfig(
        store=StoreConfig(backend="sql", dsn=sql_url),
        api=ApiConfig(variant="snake", prefix=PREFIX),
    )
    client = TestClient(create_app(config))
    assert client.post(SUBMIT, json=VALID).status_code == 200

    # Simulate another process racing past the application-level check
    monkeypatch.setattr(validation, "check_duplicate", lambda submission, store: None)
    res = client.post(SUBMIT, json=VALID)

    assert res.status_code == 409
    assert res.json()["error_code"] == "DUPLICATE_TEST_RESULT"
    assert res.json()["details"]["existing_test_id"].endswith("-001")


def test_build_store_per_backend(tmp_path, db_file, sql_url):
    memory = build_store(AppConfig(store=StoreConfig(backend="memory")))
    json_store = build_store(AppConfig(store=StoreConfig(backend="json", path=str(db_file))))
    sql_store = build_store(AppConfig(store=StoreConfig(backend="sql", dsn=sql_url), api=ApiConfig(variant="envelope")))

    assert (memory.backend, json_store.backend, sql_store.backend) == ("memory", "json", "sql")
    assert memory.count(APPOINTMENTS) == 2
    assert sql_store.count("cales") == 2


def test_memory_store_rejects_reused_result_id():
    store = InMemoryDocumentStore()
    store.append(TEST_RESULTS, {"test_result_id": "TST-2024-001", "appointment_id": "APT-1", "test_type": "TEORICO"})

    with pytest.raises(DuplicateKeyError) as info:
        store.append(TEST_RESULTS, {"test_result_id": "TST-2024-001", "appointment_id": "APT-2", "test_type": "TEORICO"})

    assert info.value.fields == RESULT_ID_INDEX
    assert store.count(TEST_RESULTS) == 1


def test_sql_store_reports_which_index_collided(sql_url):
    store = SqlDocumentStore(get_engine(sql_url))
    store.append(TEST_RESULTS, {"test_result_id": "TST-2024-001", "appointment_id": "APT-1", "test_type": "TEORICO"})

    with pytest.raises(DuplicateKeyError) as pair:
        store.append(TEST_RESULTS, {"test_result_id": "TST-2024-002", "appointment_id": "APT-1", "test_type": "TEORICO"})
    with pytest.raises(DuplicateKeyError) as reused:
        store.append(TEST_RESULTS, {"test_result_id": "TST-2024-001", "appointment_id": "APT-2", "test_type": "TEORICO"})

    assert pair.value.fields == RESULT_PAIR_INDEX
    assert reused.value.fields == RESULT_ID_INDEX
    assert store.count(TEST_RESULTS) == 1


def test_services_sharing_one_database_never_reuse_ids(tmp_path):
    url = f"sqlite+pysqlite:///{tmp_path / 'shared.db'}"
    try:
        services = []
        for _ in range(2):
            store = SqlDocumentStore(get_engine(url))
            store.seed(seed_documents("snake"))
            services.append(SubmissionService(store, DeviceAppointmentDirectory(store)))
        first, second = services

        def submit(service, user_id, appointment_id):
            outcome = service.submit(
                SNAKE_SHAPE.decode(
                    {"user_id": user_id, "appointment_id": appointment_id, "test_type": "TEORICO", "result": {}}
                )
            )
            assert outcome.state is SubmissionState.PERSISTED
            return outcome.test_result.test_result_id

        # Each service seeds its counter on first mint; the first one is then behind
        ids = [
            submit(first, "USR-001", "APT-2024-001"),
            submit(second, "USR-002", "APT-2024-002"),
            submit(first, "USR-003", "APT-2024-003"),
        ]

        stored = [r["test_result_id"] for r in first.store.find_many(TEST_RESULTS)]
        year = datetime.now(timezone.utc).year
        assert ids == [f"TST-{year}-001", f"TST-{year}-002", f"TST-{year}-003"]
        assert sorted(stored) == ids
    finally:
        dispose_engines()


def test_writer_gives_up_after_repeated_id_collisions():
    class TakenIds(InMemoryDocumentStore):
        def append(self, collection, record):
            raise DuplicateKeyError(collection, record["test_result_id"], RESULT_ID_INDEX)

    writer = ResultWriter(TakenIds())
    intent = WriteIntent(user_id="USR-001", appointment_id="APT-1", test_type=TestType.THEORY, result={})

    with pytest.raises(DuplicateKeyError) as info:
        writer.write(intent)

    assert info.value.fields == RESULT_ID_INDEX


def test_default_json_store_copies_seed_into_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    shipped = DEFAULT_SEED_FILES["snake"].read_bytes()

    store = build_store(AppConfig(store=StoreConfig(backend="json")))
    store.append(TEST_RESULTS, {"test_result_id": "TST-2024-001", "appointment_id": "APT-2024-001", "test_type": "TEORICO"})
    envelope = build_store(AppConfig(store=StoreConfig(backend="json"), api=ApiConfig(variant="envelope")))

    working = json.loads((tmp_path / "db.json").read_text(encoding="utf-8"))
    assert len(working[TEST_RESULTS]) == 1
    assert DEFAULT_SEED_FILES["snake"].read_bytes() == shipped
    assert (tmp_path / "db_envelope.json").exists()
    assert envelope.count("cales") == 2
