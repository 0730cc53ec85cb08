"""Document store holding the service's named collections.

Collections (`appointments`, `test_results`, `cales`, `sync_status`) are
ordered sequences of JSON-like records. Stores support point lookup and
filtering by field equality or by callable, append, and size query.

A store may declare unique indexes: an append whose indexed fields collide
with an existing record raises `DuplicateKeyError` and leaves the store
untouched.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple, Union

from consultant_service.logic.errors import DuplicateKeyError

logger = logging.getLogger(__name__)

APPOINTMENTS = "appointments"
TEST_RESULTS = "test_results"
CALES = "cales"
SYNC_STATUS = "sync_status"
COLLECTIONS: Tuple[str, ...] = (APPOINTMENTS, TEST_RESULTS, CALES, SYNC_STATUS)

# At most one result per appointment per test type, and never a reused identifier
RESULT_PAIR_INDEX: Tuple[str, ...] = ("appointment_id", "test_type")
RESULT_ID_INDEX: Tuple[str, ...] = ("test_result_id",)

UniqueIndexes = Mapping[str, Tuple[Tuple[str, ...], ...]]

DEFAULT_UNIQUE_INDEXES: Dict[str, Tuple[Tuple[str, ...], ...]] = {
    TEST_RESULTS: (RESULT_PAIR_INDEX, RESULT_ID_INDEX),
}

Record = Dict[str, Any]
Predicate = Union[Mapping[str, Any], Callable[[Record], bool], None]


def as_predicate(predicate: Predicate) -> Callable[[Record], bool]:
    """Normalise a field-equality mapping or callable into a callable."""
    if predicate is None:
        return lambda record: True
    if callable(predicate):
        return predicate
    expected = dict(predicate)
    return lambda record: all(record.get(k) == v for k, v in expected.items())


def unique_key_for(record: Mapping[str, Any], fields: Tuple[str, ...]) -> Optional[str]:
    """Return the index key of `record`, or None when an indexed field is unset.

    Records missing a field are not constrained by that index, as with NULLs
    in a SQL unique constraint.
    """
    values = [record.get(name) for name in fields]
    if any(value is None for value in values):
        return None
    return "|".join(str(value) for value in values)


def index_name(fields: Tuple[str, ...]) -> str:
    return "+".join(fields)


class DocumentStore(Protocol):
    backend: str

    def find_one(self, collection: str, predicate: Predicate = None) -> Optional[Record]: ...

    def find_many(self, collection: str, predicate: Predicate = None) -> List[Record]: ...

    def append(self, collection: str, record: Mapping[str, Any]) -> Record: ...

    def count(self, collection: str) -> int: ...


class InMemoryDocumentStore:
    """Process-local store; every operation runs under one re-entrant lock."""

    backend = "memory"

    def __init__(
        self,
        documents: Optional[Mapping[str, List[Mapping[str, Any]]]] = None,
        unique_indexes: Optional[UniqueIndexes] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._unique_indexes: Dict[str, Tuple[Tuple[str, ...], ...]] = dict(
            DEFAULT_UNIQUE_INDEXES if unique_indexes is None else unique_indexes
        )
        self._collections: Dict[str, List[Record]] = {name: [] for name in COLLECTIONS}
        if documents:
            self._load(documents)

    def _load(self, documents: Mapping[str, Any]) -> None:
        for name, records in documents.items():
            if not isinstance(records, list):
                # json-server files may hold singleton objects; only sequences are collections
                logger.info("document_store.skip_non_collection name=%s", name)
                continue
            self._collections[name] = [copy.deepcopy(dict(r)) for r in records]

    def find_one(self, collection: str, predicate: Predicate = None) -> Optional[Record]:
        match = as_predicate(predicate)
        with self._lock:
            for record in self._collections.get(collection, []):
                if match(record):
                    return copy.deepcopy(record)
        return None

    def find_many(self, collection: str, predicate: Predicate = None) -> List[Record]:
        match = as_predicate(predicate)
        with self._lock:
            return [copy.deepcopy(r) for r in self._collections.get(collection, []) if match(r)]

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, []))

    def append(self, collection: str, record: Mapping[str, Any]) -> Record:
        stored = copy.deepcopy(dict(record))
        with self._lock:
            existing = self._collections.get(collection, [])
            for fields in self._unique_indexes.get(collection, ()):
                key = unique_key_for(stored, fields)
                if key is not None and any(unique_key_for(r, fields) == key for r in existing):
                    raise DuplicateKeyError(collection, key, fields)
            self._collections.setdefault(collection, []).append(stored)
            self._after_append(collection)
        return copy.deepcopy(stored)

    def _after_append(self, collection: str) -> None:
        """Hook for persistent subclasses; called with the lock held."""

    def snapshot(self) -> Dict[str, List[Record]]:
        with self._lock:
            return copy.deepcopy(self._collections)


class JsonFileDocumentStore(InMemoryDocumentStore):
    """Store backed by a json-server style ``db.json`` file.

    The whole file is loaded at start-up and rewritten after each append via a
    temporary file and ``os.replace``, so readers never see a partial write.
    """

    backend = "json"

    def __init__(self, path: Union[str, Path], unique_indexes: Optional[UniqueIndexes] = None) -> None:
        self.path = Path(path)
        super().__init__(self._read(self.path), unique_indexes=unique_indexes)
        logger.info("document_store.loaded path=%s collections=%s", self.path, sorted(self._collections))

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        if not path.exists():
            logger.warning("document_store.missing_file path=%s; starting empty", path)
            return {}
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a JSON object of collections")
        return data

    def _after_append(self, collection: str) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".db-", suffix=".json", dir=str(directory))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._collections, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except OSError:
            logger.error("document_store.persist_failed path=%s", self.path, exc_info=True)
            # Keep memory and file consistent: undo the append before propagating
            self._collections[collection].pop()
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


__all__ = [
    "APPOINTMENTS",
    "TEST_RESULTS",
    "CALES",
    "SYNC_STATUS",
    "COLLECTIONS",
    "DEFAULT_UNIQUE_INDEXES",
    "RESULT_PAIR_INDEX",
    "RESULT_ID_INDEX",
    "UniqueIndexes",
    "DocumentStore",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "as_predicate",
    "unique_key_for",
    "index_name",
]
