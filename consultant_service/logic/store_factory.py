"""Build the configured document store backend."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

from consultant_service.config import DEFAULT_SEED_FILES, AppConfig
from consultant_service.db.base import get_engine
from consultant_service.logic.document_store import DocumentStore, InMemoryDocumentStore, JsonFileDocumentStore
from consultant_service.logic.sql_document_store import SqlDocumentStore

logger = logging.getLogger(__name__)


def _seed_documents(config: AppConfig) -> dict:
    path = config.seed_path()
    if not path.exists():
        logger.warning("store_factory.seed_missing path=%s", path)
        return {}
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _working_copy(config: AppConfig) -> Path:
    """Return the json store file, copying the variant's seed there on first use."""
    path = config.store_path()
    if not path.exists():
        seed = DEFAULT_SEED_FILES[config.api.variant]
        path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(seed, path)
        logger.info("store_factory.seeded_copy seed=%s path=%s", seed, path)
    return path


def build_store(config: AppConfig) -> DocumentStore:
    backend = config.store.backend
    if backend == "json":
        store: DocumentStore = JsonFileDocumentStore(_working_copy(config))
    elif backend == "memory":
        store = InMemoryDocumentStore(_seed_documents(config))
    else:
        sql_store = SqlDocumentStore(get_engine(config.store.dsn))
        sql_store.seed(_seed_documents(config))
        store = sql_store
    logger.info("store_factory.built backend=%s variant=%s", backend, config.api.variant)
    return store


__all__ = ["build_store"]
