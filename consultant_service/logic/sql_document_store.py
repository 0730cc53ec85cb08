"""Document store over a SQL database via SQLAlchemy.

Records live as JSON bodies in the `document` table. Each unique index key
of a record is written to `document_key` in the same transaction, so the
database constraint rejects a second result for the same appointment and
test type, or a reused result identifier, even when several processes
share the database.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from consultant_service.db.base import get_sessionmaker
from consultant_service.db.tables import Base, DocumentKeyRow, DocumentRow
from consultant_service.logic.document_store import (
    DEFAULT_UNIQUE_INDEXES,
    Predicate,
    Record,
    UniqueIndexes,
    as_predicate,
    index_name,
    unique_key_for,
)
from consultant_service.logic.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class SqlDocumentStore:
    backend = "sql"

    def __init__(self, engine: Engine, unique_indexes: Optional[UniqueIndexes] = None) -> None:
        self.engine = engine
        self._unique_indexes: Dict[str, Tuple[Tuple[str, ...], ...]] = dict(
            DEFAULT_UNIQUE_INDEXES if unique_indexes is None else unique_indexes
        )
        self._Session = get_sessionmaker(engine)
        Base.metadata.create_all(engine)

    def seed(self, documents: Mapping[str, Any]) -> None:
        """Load seed collections, skipping any collection that already has rows."""
        for name, records in documents.items():
            if not isinstance(records, list) or self.count(name):
                continue
            for record in records:
                self.append(name, record)
            logger.info("sql_store.seeded collection=%s rows=%d", name, len(records))

    def _bodies(self, collection: str) -> List[Record]:
        with self._Session() as session:
            rows = session.execute(
                select(DocumentRow.body)
                .where(DocumentRow.collection == collection)
                .order_by(DocumentRow.id)
            ).scalars().all()
        return [dict(body) for body in rows]

    def find_one(self, collection: str, predicate: Predicate = None) -> Optional[Record]:
        match = as_predicate(predicate)
        for body in self._bodies(collection):
            if match(body):
                return body
        return None

    def find_many(self, collection: str, predicate: Predicate = None) -> List[Record]:
        match = as_predicate(predicate)
        return [body for body in self._bodies(collection) if match(body)]

    def count(self, collection: str) -> int:
        with self._Session() as session:
            return int(
                session.execute(
                    select(func.count()).select_from(DocumentRow).where(DocumentRow.collection == collection)
                ).scalar_one()
            )

    def _keys(self, collection: str, body: Mapping[str, Any]) -> List[Tuple[Tuple[str, ...], str]]:
        keys = []
        for fields in self._unique_indexes.get(collection, ()):
            key = unique_key_for(body, fields)
            if key is not None:
                keys.append((fields, key))
        return keys

    def _colliding(
        self, collection: str, keys: List[Tuple[Tuple[str, ...], str]]
    ) -> Optional[Tuple[Tuple[str, ...], str]]:
        with self._Session() as session:
            for fields, key in keys:
                taken = session.execute(
                    select(DocumentKeyRow.id).where(
                        DocumentKeyRow.collection == collection,
                        DocumentKeyRow.index_name == index_name(fields),
                        DocumentKeyRow.value == key,
                    )
                ).first()
                if taken is not None:
                    return fields, key
        return None

    def append(self, collection: str, record: Mapping[str, Any]) -> Record:
        body = dict(record)
        keys = self._keys(collection, body)
        with self._Session() as session:
            try:
                row = DocumentRow(collection=collection, body=body)
                session.add(row)
                session.flush()
                for fields, key in keys:
                    session.add(
                        DocumentKeyRow(
                            document_id=row.id,
                            collection=collection,
                            index_name=index_name(fields),
                            value=key,
                        )
                    )
                session.commit()
            except IntegrityError:
                session.rollback()
                colliding = self._colliding(collection, keys)
                if colliding is None:
                    raise
                fields, key = colliding
                logger.info("sql_store.duplicate collection=%s index=%s key=%s", collection, index_name(fields), key)
                raise DuplicateKeyError(collection, key, fields)
        return body


__all__ = ["SqlDocumentStore"]
