"""Database bootstrap utilities for the `sql` document store backend.

Exposes engine/session construction and the document tables. No table holds
domain columns; records are stored as JSON bodies keyed by collection.
"""

from consultant_service.db.base import dispose_engines, get_engine, get_sessionmaker
from consultant_service.db.tables import Base, DocumentKeyRow, DocumentRow

__all__ = [
    "get_engine",
    "get_sessionmaker",
    "dispose_engines",
    "Base",
    "DocumentRow",
    "DocumentKeyRow",
]
