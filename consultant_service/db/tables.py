"""ORM models for stored documents and their unique index keys."""

from __future__ import annotations

from sqlalchemy import JSON, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class DocumentRow(Base):  # type: ignore[valid-type]
    __tablename__ = "document"

    # Autoincrement id preserves insertion order within a collection
    id = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(64), nullable=False, index=True)
    body = Column(JSON, nullable=False)


class DocumentKeyRow(Base):  # type: ignore[valid-type]
    """One row per (document, unique index); the constraint spans processes."""

    __tablename__ = "document_key"
    __table_args__ = (
        UniqueConstraint("collection", "index_name", "value", name="uq_document_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("document.id", ondelete="CASCADE"), nullable=False)
    collection = Column(String(64), nullable=False)
    index_name = Column(String(128), nullable=False)
    value = Column(String(255), nullable=False)


__all__ = ["DocumentRow", "DocumentKeyRow", "Base"]
