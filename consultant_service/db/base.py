"""SQLAlchemy engine construction for the `sql` document store backend.

Any SQLAlchemy URL works; SQLite in-memory URLs get a StaticPool so every
session in the process shares one connection and therefore one database.
"""

from __future__ import annotations

import logging
from typing import Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Engines cached per URL so stores built from the same config share a pool
_ENGINES: Dict[str, Engine] = {}


def get_engine(url: str) -> Engine:
    """Return a cached SQLAlchemy Engine for `url`."""
    engine = _ENGINES.get(url)
    if engine is None:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if url.startswith("sqlite") and ":memory:" in url:
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        engine = create_engine(url, **kwargs)
        _ENGINES[url] = engine
        logger.info("db.engine_created dialect=%s", engine.dialect.name)
    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, future=True, expire_on_commit=False)


def dispose_engines() -> None:
    for engine in _ENGINES.values():
        engine.dispose()
    _ENGINES.clear()


__all__ = ["get_engine", "get_sessionmaker", "dispose_engines"]
