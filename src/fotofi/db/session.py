"""Database engine creation and schema setup."""

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

logger = logging.getLogger(__name__)


def get_engine(database_url: str) -> Engine:
    """Create an engine for the configured database.

    SQLite connections are shared across the request thread pool, and an
    in-memory SQLite database is pinned to one connection so every session
    sees the same data.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    """Create any missing tables."""
    # Register table models on SQLModel.metadata
    from fotofi.db import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database schema ready", extra={"dialect": engine.dialect.name})
