"""
Database engine and session management.

Tables are created with ``SQLModel.metadata.create_all`` on startup; there
are no migrations.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from fastapi import Request
from sqlalchemy.engine import Engine, make_url
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

# Registers every table on SQLModel.metadata
from shelfsim import models  # noqa: F401
from shelfsim.logging_config import get_logger

logger = get_logger(__name__)


def create_db_engine(database_url: str) -> Engine:
    """
    Build an engine for *database_url*.

    SQLite files get their parent directory created; in-memory SQLite uses a
    single shared connection so every session sees the same tables.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url)

    connect_args = {"check_same_thread": False}
    if url.database in (None, "", ":memory:"):
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)

    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ensured on %s", engine.url.render_as_string(hide_password=True))


def get_session(request: Request) -> Iterator[Session]:
    """FastAPI dependency yielding a session bound to the app's engine."""
    with Session(request.app.state.engine) as session:
        yield session
