# taskboard/database.py
"""Database engine, session factory and schema creation using SQLModel."""

import logging

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from taskboard.config import get_settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create an engine. SQLite connections may be used from worker threads."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=False, connect_args=connect_args)


engine = build_engine(get_settings().database_url)


def create_db_and_tables(bind: Engine = engine) -> None:
    """Create all tables from SQLModel metadata."""
    # Registers the table models on SQLModel.metadata.
    import taskboard.models  # noqa: F401

    SQLModel.metadata.create_all(bind)
    logger.info("Database ready url=%s", bind.url.render_as_string(hide_password=True))


def get_session():
    """Yield a database session for FastAPI dependency injection."""
    with Session(engine) as session:
        yield session
