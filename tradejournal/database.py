"""SQLModel database engine and session management."""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from tradejournal.errors import Transient

logger = logging.getLogger(__name__)

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(database_url: str, echo: bool = False):
    """Create an engine for `database_url`.

    In-memory SQLite gets a single shared connection so every session sees
    the same database.
    """
    # SQLite needs check_same_thread=False; PostgreSQL does not
    connect_args = {}
    kwargs = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    if database_url in _MEMORY_URLS:
        kwargs["poolclass"] = StaticPool

    return create_engine(database_url, echo=echo, connect_args=connect_args, **kwargs)


def create_db_and_tables(engine):
    """Create all tables. Called on startup."""
    # Import models so their tables are registered on the metadata
    import tradejournal.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


@contextmanager
def session_scope(engine):
    """Session whose objects stay readable after commit.

    Storage-level failures surface as `Transient` so callers can retry.
    """
    with Session(engine, expire_on_commit=False) as session:
        try:
            yield session
        except OperationalError as e:
            session.rollback()
            logger.warning(f"Database operation failed: {e}")
            raise Transient("Storage temporarily unavailable") from e
