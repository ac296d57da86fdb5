"""Database engine and session management."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Register table models with SQLModel.metadata
from . import tables  # noqa: F401


def make_engine(database_url: str) -> Engine:
    """Create an engine for DATABASE_URL.

    SQLite connections are shared across threads; an in-memory SQLite URL
    keeps a single connection so every session sees the same database.
    """
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(database_url, connect_args=connect_args)
    return create_engine(database_url, pool_pre_ping=True)


def create_db_and_tables(engine: Engine) -> None:
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)


@contextmanager
def get_session(engine: Engine) -> Generator[Session, None, None]:
    """Get a database session.

    Usage:
        with get_session(engine) as session:
            session.add(record)
            session.commit()
    """
    with Session(engine) as session:
        yield session
