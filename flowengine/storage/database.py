"""Database connection and session management."""

import os
from typing import Iterator, Optional
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

DEFAULT_DATABASE_URL = "sqlite:///./flow_engine.db"

# Global engine and session factory, created lazily
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None

# Base class for all database models
Base = declarative_base()


def get_database_engine(database_url: Optional[str] = None,
                        echo: bool = False,
                        connect_args: Optional[dict] = None) -> Engine:
    """Get or create the database engine."""
    global _engine, _session_factory

    if _engine is None:
        if database_url is None:
            database_url = os.getenv("FLOW_ENGINE_DATABASE_URL", DEFAULT_DATABASE_URL)

        if connect_args is None:
            connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}

        if database_url.startswith("sqlite"):
            _engine = create_engine(
                database_url,
                connect_args=connect_args,
                poolclass=StaticPool,
                echo=echo
            )
        else:
            _engine = create_engine(
                database_url,
                echo=echo,
                connect_args=connect_args
            )
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def configure_database(database_url: str, echo: bool = False) -> Engine:
    """Replace the global engine with one bound to ``database_url``."""
    reset_database_engine()
    return get_database_engine(database_url, echo=echo)


def reset_database_engine():
    """Dispose the global database engine (mainly for testing)."""
    global _engine, _session_factory
    if _engine:
        _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> sessionmaker:
    """Session factory bound to the global engine."""
    get_database_engine()
    return _session_factory


def get_db() -> Iterator[Session]:
    """Dependency to get database session."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all database tables."""
    from . import models  # noqa: F401  registers tables on Base.metadata
    Base.metadata.create_all(bind=get_database_engine())


def drop_tables():
    """Drop all database tables."""
    from . import models  # noqa: F401
    Base.metadata.drop_all(bind=get_database_engine())
