"""Database models and storage layer."""

from .database import (
    Base,
    get_db,
    get_database_engine,
    get_session_factory,
    configure_database,
    reset_database_engine,
    create_tables,
    drop_tables,
)
from .models import WorkflowModel, ExecutionLogModel

__all__ = [
    "Base",
    "get_db",
    "get_database_engine",
    "get_session_factory",
    "configure_database",
    "reset_database_engine",
    "create_tables",
    "drop_tables",
    "WorkflowModel",
    "ExecutionLogModel",
]
