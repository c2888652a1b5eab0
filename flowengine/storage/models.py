"""SQLAlchemy database models for the workflow engine."""

from sqlalchemy import Column, String, DateTime, Text, JSON, Integer

from ..models.core import utc_now
from .database import Base


class WorkflowModel(Base):
    """Database model for stored workflow graphs."""
    __tablename__ = "workflows"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    nodes = Column(JSON, nullable=False, default=list)
    edges = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class ExecutionLogModel(Base):
    """Database model for execution log entries, one per workflow run."""
    __tablename__ = "execution_logs"

    id = Column(String, primary_key=True)
    # No foreign key: entries may outlive a workflow until it is deleted through the API
    workflow_id = Column(String, nullable=False, index=True)
    workflow_name = Column(String, nullable=False, default="")
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String, nullable=False)  # success, failure
    execution_time = Column(Integer, nullable=False)  # milliseconds
    error = Column(Text)
    node_results = Column(JSON)
