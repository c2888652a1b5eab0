"""Durable, capped store of execution log entries."""

import threading
from typing import Callable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..models.core import ExecutionLogEntry, NodeResult, as_utc
from ..storage.database import get_session_factory
from ..storage.models import ExecutionLogModel
from .exceptions import StorageError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ENTRIES = 1000

# Appends from every store instance share one lock so the capped
# read-modify-write never interleaves within the process.
_append_lock = threading.RLock()


class ExecutionLogStore:
    """Keeps the most recent execution log entries, newest first."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        max_entries: int = DEFAULT_MAX_ENTRIES
    ):
        """
        Initialize the store.

        Args:
            session_factory: Callable returning a new database session;
                defaults to the global session factory
            max_entries: Maximum number of entries retained process-wide
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._session_factory = session_factory
        self.max_entries = max_entries

    def _get_db_session(self) -> Session:
        if self._session_factory is not None:
            return self._session_factory()
        return get_session_factory()()

    @staticmethod
    def _to_model(entry: ExecutionLogEntry) -> ExecutionLogModel:
        node_results = None
        if entry.node_results is not None:
            node_results = [
                result.model_dump(mode="json", by_alias=True)
                for result in entry.node_results
            ]
        return ExecutionLogModel(
            id=entry.id,
            workflow_id=entry.workflow_id,
            workflow_name=entry.workflow_name,
            timestamp=as_utc(entry.timestamp),
            status=entry.status.value,
            execution_time=entry.execution_time,
            error=entry.error,
            node_results=node_results
        )

    @staticmethod
    def _to_entry(model: ExecutionLogModel) -> ExecutionLogEntry:
        node_results = None
        if model.node_results is not None:
            node_results = [NodeResult.model_validate(result) for result in model.node_results]
        return ExecutionLogEntry(
            id=model.id,
            workflow_id=model.workflow_id,
            workflow_name=model.workflow_name or "",
            timestamp=as_utc(model.timestamp),
            status=model.status,
            execution_time=model.execution_time,
            error=model.error,
            node_results=node_results
        )

    def append(self, entry: ExecutionLogEntry) -> None:
        """
        Store ``entry`` and trim entries beyond the cap, oldest first.

        Best-effort: storage failures are logged, never raised.
        """
        with _append_lock:
            db = self._get_db_session()
            try:
                db.merge(self._to_model(entry))
                db.flush()

                stale_ids = [
                    row.id for row in
                    db.query(ExecutionLogModel.id)
                    .order_by(ExecutionLogModel.timestamp.desc())
                    .offset(self.max_entries)
                    .all()
                ]
                if stale_ids:
                    db.query(ExecutionLogModel).filter(
                        ExecutionLogModel.id.in_(stale_ids)
                    ).delete(synchronize_session=False)
                    logger.debug(f"Trimmed {len(stale_ids)} execution log entries beyond cap")

                db.commit()
                logger.debug(f"Recorded execution log {entry.id} for workflow {entry.workflow_id}")
            except Exception as e:
                db.rollback()
                logger.error(f"Error logging execution: {str(e)}")
            finally:
                db.close()

    def list_all(self) -> List[ExecutionLogEntry]:
        """All retained entries, newest first."""
        return self._query("list_all")

    def list_for_workflow(self, workflow_id: str) -> List[ExecutionLogEntry]:
        """Entries of one workflow, newest first."""
        return self._query("list_for_workflow", workflow_id=workflow_id)

    def _query(self, operation: str, workflow_id: Optional[str] = None) -> List[ExecutionLogEntry]:
        db = self._get_db_session()
        try:
            query = db.query(ExecutionLogModel)
            if workflow_id is not None:
                query = query.filter(ExecutionLogModel.workflow_id == workflow_id)
            models = query.order_by(ExecutionLogModel.timestamp.desc()).all()
            return [self._to_entry(model) for model in models]
        except SQLAlchemyError as e:
            logger.error(f"Database error while reading execution logs: {str(e)}")
            raise StorageError(f"Failed to read execution logs: {str(e)}",
                               operation=operation, table="execution_logs")
        finally:
            db.close()

    def get(self, log_id: str) -> Optional[ExecutionLogEntry]:
        """A single entry by ID, or None."""
        db = self._get_db_session()
        try:
            model = db.get(ExecutionLogModel, log_id)
            return self._to_entry(model) if model else None
        except SQLAlchemyError as e:
            logger.error(f"Database error while reading execution log {log_id}: {str(e)}")
            raise StorageError(f"Failed to read execution log: {str(e)}",
                               operation="get", table="execution_logs")
        finally:
            db.close()

    def delete_for_workflow(self, workflow_id: str) -> int:
        """Delete every entry of a workflow and return how many were removed."""
        with _append_lock:
            db = self._get_db_session()
            try:
                deleted = db.query(ExecutionLogModel).filter(
                    ExecutionLogModel.workflow_id == workflow_id
                ).delete(synchronize_session=False)
                db.commit()
                logger.info(f"Deleted {deleted} execution logs for workflow {workflow_id}")
                return deleted
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Database error while deleting execution logs: {str(e)}")
                raise StorageError(f"Failed to delete execution logs: {str(e)}",
                                   operation="delete_for_workflow", table="execution_logs")
            finally:
                db.close()
