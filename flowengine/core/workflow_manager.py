"""Workflow Manager for stored workflow graphs."""

import uuid
from typing import Callable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..models.core import Workflow, WorkflowCreate, WorkflowUpdate, as_utc, utc_now
from ..storage.database import get_session_factory
from ..storage.models import WorkflowModel
from .exceptions import StorageError, WorkflowNotFoundError
from .execution_logger import ExecutionLogStore
from .logging import get_logger

logger = get_logger(__name__)


class WorkflowManager:
    """Creates, reads, updates and deletes workflow graphs."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        log_store: Optional[ExecutionLogStore] = None
    ):
        """Initialize WorkflowManager.

        Args:
            session_factory: Callable returning a new database session
            log_store: Execution logs deleted together with their workflow
        """
        self._session_factory = session_factory
        self.log_store = log_store

    def _get_db_session(self) -> Session:
        if self._session_factory is not None:
            return self._session_factory()
        return get_session_factory()()

    @staticmethod
    def _to_workflow(model: WorkflowModel) -> Workflow:
        return Workflow(
            id=model.id,
            name=model.name,
            description=model.description or "",
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
            nodes=model.nodes or [],
            edges=model.edges or []
        )

    def create_workflow(self, workflow: WorkflowCreate) -> Workflow:
        """
        Store a new workflow.

        Args:
            workflow: Name, description and graph of the workflow

        Returns:
            Workflow: The stored workflow with its generated ID

        Raises:
            StorageError: If storage operation fails
        """
        logger.info(f"Creating new workflow: {workflow.name}")

        now = utc_now()
        db = self._get_db_session()
        try:
            model = WorkflowModel(
                id=str(uuid.uuid4()),
                name=workflow.name,
                description=workflow.description,
                nodes=[node.model_dump(mode="json", by_alias=True) for node in workflow.nodes],
                edges=[edge.model_dump(mode="json", by_alias=True) for edge in workflow.edges],
                created_at=now,
                updated_at=now
            )
            db.add(model)
            db.commit()
            db.refresh(model)

            logger.info(f"Successfully created workflow '{workflow.name}' with ID: {model.id}")
            return self._to_workflow(model)

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error while creating workflow: {str(e)}")
            raise StorageError(f"Failed to store workflow: {str(e)}", operation="create", table="workflows")
        finally:
            db.close()

    def get_workflow(self, workflow_id: str) -> Workflow:
        """
        Retrieve a workflow by its ID.

        Raises:
            WorkflowNotFoundError: If no workflow has this ID
            StorageError: If storage operation fails
        """
        logger.debug(f"Retrieving workflow with ID: {workflow_id}")

        db = self._get_db_session()
        try:
            model = db.get(WorkflowModel, workflow_id)
            if not model:
                raise WorkflowNotFoundError(workflow_id)
            return self._to_workflow(model)

        except SQLAlchemyError as e:
            logger.error(f"Database error while retrieving workflow: {str(e)}")
            raise StorageError(f"Failed to retrieve workflow: {str(e)}", operation="get", table="workflows")
        finally:
            db.close()

    def list_workflows(self) -> List[Workflow]:
        """All workflows, most recently created first."""
        logger.debug("Listing all workflows")

        db = self._get_db_session()
        try:
            models = db.query(WorkflowModel).order_by(WorkflowModel.created_at.desc()).all()
            workflows = [self._to_workflow(model) for model in models]
            logger.debug(f"Retrieved {len(workflows)} workflows")
            return workflows

        except SQLAlchemyError as e:
            logger.error(f"Database error while listing workflows: {str(e)}")
            raise StorageError(f"Failed to list workflows: {str(e)}", operation="list", table="workflows")
        finally:
            db.close()

    def update_workflow(self, workflow_id: str, updates: WorkflowUpdate) -> Workflow:
        """
        Apply the fields set in ``updates`` to a stored workflow.

        Raises:
            WorkflowNotFoundError: If no workflow has this ID
            StorageError: If storage operation fails
        """
        logger.info(f"Updating workflow with ID: {workflow_id}")

        db = self._get_db_session()
        try:
            model = db.get(WorkflowModel, workflow_id)
            if not model:
                raise WorkflowNotFoundError(workflow_id)

            if updates.name is not None:
                model.name = updates.name
            if updates.description is not None:
                model.description = updates.description
            if updates.nodes is not None:
                model.nodes = [node.model_dump(mode="json", by_alias=True) for node in updates.nodes]
            if updates.edges is not None:
                model.edges = [edge.model_dump(mode="json", by_alias=True) for edge in updates.edges]
            model.updated_at = utc_now()

            db.commit()
            db.refresh(model)
            return self._to_workflow(model)

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error while updating workflow: {str(e)}")
            raise StorageError(f"Failed to update workflow: {str(e)}", operation="update", table="workflows")
        finally:
            db.close()

    def delete_workflow(self, workflow_id: str) -> bool:
        """
        Delete a workflow and its execution logs.

        Returns:
            bool: True if the workflow was deleted, False if not found

        Raises:
            StorageError: If storage operation fails
        """
        logger.info(f"Deleting workflow with ID: {workflow_id}")

        db = self._get_db_session()
        try:
            model = db.get(WorkflowModel, workflow_id)
            if not model:
                logger.warning(f"Workflow with ID '{workflow_id}' not found for deletion")
                return False

            db.delete(model)
            db.commit()

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error while deleting workflow: {str(e)}")
            raise StorageError(f"Failed to delete workflow: {str(e)}", operation="delete", table="workflows")
        finally:
            db.close()

        if self.log_store is not None:
            self.log_store.delete_for_workflow(workflow_id)

        logger.info(f"Successfully deleted workflow with ID: {workflow_id}")
        return True
