"""FastAPI REST endpoints for the workflow engine."""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import Field, ValidationError

from ..core.execution_engine import ExecutionEngine
from ..core.execution_logger import ExecutionLogStore
from ..core.workflow_manager import WorkflowManager
from ..core.exceptions import (
    NoStartNodeError,
    StorageError,
    WorkflowEngineError,
    WorkflowNotFoundError,
    create_error_response
)
from ..models.core import (
    CamelModel,
    ExecutionLogEntry,
    ExecutionResult,
    Workflow,
    WorkflowCreate,
    WorkflowUpdate
)
from ..core.logging import get_logger

logger = get_logger(__name__)

# Create router
router = APIRouter(prefix="/api", tags=["workflow"])

# Global instances (initialized by the application factory)
_workflow_manager: Optional[WorkflowManager] = None
_execution_engine: Optional[ExecutionEngine] = None
_log_store: Optional[ExecutionLogStore] = None


def init_dependencies(
    workflow_manager: WorkflowManager,
    execution_engine: ExecutionEngine,
    log_store: ExecutionLogStore
):
    """Initialize the global dependencies."""
    global _workflow_manager, _execution_engine, _log_store
    _workflow_manager = workflow_manager
    _execution_engine = execution_engine
    _log_store = log_store


def get_workflow_manager() -> WorkflowManager:
    """Dependency to get workflow manager."""
    if _workflow_manager is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Workflow manager not initialized"
        )
    return _workflow_manager


def get_execution_engine() -> ExecutionEngine:
    """Dependency to get execution engine."""
    if _execution_engine is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Execution engine not initialized"
        )
    return _execution_engine


def get_log_store() -> ExecutionLogStore:
    """Dependency to get execution log store."""
    if _log_store is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Execution log store not initialized"
        )
    return _log_store


# Request/Response models
class ExecuteWorkflowResponse(CamelModel):
    """Response model for a workflow run."""
    success: bool = Field(True, description="Whether the run completed")
    results: List[ExecutionResult] = Field(default_factory=list, description="Visible node results")
    workflow_id: str = Field(..., description="ID of the executed workflow")
    workflow_name: str = Field(..., description="Name of the executed workflow")


class SuccessResponse(CamelModel):
    """Acknowledgement for write operations without a resource body."""
    success: bool = Field(True, description="Operation outcome")


def _not_found(workflow_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "WorkflowNotFound",
            "message": f"Workflow with ID '{workflow_id}' not found",
            "details": {"workflow_id": workflow_id}
        }
    )


def _storage_failure(e: StorageError, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "StorageError",
            "message": message,
            "details": {"original_error": str(e)}
        }
    )


# Workflow endpoints

@router.get(
    "/workflows",
    response_model=List[Workflow],
    summary="List workflows",
    description="Retrieve every stored workflow"
)
async def list_workflows(
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> List[Workflow]:
    try:
        return workflow_manager.list_workflows()
    except StorageError as e:
        logger.error(f"Storage error listing workflows: {str(e)}")
        raise _storage_failure(e, "Failed to fetch workflows")


@router.post(
    "/workflows",
    response_model=Workflow,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workflow",
    description="Store a new workflow graph; a name is required"
)
async def create_workflow(
    request: WorkflowCreate,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> Workflow:
    """
    Create a new workflow.

    Args:
        request: Name, description, nodes and edges of the workflow
        workflow_manager: Workflow manager dependency

    Returns:
        The stored workflow including its generated ID and timestamps
    """
    try:
        return workflow_manager.create_workflow(request)
    except StorageError as e:
        logger.error(f"Storage error creating workflow: {str(e)}")
        raise _storage_failure(e, "Failed to create workflow")


@router.get(
    "/workflows/{workflow_id}",
    response_model=Workflow,
    summary="Get a workflow",
    description="Retrieve a single workflow by its ID"
)
async def get_workflow(
    workflow_id: str,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> Workflow:
    try:
        return workflow_manager.get_workflow(workflow_id)
    except WorkflowNotFoundError:
        logger.warning(f"Workflow not found: {workflow_id}")
        raise _not_found(workflow_id)
    except StorageError as e:
        logger.error(f"Storage error getting workflow: {str(e)}")
        raise _storage_failure(e, "Failed to fetch workflow")


@router.put(
    "/workflows/{workflow_id}",
    response_model=Workflow,
    summary="Update a workflow",
    description="Replace the fields supplied in the request body"
)
async def update_workflow(
    workflow_id: str,
    request: WorkflowUpdate,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> Workflow:
    if request.name is not None and not request.name.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "ValidationError",
                "message": "Workflow name is required",
                "details": {"workflow_id": workflow_id}
            }
        )

    try:
        return workflow_manager.update_workflow(workflow_id, request)
    except WorkflowNotFoundError:
        logger.warning(f"Workflow not found for update: {workflow_id}")
        raise _not_found(workflow_id)
    except StorageError as e:
        logger.error(f"Storage error updating workflow: {str(e)}")
        raise _storage_failure(e, "Failed to update workflow")


@router.delete(
    "/workflows/{workflow_id}",
    response_model=SuccessResponse,
    summary="Delete a workflow",
    description="Delete a workflow together with its execution logs"
)
async def delete_workflow(
    workflow_id: str,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> SuccessResponse:
    try:
        deleted = workflow_manager.delete_workflow(workflow_id)
    except StorageError as e:
        logger.error(f"Storage error deleting workflow: {str(e)}")
        raise _storage_failure(e, "Failed to delete workflow")

    if not deleted:
        raise _not_found(workflow_id)
    return SuccessResponse()


@router.post(
    "/workflows/{workflow_id}/execute",
    response_model=ExecuteWorkflowResponse,
    summary="Execute a workflow",
    description="Run a stored workflow to completion and return the visible node results"
)
async def execute_workflow(
    workflow_id: str,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager),
    execution_engine: ExecutionEngine = Depends(get_execution_engine)
) -> ExecuteWorkflowResponse:
    """
    Execute a stored workflow.

    Args:
        workflow_id: ID of the workflow to run
        workflow_manager: Workflow manager dependency
        execution_engine: Execution engine dependency

    Returns:
        Results of the start marker and of every executed node on a path to
        an output node

    Raises:
        HTTPException: 404 for an unknown workflow, 400 when the graph has
            no start node, 500 for any other failure
    """
    try:
        workflow = workflow_manager.get_workflow(workflow_id)
    except WorkflowNotFoundError:
        logger.warning(f"Workflow not found for execution: {workflow_id}")
        raise _not_found(workflow_id)
    except StorageError as e:
        logger.error(f"Storage error loading workflow for execution: {str(e)}")
        raise _storage_failure(e, "Failed to load workflow")

    try:
        logger.info(f"Executing workflow '{workflow.name}' ({workflow.id})")
        results = await execution_engine.execute_workflow(
            workflow.nodes,
            workflow.edges,
            workflow_id=workflow.id,
            workflow_name=workflow.name
        )
    except NoStartNodeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=create_error_response(e)
        )
    except WorkflowEngineError as e:
        logger.error(f"Workflow engine error during execution: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=create_error_response(e)
        )
    except Exception as e:
        logger.error(f"Unexpected error executing workflow {workflow_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "InternalError",
                "message": str(e) or "Failed to execute workflow",
                "details": {"workflow_id": workflow_id}
            }
        )

    return ExecuteWorkflowResponse(
        success=True,
        results=results,
        workflow_id=workflow.id,
        workflow_name=workflow.name
    )


# Execution log endpoints

@router.get(
    "/execution-logs",
    response_model=List[ExecutionLogEntry],
    summary="List execution logs",
    description="Retrieve execution logs, newest first, optionally for one workflow"
)
async def list_execution_logs(
    workflow_id: Optional[str] = Query(None, alias="workflowId"),
    log_store: ExecutionLogStore = Depends(get_log_store)
) -> List[ExecutionLogEntry]:
    try:
        if workflow_id:
            return log_store.list_for_workflow(workflow_id)
        return log_store.list_all()
    except StorageError as e:
        logger.error(f"Storage error listing execution logs: {str(e)}")
        raise _storage_failure(e, "Failed to fetch execution logs")


@router.post(
    "/execution-logs",
    response_model=SuccessResponse,
    summary="Record an execution log",
    description="Append an externally produced execution log entry"
)
async def add_execution_log(
    payload: Dict[str, Any] = Body(...),
    log_store: ExecutionLogStore = Depends(get_log_store)
) -> SuccessResponse:
    """Append a log entry; ``id``, ``workflowId`` and ``timestamp`` are required."""
    if not payload.get("id") or not payload.get("workflowId") or not payload.get("timestamp"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "InvalidLogEntry",
                "message": "Invalid log entry",
                "details": {"required": ["id", "workflowId", "timestamp"]}
            }
        )

    try:
        entry = ExecutionLogEntry.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "InvalidLogEntry",
                "message": "Invalid log entry",
                "details": {"errors": [error["msg"] for error in e.errors()]}
            }
        )

    log_store.append(entry)
    return SuccessResponse()


@router.delete(
    "/execution-logs",
    response_model=SuccessResponse,
    summary="Delete execution logs",
    description="Delete every execution log of one workflow"
)
async def delete_execution_logs(
    workflow_id: Optional[str] = Query(None, alias="workflowId"),
    log_store: ExecutionLogStore = Depends(get_log_store)
) -> SuccessResponse:
    if not workflow_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "ValidationError",
                "message": "Workflow ID is required",
                "details": {}
            }
        )

    try:
        log_store.delete_for_workflow(workflow_id)
    except StorageError as e:
        logger.error(f"Storage error deleting execution logs: {str(e)}")
        raise _storage_failure(e, "Failed to delete execution logs")
    return SuccessResponse()


@router.get(
    "/execution-logs/{log_id}",
    response_model=ExecutionLogEntry,
    summary="Get an execution log",
    description="Retrieve a single execution log entry by its ID"
)
async def get_execution_log(
    log_id: str,
    log_store: ExecutionLogStore = Depends(get_log_store)
) -> ExecutionLogEntry:
    try:
        entry = log_store.get(log_id)
    except StorageError as e:
        logger.error(f"Storage error getting execution log: {str(e)}")
        raise _storage_failure(e, "Failed to fetch execution log")

    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "ExecutionLogNotFound",
                "message": "Execution log not found",
                "details": {"log_id": log_id}
            }
        )
    return entry
