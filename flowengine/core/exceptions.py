"""Custom exceptions for the workflow engine with detailed error information."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels for categorizing exceptions."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors for better classification."""
    VALIDATION = "validation"
    EXECUTION = "execution"
    STORAGE = "storage"
    NETWORK = "network"
    CONFIGURATION = "configuration"


class WorkflowEngineError(Exception):
    """Base exception for all workflow engine errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.EXECUTION,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.severity = severity
        self.category = category
        self.details = details or {}
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "details": self.details,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__
        }

    def add_context(self, **kwargs):
        """Add additional context to the exception."""
        self.context.update(kwargs)
        return self

    def add_details(self, **kwargs):
        """Add additional details to the exception."""
        self.details.update(kwargs)
        return self


class ExecutionEngineError(WorkflowEngineError):
    """Raised when a workflow run cannot be carried out."""

    def __init__(
        self,
        message: str,
        workflow_id: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("category", ErrorCategory.EXECUTION)
        super().__init__(message, **kwargs)
        if workflow_id:
            self.add_context(workflow_id=workflow_id)


class NoStartNodeError(ExecutionEngineError):
    """Raised when no start node can be resolved; aborts the whole run."""

    def __init__(self, message: str = "No start node found in the workflow", **kwargs):
        super().__init__(message, category=ErrorCategory.VALIDATION, **kwargs)


class NodeExecutionError(WorkflowEngineError):
    """Raised inside a node executor; converted to a failed result by the engine."""

    def __init__(
        self,
        message: str,
        node_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.EXECUTION,
            **kwargs
        )
        if node_id:
            self.add_context(node_id=node_id)


class ConfigurationError(WorkflowEngineError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CONFIGURATION,
            **kwargs
        )
        if config_key:
            self.add_context(config_key=config_key)


class StorageError(WorkflowEngineError):
    """Raised when storage operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, category=ErrorCategory.STORAGE, **kwargs)
        if operation:
            self.add_context(operation=operation)
        if table:
            self.add_context(table=table)


class WorkflowNotFoundError(StorageError):
    """Raised when a workflow ID does not exist."""

    def __init__(self, workflow_id: str, **kwargs):
        super().__init__(
            f"Workflow with ID '{workflow_id}' not found",
            table="workflows",
            severity=ErrorSeverity.LOW,
            **kwargs
        )
        self.workflow_id = workflow_id
        self.add_context(workflow_id=workflow_id)


class ExecutionLogNotFoundError(StorageError):
    """Raised when an execution log ID does not exist."""

    def __init__(self, log_id: str, **kwargs):
        super().__init__(
            f"Execution log with ID '{log_id}' not found",
            table="execution_logs",
            severity=ErrorSeverity.LOW,
            **kwargs
        )
        self.add_context(log_id=log_id)


def create_error_response(error: WorkflowEngineError) -> Dict[str, Any]:
    """Create a standardized error response from a WorkflowEngineError."""
    return {
        "error": error.error_code,
        "message": error.message,
        "details": {
            **error.details,
            "severity": error.severity.value,
            "category": error.category.value,
            "timestamp": error.timestamp.isoformat()
        },
        "context": error.context
    }
