"""Data models for the workflow engine."""

from .core import (
    ExecutionStatusEnum,
    HttpMethod,
    ApiProvider,
    NodeKind,
    Position,
    ApiRouteConfig,
    NodeData,
    Node,
    Edge,
    NodeResult,
    ExecutionResult,
    ExecutionLogEntry,
    Workflow,
    WorkflowCreate,
    WorkflowUpdate,
)

__all__ = [
    "ExecutionStatusEnum",
    "HttpMethod",
    "ApiProvider",
    "NodeKind",
    "Position",
    "ApiRouteConfig",
    "NodeData",
    "Node",
    "Edge",
    "NodeResult",
    "ExecutionResult",
    "ExecutionLogEntry",
    "Workflow",
    "WorkflowCreate",
    "WorkflowUpdate",
]
