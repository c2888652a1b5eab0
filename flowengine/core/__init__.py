"""Core workflow engine components."""

from .exceptions import (
    WorkflowEngineError,
    ExecutionEngineError,
    NoStartNodeError,
    NodeExecutionError,
    ConfigurationError,
    StorageError,
    WorkflowNotFoundError,
    ExecutionLogNotFoundError,
)
from .logging import setup_logging, get_logger
from .graph_queries import (
    GraphIndex,
    find_start_node,
    find_next_nodes,
    find_output_nodes,
    has_output_node,
    is_connected_to_output,
)

__all__ = [
    "WorkflowEngineError",
    "ExecutionEngineError",
    "NoStartNodeError",
    "NodeExecutionError",
    "ConfigurationError",
    "StorageError",
    "WorkflowNotFoundError",
    "ExecutionLogNotFoundError",
    "setup_logging",
    "get_logger",
    "GraphIndex",
    "find_start_node",
    "find_next_nodes",
    "find_output_nodes",
    "has_output_node",
    "is_connected_to_output",
]
