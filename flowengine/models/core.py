"""Core Pydantic models for the workflow engine."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to aware UTC; naive values are taken to be UTC already."""
    if value is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CamelModel(BaseModel):
    """Base model exposing camelCase names on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExecutionStatusEnum(str, Enum):
    """Aggregate status of a workflow run."""
    SUCCESS = "success"
    FAILURE = "failure"


class HttpMethod(str, Enum):
    """HTTP methods an API node may issue."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"


class ApiProvider(str, Enum):
    """Providers an API node may target."""
    CUSTOM = "custom"
    STRIPE = "stripe"


class NodeKind(str, Enum):
    """Execution kind of a node, resolved once from its raw type and label."""
    START = "start"
    OUTPUT = "output"
    TRANSFORM = "transform"
    API = "api"
    PASSIVE = "passive"


OUTPUT_LABEL = "Output"
TRANSFORM_LABEL = "Transform"
API_LABEL = "Api"


class Position(BaseModel):
    """Canvas position of a node."""
    x: float = 0
    y: float = 0


class ApiRouteConfig(CamelModel):
    """Outbound HTTP request configured on an API node."""
    url: str = Field(..., description="Request URL")
    method: HttpMethod = Field(default=HttpMethod.GET, description="HTTP method")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    body: Optional[Any] = Field(None, description="JSON body sent for non-GET/HEAD requests")
    provider: Optional[ApiProvider] = Field(None, description="Provider requiring credential injection")

    @field_validator('method', mode='before')
    @classmethod
    def normalize_method(cls, method):
        """Accept methods in any case."""
        if isinstance(method, str):
            return method.strip().upper()
        return method

    @field_validator('headers', mode='before')
    @classmethod
    def default_headers(cls, headers):
        """Treat a null header map as empty."""
        return headers or {}


class NodeData(CamelModel):
    """Payload carried by a node; the label doubles as a semantic marker."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    label: str = Field(default="", description="Display label")
    api_route: Optional[ApiRouteConfig] = Field(None, description="Outbound request configuration")

    @field_validator('label', mode='before')
    @classmethod
    def default_label(cls, label):
        return label or ""

    @field_validator('api_route', mode='before')
    @classmethod
    def drop_empty_api_route(cls, api_route):
        """An empty route object means no route."""
        if not api_route:
            return None
        return api_route


class Node(CamelModel):
    """A workflow graph vertex."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(..., description="Unique identifier within the graph")
    type: str = Field(default="default", description="Raw node type from the editor")
    data: NodeData = Field(default_factory=NodeData, description="Node payload")
    position: Position = Field(default_factory=Position, description="Canvas position")
    style: Optional[Dict[str, Any]] = Field(None, description="Editor style")

    @field_validator('type', mode='before')
    @classmethod
    def default_type(cls, node_type):
        return node_type or "default"

    @property
    def label(self) -> str:
        return self.data.label

    @property
    def is_output(self) -> bool:
        """Output nodes are marked by type or by label."""
        return self.type == "output" or self.data.label == OUTPUT_LABEL

    @property
    def looks_like_api(self) -> bool:
        """Heuristic used when picking among source nodes."""
        return (
            self.data.label == API_LABEL
            or self.type == "api"
            or self.data.api_route is not None
        )

    @property
    def kind(self) -> NodeKind:
        """Resolve the execution kind of this node."""
        if self.type == "start":
            return NodeKind.START
        if self.is_output:
            return NodeKind.OUTPUT
        if self.data.label == TRANSFORM_LABEL:
            return NodeKind.TRANSFORM
        if self.data.api_route is not None:
            return NodeKind.API
        return NodeKind.PASSIVE


class Edge(CamelModel):
    """A directed arc between two nodes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = Field(None, description="Edge identifier")
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")


class NodeResult(CamelModel):
    """Per-node outcome without its payload, as stored in execution logs."""
    node_id: str = Field(..., description="ID of the node")
    success: bool = Field(..., description="Whether the node succeeded")
    error: Optional[str] = Field(None, description="Failure message")
    timestamp: datetime = Field(..., description="When the node finished")


class ExecutionResult(NodeResult):
    """Per-node outcome produced during one run."""
    data: Optional[Any] = Field(None, description="Data produced by the node")

    def to_node_result(self) -> NodeResult:
        """Strip the payload for logging."""
        return NodeResult(
            node_id=self.node_id,
            success=self.success,
            error=self.error,
            timestamp=self.timestamp
        )


class ExecutionLogEntry(CamelModel):
    """Summary record of one completed workflow run."""
    id: str = Field(..., description="Log entry ID")
    workflow_id: str = Field(..., description="ID of the executed workflow")
    workflow_name: str = Field(default="", description="Name of the executed workflow")
    timestamp: datetime = Field(..., description="When the run completed")
    status: ExecutionStatusEnum = Field(..., description="Aggregate run status")
    execution_time: int = Field(..., ge=0, description="Wall-clock run time in milliseconds")
    error: Optional[str] = Field(None, description="First failure message, if any")
    node_results: Optional[List[NodeResult]] = Field(None, description="Per-node outcomes")


class Workflow(CamelModel):
    """A stored workflow graph."""
    id: str = Field(..., description="Workflow ID")
    name: str = Field(..., description="Workflow name")
    description: str = Field(default="", description="Workflow description")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    nodes: List[Node] = Field(default_factory=list, description="Graph nodes")
    edges: List[Edge] = Field(default_factory=list, description="Graph edges")


class WorkflowCreate(CamelModel):
    """Fields accepted when creating a workflow."""
    name: str = Field(..., description="Workflow name")
    description: str = Field(default="", description="Workflow description")
    nodes: List[Node] = Field(default_factory=list, description="Graph nodes")
    edges: List[Edge] = Field(default_factory=list, description="Graph edges")

    @field_validator('name')
    @classmethod
    def validate_name_not_empty(cls, name):
        """Ensure workflow name is not empty."""
        if not name or not name.strip():
            raise ValueError("Workflow name is required")
        return name.strip()


class WorkflowUpdate(CamelModel):
    """Fields accepted when updating a workflow; omitted fields are kept."""
    name: Optional[str] = None
    description: Optional[str] = None
    nodes: Optional[List[Node]] = None
    edges: Optional[List[Edge]] = None
