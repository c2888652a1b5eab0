"""Per-kind node executors.

Every executor receives the node and the data produced by the node it was
reached from, and returns a ``NodeOutcome``. Per-node failures (missing
credentials, HTTP errors, transform-service errors) are reported through the
outcome, never raised, so the engine can keep walking independent branches.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..models.core import ApiProvider, HttpMethod, Node, NodeKind
from ..tools.text_cleaner import TextCleaner
from .exceptions import ConfigurationError, NodeExecutionError
from .logging import get_logger

logger = get_logger(__name__)

NO_DATA_PLACEHOLDER = {"message": "No data received from previous node"}
NO_TRANSFORM_INPUT_PLACEHOLDER = "No data available to transform"
NO_API_ROUTE_PAYLOAD = {"message": "No API route defined for this node"}

_BODYLESS_METHODS = {HttpMethod.GET, HttpMethod.HEAD}


@dataclass
class NodeOutcome:
    """Result of running one node."""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "NodeOutcome":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str) -> "NodeOutcome":
        return cls(success=False, data={"error": error}, error=error)


class NodeExecutor:
    """Base class for node executors."""

    kind: NodeKind

    async def execute(self, node: Node, previous_data: Any) -> NodeOutcome:
        raise NotImplementedError


class OutputExecutor(NodeExecutor):
    """Passes the previous node's data through unchanged."""

    kind = NodeKind.OUTPUT

    async def execute(self, node: Node, previous_data: Any) -> NodeOutcome:
        if previous_data is None:
            return NodeOutcome.ok(dict(NO_DATA_PLACEHOLDER))
        return NodeOutcome.ok(previous_data)


class PassiveExecutor(NodeExecutor):
    """Nodes with no route and no special label only report that fact."""

    kind = NodeKind.PASSIVE

    async def execute(self, node: Node, previous_data: Any) -> NodeOutcome:
        return NodeOutcome.ok(dict(NO_API_ROUTE_PAYLOAD))


class TransformExecutor(NodeExecutor):
    """Sends the previous node's data to a text-cleaning service."""

    kind = NodeKind.TRANSFORM

    def __init__(self, text_cleaner: TextCleaner):
        self.text_cleaner = text_cleaner

    async def execute(self, node: Node, previous_data: Any) -> NodeOutcome:
        if previous_data is None:
            return NodeOutcome.ok(NO_TRANSFORM_INPUT_PLACEHOLDER)

        cleaned = await self.text_cleaner.clean(previous_data)
        if isinstance(cleaned, dict) and "error" in cleaned:
            return NodeOutcome.failed(str(cleaned["error"]))
        return NodeOutcome.ok(cleaned)


class ApiRequestExecutor(NodeExecutor):
    """Issues the HTTP request configured on a node's ``apiRoute``."""

    kind = NodeKind.API

    def __init__(self, http_client: httpx.AsyncClient, stripe_secret_key: Optional[str] = None):
        self.http_client = http_client
        self.stripe_secret_key = stripe_secret_key

    def _build_headers(self, node: Node) -> Dict[str, str]:
        route = node.data.api_route
        headers = {"Content-Type": "application/json", **route.headers}

        if route.provider == ApiProvider.STRIPE:
            if not self.stripe_secret_key:
                raise ConfigurationError(
                    "Stripe API key is not configured",
                    config_key="stripe_secret_key"
                )
            headers["Authorization"] = f"Bearer {self.stripe_secret_key}"

        return headers

    async def _send(self, node: Node) -> Any:
        route = node.data.api_route
        headers = self._build_headers(node)

        content = None
        if route.method not in _BODYLESS_METHODS and route.body is not None:
            content = json.dumps(route.body)

        response = await self.http_client.request(
            route.method.value,
            route.url,
            headers=headers,
            content=content
        )

        if not response.is_success:
            raise NodeExecutionError(
                f"Request failed with status {response.status_code}",
                node_id=node.id
            ).add_details(status_code=response.status_code, url=route.url)

        try:
            return response.json()
        except ValueError as e:
            raise NodeExecutionError(
                f"Invalid JSON in response: {e}",
                node_id=node.id
            ).add_details(status_code=response.status_code, url=route.url)

    async def execute(self, node: Node, previous_data: Any) -> NodeOutcome:
        if node.data.api_route is None:
            return NodeOutcome.ok(dict(NO_API_ROUTE_PAYLOAD))

        try:
            return NodeOutcome.ok(await self._send(node))
        except (ConfigurationError, NodeExecutionError) as e:
            logger.warning(f"Error executing node {node.id}: {e.message}")
            return NodeOutcome.failed(e.message)
        except httpx.HTTPError as e:
            logger.warning(f"Error executing node {node.id}: {str(e)}")
            return NodeOutcome.failed(str(e) or type(e).__name__)


class NodeExecutorRegistry:
    """Maps each executable node kind to its executor."""

    def __init__(
        self,
        api_executor: ApiRequestExecutor,
        transform_executor: TransformExecutor,
        output_executor: Optional[OutputExecutor] = None,
        passive_executor: Optional[PassiveExecutor] = None
    ):
        self._executors: Dict[NodeKind, NodeExecutor] = {
            NodeKind.API: api_executor,
            NodeKind.TRANSFORM: transform_executor,
            NodeKind.OUTPUT: output_executor or OutputExecutor(),
            NodeKind.PASSIVE: passive_executor or PassiveExecutor(),
        }

    @classmethod
    def create(
        cls,
        http_client: httpx.AsyncClient,
        text_cleaner: TextCleaner,
        stripe_secret_key: Optional[str] = None
    ) -> "NodeExecutorRegistry":
        """Build the default executor set."""
        return cls(
            api_executor=ApiRequestExecutor(http_client, stripe_secret_key),
            transform_executor=TransformExecutor(text_cleaner)
        )

    def get_executor(self, kind: NodeKind) -> NodeExecutor:
        if kind == NodeKind.START:
            raise NodeExecutionError("Start nodes are not executed")
        return self._executors[kind]

    async def execute(self, node: Node, previous_data: Any) -> NodeOutcome:
        """Dispatch ``node`` to the executor for its kind."""
        return await self.get_executor(node.kind).execute(node, previous_data)
