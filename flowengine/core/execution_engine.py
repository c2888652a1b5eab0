"""Execution Engine for workflow processing."""

import asyncio
import logging
import time
import uuid
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional, Set, Tuple, Union

from ..models.core import (
    Edge, ExecutionLogEntry, ExecutionResult, ExecutionStatusEnum,
    Node, NodeKind, utc_now
)
from .exceptions import NoStartNodeError
from .execution_logger import ExecutionLogStore
from .graph_queries import GraphIndex
from .logging import get_logger, log_with_context
from .node_executors import NodeExecutorRegistry, NodeOutcome

logger = get_logger(__name__)

START_PAYLOAD = {"message": "Workflow execution started"}

NodeLike = Union[Node, Dict[str, Any]]
EdgeLike = Union[Edge, Dict[str, Any]]


def _coerce_nodes(nodes: Iterable[NodeLike]) -> List[Node]:
    return [node if isinstance(node, Node) else Node.model_validate(node) for node in nodes]


def _coerce_edges(edges: Iterable[EdgeLike]) -> List[Edge]:
    return [edge if isinstance(edge, Edge) else Edge.model_validate(edge) for edge in edges]


class ExecutionEngine:
    """Walks a workflow graph breadth-first from its start node, one node at a time."""

    def __init__(
        self,
        node_executors: NodeExecutorRegistry,
        log_store: Optional[ExecutionLogStore] = None,
        node_timeout: Optional[float] = None
    ):
        """Initialize the execution engine.

        Args:
            node_executors: Executors dispatched by node kind
            log_store: Store receiving one summary entry per run with a workflow ID
            node_timeout: Seconds a single node may run before it is marked failed;
                None waits indefinitely
        """
        self.node_executors = node_executors
        self.log_store = log_store
        self.node_timeout = node_timeout

        logger.info(f"ExecutionEngine initialized with node_timeout={node_timeout}")

    async def execute_workflow(
        self,
        nodes: Iterable[NodeLike],
        edges: Iterable[EdgeLike],
        workflow_id: Optional[str] = None,
        workflow_name: Optional[str] = None
    ) -> List[ExecutionResult]:
        """
        Execute a workflow graph and return its visible results.

        Args:
            nodes: Graph nodes
            edges: Graph edges
            workflow_id: When given, one execution log entry is recorded for the run
            workflow_name: Name stored alongside the log entry

        Returns:
            Results of the start marker and every executed node that is, or
            leads to, an output node, in traversal order. Empty when the graph
            has no output node.

        Raises:
            NoStartNodeError: If the graph has no nodes
        """
        started_at = time.perf_counter()
        graph = GraphIndex(_coerce_nodes(nodes), _coerce_edges(edges))

        start_node = graph.find_start_node()
        if start_node is None:
            error = NoStartNodeError(workflow_id=workflow_id)
            logger.error(f"Workflow execution aborted: {error.message}")
            if workflow_id is not None:
                self._record_run(workflow_id, workflow_name, [], started_at, fatal_error=error.message)
            raise error

        logger.info(f"Starting workflow execution at node {start_node.id} "
                    f"({len(graph.nodes)} nodes, {len(graph.edges)} edges)")

        results = [ExecutionResult(
            node_id=start_node.id,
            success=True,
            data=dict(START_PAYLOAD),
            timestamp=utc_now()
        )]
        results.extend(await self._traverse(graph, start_node))

        visible = self._filter_visible_results(graph, results)

        if workflow_id is not None:
            self._record_run(workflow_id, workflow_name, visible, started_at)

        logger.info(f"Workflow execution finished: {len(results)} results, {len(visible)} visible")
        return visible

    async def _traverse(self, graph: GraphIndex, start_node: Node) -> List[ExecutionResult]:
        """Breadth-first walk; a node is expanded at most once and only successful nodes are expanded."""
        results: List[ExecutionResult] = []
        # (node id, data produced by that node); the start marker produces nothing
        queue: Deque[Tuple[str, Any]] = deque([(start_node.id, None)])
        expanded: Set[str] = set()

        while queue:
            node_id, produced = queue.popleft()
            if node_id in expanded:
                continue
            expanded.add(node_id)

            for next_node in graph.find_next_nodes(node_id):
                if next_node.kind == NodeKind.START:
                    continue

                outcome = await self._run_node(next_node, produced)
                results.append(ExecutionResult(
                    node_id=next_node.id,
                    success=outcome.success,
                    data=outcome.data if outcome.success else None,
                    error=outcome.error,
                    timestamp=utc_now()
                ))

                if outcome.success:
                    queue.append((next_node.id, outcome.data))

        return results

    async def _run_node(self, node: Node, previous_data: Any) -> NodeOutcome:
        """Execute one node, converting timeouts and unexpected errors into failures."""
        logger.debug(f"Executing node {node.id} ({node.kind.value})")
        try:
            if self.node_timeout:
                outcome = await asyncio.wait_for(
                    self.node_executors.execute(node, previous_data),
                    timeout=self.node_timeout
                )
            else:
                outcome = await self.node_executors.execute(node, previous_data)
        except asyncio.TimeoutError:
            outcome = NodeOutcome.failed(
                f"Node {node.id} timed out after {self.node_timeout} seconds"
            )
        except Exception as e:
            logger.error(f"Unexpected error executing node {node.id}: {str(e)}", exc_info=True)
            outcome = NodeOutcome.failed(str(e) or type(e).__name__)

        if not outcome.success:
            log_with_context(
                logger, logging.WARNING,
                f"Node {node.id} failed: {outcome.error}",
                node_id=node.id,
                node_kind=node.kind.value
            )
        return outcome

    @staticmethod
    def _filter_visible_results(graph: GraphIndex, results: List[ExecutionResult]) -> List[ExecutionResult]:
        """Keep results of nodes that are, or lead to, an output node; none without outputs."""
        if not graph.has_output_node():
            return []
        connected = graph.nodes_connected_to_output()
        return [result for result in results if result.node_id in connected]

    def _record_run(
        self,
        workflow_id: str,
        workflow_name: Optional[str],
        results: List[ExecutionResult],
        started_at: float,
        fatal_error: Optional[str] = None
    ) -> None:
        """Write the run summary to the log store; failures here never reach the caller."""
        if self.log_store is None:
            return

        first_failure = next((result for result in results if not result.success), None)
        failed = fatal_error is not None or first_failure is not None
        error = fatal_error or (first_failure.error if first_failure else None)

        try:
            entry = ExecutionLogEntry(
                id=str(uuid.uuid4()),
                workflow_id=workflow_id,
                workflow_name=workflow_name or "",
                timestamp=utc_now(),
                status=ExecutionStatusEnum.FAILURE if failed else ExecutionStatusEnum.SUCCESS,
                execution_time=max(0, int((time.perf_counter() - started_at) * 1000)),
                error=error,
                node_results=[result.to_node_result() for result in results]
            )
            self.log_store.append(entry)
            log_with_context(
                logger, logging.INFO,
                f"Recorded execution of workflow {workflow_id}: {entry.status.value}",
                workflow_id=workflow_id,
                execution_id=entry.id,
                execution_time_ms=entry.execution_time
            )
        except Exception as e:
            logger.error(f"Failed to record execution log for workflow {workflow_id}: {str(e)}")
