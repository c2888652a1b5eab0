"""Pure query functions over a workflow graph.

Nodes and edges are addressed by ID through a ``GraphIndex`` built once per
run; the module-level helpers build a throwaway index so they can be used on
their own.
"""

from typing import Dict, Iterable, List, Optional, Set

from ..models.core import Edge, Node


class GraphIndex:
    """Lookup tables over a node list and an edge list."""

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge]):
        self.nodes: List[Node] = list(nodes)
        self.edges: List[Edge] = list(edges)
        self._by_id: Dict[str, Node] = {}
        for node in self.nodes:
            # First occurrence wins if an editor ever emits a duplicate ID
            self._by_id.setdefault(node.id, node)

        self._successors: Dict[str, List[str]] = {}
        for edge in self.edges:
            self._successors.setdefault(edge.source, []).append(edge.target)

    def get(self, node_id: str) -> Optional[Node]:
        return self._by_id.get(node_id)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._by_id

    def find_start_node(self) -> Optional[Node]:
        """
        Resolve the entry point of traversal.

        Resolution order, first match wins:
        1. a node whose type is ``start``
        2. a node whose label contains "start" (case-insensitive)
        3. among nodes with no incoming edge, one that looks like an API node,
           else the first of them
        4. the first node

        Returns:
            The start node, or None only when there are no nodes
        """
        for node in self.nodes:
            if node.type == "start":
                return node

        for node in self.nodes:
            if "start" in node.data.label.lower():
                return node

        targets = {edge.target for edge in self.edges}
        source_nodes = [node for node in self.nodes if node.id not in targets]
        if source_nodes:
            for node in source_nodes:
                if node.looks_like_api:
                    return node
            return source_nodes[0]

        return self.nodes[0] if self.nodes else None

    def find_next_nodes(self, source_id: str) -> List[Node]:
        """Edge targets of ``source_id`` in edge order, duplicates kept."""
        next_nodes = []
        for target_id in self._successors.get(source_id, []):
            node = self._by_id.get(target_id)
            if node is not None:
                next_nodes.append(node)
        return next_nodes

    def find_output_nodes(self) -> List[Node]:
        return [node for node in self.nodes if node.is_output]

    def has_output_node(self) -> bool:
        return any(node.is_output for node in self.nodes)

    def is_connected_to_output(self, node_id: str, visited: Optional[Set[str]] = None) -> bool:
        """
        Check whether ``node_id`` is an output node or reaches one.

        ``visited`` holds the nodes on the current path; each branch receives
        its own copy so sibling branches do not hide each other.
        """
        visited = set() if visited is None else visited
        if node_id in visited:
            return False
        visited.add(node_id)

        node = self._by_id.get(node_id)
        if node is None:
            return False
        if node.is_output:
            return True

        return any(
            self.is_connected_to_output(next_node.id, set(visited))
            for next_node in self.find_next_nodes(node_id)
        )

    def nodes_connected_to_output(self) -> Set[str]:
        """IDs of every output node and every node that reaches one."""
        connected = {node.id for node in self.find_output_nodes()}
        for node in self.nodes:
            if node.id not in connected and self.is_connected_to_output(node.id):
                connected.add(node.id)
        return connected


def find_start_node(nodes: List[Node], edges: List[Edge]) -> Optional[Node]:
    """Resolve the start node of a graph."""
    return GraphIndex(nodes, edges).find_start_node()


def find_next_nodes(source_id: str, edges: List[Edge], nodes: List[Node]) -> List[Node]:
    """All nodes targeted by edges leaving ``source_id``."""
    return GraphIndex(nodes, edges).find_next_nodes(source_id)


def has_output_node(nodes: List[Node]) -> bool:
    """Whether the graph contains at least one output node."""
    return any(node.is_output for node in nodes)


def find_output_nodes(nodes: List[Node]) -> List[Node]:
    """All output nodes of the graph."""
    return [node for node in nodes if node.is_output]


def is_connected_to_output(
    node_id: str,
    edges: List[Edge],
    nodes: List[Node],
    visited: Optional[Set[str]] = None
) -> bool:
    """Whether ``node_id`` is an output node or reaches one."""
    return GraphIndex(nodes, edges).is_connected_to_output(node_id, visited)
