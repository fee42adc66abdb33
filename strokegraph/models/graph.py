"""Graph data models for operation nodes, dataflow edges, and the graph.

These Pydantic v2 models are the JSON schema accepted by the evaluation
API and mutated by :class:`~strokegraph.engine.scheduler.PreviewScheduler`.
The engine itself only reads them.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, Field

#: Port name used for the single input of Range and Transform nodes.
DEFAULT_PORT = "in"


class NodeKind(str, enum.Enum):
    """Enumeration of supported operation node kinds."""

    GLYPH = "glyph"
    RANGE = "range"
    TRANSFORM = "transform"
    COMPOSITE = "composite"


class GraphNode(BaseModel):
    """A single operation instance in the stroke graph.

    Attributes:
        id: Unique node identifier assigned by the editor.
        kind: Which operation this node performs.
        data: Kind-specific parameters (``char``, ``start``/``end``,
            ``x``/``y``/``sx``/``sy``, ``alpha_a``/``alpha_b``/``swap``).
    """

    id: str = Field(..., description="Unique node identifier.")
    kind: NodeKind = Field(..., description="Operation performed by the node.")
    data: dict[str, Any] = Field(default_factory=dict, description="Kind-specific parameters.")


class GraphEdge(BaseModel):
    """A directed dataflow link from one node's output to another's input.

    Attributes:
        source: The ``id`` of the producing node.
        target: The ``id`` of the consuming node.
        target_port: Input port on the target.  ``None`` (or ``"in"``)
            addresses the unnamed port; Composite nodes use ``"A"``/``"B"``.
    """

    source: str = Field(..., description="Producing node id.")
    target: str = Field(..., description="Consuming node id.")
    target_port: Optional[str] = Field(None, description="Input port on the target node.")

    @property
    def port(self) -> str:
        """The target port with the unnamed port normalised to ``"in"``."""
        return self.target_port or DEFAULT_PORT


class StrokeGraph(BaseModel):
    """A directed graph of operation nodes.

    Acyclicity is *not* validated here; the evaluator bounds its
    recursion depth instead.

    Attributes:
        nodes: All operation nodes.
        edges: All dataflow links between nodes.
    """

    nodes: list[GraphNode] = Field(default_factory=list, description="Operation nodes.")
    edges: list[GraphEdge] = Field(default_factory=list, description="Dataflow links.")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def node(self, node_id: str) -> Optional[GraphNode]:
        """Return the node with *node_id*, or ``None``."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_index(self) -> dict[str, GraphNode]:
        """Return a ``{id: node}`` mapping built once per evaluation pass."""
        return {node.id: node for node in self.nodes}

    def input_source(self, node_id: str, port: str = DEFAULT_PORT) -> Optional[str]:
        """Return the id of the node feeding *port* of *node_id*.

        Args:
            node_id: The consuming node.
            port: Port name; ``"in"`` matches edges without a port.

        Returns:
            The source node id, or ``None`` if the port is unconnected.
        """
        for edge in self.edges:
            if edge.target == node_id and edge.port == port:
                return edge.source
        return None

    def descendants(self, node_id: str) -> list[str]:
        """Return *node_id* and every node downstream of it, topologically.

        Cycle-safe: each node is visited once, so a cyclic graph still
        yields a finite (if not strictly topological) ordering.
        """
        outgoing: dict[str, list[str]] = {}
        for edge in self.edges:
            outgoing.setdefault(edge.source, []).append(edge.target)

        visited: set[str] = set()
        order: list[str] = []

        def visit(current: str) -> None:
            visited.add(current)
            for child in outgoing.get(current, []):
                if child not in visited:
                    visit(child)
            order.append(current)

        visit(node_id)
        order.reverse()
        return order

    def cyclic_nodes(self) -> set[str]:
        """Return the ids of nodes that can reach themselves via edges."""
        outgoing: dict[str, set[str]] = {}
        for edge in self.edges:
            outgoing.setdefault(edge.source, set()).add(edge.target)

        cyclic: set[str] = set()
        for start in outgoing:
            seen: set[str] = set()
            stack = list(outgoing[start])
            while stack:
                current = stack.pop()
                if current == start:
                    cyclic.add(start)
                    break
                if current in seen:
                    continue
                seen.add(current)
                stack.extend(outgoing.get(current, ()))
        return cyclic

    # ------------------------------------------------------------------
    # Mutations (used by the editor-facing scheduler)
    # ------------------------------------------------------------------

    def add_node(self, node: GraphNode) -> None:
        """Insert *node*, replacing any existing node with the same id."""
        self.nodes = [n for n in self.nodes if n.id != node.id] + [node]

    def remove_node(self, node_id: str) -> None:
        """Remove a node together with every edge touching it."""
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.edges = [e for e in self.edges if e.source != node_id and e.target != node_id]

    def update_data(self, node_id: str, **changes: Any) -> GraphNode:
        """Replace a node's parameters with a new dict including *changes*.

        Raises:
            KeyError: If *node_id* is not in the graph.
        """
        node = self.node(node_id)
        if node is None:
            raise KeyError(f"Node not found: {node_id}")
        node.data = {**node.data, **changes}
        return node

    def connect(self, edge: GraphEdge) -> None:
        """Add *edge*, replacing whatever was wired to the same target port."""
        self.disconnect(edge.target, edge.port)
        self.edges.append(edge)

    def disconnect(self, target: str, port: str = DEFAULT_PORT) -> None:
        """Remove the edge feeding *port* of *target*, if any."""
        self.edges = [e for e in self.edges if not (e.target == target and e.port == port)]
