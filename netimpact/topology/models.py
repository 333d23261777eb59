"""
Topology Model - Immutable network snapshot

Provides:
- Node, directed Edge and bidirectional Link records
- Cost validation against the OSPF metric range
- Topology snapshot with lookup, derived copies and dict parsing
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import networkx as nx

from netimpact.config.constants import OSPF_COST_MIN, OSPF_COST_MAX, UNKNOWN_COUNTRY
from netimpact.topology.errors import (
    DuplicateElementError,
    EdgeNotFoundError,
    InvalidCostError,
    NodeNotFoundError,
    TopologyError,
)

logger = logging.getLogger("Topology")

REVERSE_SUFFIX = ":rev"


def validate_cost(element_id: str, cost: Any) -> int:
    """
    Check that a cost is a usable OSPF metric

    Args:
        element_id: Edge or link the cost belongs to (for the error)
        cost: Candidate cost value

    Returns:
        The cost as an int

    Raises:
        InvalidCostError: cost is not an int in [1, 65535]
    """
    # bool is an int subclass but never a metric
    if isinstance(cost, bool) or not isinstance(cost, int):
        raise InvalidCostError(element_id, cost)
    if cost < OSPF_COST_MIN or cost > OSPF_COST_MAX:
        raise InvalidCostError(element_id, cost)
    return cost


@dataclass(frozen=True)
class Node:
    """
    Router in the topology

    Attributes:
        id: Unique, stable identifier
        label: Display name (defaults to id)
        country: Optional country code
    """
    id: str
    label: str = ""
    country: Optional[str] = None

    def __post_init__(self):
        if not self.label:
            object.__setattr__(self, "label", self.id)

    @property
    def country_or_unknown(self) -> str:
        return self.country or UNKNOWN_COUNTRY

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "country": self.country}


@dataclass(frozen=True)
class Edge:
    """
    Directed edge carrying the OSPF cost for one direction

    Attributes:
        id: Unique identifier
        source: Originating node id
        target: Terminating node id
        cost: Cost in this direction
        reverse_cost: Cost of the paired reverse direction, if known
        capacity_mbps: Link capacity, if known
        logical_id: Identifier shared by both directions of a physical link
    """
    id: str
    source: str
    target: str
    cost: int
    reverse_cost: Optional[int] = None
    capacity_mbps: Optional[float] = None
    logical_id: Optional[str] = None

    @property
    def link_id(self) -> str:
        """Physical link this edge belongs to"""
        return self.logical_id or self.id

    @property
    def effective_reverse_cost(self) -> int:
        return self.reverse_cost if self.reverse_cost is not None else self.cost

    def with_cost(self, cost: int) -> "Edge":
        return Edge(
            id=self.id,
            source=self.source,
            target=self.target,
            cost=cost,
            reverse_cost=self.reverse_cost,
            capacity_mbps=self.capacity_mbps,
            logical_id=self.logical_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "cost": self.cost,
            "reverse_cost": self.reverse_cost,
            "capacity_mbps": self.capacity_mbps,
            "logical_id": self.logical_id,
        }


@dataclass(frozen=True)
class Link:
    """
    Bidirectional physical link

    Expands into two directed edges: "<id>" (source -> target) and
    "<id>:rev" (target -> source). Without reverse_cost the forward
    cost is used in both directions.
    """
    id: str
    source: str
    target: str
    cost: int
    reverse_cost: Optional[int] = None
    capacity_mbps: Optional[float] = None

    def to_edges(self) -> Tuple[Edge, Edge]:
        reverse = self.reverse_cost if self.reverse_cost is not None else self.cost
        forward_edge = Edge(
            id=self.id,
            source=self.source,
            target=self.target,
            cost=self.cost,
            reverse_cost=reverse,
            capacity_mbps=self.capacity_mbps,
            logical_id=self.id,
        )
        reverse_edge = Edge(
            id=f"{self.id}{REVERSE_SUFFIX}",
            source=self.target,
            target=self.source,
            cost=reverse,
            reverse_cost=self.cost,
            capacity_mbps=self.capacity_mbps,
            logical_id=self.id,
        )
        return forward_edge, reverse_edge


@dataclass(frozen=True)
class CostChange:
    """Replacement cost for one directed edge"""
    edge_id: str
    new_cost: int

    def __post_init__(self):
        validate_cost(self.edge_id, self.new_cost)

    def to_dict(self) -> Dict[str, Any]:
        return {"edge_id": self.edge_id, "new_cost": self.new_cost}


class Topology:
    """
    Immutable snapshot of nodes and directed edges

    Every analysis receives the snapshot it works on explicitly. Derived
    snapshots (changed costs, removed elements) are new objects; the
    original is never modified.
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge]):
        """
        Validate and index a topology

        Args:
            nodes: Routers, in the order used for deterministic tie-breaks
            edges: Directed edges, in the order used for adjacency

        Raises:
            DuplicateElementError: repeated node or edge id
            NodeNotFoundError: edge endpoint is not a known node
            InvalidCostError: edge cost outside the OSPF range
        """
        self._nodes: Tuple[Node, ...] = tuple(nodes)
        self._edges: Tuple[Edge, ...] = tuple(edges)

        self._node_index: Dict[str, int] = {}
        for i, node in enumerate(self._nodes):
            if node.id in self._node_index:
                raise DuplicateElementError("node", node.id)
            self._node_index[node.id] = i

        self._edge_index: Dict[str, int] = {}
        for i, edge in enumerate(self._edges):
            if edge.id in self._edge_index:
                raise DuplicateElementError("edge", edge.id)
            validate_cost(edge.id, edge.cost)
            if edge.reverse_cost is not None:
                validate_cost(edge.id, edge.reverse_cost)
            for endpoint in (edge.source, edge.target):
                if endpoint not in self._node_index:
                    raise NodeNotFoundError(endpoint)
            self._edge_index[edge.id] = i

        self._graph: Optional[nx.MultiDiGraph] = None

    def __repr__(self) -> str:
        return f"Topology(nodes={len(self._nodes)}, edges={len(self._edges)})"

    # ==================== Lookup ====================

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._nodes

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self._nodes]

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    @property
    def total_pairs(self) -> int:
        """Ordered pairs of distinct nodes"""
        n = len(self._nodes)
        return n * (n - 1)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_index

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edge_index

    def get_node(self, node_id: str) -> Node:
        try:
            return self._nodes[self._node_index[node_id]]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def get_edge(self, edge_id: str) -> Edge:
        try:
            return self._edges[self._edge_index[edge_id]]
        except KeyError:
            raise EdgeNotFoundError(edge_id) from None

    def node_position(self, node_id: str) -> int:
        """Input order of a node, used to break ties"""
        try:
            return self._node_index[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def country_of(self, node_id: str) -> str:
        return self.get_node(node_id).country_or_unknown

    def links(self) -> Dict[str, List[Edge]]:
        """Directed edges grouped by physical link, in input order"""
        grouped: Dict[str, List[Edge]] = {}
        for edge in self._edges:
            grouped.setdefault(edge.link_id, []).append(edge)
        return grouped

    def reverse_of(self, edge_id: str) -> Optional[Edge]:
        """Paired edge running the opposite direction, if present"""
        edge = self.get_edge(edge_id)
        for other in self._edges:
            if (other.id != edge.id and other.link_id == edge.link_id
                    and other.source == edge.target and other.target == edge.source):
                return other
        return None

    def incident_edges(self, node_id: str) -> List[Edge]:
        self.get_node(node_id)
        return [e for e in self._edges if e.source == node_id or e.target == node_id]

    def directed_graph(self) -> nx.MultiDiGraph:
        """
        Directed multigraph of the snapshot

        Built once and shared; callers must treat it as read-only.
        Parallel edges keep their edge ids as multigraph keys and
        out-edges iterate in input order.
        """
        if self._graph is None:
            graph = nx.MultiDiGraph()
            for node in self._nodes:
                graph.add_node(node.id, country=node.country, label=node.label)
            for edge in self._edges:
                graph.add_edge(edge.source, edge.target, key=edge.id, weight=edge.cost)
            self._graph = graph
        return self._graph

    # ==================== Derived snapshots ====================

    def with_costs(self, changes: Iterable[CostChange]) -> "Topology":
        """
        Copy of the topology with some edge costs replaced

        Raises:
            EdgeNotFoundError: change targets an unknown edge
            InvalidCostError: new cost outside the OSPF range
        """
        new_costs: Dict[str, int] = {}
        for change in changes:
            self.get_edge(change.edge_id)
            new_costs[change.edge_id] = validate_cost(change.edge_id, change.new_cost)

        edges = [
            e.with_cost(new_costs[e.id]) if e.id in new_costs else e
            for e in self._edges
        ]
        return Topology(self._nodes, edges)

    def without(self, nodes: Iterable[str] = (), edges: Iterable[str] = (),
                links: Iterable[str] = ()) -> "Topology":
        """
        Copy of the topology with elements removed

        Removing a node also removes its incident edges. Removing a link
        removes every directed edge that belongs to it.
        """
        drop_nodes = set()
        for node_id in nodes:
            self.get_node(node_id)
            drop_nodes.add(node_id)

        drop_edges = set()
        for edge_id in edges:
            self.get_edge(edge_id)
            drop_edges.add(edge_id)

        grouped = self.links()
        for link_id in links:
            if link_id not in grouped:
                raise EdgeNotFoundError(link_id)
            drop_edges.update(e.id for e in grouped[link_id])

        kept_nodes = [n for n in self._nodes if n.id not in drop_nodes]
        kept_edges = [
            e for e in self._edges
            if e.id not in drop_edges
            and e.source not in drop_nodes and e.target not in drop_nodes
        ]
        return Topology(kept_nodes, kept_edges)

    # ==================== Construction ====================

    @classmethod
    def from_links(cls, nodes: Iterable[Node], links: Iterable[Link]) -> "Topology":
        edges: List[Edge] = []
        for link in links:
            validate_cost(link.id, link.cost)
            if link.reverse_cost is not None:
                validate_cost(link.id, link.reverse_cost)
            edges.extend(link.to_edges())
        return cls(nodes, edges)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Topology":
        """
        Parse a topology document

        Accepts "nodes", directed "edges" and bidirectional "links", with
        either camelCase (from/to, reverseCost, logicalId, capacity) or
        snake_case (source/target, reverse_cost, logical_id, capacity_mbps)
        keys.

        Args:
            data: Parsed JSON document

        Returns:
            Validated Topology
        """
        if not isinstance(data, Mapping):
            raise TopologyError(f"Topology document must be an object, got {type(data).__name__}")

        nodes: List[Node] = []
        for index, n in enumerate(data.get("nodes", [])):
            node_id = _element_id(n, "node", index)
            nodes.append(Node(
                id=node_id,
                label=str(n.get("label") or node_id),
                country=n.get("country") or None,
            ))

        edges: List[Edge] = []
        for index, raw in enumerate(data.get("edges", [])):
            edge_id = _element_id(raw, "edge", index)
            logical = _first(raw, "logical_id", "logicalId")
            edges.append(Edge(
                id=edge_id,
                source=str(_required(raw, edge_id, "source", "from")),
                target=str(_required(raw, edge_id, "target", "to")),
                cost=_required(raw, edge_id, "cost"),
                reverse_cost=_first(raw, "reverse_cost", "reverseCost"),
                capacity_mbps=_first(raw, "capacity_mbps", "capacity"),
                logical_id=str(logical) if logical is not None else None,
            ))

        for index, raw in enumerate(data.get("links", [])):
            link_id = _element_id(raw, "link", index)
            link = Link(
                id=link_id,
                source=str(_required(raw, link_id, "source", "from")),
                target=str(_required(raw, link_id, "target", "to")),
                cost=_required(raw, link_id, "cost"),
                reverse_cost=_first(raw, "reverse_cost", "reverseCost"),
                capacity_mbps=_first(raw, "capacity_mbps", "capacity"),
            )
            validate_cost(link.id, link.cost)
            if link.reverse_cost is not None:
                validate_cost(link.id, link.reverse_cost)
            edges.extend(link.to_edges())

        topology = cls(nodes, edges)
        logger.debug(f"Parsed topology: {topology.node_count} nodes, {topology.edge_count} edges")
        return topology

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self._nodes],
            "edges": [e.to_dict() for e in self._edges],
        }


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _required(raw: Mapping[str, Any], element_id: str, *keys: str) -> Any:
    value = _first(raw, *keys)
    if value is None:
        raise TopologyError(f"{element_id}: missing field {'/'.join(keys)}")
    return value


def _element_id(raw: Any, kind: str, index: int) -> str:
    if not isinstance(raw, Mapping):
        raise TopologyError(f"{kind} #{index}: expected an object, got {type(raw).__name__}")
    return str(_required(raw, f"{kind} #{index}", "id"))
