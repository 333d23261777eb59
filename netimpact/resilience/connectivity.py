"""
Connectivity Analysis

Partition detection over an undirected view of the topology. Direction is
ignored: two routers are connected if any edge joins them either way.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

import networkx as nx

from netimpact.topology.errors import EdgeNotFoundError
from netimpact.topology.models import Topology

logger = logging.getLogger("Connectivity")


@dataclass
class ConnectivityResult:
    """
    Connected components under a set of exclusions

    Attributes:
        is_fully_connected: Exactly one component remains
        partitions: Components as node id lists, in input order
        isolated_nodes: Nodes left in a component of their own
    """
    is_fully_connected: bool
    partitions: List[List[str]] = field(default_factory=list)
    isolated_nodes: List[str] = field(default_factory=list)

    @property
    def component_count(self) -> int:
        return len(self.partitions)

    @property
    def largest_component(self) -> int:
        return max((len(p) for p in self.partitions), default=0)

    @property
    def partition_sizes(self) -> List[int]:
        return [len(p) for p in self.partitions]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_fully_connected": self.is_fully_connected,
            "partitions": self.partitions,
            "component_count": self.component_count,
            "largest_component": self.largest_component,
            "isolated_nodes": self.isolated_nodes,
        }


def analyze_connectivity(topology: Topology, exclude_nodes: Iterable[str] = (),
                         exclude_edges: Iterable[str] = (),
                         exclude_links: Iterable[str] = ()) -> ConnectivityResult:
    """
    Find connected components with some elements taken out

    Args:
        topology: Snapshot to analyze
        exclude_nodes: Node ids to remove (with their incident edges)
        exclude_edges: Directed edge ids to remove
        exclude_links: Physical link ids to remove (every direction)

    Returns:
        ConnectivityResult. With every node excluded the result is not
        connected and lists every original node as isolated.

    Raises:
        NodeNotFoundError / EdgeNotFoundError: unknown excluded id
    """
    excluded_nodes = set()
    for node_id in exclude_nodes:
        topology.get_node(node_id)
        excluded_nodes.add(node_id)

    excluded_edges = set()
    for edge_id in exclude_edges:
        topology.get_edge(edge_id)
        excluded_edges.add(edge_id)

    links = None
    for link_id in exclude_links:
        if links is None:
            links = topology.links()
        if link_id not in links:
            raise EdgeNotFoundError(link_id)
        excluded_edges.update(e.id for e in links[link_id])

    remaining = [n.id for n in topology.nodes if n.id not in excluded_nodes]
    if not remaining:
        return ConnectivityResult(
            is_fully_connected=False,
            partitions=[],
            isolated_nodes=topology.node_ids,
        )

    graph = nx.Graph()
    graph.add_nodes_from(remaining)
    for edge in topology.edges:
        if edge.id in excluded_edges:
            continue
        if edge.source in excluded_nodes or edge.target in excluded_nodes:
            continue
        graph.add_edge(edge.source, edge.target)

    position = topology.node_position
    partitions = [
        sorted(component, key=position)
        for component in nx.connected_components(graph)
    ]
    partitions.sort(key=lambda p: position(p[0]))
    isolated = [p[0] for p in partitions if len(p) == 1]

    return ConnectivityResult(
        is_fully_connected=len(partitions) == 1,
        partitions=partitions,
        isolated_nodes=isolated,
    )
