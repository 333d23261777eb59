"""
SPF (Shortest Path First) Calculation with equal-cost predecessors

Dijkstra's algorithm over the directed topology, keeping every
equal-cost predecessor of a node instead of a single parent. The
predecessor map is what the ECMP features (subgraph extraction, path
enumeration, divergence detection) are built from.
"""

import heapq
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from netimpact.topology.models import Topology

logger = logging.getLogger("SPFCalculator")


@dataclass(frozen=True)
class Predecessor:
    """One equal-cost way into a node: the previous node and the edge used"""
    node: str
    edge_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"node": self.node, "edge_id": self.edge_id}


@dataclass
class PathResult:
    """
    Shortest path between two nodes

    Attributes:
        source: Source node id
        destination: Destination node id
        canonical_path: Representative path (first predecessor at each hop)
        canonical_edges: Edge ids along the canonical path
        edges: Every edge on some minimum-cost path, in discovery order
        cost: Total path cost
        is_ecmp: More than one node sequence ties the minimum cost
        steps: Forward wave layers through the ECMP subgraph
    """
    source: str
    destination: str
    canonical_path: List[str]
    canonical_edges: List[str]
    edges: List[str]
    cost: int
    is_ecmp: bool = False
    steps: List[List[str]] = field(default_factory=list)

    @property
    def hop_count(self) -> int:
        return max(0, len(self.canonical_path) - 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "destination": self.destination,
            "canonical_path": self.canonical_path,
            "canonical_edges": self.canonical_edges,
            "edges": self.edges,
            "cost": self.cost,
            "is_ecmp": self.is_ecmp,
            "hop_count": self.hop_count,
            "steps": self.steps,
        }


class SPFTree:
    """
    Result of one single-source SPF run

    distances holds the final cost of every settled node. predecessors
    maps node id -> list of equal-cost Predecessor records, in the order
    they were discovered.
    """

    def __init__(self, source: str, distances: Dict[str, int],
                 predecessors: Dict[str, List[Predecessor]], complete: bool = True):
        self.source = source
        self.distances = distances
        self.predecessors = predecessors
        self.complete = complete

    def __repr__(self) -> str:
        return f"SPFTree(source={self.source}, reached={len(self.distances)})"

    def is_reachable(self, destination: str) -> bool:
        return destination in self.distances

    def cost_to(self, destination: str) -> Optional[int]:
        return self.distances.get(destination)

    def canonical_path(self, destination: str) -> Tuple[List[str], List[str]]:
        """
        Follow the first-recorded predecessor back to the source

        Returns:
            (node ids, edge ids), both empty if unreachable
        """
        if destination not in self.distances:
            return [], []

        nodes = [destination]
        edges: List[str] = []
        current = destination
        while current != self.source:
            pred = self.predecessors[current][0]
            edges.append(pred.edge_id)
            nodes.append(pred.node)
            current = pred.node

        nodes.reverse()
        edges.reverse()
        return nodes, edges

    def _backward(self, destination: str) -> Tuple[List[str], List[str]]:
        """Breadth-first walk over every predecessor, from destination"""
        seen_nodes = {destination}
        node_order = [destination]
        edge_order: List[str] = []
        seen_edges: Set[str] = set()
        queue = deque([destination])

        while queue:
            current = queue.popleft()
            for pred in self.predecessors.get(current, []):
                if pred.edge_id not in seen_edges:
                    seen_edges.add(pred.edge_id)
                    edge_order.append(pred.edge_id)
                if pred.node not in seen_nodes:
                    seen_nodes.add(pred.node)
                    node_order.append(pred.node)
                    queue.append(pred.node)

        return node_order, edge_order

    def ecmp_edges(self, destination: str) -> List[str]:
        """All edges lying on some minimum-cost path to destination"""
        if destination not in self.distances:
            return []
        return self._backward(destination)[1]

    def is_ecmp(self, destination: str) -> bool:
        """
        True when two or more node sequences tie the minimum cost

        That holds exactly when some node of the ECMP subgraph has
        predecessors from at least two different nodes. Parallel edges
        between the same pair of nodes do not count.
        """
        if destination not in self.distances:
            return False
        nodes, _ = self._backward(destination)
        for node_id in nodes:
            preds = self.predecessors.get(node_id, [])
            if len({p.node for p in preds}) > 1:
                return True
        return False

    def steps(self, destination: str) -> List[List[str]]:
        """Hop-by-hop wave layers through the ECMP subgraph"""
        if destination not in self.distances:
            return []

        nodes, _ = self._backward(destination)
        in_subgraph = set(nodes)
        successors: Dict[str, List[str]] = {}
        for node_id in nodes:
            for pred in self.predecessors.get(node_id, []):
                if pred.node in in_subgraph:
                    successors.setdefault(pred.node, []).append(node_id)

        layers = [[self.source]]
        visited = {self.source}
        while True:
            layer: List[str] = []
            for node_id in layers[-1]:
                for nxt in successors.get(node_id, []):
                    if nxt not in visited:
                        visited.add(nxt)
                        layer.append(nxt)
            if not layer:
                break
            layers.append(layer)
        return layers

    def path_to(self, destination: str, include_steps: bool = True) -> Optional[PathResult]:
        """
        Build the PathResult for one destination

        Returns:
            PathResult, or None when destination is unreachable
        """
        if destination not in self.distances:
            return None

        nodes, edges = self.canonical_path(destination)
        return PathResult(
            source=self.source,
            destination=destination,
            canonical_path=nodes,
            canonical_edges=edges,
            edges=self.ecmp_edges(destination),
            cost=self.distances[destination],
            is_ecmp=self.is_ecmp(destination),
            steps=self.steps(destination) if include_steps else [],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "distances": dict(self.distances),
            "predecessors": {
                node_id: [p.to_dict() for p in preds]
                for node_id, preds in self.predecessors.items()
            },
            "complete": self.complete,
        }


class SPFCalculator:
    """
    Shortest path calculator for one topology snapshot

    The adjacency is built once when the calculator is created and reused
    for every run.
    """

    def __init__(self, topology: Topology):
        """
        Initialize SPF calculator

        Args:
            topology: Snapshot to compute paths on
        """
        self.topology = topology
        self.graph = topology.directed_graph()
        self._spf_runs = 0
        self._total_spf_time_ms = 0.0

    def run(self, source: str, destination: Optional[str] = None) -> SPFTree:
        """
        Run single-source SPF

        Args:
            source: Root of the tree
            destination: Stop as soon as this node is settled

        Returns:
            SPFTree with distances and equal-cost predecessors

        Raises:
            NodeNotFoundError: unknown source or destination
        """
        self.topology.get_node(source)
        if destination is not None:
            self.topology.get_node(destination)

        start_time = datetime.now()
        position = self.topology.node_position

        distances: Dict[str, int] = {source: 0}
        predecessors: Dict[str, List[Predecessor]] = {source: []}
        settled: Set[str] = set()
        # Ties on distance are broken by node input order
        pq: List[Tuple[int, int, str]] = [(0, position(source), source)]
        stopped_early = False

        while pq:
            dist, _, current = heapq.heappop(pq)
            if current in settled or dist > distances[current]:
                continue
            settled.add(current)

            if current == destination:
                stopped_early = True
                break

            for _, neighbor, edge_id, cost in self.graph.out_edges(current, keys=True, data="weight"):
                if neighbor in settled:
                    continue
                new_dist = dist + cost
                known = distances.get(neighbor)
                if known is None or new_dist < known:
                    distances[neighbor] = new_dist
                    predecessors[neighbor] = [Predecessor(current, edge_id)]
                    heapq.heappush(pq, (new_dist, position(neighbor), neighbor))
                elif new_dist == known:
                    predecessors[neighbor].append(Predecessor(current, edge_id))

        # Only settled nodes have final distances
        final = {n: d for n, d in distances.items() if n in settled}
        final_preds = {n: predecessors[n] for n in final}

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
        self._spf_runs += 1
        self._total_spf_time_ms += elapsed_ms
        logger.debug(f"SPF from {source}: {len(final)} nodes settled, {elapsed_ms:.2f}ms")

        return SPFTree(source, final, final_preds, complete=not stopped_early)

    def shortest_path(self, source: str, destination: str,
                      include_steps: bool = True) -> Optional[PathResult]:
        """
        Shortest path and ECMP subgraph between two nodes

        Returns:
            PathResult, or None when destination is unreachable
        """
        tree = self.run(source, destination)
        return tree.path_to(destination, include_steps=include_steps)

    def get_statistics(self) -> Dict[str, Any]:
        avg = self._total_spf_time_ms / self._spf_runs if self._spf_runs else 0.0
        return {
            "spf_runs": self._spf_runs,
            "total_spf_time_ms": round(self._total_spf_time_ms, 2),
            "avg_spf_time_ms": round(avg, 2),
            "nodes": self.topology.node_count,
            "edges": self.topology.edge_count,
        }


def shortest_path(topology: Topology, source: str, destination: str) -> Optional[PathResult]:
    """Shortest path between two nodes of a snapshot (None if unreachable)"""
    return SPFCalculator(topology).shortest_path(source, destination)
