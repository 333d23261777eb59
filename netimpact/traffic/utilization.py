"""
Link utilization from a traffic matrix

Each demand follows its canonical shortest path; load is summed per
directed edge and divided by the edge capacity.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from netimpact.config.settings import AnalysisConfig
from netimpact.spf.calculator import SPFCalculator
from netimpact.topology.models import Topology

logger = logging.getLogger("UtilizationCalculator")


@dataclass
class EdgeUtilization:
    """
    Load on one directed edge

    Attributes:
        edge_id: Directed edge id
        traffic_mbps: Demand routed over the edge
        capacity_mbps: Declared capacity, or the configured default
        raw_utilization: traffic / capacity, uncapped
    """
    edge_id: str
    traffic_mbps: float
    capacity_mbps: float
    raw_utilization: float

    @property
    def utilization(self) -> float:
        """Utilization capped at 1.0 for display"""
        return min(self.raw_utilization, 1.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edge_id": self.edge_id,
            "traffic_mbps": round(self.traffic_mbps, 2),
            "capacity_mbps": self.capacity_mbps,
            "utilization": round(self.utilization, 4),
            "raw_utilization": round(self.raw_utilization, 4),
        }


@dataclass
class UtilizationResult:
    """
    Network-wide utilization

    Attributes:
        edges: Per-edge load, in topology edge order
        max_utilization: Highest uncapped utilization
        avg_utilization: Mean uncapped utilization over all edges
        congested_edges: Edges above the congestion threshold
        underutilized_edges: Edges below the underutilization threshold
        routed_mbps: Demand placed on a path
        unroutable_mbps: Demand with no path
        unroutable_flows: (source, destination) pairs with no path
    """
    edges: Dict[str, EdgeUtilization] = field(default_factory=dict)
    max_utilization: float = 0.0
    avg_utilization: float = 0.0
    congested_edges: List[str] = field(default_factory=list)
    underutilized_edges: List[str] = field(default_factory=list)
    routed_mbps: float = 0.0
    unroutable_mbps: float = 0.0
    unroutable_flows: List[List[str]] = field(default_factory=list)

    def utilization_of(self, edge_id: str) -> float:
        return self.edges[edge_id].utilization

    def traffic_of(self, edge_id: str) -> float:
        return self.edges[edge_id].traffic_mbps

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edges": [e.to_dict() for e in self.edges.values()],
            "max_utilization": round(self.max_utilization, 4),
            "avg_utilization": round(self.avg_utilization, 4),
            "congested_edges": self.congested_edges,
            "underutilized_edges": self.underutilized_edges,
            "routed_mbps": round(self.routed_mbps, 2),
            "unroutable_mbps": round(self.unroutable_mbps, 2),
            "unroutable_flows": self.unroutable_flows,
        }


def calculate_utilization(topology: Topology,
                          matrix: Mapping[str, Mapping[str, float]],
                          default_capacity_mbps: Optional[float] = None,
                          config: Optional[AnalysisConfig] = None) -> UtilizationResult:
    """
    Route a traffic matrix over the snapshot and measure link load

    Args:
        topology: Snapshot carrying the traffic
        matrix: src -> dst -> Mbps
        default_capacity_mbps: Capacity of edges that declare none
        config: Thresholds and default capacity

    Returns:
        UtilizationResult

    Raises:
        NodeNotFoundError: the matrix names a router not in the topology
    """
    config = config or AnalysisConfig()
    capacity_default = default_capacity_mbps or config.default_capacity_mbps
    if capacity_default <= 0:
        raise ValueError("default_capacity_mbps must be positive")

    traffic: Dict[str, float] = {edge.id: 0.0 for edge in topology.edges}
    result = UtilizationResult()
    calculator = SPFCalculator(topology)

    for src, row in matrix.items():
        demands = {dst: mbps for dst, mbps in row.items() if dst != src and mbps > 0}
        if not demands:
            continue
        for dst in demands:
            topology.get_node(dst)

        # One tree per source serves every destination in the row
        tree = calculator.run(src)
        for dst, mbps in demands.items():
            if not tree.is_reachable(dst):
                result.unroutable_mbps += mbps
                result.unroutable_flows.append([src, dst])
                continue
            _, edge_ids = tree.canonical_path(dst)
            for edge_id in edge_ids:
                traffic[edge_id] += mbps
            result.routed_mbps += mbps

    if result.unroutable_flows:
        logger.warning(
            f"{len(result.unroutable_flows)} demands unroutable "
            f"({result.unroutable_mbps:.1f} Mbps dropped)"
        )

    for edge in topology.edges:
        capacity = edge.capacity_mbps or capacity_default
        load = traffic[edge.id]
        usage = EdgeUtilization(edge.id, load, capacity, load / capacity)
        result.edges[edge.id] = usage

        if usage.raw_utilization > config.congestion_threshold:
            result.congested_edges.append(edge.id)
        elif usage.raw_utilization < config.underutilized_threshold:
            result.underutilized_edges.append(edge.id)

    if result.edges:
        raw = [e.raw_utilization for e in result.edges.values()]
        result.max_utilization = max(raw)
        result.avg_utilization = sum(raw) / len(raw)

    logger.debug(
        f"Utilization: max {result.max_utilization:.2%}, avg {result.avg_utilization:.2%}, "
        f"{len(result.congested_edges)} congested"
    )
    return result
