"""
Single Point of Failure Detection

Takes every physical link, then every router, out of the topology one at a
time and checks what is left with the connectivity analyzer. Elements whose
loss partitions the network or strands a router are ranked by severity.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from netimpact.config.settings import AnalysisConfig
from netimpact.jobs import (
    CancellationToken, ProgressCallback, ProgressReporter, is_cancelled, iter_batches,
)
from netimpact.resilience.connectivity import ConnectivityResult, analyze_connectivity
from netimpact.topology.models import Node, Topology

logger = logging.getLogger("SPOFDetector")


class Severity(Enum):
    """SPOF severity tiers"""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


@dataclass
class SPOF:
    """
    Element whose failure fragments the network

    Attributes:
        element_id: Node id or physical link id
        element_type: "node" or "edge"
        label: Display label
        nodes_isolated: Routers cut off (a failed router counts itself)
        partition_count: Components left after the failure
        partition_sizes: Size of each component
        paths_affected: Estimated ordered pairs that lose connectivity
        severity: Severity tier
        recommendation: Suggested remediation
    """
    element_id: str
    element_type: str
    label: str
    nodes_isolated: int
    partition_count: int
    partition_sizes: List[int]
    paths_affected: int
    severity: Severity
    recommendation: str = ""

    @property
    def causes_partition(self) -> bool:
        return self.partition_count > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "element_id": self.element_id,
            "element_type": self.element_type,
            "label": self.label,
            "nodes_isolated": self.nodes_isolated,
            "partition_count": self.partition_count,
            "partition_sizes": self.partition_sizes,
            "causes_partition": self.causes_partition,
            "paths_affected": self.paths_affected,
            "severity": self.severity.value,
            "recommendation": self.recommendation,
        }


@dataclass
class SPOFScan:
    """Outcome of a SPOF scan, possibly cut short by cancellation"""
    spofs: List[SPOF] = field(default_factory=list)
    complete: bool = True
    elements_checked: int = 0
    elements_total: int = 0

    def by_severity(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for spof in self.spofs:
            counts[spof.severity.value] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spofs": [s.to_dict() for s in self.spofs],
            "complete": self.complete,
            "elements_checked": self.elements_checked,
            "elements_total": self.elements_total,
            "by_severity": self.by_severity(),
        }


def estimate_affected_paths(connectivity: ConnectivityResult, node_count: int) -> int:
    """
    Ordered node pairs that can no longer reach each other

    Cross-partition pairs count twice (once per direction). A network
    that stays in one piece is charged for its isolated routers instead.
    """
    if connectivity.is_fully_connected:
        return len(connectivity.isolated_nodes) * (node_count - 1) * 2

    sizes = connectivity.partition_sizes
    affected = 0
    for i in range(len(sizes)):
        for j in range(i + 1, len(sizes)):
            affected += sizes[i] * sizes[j] * 2
    return affected


def classify_severity(connectivity: ConnectivityResult, paths_affected: int,
                      total_paths: int) -> Severity:
    percent = paths_affected / total_paths * 100 if total_paths > 0 else 0.0
    partitions = connectivity.component_count

    if partitions > 2 or percent > 50:
        return Severity.CRITICAL
    if partitions == 2 or percent > 25:
        return Severity.HIGH
    if connectivity.isolated_nodes or percent > 10:
        return Severity.MEDIUM
    return Severity.LOW


def _region(node: Optional[Node]) -> str:
    return node.country_or_unknown if node is not None else "Unknown"


class SPOFDetector:
    """
    Ranks nodes and links by how badly their loss fragments the network
    """

    def __init__(self, topology: Topology, config: Optional[AnalysisConfig] = None):
        self.topology = topology
        self.config = config or AnalysisConfig()

    def _elements(self, include_nodes: bool, include_edges: bool) -> List[Tuple[str, str]]:
        elements: List[Tuple[str, str]] = []
        if include_edges:
            elements.extend(("edge", link_id) for link_id in self.topology.links())
        if include_nodes:
            elements.extend(("node", node_id) for node_id in self.topology.node_ids)
        return elements

    def check_link(self, link_id: str) -> Optional[SPOF]:
        """SPOF record for one physical link, or None if it is redundant"""
        connectivity = analyze_connectivity(self.topology, exclude_links=[link_id])
        if connectivity.is_fully_connected and not connectivity.isolated_nodes:
            return None

        first = self.topology.links()[link_id][0]
        src = self.topology.get_node(first.source)
        dst = self.topology.get_node(first.target)
        affected = estimate_affected_paths(connectivity, self.topology.node_count)

        return SPOF(
            element_id=link_id,
            element_type="edge",
            label=f"{src.label} <-> {dst.label}",
            nodes_isolated=len(connectivity.isolated_nodes),
            partition_count=connectivity.component_count,
            partition_sizes=connectivity.partition_sizes,
            paths_affected=affected,
            severity=classify_severity(connectivity, affected, self.topology.total_pairs),
            recommendation=(
                f"Add redundant link between {_region(src)} and {_region(dst)} "
                f"regions to eliminate this SPOF"
            ),
        )

    def check_node(self, node_id: str) -> Optional[SPOF]:
        """SPOF record for one router, or None if its loss is absorbed"""
        connectivity = analyze_connectivity(self.topology, exclude_nodes=[node_id])
        if connectivity.is_fully_connected and not connectivity.isolated_nodes:
            return None

        node = self.topology.get_node(node_id)
        affected = estimate_affected_paths(connectivity, self.topology.node_count)

        return SPOF(
            element_id=node_id,
            element_type="node",
            label=node.label,
            nodes_isolated=len(connectivity.isolated_nodes) + 1,
            partition_count=connectivity.component_count,
            partition_sizes=connectivity.partition_sizes,
            paths_affected=affected,
            severity=classify_severity(connectivity, affected, self.topology.total_pairs),
            recommendation=f"Deploy redundant router in {_region(node)} region or add bypass links",
        )

    def scan(self, include_nodes: bool = True, include_edges: bool = True,
             max_results: Optional[int] = None,
             cancel_token: Optional[CancellationToken] = None,
             progress_callback: Optional[ProgressCallback] = None) -> SPOFScan:
        """
        Test every element and rank the SPOFs found

        Args:
            include_nodes: Test router failures
            include_edges: Test link failures
            max_results: Keep at most this many (default from config)
            cancel_token: Checked between batches
            progress_callback: Receives (checked, total, percent)

        Returns:
            SPOFScan sorted by severity then paths affected
        """
        limit = self.config.max_spofs if max_results is None else max_results
        elements = self._elements(include_nodes, include_edges)
        reporter = ProgressReporter(len(elements), progress_callback)
        scan = SPOFScan(elements_total=len(elements))

        logger.info(f"SPOF scan started: {len(elements)} elements")

        found: List[SPOF] = []
        for batch in iter_batches(elements, self.config.batch_size):
            if is_cancelled(cancel_token):
                scan.complete = False
                logger.warning(f"SPOF scan cancelled after {scan.elements_checked} elements")
                break
            for kind, element_id in batch:
                spof = self.check_link(element_id) if kind == "edge" else self.check_node(element_id)
                if spof is not None:
                    logger.debug(f"SPOF {kind} {element_id}: {spof.severity.value}")
                    found.append(spof)
            scan.elements_checked += len(batch)
            reporter.report(scan.elements_checked)

        if scan.complete:
            reporter.finish()

        found.sort(key=lambda s: (s.severity.rank, -s.paths_affected))
        scan.spofs = found[:limit]

        logger.info(f"SPOF scan finished: {len(found)} found, complete={scan.complete}")
        return scan


def detect_spofs(topology: Topology, include_nodes: bool = True, include_edges: bool = True,
                 max_results: Optional[int] = None,
                 config: Optional[AnalysisConfig] = None,
                 cancel_token: Optional[CancellationToken] = None,
                 progress_callback: Optional[ProgressCallback] = None) -> SPOFScan:
    """Run a SPOF scan over a snapshot"""
    detector = SPOFDetector(topology, config)
    return detector.scan(include_nodes, include_edges, max_results, cancel_token, progress_callback)
