"""
ECMP Analysis - Equal-cost path enumeration and load distribution

Provides:
- Bounded enumeration of every equal-cost node sequence
- Divergence / convergence point detection
- Path metrics (hops, bottleneck, latency estimate, diversity)
- Equal and capacity-weighted load balancing
- ECMP-critical node and edge detection
- Network-wide ECMP sampling (batched, cancellable)
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from netimpact.config.constants import (
    DEFAULT_MAX_ECMP_PATHS, COUNTRY_CONTINENTS, HOP_SWITCHING_MS,
    SAME_COUNTRY_HOP_MS, SAME_CONTINENT_HOP_MS, INTERCONTINENTAL_HOP_MS,
)
from netimpact.config.settings import AnalysisConfig
from netimpact.jobs import (
    CancellationToken, ProgressCallback, ProgressReporter, is_cancelled, iter_batches,
)
from netimpact.spf.calculator import SPFCalculator, SPFTree
from netimpact.topology.models import Topology

logger = logging.getLogger("ECMPAnalysis")

MAX_REPORTED_GROUPS = 10


@dataclass
class PathInfo:
    """One equal-cost path"""
    path_id: str
    node_sequence: List[str]
    edge_sequence: List[str]
    cost: int

    @property
    def hop_count(self) -> int:
        return max(0, len(self.node_sequence) - 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path_id": self.path_id,
            "node_sequence": self.node_sequence,
            "edge_sequence": self.edge_sequence,
            "cost": self.cost,
            "hop_count": self.hop_count,
        }


@dataclass
class ECMPPathResult:
    """
    Equal-cost paths between two nodes

    Attributes:
        source: Source node id
        destination: Destination node id
        paths: Distinct node sequences tying the minimum (capped)
        cost: Minimum cost
        is_ecmp: More than one node sequence ties the minimum
        divergence_points: Nodes where next hops differ across paths
        convergence_points: Nodes where previous hops differ across paths
    """
    source: str
    destination: str
    paths: List[PathInfo]
    cost: int
    is_ecmp: bool
    divergence_points: List[str] = field(default_factory=list)
    convergence_points: List[str] = field(default_factory=list)

    @property
    def path_count(self) -> int:
        return len(self.paths)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "destination": self.destination,
            "paths": [p.to_dict() for p in self.paths],
            "cost": self.cost,
            "is_ecmp": self.is_ecmp,
            "divergence_points": self.divergence_points,
            "convergence_points": self.convergence_points,
            "path_count": self.path_count,
        }


@dataclass
class PathMetrics:
    """Per-path quality metrics"""
    hop_count: int
    total_cost: int
    estimated_latency_ms: int
    min_bandwidth_mbps: float
    shared_link_count: int
    countries_traversed: List[str]
    diversity_score: int  # 0-100, share of links not used by sibling paths

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hop_count": self.hop_count,
            "total_cost": self.total_cost,
            "estimated_latency_ms": self.estimated_latency_ms,
            "min_bandwidth_mbps": self.min_bandwidth_mbps,
            "shared_link_count": self.shared_link_count,
            "countries_traversed": self.countries_traversed,
            "diversity_score": self.diversity_score,
        }


@dataclass
class LoadBalancingInfo:
    """Traffic share per path (percent) and per-path bottleneck capacity"""
    distribution: Dict[str, float] = field(default_factory=dict)
    per_path_capacity: Dict[str, float] = field(default_factory=dict)
    total_capacity: float = 0.0
    is_balanced: bool = True
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distribution": self.distribution,
            "per_path_capacity": self.per_path_capacity,
            "total_capacity": self.total_capacity,
            "is_balanced": self.is_balanced,
            "warnings": self.warnings,
        }


@dataclass
class ECMPGroup:
    """ECMP paths of one pair together with their load split"""
    group_id: str
    result: ECMPPathResult
    load_balancing: LoadBalancingInfo

    def to_dict(self) -> Dict[str, Any]:
        data = self.result.to_dict()
        data["group_id"] = self.group_id
        data["load_balancing"] = self.load_balancing.to_dict()
        return data


@dataclass
class CriticalElement:
    """Transit node or edge whose failure shrinks an ECMP group"""
    element_id: str
    label: str
    paths_affected: int
    would_break_ecmp: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "element_id": self.element_id,
            "label": self.label,
            "paths_affected": self.paths_affected,
            "would_break_ecmp": self.would_break_ecmp,
        }


@dataclass
class NetworkECMPAnalysis:
    """Network-wide ECMP sample"""
    ecmp_pairs: int = 0
    non_ecmp_pairs: int = 0
    unreachable_pairs: int = 0
    avg_path_count: float = 0.0
    max_path_count: int = 0
    ecmp_groups: List[ECMPGroup] = field(default_factory=list)
    sampled_pairs: int = 0
    complete: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ecmp_pairs": self.ecmp_pairs,
            "non_ecmp_pairs": self.non_ecmp_pairs,
            "unreachable_pairs": self.unreachable_pairs,
            "avg_path_count": round(self.avg_path_count, 2),
            "max_path_count": self.max_path_count,
            "ecmp_groups": [g.to_dict() for g in self.ecmp_groups],
            "sampled_pairs": self.sampled_pairs,
            "complete": self.complete,
        }


# ==================== Enumeration ====================

def enumerate_paths(tree: SPFTree, destination: str,
                    max_paths: int = DEFAULT_MAX_ECMP_PATHS) -> List[Tuple[List[str], List[str]]]:
    """
    Depth-first backward walk over the equal-cost predecessor map

    Each predecessor node is expanded once per partial path; parallel
    edges between the same two nodes contribute only their first-recorded
    edge. Predecessors always sit strictly closer to the source, so every
    branch ends at the source and the walk costs at most max_paths times
    the path length. The first path returned is always the canonical one.

    Args:
        tree: SPF tree rooted at the source
        destination: Target node
        max_paths: Stop after this many distinct node sequences

    Returns:
        List of (node sequence, edge sequence) in source -> destination order
    """
    if not tree.is_reachable(destination):
        return []

    paths: List[Tuple[List[str], List[str]]] = []
    stack: List[Tuple[str, List[str], List[str]]] = [(destination, [destination], [])]

    while stack and len(paths) < max_paths:
        node, node_path, edge_path = stack.pop()

        if node == tree.source:
            paths.append((list(reversed(node_path)), list(reversed(edge_path))))
            continue

        first_edge: Dict[str, str] = {}
        for pred in tree.predecessors.get(node, []):
            if pred.node not in node_path:
                first_edge.setdefault(pred.node, pred.edge_id)

        # Reversed push so the first-recorded predecessor is explored first
        for pred_node, edge_id in reversed(list(first_edge.items())):
            stack.append((pred_node, node_path + [pred_node], edge_path + [edge_id]))

    return paths


def analyze_divergence(paths: Sequence[PathInfo]) -> Tuple[List[str], List[str]]:
    """
    Find where equal-cost paths split apart and rejoin

    Returns:
        (divergence points, convergence points), in first-seen order
    """
    if len(paths) <= 1:
        return [], []

    next_hops: Dict[str, Set[str]] = {}
    prev_hops: Dict[str, Set[str]] = {}
    order: List[str] = []

    for path in paths:
        seq = path.node_sequence
        for i, node_id in enumerate(seq):
            if node_id not in next_hops:
                next_hops[node_id] = set()
                prev_hops[node_id] = set()
                order.append(node_id)
            if i < len(seq) - 1:
                next_hops[node_id].add(seq[i + 1])
            if i > 0:
                prev_hops[node_id].add(seq[i - 1])

    divergence = [n for n in order if len(next_hops[n]) > 1]
    convergence = [n for n in order if len(prev_hops[n]) > 1]
    return divergence, convergence


def ecmp_result_from_tree(tree: SPFTree, destination: str,
                          max_paths: int = DEFAULT_MAX_ECMP_PATHS) -> Optional[ECMPPathResult]:
    """Build the ECMP result for one destination of an existing SPF tree"""
    cost = tree.cost_to(destination)
    if cost is None:
        return None

    raw = enumerate_paths(tree, destination, max_paths)
    paths = [
        PathInfo(path_id=f"path-{i + 1}", node_sequence=nodes, edge_sequence=edges, cost=cost)
        for i, (nodes, edges) in enumerate(raw)
    ]
    divergence, convergence = analyze_divergence(paths)

    return ECMPPathResult(
        source=tree.source,
        destination=destination,
        paths=paths,
        cost=cost,
        is_ecmp=tree.is_ecmp(destination),
        divergence_points=divergence,
        convergence_points=convergence,
    )


def find_ecmp_paths(topology: Topology, source: str, destination: str,
                    max_paths: int = DEFAULT_MAX_ECMP_PATHS) -> Optional[ECMPPathResult]:
    """
    Enumerate every equal-cost path between two nodes

    Args:
        topology: Snapshot to analyze
        source: Source node id
        destination: Destination node id
        max_paths: Cap on enumerated node sequences

    Returns:
        ECMPPathResult, or None when destination is unreachable

    Raises:
        NodeNotFoundError: unknown source or destination
    """
    if max_paths < 1:
        raise ValueError("max_paths must be at least 1")
    tree = SPFCalculator(topology).run(source, destination)
    return ecmp_result_from_tree(tree, destination, max_paths)


# ==================== Metrics ====================

def _continent(country: Optional[str]) -> str:
    return COUNTRY_CONTINENTS.get(country or "", "UNKNOWN")


def calculate_path_metrics(path: PathInfo, topology: Topology,
                           other_paths: Sequence[PathInfo] = (),
                           default_capacity_mbps: Optional[float] = None) -> PathMetrics:
    """
    Compute quality metrics for one path

    Args:
        path: Path to measure
        topology: Snapshot the path belongs to
        other_paths: Sibling paths, for shared-link and diversity figures
        default_capacity_mbps: Capacity assumed for links without one
    """
    if default_capacity_mbps is None:
        default_capacity_mbps = AnalysisConfig().default_capacity_mbps

    edges = [topology.get_edge(e) for e in path.edge_sequence]
    nodes = [topology.get_node(n) for n in path.node_sequence]

    latency = max(0, len(nodes) - 1) * HOP_SWITCHING_MS
    for a, b in zip(nodes, nodes[1:]):
        if a.country and b.country and a.country != b.country:
            if _continent(a.country) != _continent(b.country):
                latency += INTERCONTINENTAL_HOP_MS
            else:
                latency += SAME_CONTINENT_HOP_MS
        else:
            latency += SAME_COUNTRY_HOP_MS

    capacities = [e.capacity_mbps or default_capacity_mbps for e in edges]

    countries: List[str] = []
    for node in nodes:
        if node.country and (not countries or countries[-1] != node.country):
            countries.append(node.country)

    others = [p for p in other_paths if p.path_id != path.path_id]
    other_edges: Set[str] = set()
    shared = 0
    for other in others:
        other_edges.update(other.edge_sequence)
        shared += sum(1 for e in other.edge_sequence if e in path.edge_sequence)

    if not others or not path.edge_sequence:
        diversity = 100
    else:
        unique = sum(1 for e in path.edge_sequence if e not in other_edges)
        diversity = round(unique / len(path.edge_sequence) * 100)

    return PathMetrics(
        hop_count=path.hop_count,
        total_cost=sum(e.cost for e in edges),
        estimated_latency_ms=latency,
        min_bandwidth_mbps=min(capacities) if capacities else 0,
        shared_link_count=shared,
        countries_traversed=countries,
        diversity_score=diversity,
    )


# ==================== Load balancing ====================

def calculate_load_balancing(result: ECMPPathResult, topology: Topology,
                             default_capacity_mbps: Optional[float] = None) -> LoadBalancingInfo:
    """
    Equal per-flow split across ECMP paths

    Warns about paths whose bottleneck is under half the average, and
    paths noticeably longer than their siblings.
    """
    info = LoadBalancingInfo()
    paths = result.paths
    if not paths:
        return info

    share = round(100 / len(paths), 2)
    metrics = {
        p.path_id: calculate_path_metrics(p, topology, paths, default_capacity_mbps)
        for p in paths
    }
    for path in paths:
        info.distribution[path.path_id] = share
        info.per_path_capacity[path.path_id] = metrics[path.path_id].min_bandwidth_mbps

    info.total_capacity = sum(info.per_path_capacity.values())
    avg_capacity = info.total_capacity / len(paths)
    avg_hops = sum(m.hop_count for m in metrics.values()) / len(paths)

    for path in paths:
        capacity = info.per_path_capacity[path.path_id]
        if capacity < avg_capacity * 0.5:
            info.warnings.append(
                f"Path {path.path_id} has low capacity ({capacity:.0f}Mbps) "
                f"compared to average ({avg_capacity:.0f}Mbps)"
            )
        if path.hop_count > avg_hops * 1.5:
            info.warnings.append(
                f"Path {path.path_id} has more hops ({path.hop_count}) than average ({avg_hops:.1f})"
            )

    if avg_capacity > 0:
        info.is_balanced = all(
            abs(c - avg_capacity) / avg_capacity < 0.3 for c in info.per_path_capacity.values()
        )
    return info


def calculate_weighted_load_balancing(result: ECMPPathResult, topology: Topology,
                                      default_capacity_mbps: Optional[float] = None) -> LoadBalancingInfo:
    """Split proportional to each path's bottleneck capacity"""
    info = LoadBalancingInfo()
    paths = result.paths
    if not paths:
        return info

    for path in paths:
        metrics = calculate_path_metrics(path, topology, (), default_capacity_mbps)
        info.per_path_capacity[path.path_id] = metrics.min_bandwidth_mbps
    info.total_capacity = sum(info.per_path_capacity.values())

    for path in paths:
        if info.total_capacity > 0:
            share = info.per_path_capacity[path.path_id] / info.total_capacity * 100
        else:
            share = 100 / len(paths)
        info.distribution[path.path_id] = round(share, 2)

    avg_share = 100 / len(paths)
    info.is_balanced = all(abs(s - avg_share) < 20 for s in info.distribution.values())
    if not info.is_balanced:
        info.warnings.append("Load distribution is uneven due to capacity differences")
    return info


def create_ecmp_group(topology: Topology, result: ECMPPathResult) -> ECMPGroup:
    return ECMPGroup(
        group_id=f"ecmp-{result.source}-{result.destination}",
        result=result,
        load_balancing=calculate_load_balancing(result, topology),
    )


# ==================== Critical elements ====================

def _breaks(before: ECMPPathResult, after: Optional[ECMPPathResult]) -> bool:
    return after is None or not after.is_ecmp or after.path_count < before.path_count


def find_ecmp_critical_nodes(topology: Topology, result: ECMPPathResult) -> List[CriticalElement]:
    """
    Transit nodes of an ECMP group, ranked by how many paths they carry

    Each node is removed in turn and the pair recomputed.
    """
    transit: List[str] = []
    for path in result.paths:
        for node_id in path.node_sequence[1:-1]:
            if node_id not in transit:
                transit.append(node_id)

    critical = []
    for node_id in transit:
        reduced = topology.without(nodes=[node_id])
        after = find_ecmp_paths(reduced, result.source, result.destination, max(2, result.path_count))
        affected = sum(1 for p in result.paths if node_id in p.node_sequence)
        critical.append(CriticalElement(
            element_id=node_id,
            label=topology.get_node(node_id).label,
            paths_affected=affected,
            would_break_ecmp=_breaks(result, after),
        ))

    critical.sort(key=lambda c: -c.paths_affected)
    return critical


def find_ecmp_critical_edges(topology: Topology, result: ECMPPathResult) -> List[CriticalElement]:
    """Edges of an ECMP group, ranked by how many paths use them"""
    used: List[str] = []
    for path in result.paths:
        for edge_id in path.edge_sequence:
            if edge_id not in used:
                used.append(edge_id)

    critical = []
    for edge_id in used:
        edge = topology.get_edge(edge_id)
        reduced = topology.without(edges=[edge_id])
        after = find_ecmp_paths(reduced, result.source, result.destination, max(2, result.path_count))
        critical.append(CriticalElement(
            element_id=edge_id,
            label=f"{topology.get_node(edge.source).label} -> {topology.get_node(edge.target).label}",
            paths_affected=sum(1 for p in result.paths if edge_id in p.edge_sequence),
            would_break_ecmp=_breaks(result, after),
        ))

    critical.sort(key=lambda c: -c.paths_affected)
    return critical


# ==================== Network-wide sampling ====================

class NetworkECMPSampler:
    """
    Samples unordered node pairs and measures ECMP coverage

    Work is processed in batches; the cancellation token is checked and
    progress reported between batches.
    """

    def __init__(self, topology: Topology, config: Optional[AnalysisConfig] = None):
        self.topology = topology
        self.config = config or AnalysisConfig()
        self.calculator = SPFCalculator(topology)

    def sample_pairs(self, sample_size: int, seed: Optional[int] = None) -> List[Tuple[str, str]]:
        ids = self.topology.node_ids
        pairs = [(ids[i], ids[j]) for i in range(len(ids)) for j in range(i + 1, len(ids))]
        if sample_size >= len(pairs):
            return pairs
        return random.Random(seed).sample(pairs, sample_size)

    def _process(self, pair: Tuple[str, str], analysis: NetworkECMPAnalysis,
                 trees: Dict[str, SPFTree], totals: List[int]) -> None:
        src, dst = pair
        tree = trees.get(src)
        if tree is None:
            tree = trees[src] = self.calculator.run(src)

        result = ecmp_result_from_tree(tree, dst, self.config.max_ecmp_paths)
        if result is None:
            analysis.unreachable_pairs += 1
            return

        totals[0] += result.path_count
        analysis.max_path_count = max(analysis.max_path_count, result.path_count)
        if result.is_ecmp:
            analysis.ecmp_pairs += 1
            if len(analysis.ecmp_groups) < MAX_REPORTED_GROUPS:
                analysis.ecmp_groups.append(create_ecmp_group(self.topology, result))
        else:
            analysis.non_ecmp_pairs += 1

    def _finish(self, analysis: NetworkECMPAnalysis, totals: List[int]) -> NetworkECMPAnalysis:
        checked = analysis.ecmp_pairs + analysis.non_ecmp_pairs
        analysis.avg_path_count = totals[0] / checked if checked else 0.0
        logger.info(
            f"ECMP sample: {analysis.sampled_pairs} pairs, {analysis.ecmp_pairs} ECMP, "
            f"complete={analysis.complete}"
        )
        return analysis

    def run(self, sample_size: Optional[int] = None, seed: Optional[int] = None,
            cancel_token: Optional[CancellationToken] = None,
            progress_callback: Optional[ProgressCallback] = None) -> NetworkECMPAnalysis:
        """
        Sample the network synchronously

        Returns:
            NetworkECMPAnalysis, complete=False if cancelled
        """
        size = self.config.ecmp_sample_size if sample_size is None else sample_size
        pairs = self.sample_pairs(size, seed)
        reporter = ProgressReporter(len(pairs), progress_callback)
        analysis = NetworkECMPAnalysis()
        trees: Dict[str, SPFTree] = {}
        totals = [0]

        for batch in iter_batches(pairs, self.config.batch_size):
            if is_cancelled(cancel_token):
                analysis.complete = False
                logger.warning(f"ECMP sample cancelled after {analysis.sampled_pairs} pairs")
                break
            for pair in batch:
                self._process(pair, analysis, trees, totals)
            analysis.sampled_pairs += len(batch)
            reporter.report(analysis.sampled_pairs)

        if analysis.complete:
            reporter.finish()
        return self._finish(analysis, totals)

    async def run_async(self, sample_size: Optional[int] = None, seed: Optional[int] = None,
                        cancel_token: Optional[CancellationToken] = None,
                        progress_callback: Optional[ProgressCallback] = None) -> NetworkECMPAnalysis:
        """Same as run(), yielding to the event loop between batches"""
        size = self.config.ecmp_sample_size if sample_size is None else sample_size
        pairs = self.sample_pairs(size, seed)
        reporter = ProgressReporter(len(pairs), progress_callback)
        analysis = NetworkECMPAnalysis()
        trees: Dict[str, SPFTree] = {}
        totals = [0]

        for batch in iter_batches(pairs, self.config.batch_size):
            if is_cancelled(cancel_token):
                analysis.complete = False
                logger.warning(f"ECMP sample cancelled after {analysis.sampled_pairs} pairs")
                break
            for pair in batch:
                self._process(pair, analysis, trees, totals)
            analysis.sampled_pairs += len(batch)
            reporter.report(analysis.sampled_pairs)
            await asyncio.sleep(0)

        if analysis.complete:
            reporter.finish()
        return self._finish(analysis, totals)


def analyze_network_ecmp(topology: Topology, sample_size: Optional[int] = None,
                         seed: Optional[int] = None,
                         config: Optional[AnalysisConfig] = None,
                         cancel_token: Optional[CancellationToken] = None,
                         progress_callback: Optional[ProgressCallback] = None) -> NetworkECMPAnalysis:
    """Sample node pairs and summarize ECMP coverage"""
    sampler = NetworkECMPSampler(topology, config)
    return sampler.run(sample_size, seed, cancel_token, progress_callback)
