"""
Failure Simulation - What breaks when routers or links go down

Provides:
- Failure impact metrics (broken vs reroutable paths, convergence)
- Sampled concrete flows showing reroutes and breakage
- Operator recommendations for the failure
- Quick single-element assessment
- Cascade simulation (stranded routers take their links down)
"""

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from netimpact.config.settings import AnalysisConfig
from netimpact.resilience.connectivity import ConnectivityResult, analyze_connectivity
from netimpact.resilience.spof import Severity
from netimpact.spf.calculator import SPFCalculator
from netimpact.spf.convergence import estimate_spf_convergence_seconds
from netimpact.topology.models import Topology

logger = logging.getLogger("FailureSimulator")

# Share of all paths assumed to cross a failed link, for the rough estimate
EDGE_FAILURE_PATH_SHARE = 0.1
DEFAULT_FLOW_SAMPLE = 20


class FlowStatus(Enum):
    """Fate of a sampled flow"""
    BROKEN = "broken"
    REROUTED = "rerouted"
    UNAFFECTED = "unaffected"


_STATUS_ORDER = {FlowStatus.BROKEN: 0, FlowStatus.REROUTED: 1, FlowStatus.UNAFFECTED: 2}


@dataclass
class FailureImpactMetrics:
    """
    Network-level consequences of a failure

    Attributes:
        paths_affected: Estimated ordered pairs touched by the failure
        total_paths: N * (N - 1)
        convergence_seconds: OSPF convergence estimate
        isolated_nodes: Routers left without any neighbor
        partition_count: Components after the failure
        reroutable_paths: Affected pairs that still have a route
        broken_paths: Pairs split across partitions
        affected_countries: Countries of the failed elements
    """
    paths_affected: int
    total_paths: int
    convergence_seconds: float
    isolated_nodes: List[str] = field(default_factory=list)
    partition_count: int = 1
    reroutable_paths: int = 0
    broken_paths: int = 0
    affected_countries: List[str] = field(default_factory=list)

    @property
    def percent_affected(self) -> float:
        if self.total_paths <= 0:
            return 0.0
        return self.paths_affected / self.total_paths * 100

    @property
    def is_partitioned(self) -> bool:
        return self.partition_count > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paths_affected": self.paths_affected,
            "total_paths": self.total_paths,
            "percent_affected": round(self.percent_affected, 2),
            "convergence_seconds": self.convergence_seconds,
            "isolated_nodes": self.isolated_nodes,
            "is_partitioned": self.is_partitioned,
            "partition_count": self.partition_count,
            "reroutable_paths": self.reroutable_paths,
            "broken_paths": self.broken_paths,
            "affected_countries": self.affected_countries,
        }


@dataclass
class AffectedFlow:
    """Sampled flow and what the failure did to it"""
    source: str
    destination: str
    old_path: List[str]
    new_path: Optional[List[str]]
    old_cost: Optional[int]
    new_cost: Optional[int]
    status: FlowStatus

    @property
    def cost_delta(self) -> Optional[int]:
        if self.old_cost is None or self.new_cost is None:
            return None
        return self.new_cost - self.old_cost

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "destination": self.destination,
            "old_path": self.old_path,
            "new_path": self.new_path,
            "old_cost": self.old_cost,
            "new_cost": self.new_cost,
            "cost_delta": self.cost_delta,
            "status": self.status.value,
        }


@dataclass
class FailureSimulationResult:
    """Complete failure simulation output"""
    failed_nodes: List[str]
    failed_links: List[str]
    metrics: FailureImpactMetrics
    connectivity: ConnectivityResult
    affected_flows: List[AffectedFlow] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "failed_nodes": self.failed_nodes,
            "failed_links": self.failed_links,
            "metrics": self.metrics.to_dict(),
            "connectivity": self.connectivity.to_dict(),
            "affected_flows": [f.to_dict() for f in self.affected_flows],
            "recommendations": self.recommendations,
        }


@dataclass
class QuickAssessment:
    """One-element failure verdict"""
    severity: Severity
    summary: str
    would_partition: bool
    isolated_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "summary": self.summary,
            "would_partition": self.would_partition,
            "isolated_count": self.isolated_count,
        }


@dataclass
class CascadeStep:
    step: int
    failed: List[str]
    metrics: FailureImpactMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "failed": self.failed, "metrics": self.metrics.to_dict()}


@dataclass
class CascadeResult:
    """Chain of failures triggered by stranded routers"""
    steps: List[CascadeStep]
    total_failed_links: List[str]
    final_metrics: FailureImpactMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "total_failed_links": self.total_failed_links,
            "final_metrics": self.final_metrics.to_dict(),
        }


def _check_ids(topology: Topology, failed_nodes: Iterable[str],
               failed_links: Iterable[str]) -> None:
    for node_id in failed_nodes:
        topology.get_node(node_id)
    links = topology.links()
    for link_id in failed_links:
        if link_id not in links:
            # Directed edge ids are accepted too
            topology.get_edge(link_id)


def _link_ids(topology: Topology, ids: Iterable[str]) -> List[str]:
    """Normalize directed edge ids to their physical link ids"""
    links = topology.links()
    result: List[str] = []
    for element_id in ids:
        link_id = element_id if element_id in links else topology.get_edge(element_id).link_id
        if link_id not in result:
            result.append(link_id)
    return result


def calculate_failure_impact(topology: Topology, failed_nodes: Iterable[str] = (),
                             failed_links: Iterable[str] = (),
                             config: Optional[AnalysisConfig] = None) -> FailureImpactMetrics:
    """
    Estimate the impact of failing routers and links

    Broken paths are exact (cross-partition pairs). Paths affected is a
    degree-based estimate, as a full recomputation is the job of the
    change-impact simulator.
    """
    failed_nodes = list(failed_nodes)
    failed_links = _link_ids(topology, failed_links)
    n = topology.node_count
    total_paths = topology.total_pairs

    connectivity = analyze_connectivity(topology, exclude_nodes=failed_nodes,
                                        exclude_links=failed_links)

    affected = 0
    for node_id in failed_nodes:
        degree = len(topology.incident_edges(node_id))
        affected += min(degree * (n - 1), total_paths)
    affected += len(failed_links) * math.floor(total_paths * EDGE_FAILURE_PATH_SHARE)
    affected = min(affected, total_paths)

    broken = 0
    if not connectivity.is_fully_connected:
        sizes = connectivity.partition_sizes
        for i in range(len(sizes)):
            for j in range(i + 1, len(sizes)):
                broken += sizes[i] * sizes[j] * 2
        reroutable = max(0, affected - broken)
    else:
        reroutable = affected

    countries: List[str] = []
    links = topology.links()
    touched = list(failed_nodes)
    for link_id in failed_links:
        edge = links[link_id][0]
        touched.extend([edge.source, edge.target])
    for node_id in touched:
        country = topology.get_node(node_id).country
        if country and country not in countries:
            countries.append(country)

    return FailureImpactMetrics(
        paths_affected=affected,
        total_paths=total_paths,
        convergence_seconds=estimate_spf_convergence_seconds(
            n, len(failed_nodes) + len(failed_links), config),
        isolated_nodes=connectivity.isolated_nodes,
        partition_count=connectivity.component_count,
        reroutable_paths=reroutable,
        broken_paths=broken,
        affected_countries=countries,
    )


def sample_affected_flows(topology: Topology, failed_nodes: Iterable[str] = (),
                          failed_links: Iterable[str] = (),
                          sample_size: int = DEFAULT_FLOW_SAMPLE,
                          seed: Optional[int] = None) -> List[AffectedFlow]:
    """
    Pick random surviving pairs and report the ones the failure touches

    Returns:
        Flows sorted broken first, then rerouted
    """
    failed_node_set = set(failed_nodes)
    link_ids = _link_ids(topology, failed_links)
    after = topology.without(nodes=failed_node_set, links=link_ids)
    failed_edge_set: Set[str] = {e.id for e in topology.edges} - {e.id for e in after.edges}

    survivors = after.node_ids
    if len(survivors) < 2:
        return []

    rng = random.Random(seed)
    before_calc = SPFCalculator(topology)
    after_calc = SPFCalculator(after)
    flows: List[AffectedFlow] = []
    seen: Set[tuple] = set()

    attempts = min(sample_size * 3, len(survivors) * 2)
    for _ in range(attempts):
        if len(flows) >= sample_size:
            break
        src, dst = rng.sample(survivors, 2)
        if (src, dst) in seen:
            continue
        seen.add((src, dst))

        old = before_calc.shortest_path(src, dst, include_steps=False)
        new = after_calc.shortest_path(src, dst, include_steps=False)

        was_affected = old is not None and (
            any(node_id in failed_node_set for node_id in old.canonical_path)
            or any(edge_id in failed_edge_set for edge_id in old.edges)
        )
        if new is None:
            status = FlowStatus.BROKEN
        elif was_affected:
            status = FlowStatus.REROUTED
        else:
            continue

        flows.append(AffectedFlow(
            source=src,
            destination=dst,
            old_path=old.canonical_path if old else [],
            new_path=new.canonical_path if new else None,
            old_cost=old.cost if old else None,
            new_cost=new.cost if new else None,
            status=status,
        ))

    flows.sort(key=lambda f: _STATUS_ORDER[f.status])
    return flows


def generate_failure_recommendations(metrics: FailureImpactMetrics,
                                     connectivity: ConnectivityResult) -> List[str]:
    recommendations: List[str] = []

    if connectivity.component_count > 1:
        recommendations.append(
            f"CRITICAL: Network is partitioned into {connectivity.component_count} segments. "
            f"Immediate action required."
        )
        sizes = sorted(connectivity.partition_sizes, reverse=True)
        recommendations.append(
            f"Priority: Reconnect main network ({sizes[0]} nodes) with isolated segment ({sizes[1]} nodes)"
        )

    if metrics.isolated_nodes:
        if len(metrics.isolated_nodes) > 5:
            recommendations.append(
                f"{len(metrics.isolated_nodes)} nodes are completely isolated. Restore connectivity urgently."
            )
        else:
            recommendations.append(
                f"Isolated nodes: {', '.join(metrics.isolated_nodes)}. Restore connectivity."
            )

    if metrics.broken_paths > 0:
        pct = metrics.broken_paths / metrics.total_paths * 100 if metrics.total_paths else 0.0
        if pct > 20:
            recommendations.append(
                f"{metrics.broken_paths} paths ({pct:.1f}%) have no alternate route. "
                f"Consider emergency rerouting."
            )
        else:
            recommendations.append(f"{metrics.broken_paths} paths have no alternate route.")

    if metrics.convergence_seconds > 60:
        recommendations.append(
            f"Estimated convergence time: {metrics.convergence_seconds}s. Consider reducing SPF delay timer."
        )
    elif metrics.convergence_seconds > 30:
        recommendations.append(
            f"Convergence time: {metrics.convergence_seconds}s. Network should stabilize within a minute."
        )

    if len(metrics.affected_countries) > 2:
        recommendations.append(
            f"Multiple countries affected: {', '.join(metrics.affected_countries)}. May impact SLAs."
        )

    if not recommendations:
        recommendations.append("Network remains fully connected. All paths have alternates.")
    return recommendations


def simulate_failure(topology: Topology, failed_nodes: Iterable[str] = (),
                     failed_links: Iterable[str] = (),
                     config: Optional[AnalysisConfig] = None,
                     sample_size: int = DEFAULT_FLOW_SAMPLE,
                     seed: Optional[int] = None) -> FailureSimulationResult:
    """
    Run a complete failure simulation

    Args:
        topology: Snapshot before the failure
        failed_nodes: Routers that go down
        failed_links: Physical link ids (or directed edge ids) that go down
        config: Timing configuration
        sample_size: Number of concrete flows to report
        seed: Seed for flow sampling

    Returns:
        FailureSimulationResult

    Raises:
        NodeNotFoundError / EdgeNotFoundError: unknown failed element
    """
    failed_nodes = list(failed_nodes)
    failed_links = list(failed_links)
    _check_ids(topology, failed_nodes, failed_links)
    link_ids = _link_ids(topology, failed_links)

    logger.info(f"Simulating failure of {len(failed_nodes)} nodes, {len(link_ids)} links")

    connectivity = analyze_connectivity(topology, exclude_nodes=failed_nodes, exclude_links=link_ids)
    metrics = calculate_failure_impact(topology, failed_nodes, link_ids, config)
    flows = sample_affected_flows(topology, failed_nodes, link_ids, sample_size, seed)

    return FailureSimulationResult(
        failed_nodes=failed_nodes,
        failed_links=link_ids,
        metrics=metrics,
        connectivity=connectivity,
        affected_flows=flows,
        recommendations=generate_failure_recommendations(metrics, connectivity),
    )


def quick_impact_assessment(topology: Topology, failed_node: Optional[str] = None,
                            failed_link: Optional[str] = None) -> QuickAssessment:
    """Fast verdict for a single router or link failure"""
    nodes = [failed_node] if failed_node else []
    links = _link_ids(topology, [failed_link]) if failed_link else []
    connectivity = analyze_connectivity(topology, exclude_nodes=nodes, exclude_links=links)

    would_partition = not connectivity.is_fully_connected
    isolated = len(connectivity.isolated_nodes) + (1 if failed_node else 0)

    if would_partition and connectivity.component_count > 2:
        severity = Severity.CRITICAL
        summary = f"Would fragment network into {connectivity.component_count} parts"
    elif would_partition:
        severity = Severity.HIGH
        summary = "Would partition the network"
    elif isolated > 0:
        severity = Severity.MEDIUM
        summary = f"Would isolate {isolated} node(s)"
    else:
        severity = Severity.LOW
        summary = "Minimal impact - alternate paths exist"

    return QuickAssessment(severity, summary, would_partition, isolated)


def simulate_cascade_failure(topology: Topology, failed_nodes: Iterable[str] = (),
                             failed_links: Iterable[str] = (), max_iterations: int = 3,
                             config: Optional[AnalysisConfig] = None) -> CascadeResult:
    """
    Follow a failure as stranded routers take their remaining links down

    Each step fails every link attached to a router isolated by the
    previous step, until nothing new fails or max_iterations is reached.
    """
    failed_nodes = list(failed_nodes)
    all_links = _link_ids(topology, failed_links)
    _check_ids(topology, failed_nodes, all_links)

    metrics = calculate_failure_impact(topology, failed_nodes, all_links, config)
    steps = [CascadeStep(step=0, failed=failed_nodes + all_links, metrics=metrics)]

    for i in range(1, max_iterations + 1):
        new_failures: List[str] = []
        for node_id in metrics.isolated_nodes:
            for edge in topology.incident_edges(node_id):
                if edge.link_id not in all_links and edge.link_id not in new_failures:
                    new_failures.append(edge.link_id)
        if not new_failures:
            break

        all_links.extend(new_failures)
        metrics = calculate_failure_impact(topology, failed_nodes, all_links, config)
        steps.append(CascadeStep(step=i, failed=new_failures, metrics=metrics))

    return CascadeResult(steps=steps, total_failed_links=all_links, final_metrics=metrics)
