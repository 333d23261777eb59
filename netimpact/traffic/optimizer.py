"""
Traffic Engineering Optimizer - Greedy OSPF cost tuning

A bounded local search, not a solver: each iteration raises the cost of
the most congested edge it may touch and keeps the move only when the
objective strictly improves.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from netimpact.config.constants import OPTIMIZER_COST_MULTIPLIER, OSPF_COST_MAX, OSPF_COST_MIN
from netimpact.config.settings import AnalysisConfig
from netimpact.spf.calculator import SPFCalculator
from netimpact.topology.errors import TopologyError
from netimpact.topology.models import CostChange, Topology
from netimpact.traffic.utilization import UtilizationResult, calculate_utilization

logger = logging.getLogger("TrafficOptimizer")

DEFAULT_MAX_CHANGES = 10


class InvalidConstraintError(TopologyError):
    """Optimization constraint out of range"""

    code = "invalid_constraint"

    def __init__(self, field_name: str, value: Any):
        self.field = field_name
        self.value = value
        super().__init__(f"Invalid optimization constraint {field_name}={value!r}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        data["value"] = self.value
        return data


class OptimizationGoal(Enum):
    BALANCE = "balance"    # minimize max utilization
    LATENCY = "latency"    # minimize avg utilization


class StopReason(Enum):
    NO_CONGESTION = "no_congestion"
    NO_IMPROVEMENT = "no_improvement"
    MAX_CHANGES = "max_changes"
    ITERATION_LIMIT = "iteration_limit"


@dataclass
class OptimizationConstraints:
    """
    Bounds on what the optimizer may change

    Attributes:
        max_cost_change_percent: Largest increase over an edge's original cost, in (0, 1]
        max_changes_count: Accepted moves before stopping
        protected_edges: Edge or link ids that must keep their cost
        min_cost: Lowest cost the optimizer may set
        max_cost: Highest cost the optimizer may set
    """
    max_cost_change_percent: float = 1.0
    max_changes_count: int = DEFAULT_MAX_CHANGES
    protected_edges: FrozenSet[str] = field(default_factory=frozenset)
    min_cost: int = OSPF_COST_MIN
    max_cost: int = OSPF_COST_MAX

    def __post_init__(self):
        self.protected_edges = frozenset(self.protected_edges)
        if not 0 < self.max_cost_change_percent <= 1:
            raise InvalidConstraintError("max_cost_change_percent", self.max_cost_change_percent)
        if self.max_changes_count < 1:
            raise InvalidConstraintError("max_changes_count", self.max_changes_count)
        if self.min_cost < OSPF_COST_MIN:
            raise InvalidConstraintError("min_cost", self.min_cost)
        if self.max_cost > OSPF_COST_MAX:
            raise InvalidConstraintError("max_cost", self.max_cost)
        if self.min_cost > self.max_cost:
            raise InvalidConstraintError("min_cost", self.min_cost)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_cost_change_percent": self.max_cost_change_percent,
            "max_changes_count": self.max_changes_count,
            "protected_edges": sorted(self.protected_edges),
            "min_cost": self.min_cost,
            "max_cost": self.max_cost,
        }


@dataclass
class ProposedCostChange:
    """One accepted optimizer move"""
    edge_id: str
    edge_label: str
    old_cost: int
    new_cost: int
    objective_before: float
    objective_after: float

    @property
    def change_percent(self) -> float:
        return (self.new_cost - self.old_cost) / self.old_cost * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edge_id": self.edge_id,
            "edge_label": self.edge_label,
            "old_cost": self.old_cost,
            "new_cost": self.new_cost,
            "change_percent": round(self.change_percent, 2),
            "objective_delta": round(self.objective_before - self.objective_after, 4),
        }


@dataclass
class OptimizationMetrics:
    old_max_utilization: float
    new_max_utilization: float
    old_avg_utilization: float
    new_avg_utilization: float
    congested_reduction: int
    paths_changed: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_max_utilization": round(self.old_max_utilization, 4),
            "new_max_utilization": round(self.new_max_utilization, 4),
            "old_avg_utilization": round(self.old_avg_utilization, 4),
            "new_avg_utilization": round(self.new_avg_utilization, 4),
            "congested_reduction": self.congested_reduction,
            "paths_changed": self.paths_changed,
        }


@dataclass
class OptimizationResult:
    """
    Outcome of a greedy optimization run

    Attributes:
        goal: Objective minimized
        proposed_costs: Edge id -> final cost, for edges that changed
        changes: Accepted moves in order
        metrics: Before / after utilization
        iterations: Loop iterations executed
        stop_reason: Why the search ended
        duration_ms: Wall time
    """
    goal: OptimizationGoal
    proposed_costs: Dict[str, int]
    changes: List[ProposedCostChange]
    metrics: OptimizationMetrics
    iterations: int
    stop_reason: StopReason
    duration_ms: float = 0.0

    @property
    def improved(self) -> bool:
        return bool(self.changes)

    def cost_changes(self) -> List[CostChange]:
        """Proposed costs as CostChange, ready for a blast radius assessment"""
        return [CostChange(edge_id, cost) for edge_id, cost in self.proposed_costs.items()]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "goal": self.goal.value,
            "proposed_costs": self.proposed_costs,
            "changes": [c.to_dict() for c in self.changes],
            "metrics": self.metrics.to_dict(),
            "iterations": self.iterations,
            "stop_reason": self.stop_reason.value,
            "duration_ms": round(self.duration_ms, 2),
        }


def _objective(util: UtilizationResult, goal: OptimizationGoal) -> float:
    if goal == OptimizationGoal.LATENCY:
        return util.avg_utilization
    return util.max_utilization


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _is_protected(topology: Topology, edge_id: str, protected: FrozenSet[str]) -> bool:
    edge = topology.get_edge(edge_id)
    return edge.id in protected or edge.link_id in protected


def _next_cost(current: int, original: int, constraints: OptimizationConstraints) -> int:
    ceiling = min(
        constraints.max_cost,
        int(math.floor(original * (1 + constraints.max_cost_change_percent))),
    )
    proposed = _round_half_up(current * OPTIMIZER_COST_MULTIPLIER)
    return max(constraints.min_cost, min(ceiling, proposed))


def count_path_changes(before: Topology, after: Topology,
                       matrix: Mapping[str, Mapping[str, float]]) -> int:
    """Demands whose canonical path differs between two snapshots"""
    calc_before = SPFCalculator(before)
    calc_after = SPFCalculator(after)
    changed = 0

    for src, row in matrix.items():
        dests = [d for d, mbps in row.items() if d != src and mbps > 0]
        if not dests:
            continue
        tree_before = calc_before.run(src)
        tree_after = calc_after.run(src)
        for dst in dests:
            old = tree_before.canonical_path(dst)[0] if tree_before.is_reachable(dst) else None
            new = tree_after.canonical_path(dst)[0] if tree_after.is_reachable(dst) else None
            if old != new:
                changed += 1
    return changed


def optimize_costs(topology: Topology,
                   matrix: Mapping[str, Mapping[str, float]],
                   goal: OptimizationGoal = OptimizationGoal.BALANCE,
                   constraints: Optional[OptimizationConstraints] = None,
                   config: Optional[AnalysisConfig] = None) -> OptimizationResult:
    """
    Propose OSPF cost increases that relieve congested links

    Args:
        topology: Current snapshot (never modified)
        matrix: src -> dst -> Mbps
        goal: balance (max utilization) or latency (avg utilization)
        constraints: Bounds on the proposed changes
        config: Utilization thresholds and the iteration cap

    Returns:
        OptimizationResult
    """
    if isinstance(goal, str):
        goal = OptimizationGoal(goal)
    constraints = constraints or OptimizationConstraints()
    config = config or AnalysisConfig()
    start_time = datetime.now()

    original = {edge.id: edge.cost for edge in topology.edges}
    costs = dict(original)
    current = topology
    initial = calculate_utilization(current, matrix, config=config)
    util = initial
    best = _objective(util, goal)
    changes: List[ProposedCostChange] = []
    stop_reason = StopReason.ITERATION_LIMIT
    iterations = 0

    logger.info(
        f"Optimizing {goal.value}: start max {initial.max_utilization:.2%}, "
        f"{len(initial.congested_edges)} congested edges"
    )

    for _ in range(config.optimizer_max_iterations):
        iterations += 1
        if not util.congested_edges:
            stop_reason = StopReason.NO_CONGESTION
            break

        # Stable sort keeps topology order among equally loaded edges
        candidates = sorted(util.congested_edges, key=lambda e: -util.edges[e].raw_utilization)
        accepted = False

        for edge_id in candidates:
            if _is_protected(topology, edge_id, constraints.protected_edges):
                continue
            new_cost = _next_cost(costs[edge_id], original[edge_id], constraints)
            if new_cost <= costs[edge_id]:
                continue

            trial = current.with_costs([CostChange(edge_id, new_cost)])
            trial_util = calculate_utilization(trial, matrix, config=config)
            score = _objective(trial_util, goal)
            if score >= best:
                logger.debug(f"Rejected {edge_id} -> {new_cost}: objective {score:.4f} >= {best:.4f}")
                continue

            edge = topology.get_edge(edge_id)
            changes.append(ProposedCostChange(
                edge_id=edge_id,
                edge_label=f"{topology.get_node(edge.source).label} -> {topology.get_node(edge.target).label}",
                old_cost=costs[edge_id],
                new_cost=new_cost,
                objective_before=best,
                objective_after=score,
            ))
            costs[edge_id] = new_cost
            current, util, best = trial, trial_util, score
            accepted = True
            break

        if not accepted:
            stop_reason = StopReason.NO_IMPROVEMENT
            break
        if len(changes) >= constraints.max_changes_count:
            stop_reason = StopReason.MAX_CHANGES
            break

    proposed = {edge_id: cost for edge_id, cost in costs.items() if cost != original[edge_id]}
    metrics = OptimizationMetrics(
        old_max_utilization=initial.max_utilization,
        new_max_utilization=util.max_utilization,
        old_avg_utilization=initial.avg_utilization,
        new_avg_utilization=util.avg_utilization,
        congested_reduction=len(initial.congested_edges) - len(util.congested_edges),
        paths_changed=count_path_changes(topology, current, matrix) if proposed else 0,
    )
    duration_ms = (datetime.now() - start_time).total_seconds() * 1000

    logger.info(
        f"Optimization stopped ({stop_reason.value}) after {iterations} iterations: "
        f"{len(changes)} changes, max {metrics.old_max_utilization:.2%} -> "
        f"{metrics.new_max_utilization:.2%}"
    )
    return OptimizationResult(
        goal=goal,
        proposed_costs=proposed,
        changes=changes,
        metrics=metrics,
        iterations=iterations,
        stop_reason=stop_reason,
        duration_ms=duration_ms,
    )
