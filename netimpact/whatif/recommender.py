"""
Recommendation Engine - Rule-based guidance for a proposed change

Provides:
- Primary proceed / caution / abort verdict from the risk tier
- Independent concern checks (geography, ECMP loss, severe cost increase)
- Rollback plan with original costs and a convergence estimate
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from netimpact.config.settings import AnalysisConfig
from netimpact.spf.convergence import estimate_spf_convergence_seconds
from netimpact.topology.models import CostChange, Topology
from netimpact.whatif.impact import ImpactResult, ImpactType
from netimpact.whatif.risk import BlastRadiusScore, RiskLevel

logger = logging.getLogger("Recommender")

ECMP_LOSS_THRESHOLD = 5
SEVERE_INCREASE_PCT = 50.0
WIDE_IMPACT_COUNTRIES = 3


class RecommendationType(Enum):
    PROCEED = "PROCEED"
    CAUTION = "CAUTION"
    ABORT = "ABORT"


class RecommendationCategory(Enum):
    MAIN = "main"
    CONCERN = "concern"
    SUGGESTION = "suggestion"
    ROLLBACK = "rollback"


class RecommendationSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Recommendation:
    """
    One piece of operator guidance

    Attributes:
        type: Proceed / caution / abort
        category: main verdict, concern, suggestion or rollback
        title: Short heading
        description: Explanation
        severity: info / warning / error
        actionable: Whether the operator has something to do
        suggested_action: What to do, if actionable
    """
    type: RecommendationType
    category: RecommendationCategory
    title: str
    description: str
    severity: RecommendationSeverity
    actionable: bool = True
    suggested_action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "category": self.category.value,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "actionable": self.actionable,
            "suggested_action": self.suggested_action,
        }


@dataclass
class RollbackEntry:
    edge_id: str
    source: str
    target: str
    original_cost: int
    changed_cost: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edge_id": self.edge_id,
            "source": self.source,
            "target": self.target,
            "original_cost": self.original_cost,
            "changed_cost": self.changed_cost,
        }


@dataclass
class RollbackPlan:
    """
    How to undo a change

    Attributes:
        changes: Edges to restore with their original costs
        cli_commands: Configuration snippets restoring each cost
        estimated_convergence_seconds: SPF convergence estimate after rollback
        affected_flow_count: Flows expected to revert to their old paths
        steps: Ordered operator procedure
    """
    changes: List[RollbackEntry] = field(default_factory=list)
    cli_commands: List[str] = field(default_factory=list)
    estimated_convergence_seconds: float = 0.0
    affected_flow_count: int = 0
    steps: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changes": [c.to_dict() for c in self.changes],
            "cli_commands": self.cli_commands,
            "estimated_convergence_seconds": self.estimated_convergence_seconds,
            "affected_flow_count": self.affected_flow_count,
            "steps": self.steps,
        }


_PRIMARY = {
    RiskLevel.LOW: Recommendation(
        type=RecommendationType.PROCEED,
        category=RecommendationCategory.MAIN,
        title="SAFE TO PROCEED",
        description="Risk level is LOW. Minimal impact detected.",
        severity=RecommendationSeverity.INFO,
        suggested_action="Standard change procedure.",
    ),
    RiskLevel.MEDIUM: Recommendation(
        type=RecommendationType.CAUTION,
        category=RecommendationCategory.MAIN,
        title="PROCEED WITH MONITORING",
        description="Risk level is MEDIUM. Some routing changes expected.",
        severity=RecommendationSeverity.WARNING,
        suggested_action="Monitor key links after application.",
    ),
    RiskLevel.HIGH: Recommendation(
        type=RecommendationType.CAUTION,
        category=RecommendationCategory.MAIN,
        title="REQUIRES APPROVAL",
        description="Risk level is HIGH. Significant routing changes detected.",
        severity=RecommendationSeverity.WARNING,
        suggested_action="Obtain change approval and apply during a maintenance window. "
                         "Ensure the rollback plan is ready.",
    ),
    RiskLevel.CRITICAL: Recommendation(
        type=RecommendationType.ABORT,
        category=RecommendationCategory.MAIN,
        title="ABORT CHANGE",
        description="Risk level is CRITICAL. The change causes major routing shifts.",
        severity=RecommendationSeverity.ERROR,
        suggested_action="Do not proceed. Reconsider the change and review it in a lab environment.",
    ),
}


def primary_recommendation(risk: RiskLevel) -> Recommendation:
    template = _PRIMARY[risk]
    return Recommendation(
        type=template.type,
        category=template.category,
        title=template.title,
        description=template.description,
        severity=template.severity,
        actionable=template.actionable,
        suggested_action=template.suggested_action,
    )


def generate_recommendations(score: BlastRadiusScore,
                             results: Sequence[ImpactResult]) -> List[Recommendation]:
    """
    Build the recommendation list for a scored change

    The first entry is always the primary verdict. Each concern that
    applies is appended as its own entry.

    Args:
        score: Blast radius score of the change
        results: Impact results (affected only, or the full set)

    Returns:
        List of Recommendation
    """
    recommendations = [primary_recommendation(score.risk)]

    geographic = [r for r in results if r.is_cross_country and r.path_changed]
    if geographic:
        countries = sorted({c for r in geographic for c in (r.source_country, r.destination_country)})
        recommendations.append(Recommendation(
            type=RecommendationType.CAUTION,
            category=RecommendationCategory.CONCERN,
            title="Inter-country Paths Changing",
            description=(
                f"{len(geographic)} inter-country flows change path "
                f"({', '.join(countries)})."
            ),
            severity=RecommendationSeverity.WARNING,
            suggested_action="Verify latency and SLA impact on these paths.",
        ))

    ecmp_lost = sum(1 for r in results if r.was_ecmp and not r.is_ecmp)
    if ecmp_lost > ECMP_LOSS_THRESHOLD:
        recommendations.append(Recommendation(
            type=RecommendationType.CAUTION,
            category=RecommendationCategory.CONCERN,
            title="ECMP Redundancy Lost",
            description=f"{ecmp_lost} flows lose equal-cost multipath load sharing.",
            severity=RecommendationSeverity.WARNING,
            suggested_action="Check that the remaining single paths have enough capacity.",
        ))

    severe = [r for r in results if r.cost_delta is not None and r.cost_change_pct > SEVERE_INCREASE_PCT]
    if severe:
        worst = max(r.cost_change_pct for r in severe)
        recommendations.append(Recommendation(
            type=RecommendationType.CAUTION,
            category=RecommendationCategory.CONCERN,
            title="Severe Cost Increase",
            description=f"{len(severe)} flows see a cost increase above 50% (worst {worst:.0f}%).",
            severity=RecommendationSeverity.WARNING,
            suggested_action="Review whether these flows should take the new paths.",
        ))

    if score.countries_affected > WIDE_IMPACT_COUNTRIES:
        recommendations.append(Recommendation(
            type=RecommendationType.CAUTION,
            category=RecommendationCategory.SUGGESTION,
            title="Wide Geographic Impact",
            description=f"Change affects routing in {score.countries_affected} countries.",
            severity=RecommendationSeverity.INFO,
            actionable=False,
        ))

    lost = sum(1 for r in results if r.impact_type == ImpactType.LOST_PATH)
    if lost:
        recommendations.append(Recommendation(
            type=RecommendationType.ABORT,
            category=RecommendationCategory.CONCERN,
            title="Reachability Lost",
            description=f"{lost} flows have no path after the change.",
            severity=RecommendationSeverity.ERROR,
            suggested_action="Restore an alternate path before applying the change.",
        ))

    logger.debug(f"Generated {len(recommendations)} recommendations for {score.risk.value} change")
    return recommendations


def generate_rollback_plan(topology: Topology, changes: Iterable[CostChange],
                           affected_flow_count: int,
                           config: Optional[AnalysisConfig] = None) -> RollbackPlan:
    """
    Plan for restoring the original costs

    Args:
        topology: Snapshot before the change (holds the original costs)
        changes: Cost changes being rolled back
        affected_flow_count: Flows expected to revert
        config: SPF timing configuration

    Returns:
        RollbackPlan

    Raises:
        EdgeNotFoundError: a change targets an unknown edge
    """
    plan = RollbackPlan(affected_flow_count=affected_flow_count)

    for change in changes:
        edge = topology.get_edge(change.edge_id)
        src = topology.get_node(edge.source)
        dst = topology.get_node(edge.target)
        plan.changes.append(RollbackEntry(
            edge_id=edge.id,
            source=edge.source,
            target=edge.target,
            original_cost=edge.cost,
            changed_cost=change.new_cost,
        ))
        plan.cli_commands.append(
            f"! {src.label}: restore cost towards {dst.label}\n"
            f"interface {edge.id}\n"
            f" ip ospf cost {edge.cost}"
        )

    plan.estimated_convergence_seconds = estimate_spf_convergence_seconds(
        topology.node_count, max(1, len(plan.changes)), config
    )

    restore = ", ".join(f"{c.edge_id} -> {c.original_cost}" for c in plan.changes)
    plan.steps = [
        "Confirm the issue is caused by the cost change",
        f"Restore original OSPF cost: {restore}",
        f"Wait about {plan.estimated_convergence_seconds:.0f}s for SPF convergence",
        f"Verify {affected_flow_count} affected flows are back on their original paths",
        "Check neighbor adjacencies and routing tables on the affected routers",
    ]
    return plan
