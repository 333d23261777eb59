"""
Blast radius risk scoring

Four capped, additive factors give a 0-100 score:

- Flow impact (max 40): share of all ordered pairs affected
- Cost magnitude (max 30): mean |delta / old cost| of affected flows
- Country diversity (max 20): 3 points per country touched
- Critical paths (max 10): share of affected flows that are
  inter-country and changed path, scaled by 20

The weights are fixed heuristic constants.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Sequence

from netimpact.whatif.impact import ImpactResult

logger = logging.getLogger("RiskScorer")

FLOW_IMPACT_CAP = 40
COST_MAGNITUDE_CAP = 30
COUNTRY_DIVERSITY_CAP = 20
CRITICAL_PATHS_CAP = 10
POINTS_PER_COUNTRY = 3
CRITICAL_PATH_SCALE = 20


class RiskLevel(Enum):
    """Blast radius risk tiers"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass
class ScoreBreakdown:
    """Raw factor values; to_dict() rounds them for display"""
    flow_impact: float
    cost_magnitude: float
    country_diversity: float
    critical_paths: float

    @property
    def total(self) -> float:
        return self.flow_impact + self.cost_magnitude + self.country_diversity + self.critical_paths

    def to_dict(self) -> Dict[str, int]:
        return {
            "flow_impact": round(self.flow_impact),
            "cost_magnitude": round(self.cost_magnitude),
            "country_diversity": round(self.country_diversity),
            "critical_paths": round(self.critical_paths),
        }


@dataclass
class BlastRadiusScore:
    """
    Blast radius score of a change

    Attributes:
        overall: 0-100
        risk: Tier derived from overall
        breakdown: Factor values
        total_flows: N * (N - 1), at least 1
        affected_flows: Affected results scored
        affected_percentage: affected / total * 100
        avg_cost_change_pct: Mean |delta / old| * 100
        countries_affected: Distinct countries touched
        critical_path_count: Inter-country flows that changed path
    """
    overall: int
    risk: RiskLevel
    breakdown: ScoreBreakdown
    total_flows: int
    affected_flows: int
    affected_percentage: float
    avg_cost_change_pct: float
    countries_affected: int
    critical_path_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "risk": self.risk.value,
            "breakdown": self.breakdown.to_dict(),
            "details": {
                "total_flows": self.total_flows,
                "affected_flows": self.affected_flows,
                "affected_percentage": round(self.affected_percentage, 2),
                "avg_cost_change_pct": round(self.avg_cost_change_pct, 2),
                "countries_affected": self.countries_affected,
                "critical_path_count": self.critical_path_count,
            },
        }


def classify_risk(score: float) -> RiskLevel:
    if score < 20:
        return RiskLevel.LOW
    if score < 40:
        return RiskLevel.MEDIUM
    if score < 70:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def calculate_blast_radius_score(affected: Sequence[ImpactResult], node_count: int) -> BlastRadiusScore:
    """
    Score a change from its affected flows

    Args:
        affected: Results of flows the change touched (impact type not unaffected)
        node_count: Routers in the topology

    Returns:
        BlastRadiusScore with overall in [0, 100]
    """
    total = max(1, node_count * (node_count - 1))
    count = len(affected)
    affected_share = count / total

    flow_impact = min(FLOW_IMPACT_CAP, affected_share * 100)

    # Zero or missing old cost counts as a 100% change (see cost_change_ratio)
    avg_ratio = sum(r.cost_change_ratio for r in affected) / count if count else 0.0
    cost_magnitude = min(COST_MAGNITUDE_CAP, avg_ratio * 100)

    countries = set()
    for result in affected:
        countries.add(result.source_country)
        countries.add(result.destination_country)
    country_diversity = min(COUNTRY_DIVERSITY_CAP, len(countries) * POINTS_PER_COUNTRY)

    critical = sum(1 for r in affected if r.is_cross_country and r.path_changed)
    critical_paths = min(CRITICAL_PATHS_CAP, critical / max(1, count) * CRITICAL_PATH_SCALE)

    breakdown = ScoreBreakdown(flow_impact, cost_magnitude, country_diversity, critical_paths)
    overall = max(0, min(100, round(breakdown.total)))

    score = BlastRadiusScore(
        overall=overall,
        risk=classify_risk(overall),
        breakdown=breakdown,
        total_flows=total,
        affected_flows=count,
        affected_percentage=affected_share * 100,
        avg_cost_change_pct=avg_ratio * 100,
        countries_affected=len(countries),
        critical_path_count=critical,
    )
    logger.debug(f"Blast radius score {overall} ({score.risk.value}) from {count} affected flows")
    return score


def score_results(results: Iterable[ImpactResult], node_count: int) -> BlastRadiusScore:
    """Score a full result set, keeping only the affected flows"""
    return calculate_blast_radius_score([r for r in results if r.is_affected], node_count)
