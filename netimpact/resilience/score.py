"""
Network resilience score (1-10)

Weighted blend of redundancy (SPOF count and severity), geographic
diversity and capacity headroom.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from netimpact.resilience.spof import SPOF, Severity
from netimpact.topology.models import Topology

REDUNDANCY_WEIGHT = 0.4
DIVERSITY_WEIGHT = 0.3
CAPACITY_WEIGHT = 0.3


class ResilienceLevel(Enum):
    EXCELLENT = "EXCELLENT"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    CRITICAL = "CRITICAL"


@dataclass
class ResilienceScore:
    """
    Attributes:
        overall: 1-10, one decimal
        redundancy: 1-10 from SPOF severity counts
        diversity: 0-10 from country spread and link density
        capacity: 0-10 from utilization headroom (5 when unknown)
        level: Tier derived from overall
        improvements: Suggested next steps
    """
    overall: float
    redundancy: float
    diversity: float
    capacity: float
    level: ResilienceLevel
    improvements: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "breakdown": {
                "redundancy": self.redundancy,
                "diversity": self.diversity,
                "capacity": self.capacity,
            },
            "level": self.level.value,
            "improvements": self.improvements,
        }


def _redundancy(spofs: Sequence[SPOF]) -> float:
    score = 10.0
    for spof in spofs:
        if spof.severity == Severity.CRITICAL:
            score -= 2.5
        elif spof.severity == Severity.HIGH:
            score -= 1.5
        elif spof.severity == Severity.MEDIUM:
            score -= 0.5
    return max(1.0, min(10.0, score))


def _diversity(topology: Topology) -> float:
    countries = {n.country for n in topology.nodes if n.country}
    if not countries:
        return 5.0

    # Physical links per country
    per_country = len(topology.links()) / len(countries)
    score = 5.0
    if len(countries) >= 10:
        score += 2
    elif len(countries) >= 5:
        score += 1
    if per_country >= 5:
        score += 2
    elif per_country >= 3:
        score += 1
    return min(10.0, score)


def _capacity(utilization: Optional[Mapping[str, float]]) -> float:
    if not utilization:
        return 5.0
    avg = sum(utilization.values()) / len(utilization)
    if avg < 0.3:
        return 10.0
    if avg < 0.5:
        return 8.0
    if avg < 0.7:
        return 6.0
    if avg < 0.85:
        return 4.0
    return 2.0


def _level(score: float) -> ResilienceLevel:
    if score >= 9:
        return ResilienceLevel.EXCELLENT
    if score >= 7:
        return ResilienceLevel.HIGH
    if score >= 5:
        return ResilienceLevel.MEDIUM
    if score >= 3:
        return ResilienceLevel.LOW
    return ResilienceLevel.CRITICAL


def calculate_resilience_score(topology: Topology, spofs: Sequence[SPOF],
                               utilization: Optional[Mapping[str, float]] = None) -> ResilienceScore:
    """
    Score how well the network tolerates failures

    Args:
        topology: Snapshot scored
        spofs: Output of a SPOF scan on the same snapshot
        utilization: Edge id -> utilization ratio, if traffic is known

    Returns:
        ResilienceScore
    """
    redundancy = _redundancy(spofs)
    diversity = _diversity(topology)
    capacity = _capacity(utilization)

    overall = round(
        redundancy * REDUNDANCY_WEIGHT + diversity * DIVERSITY_WEIGHT + capacity * CAPACITY_WEIGHT, 1
    )

    improvements = []
    if redundancy < 7:
        improvements.append("Add redundant links to eliminate single points of failure")
    if diversity < 7:
        improvements.append("Increase geographic diversity with links to additional countries")
    if capacity < 7:
        improvements.append("Upgrade link capacity or add parallel links to reduce utilization")

    return ResilienceScore(
        overall=overall,
        redundancy=redundancy,
        diversity=diversity,
        capacity=capacity,
        level=_level(overall),
        improvements=improvements,
    )
