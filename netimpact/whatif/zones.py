"""
Blast zone classification

Places every flow of an impact run in one of four zones:

- direct: the old or new path crosses a changed link (either direction)
- indirect: rerouted without touching a changed link
- secondary: same path, different cost
- unaffected: nothing changed
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from netimpact.topology.models import Topology
from netimpact.whatif.impact import ImpactResult

ZONE_WEIGHTS = {"direct": 3, "indirect": 2, "secondary": 1, "unaffected": 0}


class BlastZone(Enum):
    DIRECT = "direct"
    INDIRECT = "indirect"
    SECONDARY = "secondary"
    UNAFFECTED = "unaffected"

    @property
    def weight(self) -> int:
        return ZONE_WEIGHTS[self.value]


@dataclass
class ZonedImpactResult:
    result: ImpactResult
    zone: BlastZone
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        data = self.result.to_dict()
        data["zone"] = self.zone.value
        data["zone_reason"] = self.reason
        return data


@dataclass
class ZoneSummary:
    zone: BlastZone
    flow_count: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zone": self.zone.value,
            "flow_count": self.flow_count,
            "percentage": round(self.percentage, 2),
        }


def _has_link(path: Sequence[str], endpoints: Iterable[Tuple[str, str]]) -> bool:
    hops = set(zip(path, path[1:]))
    for a, b in endpoints:
        if (a, b) in hops or (b, a) in hops:
            return True
    return False


def classify_into_zones(results: Iterable[ImpactResult], changed_edge_ids: Iterable[str],
                        topology: Topology) -> List[ZonedImpactResult]:
    """
    Assign a blast zone to every result

    Raises:
        EdgeNotFoundError: a changed edge id is unknown
    """
    endpoints = []
    for edge_id in changed_edge_ids:
        edge = topology.get_edge(edge_id)
        endpoints.append((edge.source, edge.target))

    zoned = []
    for result in results:
        on_old = _has_link(result.old_path, endpoints)
        on_new = _has_link(result.new_path, endpoints)

        if on_old or on_new:
            if on_old and on_new:
                reason = "Path continues to traverse changed link"
            elif on_old:
                reason = "Flow moved away from changed link"
            else:
                reason = "Flow now traverses changed link"
            zoned.append(ZonedImpactResult(result, BlastZone.DIRECT, reason))
        elif result.path_changed:
            zoned.append(ZonedImpactResult(
                result, BlastZone.INDIRECT, "Path rerouted due to cost change propagation"))
        elif result.new_cost != result.old_cost:
            zoned.append(ZonedImpactResult(
                result, BlastZone.SECONDARY, "Cost affected by network recalculation"))
        else:
            zoned.append(ZonedImpactResult(result, BlastZone.UNAFFECTED, "No impact detected"))
    return zoned


def zone_summaries(zoned: Sequence[ZonedImpactResult]) -> List[ZoneSummary]:
    """Counts for the non-empty impact zones (direct, indirect, secondary)"""
    total = len(zoned)
    summaries = []
    for zone in (BlastZone.DIRECT, BlastZone.INDIRECT, BlastZone.SECONDARY):
        count = sum(1 for z in zoned if z.zone == zone)
        if count:
            summaries.append(ZoneSummary(zone, count, count / total * 100))
    return summaries


def zone_impact_score(zoned: Sequence[ZonedImpactResult]) -> int:
    """0-100 weighted share of flows in the heavier zones"""
    if not zoned:
        return 0
    weight = sum(z.zone.weight for z in zoned)
    return round(weight / (len(zoned) * BlastZone.DIRECT.weight) * 100)
