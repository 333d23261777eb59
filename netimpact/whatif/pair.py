"""
Single-pair what-if

Compares the equal-cost path sets of one source/destination pair before
and after a cost change or link failure. Cheaper than a full impact run
when only one flow matters.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from netimpact.config.constants import DEFAULT_MAX_ECMP_PATHS
from netimpact.spf.ecmp import ECMPPathResult, PathInfo, find_ecmp_paths
from netimpact.topology.models import CostChange, Topology


@dataclass
class PairWhatIfResult:
    """
    Attributes:
        source: Source node id
        destination: Destination node id
        original: Equal-cost paths before (None if unreachable)
        simulated: Equal-cost paths after (None if unreachable)
        affected_paths: Ids of original paths that no longer exist
        new_paths: Ids of simulated paths that did not exist before
        cost_delta: Cost change, None if either side is unreachable
        summary: One-line verdict
    """
    source: str
    destination: str
    original: Optional[ECMPPathResult]
    simulated: Optional[ECMPPathResult]
    affected_paths: List[str] = field(default_factory=list)
    new_paths: List[str] = field(default_factory=list)
    cost_delta: Optional[int] = None
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "destination": self.destination,
            "original": self.original.to_dict() if self.original else None,
            "simulated": self.simulated.to_dict() if self.simulated else None,
            "affected_paths": self.affected_paths,
            "new_paths": self.new_paths,
            "cost_delta": self.cost_delta,
            "summary": self.summary,
        }


def _paths(result: Optional[ECMPPathResult]) -> List[PathInfo]:
    return result.paths if result is not None else []


def compare_path_sets(original: Optional[ECMPPathResult],
                      simulated: Optional[ECMPPathResult],
                      source: str, destination: str) -> PairWhatIfResult:
    before = _paths(original)
    after = _paths(simulated)
    before_seqs = {tuple(p.node_sequence) for p in before}
    after_seqs = {tuple(p.node_sequence) for p in after}

    cost_delta = None
    if original is not None and simulated is not None:
        cost_delta = simulated.cost - original.cost

    if simulated is None:
        summary = "CRITICAL: No path available after simulation"
    elif original is None:
        summary = "Destination becomes reachable"
    elif cost_delta > 0:
        summary = f"Path cost increased by {cost_delta}"
    elif cost_delta < 0:
        summary = f"Path cost decreased by {abs(cost_delta)}"
    elif before_seqs != after_seqs:
        summary = "No cost change, but the equal-cost path set changed"
    else:
        summary = "No change"

    return PairWhatIfResult(
        source=source,
        destination=destination,
        original=original,
        simulated=simulated,
        affected_paths=[p.path_id for p in before if tuple(p.node_sequence) not in after_seqs],
        new_paths=[p.path_id for p in after if tuple(p.node_sequence) not in before_seqs],
        cost_delta=cost_delta,
        summary=summary,
    )


def simulate_pair_cost_change(topology: Topology, source: str, destination: str,
                              changes: Iterable[CostChange],
                              max_paths: int = DEFAULT_MAX_ECMP_PATHS) -> PairWhatIfResult:
    """What a set of cost changes does to one pair"""
    after = topology.with_costs(changes)
    return compare_path_sets(
        find_ecmp_paths(topology, source, destination, max_paths),
        find_ecmp_paths(after, source, destination, max_paths),
        source, destination,
    )


def simulate_pair_link_failure(topology: Topology, source: str, destination: str,
                               failed_edges: Iterable[str] = (),
                               failed_links: Iterable[str] = (),
                               max_paths: int = DEFAULT_MAX_ECMP_PATHS) -> PairWhatIfResult:
    """What losing some directed edges or physical links does to one pair"""
    after = topology.without(edges=failed_edges, links=failed_links)
    return compare_path_sets(
        find_ecmp_paths(topology, source, destination, max_paths),
        find_ecmp_paths(after, source, destination, max_paths),
        source, destination,
    )
