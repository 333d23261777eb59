"""
Change Impact Simulator - All-pairs before/after path comparison

Provides:
- Impact classification for one node pair
- Full N * (N - 1) comparison of a cost change (or any after-snapshot)
- Batched execution with progress reporting and cancellation
- Async runner that yields to the event loop between batches
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from netimpact.config.settings import AnalysisConfig
from netimpact.jobs import (
    CancellationToken, ProgressCallback, ProgressReporter, is_cancelled, iter_batches,
)
from netimpact.spf.calculator import SPFCalculator, SPFTree
from netimpact.topology.errors import TopologyError
from netimpact.topology.models import CostChange, Topology

logger = logging.getLogger("ImpactSimulator")

# Percentage reported when the old cost is zero or the pair was unreachable
MAX_CHANGE_PCT = 100.0


class ImpactType(Enum):
    """How a flow is affected by a change"""
    UNAFFECTED = "unaffected"
    COST_INCREASE = "cost_increase"
    COST_DECREASE = "cost_decrease"
    REROUTE = "reroute"
    LOST_ECMP = "lost_ecmp"
    NEW_ECMP = "new_ecmp"
    LOST_PATH = "lost_path"
    NEW_PATH = "new_path"


@dataclass
class ImpactResult:
    """
    Before/after comparison of one ordered node pair

    Attributes:
        source: Source node id
        destination: Destination node id
        source_country: Source country ("Unknown" if not set)
        destination_country: Destination country ("Unknown" if not set)
        old_path: Canonical path before the change (empty if unreachable)
        new_path: Canonical path after the change (empty if unreachable)
        old_cost: Cost before (None if unreachable)
        new_cost: Cost after (None if unreachable)
        path_changed: Node sequence differs
        was_ecmp: ECMP before the change
        is_ecmp: ECMP after the change
        impact_type: Classified impact
    """
    source: str
    destination: str
    source_country: str
    destination_country: str
    old_path: List[str]
    new_path: List[str]
    old_cost: Optional[int]
    new_cost: Optional[int]
    path_changed: bool
    was_ecmp: bool
    is_ecmp: bool
    impact_type: ImpactType

    @property
    def reachable_before(self) -> bool:
        return self.old_cost is not None

    @property
    def reachable_after(self) -> bool:
        return self.new_cost is not None

    @property
    def is_affected(self) -> bool:
        return self.impact_type != ImpactType.UNAFFECTED

    @property
    def is_cross_country(self) -> bool:
        return self.source_country != self.destination_country

    @property
    def cost_delta(self) -> Optional[int]:
        """Signed cost change, None when either side is unreachable"""
        if self.old_cost is None or self.new_cost is None:
            return None
        return self.new_cost - self.old_cost

    @property
    def cost_change_ratio(self) -> float:
        """
        |delta / old|

        A zero or missing old cost counts as a full (1.0) change unless
        nothing changed at all.
        """
        delta = self.cost_delta
        if delta is None:
            return 0.0 if self.old_cost == self.new_cost else 1.0
        if delta == 0:
            return 0.0
        if not self.old_cost:
            return 1.0
        return abs(delta / self.old_cost)

    @property
    def cost_change_pct(self) -> float:
        """Signed percentage change, guarded against a zero or missing old cost"""
        delta = self.cost_delta
        if delta is None:
            return 0.0 if self.old_cost == self.new_cost else MAX_CHANGE_PCT
        if delta == 0:
            return 0.0
        if not self.old_cost:
            return MAX_CHANGE_PCT if delta > 0 else -MAX_CHANGE_PCT
        return delta / self.old_cost * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "destination": self.destination,
            "source_country": self.source_country,
            "destination_country": self.destination_country,
            "old_path": self.old_path,
            "new_path": self.new_path,
            "old_cost": self.old_cost,
            "new_cost": self.new_cost,
            "cost_delta": self.cost_delta,
            "cost_change_pct": round(self.cost_change_pct, 2),
            "path_changed": self.path_changed,
            "was_ecmp": self.was_ecmp,
            "is_ecmp": self.is_ecmp,
            "impact_type": self.impact_type.value,
        }


@dataclass
class ImpactRun:
    """
    Outcome of a change-impact run

    A complete run holds exactly total_pairs results. A cancelled run
    holds the results of every batch finished before cancellation and
    has complete=False.
    """
    results: List[ImpactResult] = field(default_factory=list)
    total_pairs: int = 0
    processed_pairs: int = 0
    complete: bool = True
    duration_ms: float = 0.0
    changes: List[CostChange] = field(default_factory=list)

    def changed(self) -> List[ImpactResult]:
        """Results whose impact type is not unaffected"""
        return [r for r in self.results if r.is_affected]

    def by_type(self) -> Dict[str, int]:
        counts = Counter(r.impact_type.value for r in self.results)
        return {t.value: counts.get(t.value, 0) for t in ImpactType}

    def to_dict(self, include_unaffected: bool = False) -> Dict[str, Any]:
        results = self.results if include_unaffected else self.changed()
        return {
            "total_pairs": self.total_pairs,
            "processed_pairs": self.processed_pairs,
            "complete": self.complete,
            "duration_ms": round(self.duration_ms, 2),
            "changes": [c.to_dict() for c in self.changes],
            "by_type": self.by_type(),
            "affected_count": len(self.changed()),
            "results": [r.to_dict() for r in results],
        }


def classify_impact(old_path: List[str], old_cost: Optional[int], was_ecmp: bool,
                    new_path: List[str], new_cost: Optional[int], is_ecmp: bool) -> ImpactType:
    """
    Classify what a change did to one flow

    Precedence: identical sequence and cost, then identical sequence with
    a cost change, then a different sequence (reroute, refined into
    lost_ecmp / new_ecmp when ECMP status flipped).
    """
    if old_cost is None and new_cost is None:
        return ImpactType.UNAFFECTED
    if new_cost is None:
        return ImpactType.LOST_PATH
    if old_cost is None:
        return ImpactType.NEW_PATH

    if old_path == new_path:
        if old_cost == new_cost:
            return ImpactType.UNAFFECTED
        return ImpactType.COST_INCREASE if new_cost > old_cost else ImpactType.COST_DECREASE

    if was_ecmp and not is_ecmp:
        return ImpactType.LOST_ECMP
    if is_ecmp and not was_ecmp:
        return ImpactType.NEW_ECMP
    return ImpactType.REROUTE


class _TreeCache:
    """Keeps the SPF trees of the current source only"""

    def __init__(self, calculator: SPFCalculator):
        self.calculator = calculator
        self.source: Optional[str] = None
        self.tree: Optional[SPFTree] = None

    def get(self, source: str) -> SPFTree:
        if source != self.source or self.tree is None:
            self.tree = self.calculator.run(source)
            self.source = source
        return self.tree


class ChangeImpactSimulator:
    """
    Compares every ordered node pair before and after a change

    One SPF tree per source per side is computed and shared by all of
    that source's destinations.
    """

    def __init__(self, topology: Topology, config: Optional[AnalysisConfig] = None):
        """
        Initialize simulator

        Args:
            topology: Snapshot before the change
            config: Batch size and related settings
        """
        self.topology = topology
        self.config = config or AnalysisConfig()

    def pairs(self) -> List[Tuple[str, str]]:
        """Every ordered pair of distinct nodes, in input order"""
        ids = self.topology.node_ids
        return [(s, d) for s in ids for d in ids if s != d]

    def _check_after(self, after: Topology) -> None:
        if after.node_ids != self.topology.node_ids:
            raise TopologyError("After-snapshot must contain the same nodes in the same order")

    def _compare(self, src: str, dst: str, before: _TreeCache, after: _TreeCache) -> ImpactResult:
        old_tree = before.get(src)
        new_tree = after.get(src)

        old_path, _ = old_tree.canonical_path(dst)
        new_path, _ = new_tree.canonical_path(dst)
        old_cost = old_tree.cost_to(dst)
        new_cost = new_tree.cost_to(dst)
        was_ecmp = old_tree.is_ecmp(dst)
        is_ecmp = new_tree.is_ecmp(dst)

        return ImpactResult(
            source=src,
            destination=dst,
            source_country=self.topology.country_of(src),
            destination_country=self.topology.country_of(dst),
            old_path=old_path,
            new_path=new_path,
            old_cost=old_cost,
            new_cost=new_cost,
            path_changed=old_path != new_path,
            was_ecmp=was_ecmp,
            is_ecmp=is_ecmp,
            impact_type=classify_impact(old_path, old_cost, was_ecmp, new_path, new_cost, is_ecmp),
        )

    def compare_pair(self, after: Topology, source: str, destination: str) -> ImpactResult:
        """Before/after comparison of a single pair"""
        self._check_after(after)
        self.topology.get_node(source)
        self.topology.get_node(destination)
        return self._compare(
            source, destination,
            _TreeCache(SPFCalculator(self.topology)), _TreeCache(SPFCalculator(after)),
        )

    def _start(self, after: Topology, changes: List[CostChange]):
        pairs = self.pairs()
        run = ImpactRun(total_pairs=len(pairs), changes=changes)
        before = _TreeCache(SPFCalculator(self.topology))
        after_cache = _TreeCache(SPFCalculator(after))
        logger.info(f"Impact run started: {len(pairs)} pairs, {len(changes)} cost changes")
        return pairs, run, before, after_cache

    def _finish(self, run: ImpactRun, reporter: ProgressReporter, started: datetime) -> ImpactRun:
        run.duration_ms = (datetime.now() - started).total_seconds() * 1000
        if run.complete:
            reporter.finish()
            logger.info(
                f"Impact run complete: {len(run.changed())}/{run.total_pairs} flows affected, "
                f"{run.duration_ms:.1f}ms"
            )
        else:
            logger.warning(f"Impact run cancelled at {run.processed_pairs}/{run.total_pairs} pairs")
        return run

    def run_against(self, after: Topology, cancel_token: Optional[CancellationToken] = None,
                    progress_callback: Optional[ProgressCallback] = None,
                    changes: Optional[List[CostChange]] = None) -> ImpactRun:
        """
        Compare the snapshot with an arbitrary after-snapshot

        Args:
            after: Snapshot after the change, same nodes in the same order
            cancel_token: Checked between batches
            progress_callback: Receives (processed, total, percent)
            changes: Cost changes recorded on the run, if any

        Returns:
            ImpactRun
        """
        self._check_after(after)
        started = datetime.now()
        pairs, run, before, after_cache = self._start(after, list(changes or []))
        reporter = ProgressReporter(len(pairs), progress_callback)

        for batch in iter_batches(pairs, self.config.batch_size):
            if is_cancelled(cancel_token):
                run.complete = False
                break
            run.results.extend(self._compare(s, d, before, after_cache) for s, d in batch)
            run.processed_pairs += len(batch)
            reporter.report(run.processed_pairs)

        return self._finish(run, reporter, started)

    async def run_against_async(self, after: Topology,
                                cancel_token: Optional[CancellationToken] = None,
                                progress_callback: Optional[ProgressCallback] = None,
                                changes: Optional[List[CostChange]] = None) -> ImpactRun:
        """Same as run_against(), yielding to the event loop after each batch"""
        self._check_after(after)
        started = datetime.now()
        pairs, run, before, after_cache = self._start(after, list(changes or []))
        reporter = ProgressReporter(len(pairs), progress_callback)

        for batch in iter_batches(pairs, self.config.batch_size):
            if is_cancelled(cancel_token):
                run.complete = False
                break
            run.results.extend(self._compare(s, d, before, after_cache) for s, d in batch)
            run.processed_pairs += len(batch)
            reporter.report(run.processed_pairs)
            await asyncio.sleep(0)

        return self._finish(run, reporter, started)

    def run(self, changes: Iterable[CostChange], cancel_token: Optional[CancellationToken] = None,
            progress_callback: Optional[ProgressCallback] = None) -> ImpactRun:
        """
        Simulate a set of cost changes across every node pair

        Raises:
            EdgeNotFoundError: a change targets an unknown edge
            InvalidCostError: a new cost is outside the OSPF range
        """
        changes = list(changes)
        after = self.topology.with_costs(changes)
        return self.run_against(after, cancel_token, progress_callback, changes)

    async def run_async(self, changes: Iterable[CostChange],
                        cancel_token: Optional[CancellationToken] = None,
                        progress_callback: Optional[ProgressCallback] = None) -> ImpactRun:
        changes = list(changes)
        after = self.topology.with_costs(changes)
        return await self.run_against_async(after, cancel_token, progress_callback, changes)

    def failure_snapshot(self, failed_nodes: Iterable[str] = (),
                         failed_links: Iterable[str] = ()) -> Topology:
        """
        After-snapshot for a failure, keeping every node

        Failed routers lose all their links instead of disappearing, so
        their flows show up as lost_path rather than vanishing.
        """
        links = self.topology.links()
        drop_links: List[str] = []
        for link_id in failed_links:
            if link_id not in links:
                link_id = self.topology.get_edge(link_id).link_id
            drop_links.append(link_id)
        for node_id in failed_nodes:
            drop_links.extend(e.link_id for e in self.topology.incident_edges(node_id))
        return self.topology.without(links=dict.fromkeys(drop_links))

    def run_failure(self, failed_nodes: Iterable[str] = (), failed_links: Iterable[str] = (),
                    cancel_token: Optional[CancellationToken] = None,
                    progress_callback: Optional[ProgressCallback] = None) -> ImpactRun:
        """All-pairs impact of routers and links going down"""
        after = self.failure_snapshot(failed_nodes, failed_links)
        return self.run_against(after, cancel_token, progress_callback)


def analyze_cost_change(topology: Topology, changes: Iterable[CostChange],
                        config: Optional[AnalysisConfig] = None,
                        cancel_token: Optional[CancellationToken] = None,
                        progress_callback: Optional[ProgressCallback] = None) -> ImpactRun:
    """Run the change-impact simulator over a snapshot"""
    simulator = ChangeImpactSimulator(topology, config)
    return simulator.run(changes, cancel_token, progress_callback)
