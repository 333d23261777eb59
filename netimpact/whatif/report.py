"""
Blast Radius Analyzer - End-to-end change assessment

Runs the full pipeline for a cost change: all-pairs impact, country
aggregation, risk score, recommendations, rollback plan and blast zones.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from netimpact.config.settings import AnalysisConfig
from netimpact.jobs import CancellationToken, ProgressCallback
from netimpact.topology.models import CostChange, Topology
from netimpact.whatif.countries import (
    CountryFlowAggregation, CountrySummary, aggregate_by_country, country_summaries,
)
from netimpact.whatif.impact import ChangeImpactSimulator, ImpactRun
from netimpact.whatif.recommender import (
    Recommendation, RollbackPlan, generate_recommendations, generate_rollback_plan,
)
from netimpact.whatif.risk import BlastRadiusScore, calculate_blast_radius_score
from netimpact.whatif.zones import (
    ZonedImpactResult, ZoneSummary, classify_into_zones, zone_summaries,
)

logger = logging.getLogger("BlastRadiusAnalyzer")


@dataclass
class BlastRadiusReport:
    """
    Complete assessment of a proposed change

    Attributes:
        report_id: Unique identifier
        changes: Cost changes assessed
        impact: All-pairs impact run
        score: Blast radius score
        country_aggregations: Affected flows grouped by country pair
        country_summaries: Affected flows per country
        recommendations: Operator guidance
        rollback_plan: How to undo the change
        zones: Affected flows with their blast zone
        zone_summaries: Flow counts per zone
        generated_at: When the report was generated
    """
    report_id: str
    changes: List[CostChange]
    impact: ImpactRun
    score: BlastRadiusScore
    country_aggregations: List[CountryFlowAggregation] = field(default_factory=list)
    country_summaries: List[CountrySummary] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    rollback_plan: Optional[RollbackPlan] = None
    zones: List[ZonedImpactResult] = field(default_factory=list)
    zone_summaries: List[ZoneSummary] = field(default_factory=list)
    generated_at: datetime = field(default_factory=datetime.now)

    @property
    def complete(self) -> bool:
        return self.impact.complete

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "complete": self.complete,
            "changes": [c.to_dict() for c in self.changes],
            "impact": self.impact.to_dict(),
            "score": self.score.to_dict(),
            "country_aggregations": [a.to_dict() for a in self.country_aggregations],
            "country_summaries": [s.to_dict() for s in self.country_summaries],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "rollback_plan": self.rollback_plan.to_dict() if self.rollback_plan else None,
            "zone_summaries": [z.to_dict() for z in self.zone_summaries],
            "generated_at": self.generated_at.isoformat(),
        }


class BlastRadiusAnalyzer:
    """
    Assesses cost changes against one topology snapshot
    """

    def __init__(self, topology: Topology, config: Optional[AnalysisConfig] = None):
        self.topology = topology
        self.config = config or AnalysisConfig()
        self.simulator = ChangeImpactSimulator(topology, self.config)
        self._report_counter = 0

    def _build(self, changes: List[CostChange], run: ImpactRun) -> BlastRadiusReport:
        self._report_counter += 1
        affected = run.changed()

        score = calculate_blast_radius_score(affected, self.topology.node_count)
        aggregations = aggregate_by_country(affected)
        zoned = classify_into_zones(affected, [c.edge_id for c in changes], self.topology)

        report = BlastRadiusReport(
            report_id=f"report-{self._report_counter:06d}",
            changes=changes,
            impact=run,
            score=score,
            country_aggregations=aggregations,
            country_summaries=country_summaries(aggregations),
            recommendations=generate_recommendations(score, affected),
            rollback_plan=generate_rollback_plan(self.topology, changes, len(affected), self.config),
            zones=zoned,
            zone_summaries=zone_summaries(zoned),
        )
        logger.info(
            f"{report.report_id}: score {score.overall} ({score.risk.value}), "
            f"{len(affected)} flows affected, complete={run.complete}"
        )
        return report

    def analyze(self, changes: Iterable[CostChange],
                cancel_token: Optional[CancellationToken] = None,
                progress_callback: Optional[ProgressCallback] = None) -> BlastRadiusReport:
        """
        Assess a set of cost changes

        A cancelled run still produces a report over the flows computed
        so far; report.complete is False in that case.
        """
        changes = list(changes)
        run = self.simulator.run(changes, cancel_token, progress_callback)
        return self._build(changes, run)

    async def analyze_async(self, changes: Iterable[CostChange],
                            cancel_token: Optional[CancellationToken] = None,
                            progress_callback: Optional[ProgressCallback] = None) -> BlastRadiusReport:
        changes = list(changes)
        run = await self.simulator.run_async(changes, cancel_token, progress_callback)
        return self._build(changes, run)


def analyze_blast_radius(topology: Topology, changes: Iterable[CostChange],
                         config: Optional[AnalysisConfig] = None,
                         cancel_token: Optional[CancellationToken] = None,
                         progress_callback: Optional[ProgressCallback] = None) -> BlastRadiusReport:
    """Run the full blast radius pipeline for a set of cost changes"""
    analyzer = BlastRadiusAnalyzer(topology, config)
    return analyzer.analyze(changes, cancel_token, progress_callback)
