"""
What-If Analysis Module - Blast radius of OSPF cost changes

Provides:
- All-pairs change impact simulation
- Country aggregation and blast radius scoring
- Recommendations and rollback planning
- Blast zones and single-pair what-ifs
"""

from netimpact.whatif.impact import (
    ImpactType,
    ImpactResult,
    ImpactRun,
    ChangeImpactSimulator,
    classify_impact,
    analyze_cost_change,
)
from netimpact.whatif.countries import (
    CountryRisk,
    CountryFlowAggregation,
    CountrySummary,
    aggregate_by_country,
    country_summaries,
)
from netimpact.whatif.risk import (
    RiskLevel,
    ScoreBreakdown,
    BlastRadiusScore,
    calculate_blast_radius_score,
    classify_risk,
    score_results,
)
from netimpact.whatif.recommender import (
    RecommendationType,
    RecommendationCategory,
    RecommendationSeverity,
    Recommendation,
    RollbackEntry,
    RollbackPlan,
    generate_recommendations,
    generate_rollback_plan,
)
from netimpact.whatif.zones import (
    BlastZone,
    ZonedImpactResult,
    ZoneSummary,
    classify_into_zones,
    zone_summaries,
    zone_impact_score,
)
from netimpact.whatif.pair import (
    PairWhatIfResult,
    compare_path_sets,
    simulate_pair_cost_change,
    simulate_pair_link_failure,
)
from netimpact.whatif.report import (
    BlastRadiusReport,
    BlastRadiusAnalyzer,
    analyze_blast_radius,
)

__all__ = [
    "ImpactType",
    "ImpactResult",
    "ImpactRun",
    "ChangeImpactSimulator",
    "classify_impact",
    "analyze_cost_change",
    "CountryRisk",
    "CountryFlowAggregation",
    "CountrySummary",
    "aggregate_by_country",
    "country_summaries",
    "RiskLevel",
    "ScoreBreakdown",
    "BlastRadiusScore",
    "calculate_blast_radius_score",
    "classify_risk",
    "score_results",
    "RecommendationType",
    "RecommendationCategory",
    "RecommendationSeverity",
    "Recommendation",
    "RollbackEntry",
    "RollbackPlan",
    "generate_recommendations",
    "generate_rollback_plan",
    "BlastZone",
    "ZonedImpactResult",
    "ZoneSummary",
    "classify_into_zones",
    "zone_summaries",
    "zone_impact_score",
    "PairWhatIfResult",
    "compare_path_sets",
    "simulate_pair_cost_change",
    "simulate_pair_link_failure",
    "BlastRadiusReport",
    "BlastRadiusAnalyzer",
    "analyze_blast_radius",
]
