"""
Resilience analysis: connectivity, single points of failure, failure simulation
"""

from netimpact.resilience.connectivity import ConnectivityResult, analyze_connectivity
from netimpact.resilience.spof import (
    Severity,
    SPOF,
    SPOFScan,
    SPOFDetector,
    detect_spofs,
    estimate_affected_paths,
    classify_severity,
)
from netimpact.resilience.failure import (
    FlowStatus,
    FailureImpactMetrics,
    AffectedFlow,
    FailureSimulationResult,
    QuickAssessment,
    CascadeResult,
    calculate_failure_impact,
    sample_affected_flows,
    simulate_failure,
    quick_impact_assessment,
    simulate_cascade_failure,
)
from netimpact.resilience.score import ResilienceLevel, ResilienceScore, calculate_resilience_score

__all__ = [
    "ConnectivityResult",
    "analyze_connectivity",
    "Severity",
    "SPOF",
    "SPOFScan",
    "SPOFDetector",
    "detect_spofs",
    "estimate_affected_paths",
    "classify_severity",
    "FlowStatus",
    "FailureImpactMetrics",
    "AffectedFlow",
    "FailureSimulationResult",
    "QuickAssessment",
    "CascadeResult",
    "calculate_failure_impact",
    "sample_affected_flows",
    "simulate_failure",
    "quick_impact_assessment",
    "simulate_cascade_failure",
    "ResilienceLevel",
    "ResilienceScore",
    "calculate_resilience_score",
]
