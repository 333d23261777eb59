"""
Shortest path and ECMP engine
"""

from netimpact.spf.calculator import (
    Predecessor,
    PathResult,
    SPFTree,
    SPFCalculator,
    shortest_path,
)
from netimpact.spf.ecmp import (
    PathInfo,
    ECMPPathResult,
    PathMetrics,
    LoadBalancingInfo,
    ECMPGroup,
    CriticalElement,
    NetworkECMPAnalysis,
    NetworkECMPSampler,
    enumerate_paths,
    analyze_divergence,
    find_ecmp_paths,
    calculate_path_metrics,
    calculate_load_balancing,
    calculate_weighted_load_balancing,
    create_ecmp_group,
    find_ecmp_critical_nodes,
    find_ecmp_critical_edges,
    analyze_network_ecmp,
)
from netimpact.spf.convergence import (
    convergence_breakdown,
    estimate_spf_convergence_seconds,
)

__all__ = [
    "Predecessor",
    "PathResult",
    "SPFTree",
    "SPFCalculator",
    "shortest_path",
    "PathInfo",
    "ECMPPathResult",
    "PathMetrics",
    "LoadBalancingInfo",
    "ECMPGroup",
    "CriticalElement",
    "NetworkECMPAnalysis",
    "NetworkECMPSampler",
    "enumerate_paths",
    "analyze_divergence",
    "find_ecmp_paths",
    "calculate_path_metrics",
    "calculate_load_balancing",
    "calculate_weighted_load_balancing",
    "create_ecmp_group",
    "find_ecmp_critical_nodes",
    "find_ecmp_critical_edges",
    "analyze_network_ecmp",
    "convergence_breakdown",
    "estimate_spf_convergence_seconds",
]
