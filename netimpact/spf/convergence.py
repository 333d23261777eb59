"""
OSPF convergence time estimate

A component model rather than a measurement: the SPF delay timer, the
Dijkstra run itself (linear in routers) and LSA flooding (log2 of routers).
"""

import math
from typing import Any, Dict, Optional

from netimpact.config.constants import MAX_CONVERGENCE_EVENTS
from netimpact.config.settings import AnalysisConfig


def convergence_breakdown(node_count: int, events: int = 1,
                          config: Optional[AnalysisConfig] = None) -> Dict[str, Any]:
    """
    Per-component convergence estimate

    Args:
        node_count: Routers in the area
        events: Simultaneous topology events (capped at 3)
        config: Timing configuration

    Returns:
        Dictionary with each component and the total in seconds
    """
    config = config or AnalysisConfig()
    multiplier = max(1, min(events, MAX_CONVERGENCE_EVENTS))

    spf_delay = config.spf_delay_seconds
    spf_calc = max(0, node_count) * config.spf_calc_per_node_seconds
    propagation = math.log2(max(2, node_count)) * config.lsa_propagation_factor
    per_event = spf_delay + spf_calc + propagation

    return {
        "spf_delay_seconds": spf_delay,
        "spf_calculation_seconds": round(spf_calc, 4),
        "lsa_propagation_seconds": round(propagation, 4),
        "events": multiplier,
        "total_seconds": round(per_event * multiplier, 3),
    }


def estimate_spf_convergence_seconds(node_count: int, events: int = 1,
                                     config: Optional[AnalysisConfig] = None) -> float:
    """Estimated seconds until every router has rerun SPF"""
    return convergence_breakdown(node_count, events, config)["total_seconds"]
