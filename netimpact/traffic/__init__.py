"""
Traffic engineering heuristics: demand matrices, link utilization and
greedy OSPF cost optimization.
"""

from netimpact.traffic.matrix import (
    TrafficMatrix,
    TrafficModel,
    calculate_total_traffic,
    generate_traffic_matrix,
)
from netimpact.traffic.optimizer import (
    InvalidConstraintError,
    OptimizationConstraints,
    OptimizationGoal,
    OptimizationMetrics,
    OptimizationResult,
    ProposedCostChange,
    StopReason,
    count_path_changes,
    optimize_costs,
)
from netimpact.traffic.utilization import (
    EdgeUtilization,
    UtilizationResult,
    calculate_utilization,
)

__all__ = [
    "TrafficMatrix",
    "TrafficModel",
    "calculate_total_traffic",
    "generate_traffic_matrix",
    "InvalidConstraintError",
    "OptimizationConstraints",
    "OptimizationGoal",
    "OptimizationMetrics",
    "OptimizationResult",
    "ProposedCostChange",
    "StopReason",
    "count_path_changes",
    "optimize_costs",
    "EdgeUtilization",
    "UtilizationResult",
    "calculate_utilization",
]
