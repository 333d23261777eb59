"""
Topology snapshot model and input validation
"""

from netimpact.topology.errors import (
    TopologyError,
    NodeNotFoundError,
    EdgeNotFoundError,
    InvalidCostError,
    DuplicateElementError,
)
from netimpact.topology.models import (
    Node,
    Edge,
    Link,
    CostChange,
    Topology,
    validate_cost,
)

__all__ = [
    "TopologyError",
    "NodeNotFoundError",
    "EdgeNotFoundError",
    "InvalidCostError",
    "DuplicateElementError",
    "Node",
    "Edge",
    "Link",
    "CostChange",
    "Topology",
    "validate_cost",
]
