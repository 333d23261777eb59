"""
NetImpact - OSPF topology analysis

Offline analysis of a weighted directed router graph:

Architecture:
- topology/: Snapshot model, validation and errors
- spf/: Shortest paths, ECMP enumeration, convergence estimate
- resilience/: Connectivity, single points of failure, failure simulation
- whatif/: Change impact, country aggregation, risk score, recommendations
- traffic/: Traffic matrix, link utilization, greedy cost optimizer
- jobs/: Cancellation and progress for long-running scans
- api/: FastAPI application (imported on demand)
"""

__version__ = "0.1.0"

from .config import AnalysisConfig
from .jobs import *  # noqa: F401,F403
from .topology import *  # noqa: F401,F403
from .spf import *  # noqa: F401,F403
from .resilience import *  # noqa: F401,F403
from .whatif import *  # noqa: F401,F403
from .traffic import *  # noqa: F401,F403

from . import jobs, topology, spf, resilience, whatif, traffic

__all__ = (
    ["__version__", "AnalysisConfig"]
    + jobs.__all__
    + topology.__all__
    + spf.__all__
    + resilience.__all__
    + whatif.__all__
    + traffic.__all__
)
