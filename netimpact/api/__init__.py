"""
HTTP interface for the topology analyses
"""

from netimpact.api.server import NetImpactAPI, create_app

__all__ = ["NetImpactAPI", "create_app"]
