"""
Configuration for netimpact analyses
"""

from netimpact.config.settings import AnalysisConfig
from netimpact.config import constants

__all__ = ["AnalysisConfig", "constants"]
