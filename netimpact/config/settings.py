"""
Analysis configuration

Tunable knobs for batching, ECMP enumeration, SPF timing and utilization.
Defaults come from constants; NETIMPACT_* environment variables override them.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from netimpact.config.constants import (
    DEFAULT_BATCH_SIZE, DEFAULT_MAX_ECMP_PATHS, DEFAULT_MAX_SPOFS,
    SPF_DELAY_DEFAULT, SPF_CALC_PER_NODE, LSA_PROPAGATION_FACTOR,
    DEFAULT_CAPACITY_MBPS, CONGESTION_THRESHOLD, UNDERUTILIZED_THRESHOLD,
    OPTIMIZER_MAX_ITERATIONS, DEFAULT_ECMP_SAMPLE_SIZE,
)

ENV_PREFIX = "NETIMPACT_"


@dataclass
class AnalysisConfig:
    """Analysis configuration"""

    batch_size: int = DEFAULT_BATCH_SIZE  # Node pairs per cooperative batch
    max_ecmp_paths: int = DEFAULT_MAX_ECMP_PATHS
    max_spofs: int = DEFAULT_MAX_SPOFS
    spf_delay_seconds: float = SPF_DELAY_DEFAULT
    spf_calc_per_node_seconds: float = SPF_CALC_PER_NODE
    lsa_propagation_factor: float = LSA_PROPAGATION_FACTOR
    default_capacity_mbps: float = DEFAULT_CAPACITY_MBPS
    congestion_threshold: float = CONGESTION_THRESHOLD
    underutilized_threshold: float = UNDERUTILIZED_THRESHOLD
    optimizer_max_iterations: int = OPTIMIZER_MAX_ITERATIONS
    ecmp_sample_size: int = DEFAULT_ECMP_SAMPLE_SIZE

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.max_ecmp_paths < 1:
            raise ValueError(f"max_ecmp_paths must be at least 1, got {self.max_ecmp_paths}")
        if self.default_capacity_mbps <= 0:
            raise ValueError("default_capacity_mbps must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "AnalysisConfig":
        """
        Build a configuration from NETIMPACT_* environment variables

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            AnalysisConfig with overrides applied
        """
        env = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        for f in fields(cls):
            name = f"{ENV_PREFIX}{f.name.upper()}"
            raw = env.get(name)
            if raw is None or raw == "":
                continue
            caster = int if f.type in (int, "int") else float
            try:
                overrides[f.name] = caster(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {name}: {raw!r}") from None

        return cls(**overrides)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_size": self.batch_size,
            "max_ecmp_paths": self.max_ecmp_paths,
            "max_spofs": self.max_spofs,
            "spf_delay_seconds": self.spf_delay_seconds,
            "spf_calc_per_node_seconds": self.spf_calc_per_node_seconds,
            "lsa_propagation_factor": self.lsa_propagation_factor,
            "default_capacity_mbps": self.default_capacity_mbps,
            "congestion_threshold": self.congestion_threshold,
            "underutilized_threshold": self.underutilized_threshold,
            "optimizer_max_iterations": self.optimizer_max_iterations,
            "ecmp_sample_size": self.ecmp_sample_size,
        }
