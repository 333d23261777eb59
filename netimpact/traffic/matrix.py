"""
Traffic Matrix Generator - Synthetic demand between every router pair

Models:
- uniform: every flow carries the base rate
- population: geometric mean of country populations scales the base rate
- distance: same-country flows are heavier than cross-country ones
- custom: per-router weights multiply the base rate
"""

import logging
import math
from enum import Enum
from typing import Dict, Mapping, Optional

from netimpact.config.constants import (
    COUNTRY_POPULATIONS, CROSS_COUNTRY_MULTIPLIER, DEFAULT_BASE_TRAFFIC_MBPS,
    DEFAULT_POPULATION_MILLIONS, SAME_COUNTRY_MULTIPLIER,
)
from netimpact.topology.models import Node, Topology

logger = logging.getLogger("TrafficMatrix")

# src -> dst -> Mbps
TrafficMatrix = Dict[str, Dict[str, float]]


class TrafficModel(Enum):
    UNIFORM = "uniform"
    POPULATION = "population"
    DISTANCE = "distance"
    CUSTOM = "custom"


def _population(node: Node) -> float:
    return COUNTRY_POPULATIONS.get(node.country or "", DEFAULT_POPULATION_MILLIONS)


def _flow_rate(src: Node, dst: Node, model: TrafficModel, base: float,
               weights: Mapping[str, float]) -> float:
    if model == TrafficModel.POPULATION:
        return math.sqrt(_population(src) * _population(dst)) * base / 10
    if model == TrafficModel.DISTANCE:
        # Two routers without a country are not treated as co-located
        same = src.country is not None and src.country == dst.country
        return base * (SAME_COUNTRY_MULTIPLIER if same else CROSS_COUNTRY_MULTIPLIER)
    if model == TrafficModel.CUSTOM:
        return base * weights.get(src.id, 1.0) * weights.get(dst.id, 1.0)
    return base


def generate_traffic_matrix(topology: Topology,
                            model: TrafficModel = TrafficModel.POPULATION,
                            base_traffic: float = DEFAULT_BASE_TRAFFIC_MBPS,
                            scale_factor: float = 1.0,
                            custom_weights: Optional[Mapping[str, float]] = None) -> TrafficMatrix:
    """
    Build a demand matrix covering every ordered pair of distinct routers

    Args:
        topology: Snapshot whose routers exchange traffic
        model: Demand model
        base_traffic: Mbps per flow before the model applies
        scale_factor: Multiplier applied to every flow
        custom_weights: Router id -> importance, for the custom model

    Returns:
        Nested dict src -> dst -> Mbps
    """
    if isinstance(model, str):
        model = TrafficModel(model)
    if base_traffic < 0 or scale_factor < 0:
        raise ValueError("base_traffic and scale_factor must not be negative")

    weights = custom_weights or {}
    matrix: TrafficMatrix = {}

    for src in topology.nodes:
        row = matrix[src.id] = {}
        for dst in topology.nodes:
            if src.id == dst.id:
                continue
            row[dst.id] = _flow_rate(src, dst, model, base_traffic, weights) * scale_factor

    logger.debug(
        f"Generated {model.value} traffic matrix for {topology.node_count} routers, "
        f"total {calculate_total_traffic(matrix):.1f} Mbps"
    )
    return matrix


def calculate_total_traffic(matrix: Mapping[str, Mapping[str, float]]) -> float:
    """Sum of every demand in the matrix (Mbps)"""
    return sum(sum(row.values()) for row in matrix.values())
