"""
Country aggregation of impact results

Rolls flows up by (source country, destination country). Routers with no
country land in an explicit "Unknown" bucket; nothing is dropped.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from netimpact.config.constants import UNKNOWN_COUNTRY
from netimpact.whatif.impact import ImpactResult


class CountryRisk(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass
class CountryFlowAggregation:
    """
    Impact totals for one country pair

    Attributes:
        source_country: Source country (or "Unknown")
        destination_country: Destination country (or "Unknown")
        flow_count: Flows in the group
        avg_cost_delta: Mean signed cost delta
        max_cost_delta: Largest signed cost delta
        avg_cost_change_pct: Mean signed percentage change
        max_cost_change_pct: Largest absolute percentage change
        path_migrations: Flows whose node sequence changed
        cost_increases: Flows with a positive delta
        cost_decreases: Flows with a negative delta
        ecmp_gained: Flows that became ECMP
        ecmp_lost: Flows that stopped being ECMP
        flows: The grouped results
    """
    source_country: str
    destination_country: str
    flow_count: int = 0
    avg_cost_delta: float = 0.0
    max_cost_delta: Optional[int] = None
    avg_cost_change_pct: float = 0.0
    max_cost_change_pct: float = 0.0
    path_migrations: int = 0
    cost_increases: int = 0
    cost_decreases: int = 0
    ecmp_gained: int = 0
    ecmp_lost: int = 0
    flows: List[ImpactResult] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.source_country}->{self.destination_country}"

    def to_dict(self, include_flows: bool = False) -> Dict[str, Any]:
        data = {
            "source_country": self.source_country,
            "destination_country": self.destination_country,
            "flow_count": self.flow_count,
            "avg_cost_delta": round(self.avg_cost_delta, 2),
            "max_cost_delta": self.max_cost_delta,
            "avg_cost_change_pct": round(self.avg_cost_change_pct, 2),
            "max_cost_change_pct": round(self.max_cost_change_pct, 2),
            "path_migrations": self.path_migrations,
            "cost_increases": self.cost_increases,
            "cost_decreases": self.cost_decreases,
            "ecmp_gained": self.ecmp_gained,
            "ecmp_lost": self.ecmp_lost,
        }
        if include_flows:
            data["flows"] = [f.to_dict() for f in self.flows]
        return data


@dataclass
class CountrySummary:
    """Per-country view across both directions"""
    country: str
    flows_as_source: int = 0
    flows_as_destination: int = 0
    avg_cost_change_pct: float = 0.0
    max_cost_change_pct: float = 0.0
    risk: CountryRisk = CountryRisk.LOW

    @property
    def total_flows(self) -> int:
        return self.flows_as_source + self.flows_as_destination

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country": self.country,
            "flows_as_source": self.flows_as_source,
            "flows_as_destination": self.flows_as_destination,
            "total_flows": self.total_flows,
            "avg_cost_change_pct": round(self.avg_cost_change_pct, 2),
            "max_cost_change_pct": round(self.max_cost_change_pct, 2),
            "risk": self.risk.value,
        }


def aggregate_by_country(results: Iterable[ImpactResult]) -> List[CountryFlowAggregation]:
    """
    Group impact results by country pair

    Returns:
        Aggregations sorted by flow count (descending), then by key.
        Flow counts sum to the number of results.
    """
    groups: Dict[str, CountryFlowAggregation] = {}

    for result in results:
        src = result.source_country or UNKNOWN_COUNTRY
        dst = result.destination_country or UNKNOWN_COUNTRY
        key = f"{src}->{dst}"
        agg = groups.get(key)
        if agg is None:
            agg = groups[key] = CountryFlowAggregation(source_country=src, destination_country=dst)

        agg.flow_count += 1
        agg.flows.append(result)
        if result.path_changed:
            agg.path_migrations += 1

        delta = result.cost_delta
        if delta is not None:
            if delta > 0:
                agg.cost_increases += 1
            elif delta < 0:
                agg.cost_decreases += 1

        if result.is_ecmp and not result.was_ecmp:
            agg.ecmp_gained += 1
        elif result.was_ecmp and not result.is_ecmp:
            agg.ecmp_lost += 1

    for agg in groups.values():
        deltas = [f.cost_delta for f in agg.flows if f.cost_delta is not None]
        agg.avg_cost_delta = sum(deltas) / len(deltas) if deltas else 0.0
        agg.max_cost_delta = max(deltas) if deltas else None

        pcts = [f.cost_change_pct for f in agg.flows]
        agg.avg_cost_change_pct = sum(pcts) / len(pcts) if pcts else 0.0
        agg.max_cost_change_pct = max((abs(p) for p in pcts), default=0.0)

    return sorted(groups.values(), key=lambda a: (-a.flow_count, a.key))


def _country_risk(max_pct: float) -> CountryRisk:
    if max_pct < 10:
        return CountryRisk.LOW
    if max_pct < 25:
        return CountryRisk.MEDIUM
    if max_pct < 50:
        return CountryRisk.HIGH
    return CountryRisk.CRITICAL


def country_summaries(aggregations: Iterable[CountryFlowAggregation]) -> List[CountrySummary]:
    """
    Fold country-pair groups into one summary per country

    Returns:
        Summaries sorted by total flows (descending), then by country
    """
    summaries: Dict[str, CountrySummary] = {}
    pcts: Dict[str, List[float]] = {}

    for agg in aggregations:
        for country, role in ((agg.source_country, "src"), (agg.destination_country, "dst")):
            summary = summaries.get(country)
            if summary is None:
                summary = summaries[country] = CountrySummary(country=country)
                pcts[country] = []
            if role == "src":
                summary.flows_as_source += agg.flow_count
            else:
                summary.flows_as_destination += agg.flow_count
            pcts[country].extend(abs(f.cost_change_pct) for f in agg.flows)

    for country, summary in summaries.items():
        values = pcts[country]
        summary.avg_cost_change_pct = sum(values) / len(values) if values else 0.0
        summary.max_cost_change_pct = max(values, default=0.0)
        summary.risk = _country_risk(summary.max_cost_change_pct)

    return sorted(summaries.values(), key=lambda s: (-s.total_flows, s.country))
