"""
Test suite for blast radius assessment.

Tests cover:
- Country aggregation and per-country summaries
- Risk score factors, caps and tiers
- Recommendations and rollback planning
- Blast zones
- Single-pair what-ifs
- The end-to-end report
"""

import pytest

from netimpact.config import AnalysisConfig
from netimpact.jobs import CancellationToken
from netimpact.topology import CostChange, EdgeNotFoundError
from netimpact.whatif import (
    BlastRadiusAnalyzer,
    BlastZone,
    CountryRisk,
    ImpactResult,
    ImpactType,
    RecommendationType,
    RiskLevel,
    aggregate_by_country,
    analyze_blast_radius,
    analyze_cost_change,
    calculate_blast_radius_score,
    classify_into_zones,
    classify_risk,
    country_summaries,
    generate_recommendations,
    generate_rollback_plan,
    score_results,
    simulate_pair_cost_change,
    simulate_pair_link_failure,
    zone_impact_score,
)
from netimpact.whatif.recommender import primary_recommendation


def make_result(source="A", destination="B", source_country="GBR", destination_country="FRA",
                old_cost=10, new_cost=20, path_changed=True, was_ecmp=False, is_ecmp=False,
                impact_type=ImpactType.REROUTE):
    old_path = [source, destination] if old_cost is not None else []
    new_path = [source, "X", destination] if path_changed else list(old_path)
    if new_cost is None:
        new_path = []
    return ImpactResult(
        source=source,
        destination=destination,
        source_country=source_country,
        destination_country=destination_country,
        old_path=old_path,
        new_path=new_path,
        old_cost=old_cost,
        new_cost=new_cost,
        path_changed=path_changed,
        was_ecmp=was_ecmp,
        is_ecmp=is_ecmp,
        impact_type=impact_type,
    )


@pytest.fixture
def scenario_run(scenario_topology):
    return analyze_cost_change(scenario_topology, [CostChange("ab", 25)])


class TestCountryAggregation:
    """Tests for country pair aggregation."""

    def test_affected_flows(self, scenario_run):
        """Test affected flows group by country pair, ties by key."""
        aggregations = aggregate_by_country(scenario_run.changed())
        assert [a.key for a in aggregations] == ["GBR->FRA", "GBR->GBR"]
        gbr = aggregations[1]
        assert gbr.flow_count == 1
        assert gbr.cost_increases == 1
        assert gbr.avg_cost_delta == 15
        assert gbr.max_cost_delta == 15
        assert gbr.path_migrations == 0
        assert aggregations[0].path_migrations == 1

    def test_full_set_counts(self, scenario_run):
        """Test flow counts sum to the number of results."""
        aggregations = aggregate_by_country(scenario_run.results)
        counts = {a.key: a.flow_count for a in aggregations}
        assert counts == {"GBR->GBR": 2, "GBR->FRA": 4, "FRA->GBR": 4, "FRA->FRA": 2}
        assert sum(counts.values()) == len(scenario_run.results)
        assert [a.key for a in aggregations][:2] == ["FRA->GBR", "GBR->FRA"]

    def test_unknown_bucket(self, ring_topology):
        """Test routers without a country are kept under Unknown."""
        run = analyze_cost_change(ring_topology, [CostChange("ab", 30)])
        aggregations = aggregate_by_country(run.results)
        assert [a.key for a in aggregations] == ["Unknown->Unknown"]
        assert aggregations[0].flow_count == 6

    def test_unreachable_deltas_ignored(self):
        """Test flows without a delta do not skew the averages."""
        results = [
            make_result(old_cost=10, new_cost=None, impact_type=ImpactType.LOST_PATH),
            make_result(destination="C", old_cost=10, new_cost=14),
        ]
        agg = aggregate_by_country(results)[0]
        assert agg.flow_count == 2
        assert agg.avg_cost_delta == 4
        assert agg.max_cost_change_pct == 100.0

    def test_country_summaries(self, scenario_run):
        """Test per-country rollup across both directions."""
        summaries = country_summaries(aggregate_by_country(scenario_run.changed()))
        assert [s.country for s in summaries] == ["GBR", "FRA"]
        gbr, fra = summaries
        assert (gbr.flows_as_source, gbr.flows_as_destination) == (2, 1)
        assert gbr.risk == CountryRisk.CRITICAL
        assert fra.total_flows == 1
        assert fra.risk == CountryRisk.LOW


class TestRiskScore:
    """Tests for the blast radius score."""

    def test_scenario_score(self, scenario_run, scenario_topology):
        """Test the reference change scores 63 (HIGH)."""
        score = score_results(scenario_run.results, scenario_topology.node_count)
        assert score.affected_flows == 2
        assert score.total_flows == 12
        assert score.breakdown.flow_impact == pytest.approx(100 * 2 / 12)
        assert score.breakdown.cost_magnitude == 30
        assert score.breakdown.country_diversity == 6
        assert score.breakdown.critical_paths == 10
        assert score.overall == 63
        assert score.risk == RiskLevel.HIGH
        assert score.critical_path_count == 1

    def test_nothing_affected(self):
        """Test an empty change scores zero."""
        score = calculate_blast_radius_score([], 4)
        assert score.overall == 0
        assert score.risk == RiskLevel.LOW
        assert score.total_flows == 12

    def test_single_node_total_guard(self):
        """Test total flows never drops below one."""
        assert calculate_blast_radius_score([], 1).total_flows == 1

    def test_factor_caps(self):
        """Test every factor saturates at its cap."""
        countries = ["C1", "C2", "C3", "C4", "C5", "C6", "C7", "C8"]
        results = [
            make_result(source_country=countries[i % 8], destination_country=countries[(i + 1) % 8],
                        old_cost=10, new_cost=30)
            for i in range(10)
        ]
        score = calculate_blast_radius_score(results, 2)
        assert score.breakdown.flow_impact == 40
        assert score.breakdown.cost_magnitude == 30
        assert score.breakdown.country_diversity == 20
        assert score.breakdown.critical_paths == 10
        assert score.overall == 100
        assert score.risk == RiskLevel.CRITICAL

    def test_tiers(self):
        """Test tier boundaries."""
        assert classify_risk(0) == RiskLevel.LOW
        assert classify_risk(19) == RiskLevel.LOW
        assert classify_risk(20) == RiskLevel.MEDIUM
        assert classify_risk(39) == RiskLevel.MEDIUM
        assert classify_risk(40) == RiskLevel.HIGH
        assert classify_risk(69) == RiskLevel.HIGH
        assert classify_risk(70) == RiskLevel.CRITICAL

    def test_same_country_not_critical(self):
        """Test intra-country reroutes add no critical path points."""
        results = [make_result(source_country="GBR", destination_country="GBR")]
        score = calculate_blast_radius_score(results, 4)
        assert score.breakdown.critical_paths == 0
        assert score.countries_affected == 1


class TestRecommendations:
    """Tests for the recommendation engine."""

    def test_primary_tiers(self):
        """Test risk tiers map to proceed, caution and abort."""
        assert primary_recommendation(RiskLevel.LOW).type == RecommendationType.PROCEED
        assert primary_recommendation(RiskLevel.MEDIUM).type == RecommendationType.CAUTION
        assert primary_recommendation(RiskLevel.HIGH).title == "REQUIRES APPROVAL"
        assert primary_recommendation(RiskLevel.CRITICAL).type == RecommendationType.ABORT

    def test_scenario_recommendations(self, scenario_run, scenario_topology):
        """Test the verdict comes first, then each applicable concern."""
        affected = scenario_run.changed()
        score = calculate_blast_radius_score(affected, scenario_topology.node_count)
        titles = [r.title for r in generate_recommendations(score, affected)]
        assert titles == ["REQUIRES APPROVAL", "Inter-country Paths Changing", "Severe Cost Increase"]

    def test_ecmp_loss_threshold(self):
        """Test ECMP loss is flagged only above five flows."""
        def lost(n):
            results = [
                make_result(destination=f"D{i}", source_country="GBR", destination_country="GBR",
                            old_cost=10, new_cost=10, was_ecmp=True, impact_type=ImpactType.LOST_ECMP)
                for i in range(n)
            ]
            score = calculate_blast_radius_score(results, 20)
            return [r.title for r in generate_recommendations(score, results)]

        assert "ECMP Redundancy Lost" not in lost(5)
        assert "ECMP Redundancy Lost" in lost(6)

    def test_lost_path(self):
        """Test lost reachability is an abort-level concern."""
        results = [make_result(new_cost=None, impact_type=ImpactType.LOST_PATH)]
        score = calculate_blast_radius_score(results, 4)
        recommendation = generate_recommendations(score, results)[-1]
        assert recommendation.title == "Reachability Lost"
        assert recommendation.type == RecommendationType.ABORT

    def test_wide_impact(self):
        """Test more than three countries adds a suggestion."""
        results = [
            make_result(source_country=a, destination_country=b, path_changed=False,
                        old_cost=10, new_cost=11, impact_type=ImpactType.COST_INCREASE)
            for a, b in (("GBR", "FRA"), ("DEU", "USA"))
        ]
        score = calculate_blast_radius_score(results, 10)
        recommendation = generate_recommendations(score, results)[-1]
        assert recommendation.title == "Wide Geographic Impact"
        assert not recommendation.actionable


class TestRollbackPlan:
    """Tests for rollback planning."""

    def test_plan(self, scenario_topology):
        """Test original costs and the convergence estimate."""
        plan = generate_rollback_plan(scenario_topology, [CostChange("ab", 25)], 2)
        entry = plan.changes[0]
        assert (entry.edge_id, entry.original_cost, entry.changed_cost) == ("ab", 10, 25)
        assert plan.estimated_convergence_seconds == 5.104
        assert plan.cli_commands[0].endswith(" ip ospf cost 10")
        assert plan.steps[1] == "Restore original OSPF cost: ab -> 10"
        assert plan.affected_flow_count == 2

    def test_unknown_edge(self, scenario_topology):
        """Test an unknown edge cannot be rolled back."""
        with pytest.raises(EdgeNotFoundError):
            generate_rollback_plan(scenario_topology, [CostChange("zz", 5)], 0)


class TestBlastZones:
    """Tests for blast zone classification."""

    def test_scenario_zones(self, scenario_run, scenario_topology):
        """Test both affected flows touch the changed link."""
        zoned = classify_into_zones(scenario_run.changed(), ["ab"], scenario_topology)
        assert [z.zone for z in zoned] == [BlastZone.DIRECT, BlastZone.DIRECT]
        assert zoned[0].reason == "Path continues to traverse changed link"
        assert zoned[1].reason == "Flow moved away from changed link"
        assert zone_impact_score(zoned) == 100

    def test_indirect_and_secondary(self, scenario_topology):
        """Test flows away from the changed link."""
        reroute = make_result(source="B", destination="D")
        cost_only = make_result(source="C", destination="D", path_changed=False,
                                old_cost=9, new_cost=10, impact_type=ImpactType.COST_INCREASE)
        zoned = classify_into_zones([reroute, cost_only], ["ab"], scenario_topology)
        assert [z.zone for z in zoned] == [BlastZone.INDIRECT, BlastZone.SECONDARY]
        assert zone_impact_score(zoned) == 50

    def test_reverse_direction_counts(self, scenario_topology):
        """Test a path over the reverse hop of a changed link is direct."""
        result = make_result(source="B", destination="A")
        zoned = classify_into_zones([result], ["ab"], scenario_topology)
        assert zoned[0].zone == BlastZone.DIRECT


class TestPairWhatIf:
    """Tests for single-pair what-ifs."""

    def test_cost_increase(self, scenario_topology):
        """Test A->D gets one more expensive and changes path."""
        result = simulate_pair_cost_change(scenario_topology, "A", "D", [CostChange("ab", 25)])
        assert result.cost_delta == 1
        assert result.summary == "Path cost increased by 1"
        assert len(result.affected_paths) == 1
        assert len(result.new_paths) == 1

    def test_no_change(self, ring_topology):
        """Test a change off the path does nothing."""
        result = simulate_pair_cost_change(ring_topology, "A", "B", [CostChange("bc", 11)])
        assert result.summary == "No change"
        assert result.cost_delta == 0

    def test_path_set_change(self, diamond_topology):
        """Test equal cost but fewer equal-cost paths."""
        result = simulate_pair_cost_change(diamond_topology, "S", "T", [CostChange("sl", 2)])
        assert result.summary == "No cost change, but the equal-cost path set changed"
        assert result.affected_paths == ["path-1"]
        assert result.new_paths == []

    def test_link_failure(self, bridge_topology):
        """Test losing the bridge leaves no path."""
        result = simulate_pair_link_failure(bridge_topology, "A", "D", failed_links=["cd"])
        assert result.simulated is None
        assert result.cost_delta is None
        assert result.summary.startswith("CRITICAL")


class TestBlastRadiusReport:
    """Tests for the end-to-end report."""

    def test_scenario_report(self, scenario_topology):
        """Test the report ties every stage together."""
        report = analyze_blast_radius(scenario_topology, [CostChange("ab", 25)])
        assert report.report_id == "report-000001"
        assert report.complete
        assert report.score.overall == 63
        assert len(report.recommendations) == 3
        assert report.rollback_plan.changes[0].original_cost == 10
        assert [a.key for a in report.country_aggregations] == ["GBR->FRA", "GBR->GBR"]
        assert [(z.zone, z.flow_count) for z in report.zone_summaries] == [(BlastZone.DIRECT, 2)]

    def test_report_ids_increase(self, scenario_topology):
        """Test each report from one analyzer gets a new id."""
        analyzer = BlastRadiusAnalyzer(scenario_topology)
        analyzer.analyze([CostChange("ab", 25)])
        assert analyzer.analyze([CostChange("ab", 30)]).report_id == "report-000002"

    def test_cancelled_report(self, scenario_topology):
        """Test a cancelled run still yields a report, flagged incomplete."""
        token = CancellationToken()
        token.cancel()
        report = analyze_blast_radius(scenario_topology, [CostChange("ab", 25)], cancel_token=token)
        assert not report.complete
        assert report.score.overall == 0
        assert report.to_dict()["complete"] is False

    def test_to_dict(self, scenario_topology):
        """Test the serialized report shape."""
        data = analyze_blast_radius(scenario_topology, [CostChange("ab", 25)]).to_dict()
        assert data["score"]["risk"] == "HIGH"
        assert data["score"]["breakdown"]["flow_impact"] == 17
        assert data["changes"] == [{"edge_id": "ab", "new_cost": 25}]
        assert data["recommendations"][0]["type"] == "CAUTION"

    @pytest.mark.asyncio
    async def test_async_report(self, scenario_topology):
        """Test the async pipeline."""
        analyzer = BlastRadiusAnalyzer(scenario_topology, AnalysisConfig(batch_size=4))
        report = await analyzer.analyze_async([CostChange("ab", 25)])
        assert report.score.overall == 63
