"""Tests for router and link failure simulation"""

import pytest

from netimpact.resilience import (
    FlowStatus,
    Severity,
    calculate_failure_impact,
    quick_impact_assessment,
    sample_affected_flows,
    simulate_cascade_failure,
    simulate_failure,
)
from netimpact.topology import EdgeNotFoundError, Link, Node, NodeNotFoundError, Topology


@pytest.fixture
def leaf_topology():
    """Triangle A-B-C with router L hanging off A"""
    return Topology.from_links(
        [Node("A"), Node("B"), Node("C"), Node("L")],
        [Link("ab", "A", "B", 1), Link("bc", "B", "C", 1),
         Link("ca", "C", "A", 1), Link("al", "A", "L", 1)],
    )


class TestFailureImpact:
    """Tests for failure impact metrics"""

    def test_bridge_link(self, bridge_topology):
        """Test losing the bridge breaks every cross-triangle pair"""
        metrics = calculate_failure_impact(bridge_topology, failed_links=["cd"])
        assert metrics.broken_paths == 18
        assert metrics.partition_count == 2
        assert metrics.is_partitioned
        assert metrics.affected_countries == ["USA", "DEU"]
        assert metrics.total_paths == 30

    def test_node_failure(self, bridge_topology):
        """Test losing a bridge router"""
        metrics = calculate_failure_impact(bridge_topology, failed_nodes=["C"])
        assert metrics.broken_paths == 12
        assert metrics.isolated_nodes == []

    def test_redundant_link(self, ring_topology):
        """Test a ring link failure breaks nothing"""
        metrics = calculate_failure_impact(ring_topology, failed_links=["ab"])
        assert metrics.broken_paths == 0
        assert metrics.reroutable_paths == metrics.paths_affected
        assert not metrics.is_partitioned


class TestSimulateFailure:
    """Tests for the full failure simulation"""

    def test_partition_recommendations(self, bridge_topology):
        """Test partitioning leads the recommendations"""
        result = simulate_failure(bridge_topology, failed_links=["cd"], seed=1)
        assert result.recommendations[0].startswith("CRITICAL: Network is partitioned into 2 segments")
        assert result.recommendations[1] == (
            "Priority: Reconnect main network (3 nodes) with isolated segment (3 nodes)"
        )
        assert "18 paths (60.0%) have no alternate route. Consider emergency rerouting." in result.recommendations

    def test_directed_id_normalized(self, bridge_topology):
        """Test a directed edge id fails its whole link"""
        result = simulate_failure(bridge_topology, failed_links=["cd:rev"])
        assert result.failed_links == ["cd"]
        assert result.metrics.broken_paths == 18

    def test_fully_redundant(self, ring_topology):
        """Test the all-clear recommendation"""
        result = simulate_failure(ring_topology, failed_links=["ab"], seed=3)
        assert result.recommendations == ["Network remains fully connected. All paths have alternates."]

    def test_rerouted_flows(self, ring_topology):
        """Test only flows that crossed the failed link are reported"""
        flows = sample_affected_flows(ring_topology, failed_links=["ab"], seed=5)
        for flow in flows:
            assert (flow.source, flow.destination) in {("A", "B"), ("B", "A")}
            assert flow.status == FlowStatus.REROUTED
            assert flow.cost_delta == 10

    def test_broken_flows_first(self, bridge_topology):
        """Test broken flows sort before rerouted ones"""
        flows = sample_affected_flows(bridge_topology, failed_nodes=["C"], sample_size=10, seed=11)
        order = [f.status for f in flows]
        assert order == sorted(order, key=lambda s: s != FlowStatus.BROKEN)
        for flow in flows:
            if flow.status == FlowStatus.BROKEN:
                assert flow.new_path is None
                assert flow.cost_delta is None

    def test_seed_is_deterministic(self, bridge_topology):
        """Test the same seed samples the same flows"""
        first = sample_affected_flows(bridge_topology, failed_nodes=["C"], seed=42)
        second = sample_affected_flows(bridge_topology, failed_nodes=["C"], seed=42)
        assert [f.to_dict() for f in first] == [f.to_dict() for f in second]

    def test_unknown_elements(self, ring_topology):
        """Test unknown routers and links are rejected"""
        with pytest.raises(NodeNotFoundError):
            simulate_failure(ring_topology, failed_nodes=["Z"])
        with pytest.raises(EdgeNotFoundError):
            simulate_failure(ring_topology, failed_links=["zz"])


class TestQuickAssessment:
    """Tests for single-element verdicts"""

    def test_bridge(self, bridge_topology):
        """Test a bridge link partitions"""
        verdict = quick_impact_assessment(bridge_topology, failed_link="cd")
        assert verdict.severity == Severity.HIGH
        assert verdict.would_partition

    def test_ring_router(self, ring_topology):
        """Test a failed router counts as isolated"""
        verdict = quick_impact_assessment(ring_topology, failed_node="A")
        assert verdict.severity == Severity.MEDIUM
        assert verdict.isolated_count == 1

    def test_ring_link(self, ring_topology):
        """Test a redundant link is low impact"""
        verdict = quick_impact_assessment(ring_topology, failed_link="ab")
        assert verdict.severity == Severity.LOW
        assert not verdict.would_partition


class TestCascade:
    """Tests for cascade simulation"""

    def test_stranded_router_drops_links(self, leaf_topology):
        """Test a stranded leaf takes its link down in the next step"""
        result = simulate_cascade_failure(leaf_topology, failed_nodes=["A"])
        assert len(result.steps) == 2
        assert result.steps[1].failed == ["al"]
        assert result.total_failed_links == ["al"]
        assert result.final_metrics.isolated_nodes == ["L"]

    def test_no_cascade(self, ring_topology):
        """Test a contained failure stops after the first step"""
        result = simulate_cascade_failure(ring_topology, failed_links=["ab"])
        assert len(result.steps) == 1
        assert result.total_failed_links == ["ab"]
