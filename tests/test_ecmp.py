"""
Test suite for ECMP analysis.

Tests cover:
- Bounded path enumeration
- Divergence and convergence points
- Load balancing and critical elements
- Network-wide sampling with cancellation
"""

import pytest

from netimpact.config import AnalysisConfig
from netimpact.jobs import CancellationToken
from netimpact.spf import (
    NetworkECMPSampler,
    analyze_network_ecmp,
    calculate_load_balancing,
    calculate_path_metrics,
    calculate_weighted_load_balancing,
    create_ecmp_group,
    find_ecmp_critical_edges,
    find_ecmp_critical_nodes,
    find_ecmp_paths,
)
from netimpact.topology import Edge, Link, Node, Topology


def _grid(width):
    """Two rows of routers joined as a ladder; many equal-cost paths end to end."""
    nodes = [Node(f"t{i}") for i in range(width)] + [Node(f"b{i}") for i in range(width)]
    links = []
    for i in range(width - 1):
        links.append(Link(f"t{i}-t{i + 1}", f"t{i}", f"t{i + 1}", 1))
        links.append(Link(f"b{i}-b{i + 1}", f"b{i}", f"b{i + 1}", 1))
    for i in range(width):
        links.append(Link(f"t{i}-b{i}", f"t{i}", f"b{i}", 1))
    return Topology.from_links(nodes, links)


class TestEnumeration:
    """Tests for equal-cost path enumeration."""

    def test_two_paths(self, ecmp_topology):
        """Test both node sequences are found, canonical first."""
        result = find_ecmp_paths(ecmp_topology, "A", "B")
        assert result.is_ecmp
        assert result.path_count == 2
        assert result.paths[0].node_sequence == ["A", "B"]
        assert result.paths[1].node_sequence == ["A", "X", "B"]
        assert result.paths[1].edge_sequence == ["e2", "e3"]
        assert all(p.cost == 5 for p in result.paths)

    def test_path_ids(self, diamond_topology):
        """Test paths are numbered from path-1."""
        result = find_ecmp_paths(diamond_topology, "S", "T")
        assert [p.path_id for p in result.paths] == ["path-1", "path-2"]

    def test_single_path(self, scenario_topology):
        """Test a non-ECMP pair has one path."""
        result = find_ecmp_paths(scenario_topology, "A", "D")
        assert not result.is_ecmp
        assert result.path_count == 1

    def test_cap(self):
        """Test enumeration stops at max_paths."""
        topology = _grid(5)
        result = find_ecmp_paths(topology, "t0", "b4", max_paths=3)
        assert result.path_count == 3
        assert result.is_ecmp

    def test_parallel_edge_chain(self):
        """Test doubled hops along a long chain yield one path, first edges kept."""
        hops = 40
        nodes = [Node(f"r{i}") for i in range(hops + 1)]
        edges = []
        for i in range(hops):
            edges.append(Edge(f"p{i}", f"r{i}", f"r{i + 1}", 1))
            edges.append(Edge(f"q{i}", f"r{i}", f"r{i + 1}", 1))
        topology = Topology(nodes, edges)

        result = find_ecmp_paths(topology, "r0", f"r{hops}", max_paths=10)
        assert result.path_count == 1
        assert not result.is_ecmp
        assert result.paths[0].edge_sequence == [f"p{i}" for i in range(hops)]
        assert result.cost == hops

    def test_unreachable(self, scenario_topology):
        """Test an unreachable pair returns None."""
        assert find_ecmp_paths(scenario_topology, "D", "A") is None

    def test_invalid_cap(self, ecmp_topology):
        """Test max_paths below 1 is rejected."""
        with pytest.raises(ValueError):
            find_ecmp_paths(ecmp_topology, "A", "B", max_paths=0)


class TestDivergence:
    """Tests for divergence and convergence detection."""

    def test_diamond(self, diamond_topology):
        """Test the fan-out and merge routers are found."""
        result = find_ecmp_paths(diamond_topology, "S", "T")
        assert result.divergence_points == ["S"]
        assert result.convergence_points == ["T"]

    def test_single_path_has_none(self, scenario_topology):
        """Test one path has no divergence."""
        result = find_ecmp_paths(scenario_topology, "A", "D")
        assert result.divergence_points == []
        assert result.convergence_points == []


class TestLoadBalancing:
    """Tests for ECMP load distribution."""

    def test_equal_split(self, diamond_topology):
        """Test each path carries half the flows."""
        result = find_ecmp_paths(diamond_topology, "S", "T")
        info = calculate_load_balancing(result, diamond_topology)
        assert info.distribution == {"path-1": 50.0, "path-2": 50.0}
        assert info.is_balanced
        assert info.total_capacity == 20000

    def test_weighted_split(self):
        """Test capacity-weighted shares follow the bottleneck."""
        topology = Topology.from_links(
            [Node("S"), Node("L"), Node("R"), Node("T")],
            [
                Link("sl", "S", "L", 1, capacity_mbps=3000),
                Link("sr", "S", "R", 1, capacity_mbps=1000),
                Link("lt", "L", "T", 1, capacity_mbps=3000),
                Link("rt", "R", "T", 1, capacity_mbps=1000),
            ],
        )
        result = find_ecmp_paths(topology, "S", "T")
        info = calculate_weighted_load_balancing(result, topology)
        assert info.distribution == {"path-1": 75.0, "path-2": 25.0}
        assert not info.is_balanced

    def test_path_metrics(self, diamond_topology):
        """Test hops, cost and diversity of disjoint paths."""
        result = find_ecmp_paths(diamond_topology, "S", "T")
        metrics = calculate_path_metrics(result.paths[0], diamond_topology, result.paths)
        assert metrics.hop_count == 2
        assert metrics.total_cost == 2
        assert metrics.shared_link_count == 0
        assert metrics.diversity_score == 100

    def test_group(self, diamond_topology):
        """Test the group id and serialized shape."""
        group = create_ecmp_group(diamond_topology, find_ecmp_paths(diamond_topology, "S", "T"))
        data = group.to_dict()
        assert data["group_id"] == "ecmp-S-T"
        assert data["path_count"] == 2
        assert "load_balancing" in data


class TestCriticalElements:
    """Tests for ECMP-critical nodes and edges."""

    def test_transit_nodes_break_ecmp(self, diamond_topology):
        """Test losing either transit router collapses the group."""
        result = find_ecmp_paths(diamond_topology, "S", "T")
        critical = find_ecmp_critical_nodes(diamond_topology, result)
        assert [c.element_id for c in critical] == ["L", "R"]
        assert all(c.would_break_ecmp for c in critical)
        assert all(c.paths_affected == 1 for c in critical)

    def test_edges(self, diamond_topology):
        """Test every path edge is reported."""
        result = find_ecmp_paths(diamond_topology, "S", "T")
        critical = find_ecmp_critical_edges(diamond_topology, result)
        assert {c.element_id for c in critical} == {"sl", "lt", "sr", "rt"}


class TestNetworkSampling:
    """Tests for network-wide ECMP sampling."""

    def test_all_pairs_when_sample_large(self, diamond_topology):
        """Test every unordered pair is checked when the sample covers them."""
        analysis = analyze_network_ecmp(diamond_topology, sample_size=100)
        assert analysis.sampled_pairs == 6
        assert analysis.complete
        # S-T and L-R both have two equal-cost paths
        assert analysis.ecmp_pairs == 2
        assert analysis.non_ecmp_pairs == 4
        assert analysis.max_path_count == 2

    def test_seeded_sample_is_repeatable(self):
        """Test the same seed picks the same pairs."""
        sampler = NetworkECMPSampler(_grid(4))
        assert sampler.sample_pairs(5, seed=7) == sampler.sample_pairs(5, seed=7)

    def test_cancelled_before_start(self, diamond_topology):
        """Test a cancelled token yields an incomplete, empty sample."""
        token = CancellationToken()
        token.cancel()
        analysis = analyze_network_ecmp(diamond_topology, sample_size=100, cancel_token=token)
        assert not analysis.complete
        assert analysis.sampled_pairs == 0

    def test_progress(self, diamond_topology):
        """Test progress reaches 100 and never decreases."""
        seen = []
        config = AnalysisConfig(batch_size=2)
        analyze_network_ecmp(diamond_topology, sample_size=100, config=config,
                             progress_callback=lambda done, total, pct: seen.append(pct))
        assert seen == sorted(seen)
        assert seen[-1] == 100

    @pytest.mark.asyncio
    async def test_async_matches_sync(self, diamond_topology):
        """Test the async sampler produces the same counts."""
        sampler = NetworkECMPSampler(diamond_topology)
        sync = sampler.run(sample_size=100)
        result = await sampler.run_async(sample_size=100)
        assert result.ecmp_pairs == sync.ecmp_pairs
        assert result.sampled_pairs == sync.sampled_pairs
