"""
Test suite for the REST API.

Tests cover:
- Health endpoint
- Path and ECMP queries
- Error mapping (404 for unknown ids, 422 for malformed input)
- Impact, SPOF, failure and traffic endpoints
"""

import copy

import pytest
from fastapi.testclient import TestClient

from netimpact.api import create_app
from netimpact.config import AnalysisConfig


@pytest.fixture
def client():
    return TestClient(create_app(AnalysisConfig()))


@pytest.fixture
def bridge_dict():
    return {
        "nodes": [{"id": n, "country": "USA" if n in "ABC" else "DEU"} for n in "ABCDEF"],
        "links": [
            {"id": "ab", "from": "A", "to": "B", "cost": 10},
            {"id": "bc", "from": "B", "to": "C", "cost": 10},
            {"id": "ca", "from": "C", "to": "A", "cost": 10},
            {"id": "cd", "from": "C", "to": "D", "cost": 50},
            {"id": "de", "from": "D", "to": "E", "cost": 10},
            {"id": "ef", "from": "E", "to": "F", "cost": 10},
            {"id": "fd", "from": "F", "to": "D", "cost": 10},
        ],
    }


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        """Test health reports status and version."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"


class TestPathEndpoints:
    """Tests for path and ECMP queries."""

    def test_shortest_path(self, client, scenario_dict):
        """Test a reachable pair."""
        response = client.post("/api/path", json={
            "topology": scenario_dict, "source": "A", "destination": "D",
        })
        assert response.status_code == 200
        path = response.json()["path"]
        assert path["canonical_path"] == ["A", "B", "D"]
        assert path["cost"] == 20

    def test_unreachable_is_null(self, client, scenario_dict):
        """Test an unreachable pair is a normal result."""
        response = client.post("/api/path", json={
            "topology": scenario_dict, "source": "D", "destination": "A",
        })
        assert response.status_code == 200
        assert response.json() == {"path": None}

    def test_all_paths(self, client, scenario_dict):
        """Test equal-cost enumeration."""
        response = client.post("/api/path", json={
            "topology": scenario_dict, "source": "A", "destination": "D", "all_paths": True,
        })
        assert response.json()["path"]["path_count"] == 1

    def test_unknown_node(self, client, scenario_dict):
        """Test an unknown query node is 404."""
        response = client.post("/api/path", json={
            "topology": scenario_dict, "source": "A", "destination": "Z",
        })
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "node_not_found"

    def test_malformed_topology(self, client, scenario_dict):
        """Test a dangling edge endpoint is a 422."""
        broken = copy.deepcopy(scenario_dict)
        broken["edges"][0]["to"] = "Z"
        response = client.post("/api/path", json={
            "topology": broken, "source": "A", "destination": "D",
        })
        assert response.status_code == 422

    def test_invalid_cost(self, client, scenario_dict):
        """Test an out-of-range cost in the snapshot is a 422."""
        broken = copy.deepcopy(scenario_dict)
        broken["edges"][0]["cost"] = 0
        response = client.post("/api/path", json={
            "topology": broken, "source": "A", "destination": "D",
        })
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_cost"

    def test_missing_field(self, client, scenario_dict):
        """Test request validation."""
        response = client.post("/api/path", json={"topology": scenario_dict, "source": "A"})
        assert response.status_code == 422

    def test_ecmp_network_sample(self, client, bridge_dict):
        """Test the network-wide ECMP view."""
        response = client.post("/api/ecmp", json={"topology": bridge_dict, "seed": 1})
        assert response.status_code == 200
        assert "analysis" in response.json()

    @pytest.mark.parametrize("pair", [{"source": "A"}, {"destination": "D"}])
    def test_ecmp_half_pair(self, client, scenario_dict, pair):
        """Test a pair with only one endpoint is a 422."""
        response = client.post("/api/ecmp", json={"topology": scenario_dict, **pair})
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_request"


class TestAnalysisEndpoints:
    """Tests for the analysis endpoints."""

    def test_impact(self, client, scenario_dict):
        """Test the blast radius of the reference change."""
        response = client.post("/api/impact", json={
            "topology": scenario_dict,
            "changes": [{"edge_id": "ab", "new_cost": 25}],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["score"]["overall"] == 63
        assert data["score"]["risk"] == "HIGH"
        assert len(data["impact"]["results"]) == 2

    def test_impact_include_unaffected(self, client, scenario_dict):
        """Test unaffected flows on request."""
        response = client.post("/api/impact", json={
            "topology": scenario_dict,
            "changes": [{"edge_id": "ab", "new_cost": 25}],
            "include_unaffected": True,
        })
        assert len(response.json()["impact"]["results"]) == 12

    def test_impact_unknown_edge(self, client, scenario_dict):
        """Test a change to an unknown edge is 404."""
        response = client.post("/api/impact", json={
            "topology": scenario_dict,
            "changes": [{"edge_id": "zz", "new_cost": 25}],
        })
        assert response.status_code == 404

    def test_impact_invalid_cost(self, client, scenario_dict):
        """Test an out-of-range new cost is 422."""
        response = client.post("/api/impact", json={
            "topology": scenario_dict,
            "changes": [{"edge_id": "ab", "new_cost": 70000}],
        })
        assert response.status_code == 422

    def test_connectivity(self, client, bridge_dict):
        """Test partition detection with an excluded link."""
        response = client.post("/api/connectivity", json={
            "topology": bridge_dict, "exclude_links": ["cd"],
        })
        assert response.status_code == 200
        assert response.json()["component_count"] == 2

    def test_spof(self, client, bridge_dict):
        """Test the SPOF scan and resilience score."""
        response = client.post("/api/spof", json={"topology": bridge_dict})
        assert response.status_code == 200
        data = response.json()
        assert data["scan"]["spofs"][0]["element_id"] == "cd"
        assert "overall" in data["resilience"]

    def test_failure(self, client, bridge_dict):
        """Test failure simulation."""
        response = client.post("/api/failure", json={
            "topology": bridge_dict, "failed_links": ["cd"], "seed": 1,
        })
        assert response.status_code == 200
        assert response.json()["metrics"]["broken_paths"] == 18

    def test_failure_unknown_node(self, client, bridge_dict):
        """Test an unknown failed router is 404."""
        response = client.post("/api/failure", json={"topology": bridge_dict, "failed_nodes": ["Z"]})
        assert response.status_code == 404


class TestTrafficEndpoints:
    """Tests for traffic engineering endpoints."""

    @pytest.fixture
    def congested_dict(self):
        return {
            "nodes": [{"id": "A"}, {"id": "B"}, {"id": "C"}],
            "links": [
                {"id": "ab", "from": "A", "to": "B", "cost": 10, "capacity": 100},
                {"id": "ac", "from": "A", "to": "C", "cost": 6, "capacity": 1000},
                {"id": "cb", "from": "C", "to": "B", "cost": 6, "capacity": 1000},
            ],
        }

    def test_utilization(self, client, congested_dict):
        """Test utilization with an explicit matrix."""
        response = client.post("/api/traffic/utilization", json={
            "topology": congested_dict, "matrix": {"A": {"B": 90}},
        })
        assert response.status_code == 200
        assert response.json()["congested_edges"] == ["ab"]

    def test_generated_matrix(self, client, scenario_dict):
        """Test utilization with a generated matrix."""
        response = client.post("/api/traffic/utilization", json={
            "topology": scenario_dict, "model": "uniform", "base_traffic": 10,
        })
        assert response.json()["unroutable_mbps"] == 70

    def test_unknown_model(self, client, scenario_dict):
        """Test an unknown traffic model is 422."""
        response = client.post("/api/traffic/utilization", json={
            "topology": scenario_dict, "model": "gravity",
        })
        assert response.status_code == 422

    def test_optimize(self, client, congested_dict):
        """Test the greedy optimizer end to end."""
        response = client.post("/api/traffic/optimize", json={
            "topology": congested_dict, "matrix": {"A": {"B": 90}},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["proposed_costs"] == {"ab": 15}
        assert data["stop_reason"] == "no_congestion"

    def test_invalid_constraints(self, client, congested_dict):
        """Test out-of-range constraints are 422."""
        response = client.post("/api/traffic/optimize", json={
            "topology": congested_dict,
            "matrix": {"A": {"B": 90}},
            "constraints": {"max_changes_count": 0},
        })
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_constraint"
