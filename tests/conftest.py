"""
Pytest configuration file

Shared topology fixtures.
"""

import pytest

from netimpact.topology import Edge, Link, Node, Topology


@pytest.fixture
def scenario_topology():
    """
    Directed four-router scenario

    A->B 10, B->D 10, A->C 12, C->D 9. A and B sit in GBR, C and D in FRA.
    """
    nodes = [
        Node("A", country="GBR"),
        Node("B", country="GBR"),
        Node("C", country="FRA"),
        Node("D", country="FRA"),
    ]
    edges = [
        Edge("ab", "A", "B", 10),
        Edge("bd", "B", "D", 10),
        Edge("ac", "A", "C", 12),
        Edge("cd", "C", "D", 9),
    ]
    return Topology(nodes, edges)


@pytest.fixture
def scenario_dict():
    """The scenario topology as a camelCase JSON document"""
    return {
        "nodes": [
            {"id": "A", "label": "London", "country": "GBR"},
            {"id": "B", "label": "Manchester", "country": "GBR"},
            {"id": "C", "label": "Paris", "country": "FRA"},
            {"id": "D", "label": "Lyon", "country": "FRA"},
        ],
        "edges": [
            {"id": "ab", "from": "A", "to": "B", "cost": 10},
            {"id": "bd", "from": "B", "to": "D", "cost": 10},
            {"id": "ac", "from": "A", "to": "C", "cost": 12},
            {"id": "cd", "from": "C", "to": "D", "cost": 9},
        ],
    }


@pytest.fixture
def ring_topology():
    """Three routers in a ring of equal-cost bidirectional links"""
    nodes = [Node("A"), Node("B"), Node("C")]
    links = [
        Link("ab", "A", "B", 10),
        Link("bc", "B", "C", 10),
        Link("ca", "C", "A", 10),
    ]
    return Topology.from_links(nodes, links)


@pytest.fixture
def bridge_topology():
    """Two triangles joined by the single bridge link "cd" """
    nodes = [
        Node("A", country="USA"),
        Node("B", country="USA"),
        Node("C", country="USA"),
        Node("D", country="DEU"),
        Node("E", country="DEU"),
        Node("F", country="DEU"),
    ]
    links = [
        Link("ab", "A", "B", 10),
        Link("bc", "B", "C", 10),
        Link("ca", "C", "A", 10),
        Link("cd", "C", "D", 50),
        Link("de", "D", "E", 10),
        Link("ef", "E", "F", 10),
        Link("fd", "F", "D", 10),
    ]
    return Topology.from_links(nodes, links)


@pytest.fixture
def ecmp_topology():
    """
    Two equal-cost ways from A to B

    Direct edge e1 (cost 5) and A->X->B via e2 (2) and e3 (3).
    """
    nodes = [Node("A"), Node("X"), Node("B")]
    edges = [
        Edge("e1", "A", "B", 5),
        Edge("e2", "A", "X", 2),
        Edge("e3", "X", "B", 3),
    ]
    return Topology(nodes, edges)


@pytest.fixture
def diamond_topology():
    """S fans out to L and R which both reach T at equal cost"""
    nodes = [Node("S"), Node("L"), Node("R"), Node("T")]
    links = [
        Link("sl", "S", "L", 1),
        Link("sr", "S", "R", 1),
        Link("lt", "L", "T", 1),
        Link("rt", "R", "T", 1),
    ]
    return Topology.from_links(nodes, links)


@pytest.fixture
def congested_topology():
    """
    Triangle where the cheap direct link A-B is thin

    ab costs 10 with 100 Mbps; the detour A-C-B costs 12 over 1000 Mbps links.
    """
    nodes = [Node("A"), Node("B"), Node("C")]
    links = [
        Link("ab", "A", "B", 10, capacity_mbps=100),
        Link("ac", "A", "C", 6, capacity_mbps=1000),
        Link("cb", "C", "B", 6, capacity_mbps=1000),
    ]
    return Topology.from_links(nodes, links)
