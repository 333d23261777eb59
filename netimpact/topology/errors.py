"""
Topology errors

Structural problems with a caller-supplied topology or query. These are
raised at the boundary of each analysis; an unreachable destination or a
partitioned network is a normal result, not an error.
"""

from typing import Any, Dict


class TopologyError(Exception):
    """Base class for invalid topology input"""

    code = "topology_error"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self)}


class NodeNotFoundError(TopologyError):
    """A query or edge referenced a node id that is not in the topology"""

    code = "node_not_found"

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["node_id"] = self.node_id
        return data


class EdgeNotFoundError(TopologyError):
    """A query or cost change referenced an unknown edge id"""

    code = "edge_not_found"

    def __init__(self, edge_id: str):
        self.edge_id = edge_id
        super().__init__(f"Edge not found: {edge_id}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["edge_id"] = self.edge_id
        return data


class InvalidCostError(TopologyError):
    """Cost is not an integer in the OSPF range"""

    code = "invalid_cost"

    def __init__(self, element_id: str, cost: Any):
        self.element_id = element_id
        self.cost = cost
        super().__init__(
            f"Invalid cost {cost!r} for {element_id}: must be an integer between 1 and 65535"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["element_id"] = self.element_id
        data["cost"] = self.cost
        return data


class DuplicateElementError(TopologyError):
    """Two nodes or two edges share an id"""

    code = "duplicate_element"

    def __init__(self, kind: str, element_id: str):
        self.kind = kind
        self.element_id = element_id
        super().__init__(f"Duplicate {kind} id: {element_id}")
