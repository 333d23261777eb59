"""
NetImpact REST API Server

FastAPI application exposing the topology analyses as JSON. Every request
carries its own topology snapshot; the server keeps no state between calls.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from netimpact import __version__
from netimpact.config.settings import AnalysisConfig
from netimpact.resilience.connectivity import analyze_connectivity
from netimpact.resilience.failure import simulate_failure
from netimpact.resilience.score import calculate_resilience_score
from netimpact.resilience.spof import detect_spofs
from netimpact.spf.calculator import SPFCalculator
from netimpact.spf.ecmp import analyze_network_ecmp, create_ecmp_group, find_ecmp_paths
from netimpact.topology.errors import EdgeNotFoundError, NodeNotFoundError, TopologyError
from netimpact.topology.models import CostChange, Topology
from netimpact.traffic.matrix import TrafficModel, generate_traffic_matrix
from netimpact.traffic.optimizer import OptimizationConstraints, OptimizationGoal, optimize_costs
from netimpact.traffic.utilization import calculate_utilization
from netimpact.whatif.report import BlastRadiusAnalyzer

logger = logging.getLogger("NetImpactAPI")


class TopologyRequest(BaseModel):
    """Any request that carries a topology snapshot"""
    topology: Dict[str, Any]


class PathRequest(TopologyRequest):
    source: str
    destination: str
    all_paths: bool = False
    max_paths: int = Field(default=10, ge=1)


class ECMPRequest(TopologyRequest):
    """Pair ECMP analysis, or a network-wide sample when no pair is given"""
    source: Optional[str] = None
    destination: Optional[str] = None
    max_paths: int = Field(default=10, ge=1)
    sample_size: Optional[int] = Field(default=None, ge=1)
    seed: Optional[int] = None


class ConnectivityRequest(TopologyRequest):
    exclude_nodes: List[str] = []
    exclude_edges: List[str] = []
    exclude_links: List[str] = []


class SPOFRequest(TopologyRequest):
    include_nodes: bool = True
    include_edges: bool = True
    max_results: Optional[int] = Field(default=None, ge=1)


class CostChangeModel(BaseModel):
    edge_id: str
    new_cost: int


class ImpactRequest(TopologyRequest):
    changes: List[CostChangeModel]
    include_unaffected: bool = False


class FailureRequest(TopologyRequest):
    failed_nodes: List[str] = []
    failed_links: List[str] = []
    sample_size: int = Field(default=20, ge=0)
    seed: Optional[int] = None


class TrafficRequest(TopologyRequest):
    """Either an explicit matrix or parameters for a generated one"""
    matrix: Optional[Dict[str, Dict[str, float]]] = None
    model: str = TrafficModel.POPULATION.value
    base_traffic: float = Field(default=100.0, ge=0)
    scale_factor: float = Field(default=1.0, ge=0)
    custom_weights: Optional[Dict[str, float]] = None


class ConstraintsModel(BaseModel):
    max_cost_change_percent: float = 1.0
    max_changes_count: int = 10
    protected_edges: List[str] = []
    min_cost: int = 1
    max_cost: int = 65535


class OptimizeRequest(TrafficRequest):
    goal: str = OptimizationGoal.BALANCE.value
    constraints: Optional[ConstraintsModel] = None


def _http_error(error: Exception) -> HTTPException:
    """Map analysis errors to HTTP status codes"""
    if isinstance(error, (NodeNotFoundError, EdgeNotFoundError)):
        return HTTPException(status_code=404, detail=error.to_dict())
    if isinstance(error, TopologyError):
        return HTTPException(status_code=422, detail=error.to_dict())
    return HTTPException(status_code=422, detail={"error": "invalid_request", "message": str(error)})


def _load_topology(raw: Dict[str, Any]) -> Topology:
    # A dangling reference inside the snapshot is a malformed body, not a missing resource
    try:
        return Topology.from_dict(raw)
    except TopologyError as e:
        raise HTTPException(status_code=422, detail=e.to_dict()) from e
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(
            status_code=422,
            detail={"error": "invalid_topology", "message": f"Malformed topology: {e}"},
        ) from e


def _traffic_matrix(topology: Topology, request: TrafficRequest) -> Dict[str, Dict[str, float]]:
    if request.matrix is not None:
        return request.matrix
    return generate_traffic_matrix(
        topology,
        model=TrafficModel(request.model),
        base_traffic=request.base_traffic,
        scale_factor=request.scale_factor,
        custom_weights=request.custom_weights,
    )


class NetImpactAPI:
    """
    NetImpact REST API

    Provides HTTP endpoints for:
    - Shortest paths and ECMP
    - Connectivity, SPOF and failure analysis
    - Blast radius assessment of cost changes
    - Link utilization and greedy cost optimization
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize API

        Args:
            config: Analysis configuration shared by every request
        """
        self.config = config or AnalysisConfig()
        self.app = FastAPI(
            title="NetImpact Topology Analysis API",
            description="OSPF path, resilience and change-impact analysis",
            version=__version__,
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._register_routes()

    def _register_routes(self):
        """Register API routes"""

        @self.app.get("/health")
        async def health():
            """Health check"""
            return {
                "status": "healthy",
                "version": __version__,
                "timestamp": datetime.utcnow().isoformat(),
            }

        @self.app.post("/api/path")
        def path(request: PathRequest):
            """Shortest path, optionally with every equal-cost path"""
            topology = _load_topology(request.topology)
            try:
                if request.all_paths:
                    result = find_ecmp_paths(topology, request.source, request.destination,
                                             max_paths=request.max_paths)
                else:
                    result = SPFCalculator(topology).shortest_path(request.source, request.destination)
            except (TopologyError, ValueError) as e:
                raise _http_error(e) from e
            return {"path": result.to_dict() if result else None}

        @self.app.post("/api/ecmp")
        def ecmp(request: ECMPRequest):
            """ECMP group for one pair, or a sampled network-wide view"""
            topology = _load_topology(request.topology)
            if (request.source is None) != (request.destination is None):
                raise HTTPException(status_code=422, detail={
                    "error": "invalid_request",
                    "message": "source and destination must be given together",
                })
            try:
                if request.source is not None:
                    result = find_ecmp_paths(topology, request.source, request.destination,
                                             max_paths=request.max_paths)
                    group = create_ecmp_group(topology, result) if result else None
                    return {"group": group.to_dict() if group else None}
                analysis = analyze_network_ecmp(topology, sample_size=request.sample_size,
                                                seed=request.seed, config=self.config)
            except (TopologyError, ValueError) as e:
                raise _http_error(e) from e
            return {"analysis": analysis.to_dict()}

        @self.app.post("/api/connectivity")
        def connectivity(request: ConnectivityRequest):
            topology = _load_topology(request.topology)
            try:
                result = analyze_connectivity(
                    topology,
                    exclude_nodes=request.exclude_nodes,
                    exclude_edges=request.exclude_edges,
                    exclude_links=request.exclude_links,
                )
            except TopologyError as e:
                raise _http_error(e) from e
            return result.to_dict()

        @self.app.post("/api/spof")
        def spof(request: SPOFRequest):
            """Single points of failure and the resilience score"""
            topology = _load_topology(request.topology)
            scan = detect_spofs(
                topology,
                include_nodes=request.include_nodes,
                include_edges=request.include_edges,
                max_results=request.max_results,
                config=self.config,
            )
            resilience = calculate_resilience_score(topology, scan.spofs)
            return {"scan": scan.to_dict(), "resilience": resilience.to_dict()}

        @self.app.post("/api/impact")
        async def impact(request: ImpactRequest):
            """Full blast radius report for a set of cost changes"""
            topology = _load_topology(request.topology)
            try:
                changes = [CostChange(c.edge_id, c.new_cost) for c in request.changes]
                analyzer = BlastRadiusAnalyzer(topology, self.config)
                report = await analyzer.analyze_async(changes)
            except TopologyError as e:
                raise _http_error(e) from e
            data = report.to_dict()
            if request.include_unaffected:
                data["impact"] = report.impact.to_dict(include_unaffected=True)
            return data

        @self.app.post("/api/failure")
        def failure(request: FailureRequest):
            topology = _load_topology(request.topology)
            try:
                result = simulate_failure(
                    topology,
                    failed_nodes=request.failed_nodes,
                    failed_links=request.failed_links,
                    config=self.config,
                    sample_size=request.sample_size,
                    seed=request.seed,
                )
            except TopologyError as e:
                raise _http_error(e) from e
            return result.to_dict()

        @self.app.post("/api/traffic/utilization")
        def utilization(request: TrafficRequest):
            topology = _load_topology(request.topology)
            try:
                matrix = _traffic_matrix(topology, request)
                result = calculate_utilization(topology, matrix, config=self.config)
            except (TopologyError, ValueError) as e:
                raise _http_error(e) from e
            return result.to_dict()

        @self.app.post("/api/traffic/optimize")
        def optimize(request: OptimizeRequest):
            """Greedy cost proposal that relieves congested links"""
            topology = _load_topology(request.topology)
            try:
                matrix = _traffic_matrix(topology, request)
                constraints = OptimizationConstraints(
                    **request.constraints.model_dump()
                ) if request.constraints else None
                result = optimize_costs(
                    topology, matrix,
                    goal=OptimizationGoal(request.goal),
                    constraints=constraints,
                    config=self.config,
                )
            except (TopologyError, ValueError) as e:
                raise _http_error(e) from e
            return result.to_dict()


def create_app(config: Optional[AnalysisConfig] = None) -> FastAPI:
    """Build the FastAPI application"""
    return NetImpactAPI(config or AnalysisConfig.from_env()).app
