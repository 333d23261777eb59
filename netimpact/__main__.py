"""
NetImpact - Command line entry point

Usage:
    python -m netimpact path topology.json R1 R4 [--all]
    python -m netimpact spof topology.json [--max N]
    python -m netimpact impact topology.json --change e1=50 --change e2=20
    python -m netimpact failure topology.json --node R2 --edge l1
    python -m netimpact serve [--host 0.0.0.0] [--port 8080]
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from netimpact import __version__
from netimpact.config.settings import AnalysisConfig
from netimpact.resilience.failure import simulate_failure
from netimpact.resilience.score import calculate_resilience_score
from netimpact.resilience.spof import detect_spofs
from netimpact.spf.calculator import SPFCalculator
from netimpact.spf.ecmp import find_ecmp_paths
from netimpact.topology.errors import TopologyError
from netimpact.topology.models import CostChange, Topology
from netimpact.whatif.report import analyze_blast_radius

logger = logging.getLogger("NetImpactCLI")

EXIT_ERROR = 2


def setup_logging(log_level: str = "WARNING"):
    """
    Setup logging configuration

    Args:
        log_level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def load_topology(path: str) -> Topology:
    with open(path, "r", encoding="utf-8") as f:
        return Topology.from_dict(json.load(f))


def parse_change(raw: str) -> CostChange:
    """Parse EDGE=COST into a CostChange"""
    edge_id, sep, cost = raw.rpartition("=")
    if not sep or not edge_id:
        raise ValueError(f"Expected EDGE=COST, got {raw!r}")
    try:
        value = int(cost)
    except ValueError:
        raise ValueError(f"Cost must be an integer in {raw!r}") from None
    return CostChange(edge_id, value)


def run_path(args: argparse.Namespace, config: AnalysisConfig) -> Dict[str, Any]:
    topology = load_topology(args.topology)
    if args.all:
        result = find_ecmp_paths(topology, args.source, args.destination,
                                 max_paths=config.max_ecmp_paths)
    else:
        result = SPFCalculator(topology).shortest_path(args.source, args.destination)
    return {"path": result.to_dict() if result else None}


def run_spof(args: argparse.Namespace, config: AnalysisConfig) -> Dict[str, Any]:
    topology = load_topology(args.topology)
    scan = detect_spofs(topology, max_results=args.max, config=config)
    resilience = calculate_resilience_score(topology, scan.spofs)
    return {"scan": scan.to_dict(), "resilience": resilience.to_dict()}


def run_impact(args: argparse.Namespace, config: AnalysisConfig) -> Dict[str, Any]:
    topology = load_topology(args.topology)
    changes = [parse_change(raw) for raw in args.change]
    return analyze_blast_radius(topology, changes, config).to_dict()


def run_failure(args: argparse.Namespace, config: AnalysisConfig) -> Dict[str, Any]:
    topology = load_topology(args.topology)
    result = simulate_failure(topology, failed_nodes=args.node, failed_links=args.edge,
                              config=config, seed=args.seed)
    return result.to_dict()


def run_serve(args: argparse.Namespace, config: AnalysisConfig):
    import uvicorn
    from netimpact.api.server import create_app

    print(f"Starting NetImpact API Server...")
    print(f"  Host: {args.host}")
    print(f"  Port: {args.port}")
    uvicorn.run(create_app(config), host=args.host, port=args.port,
                log_level=args.log_level.lower())


COMMANDS = {
    "path": run_path,
    "spof": run_spof,
    "impact": run_impact,
    "failure": run_failure,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netimpact",
        description="NetImpact: OSPF topology analysis",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("NETIMPACT_LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: NETIMPACT_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--version", action="version", version=f"netimpact {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    path_parser = subparsers.add_parser("path", help="Shortest path between two routers")
    path_parser.add_argument("topology", help="Topology JSON file")
    path_parser.add_argument("source", help="Source router id")
    path_parser.add_argument("destination", help="Destination router id")
    path_parser.add_argument("--all", action="store_true", help="Enumerate every equal-cost path")

    spof_parser = subparsers.add_parser("spof", help="Single points of failure")
    spof_parser.add_argument("topology", help="Topology JSON file")
    spof_parser.add_argument("--max", type=int, default=None, help="Maximum SPOFs to report")

    impact_parser = subparsers.add_parser("impact", help="Blast radius of cost changes")
    impact_parser.add_argument("topology", help="Topology JSON file")
    impact_parser.add_argument("--change", action="append", required=True, metavar="EDGE=COST",
                               help="Cost change (repeatable)")

    failure_parser = subparsers.add_parser("failure", help="Simulate router or link failures")
    failure_parser.add_argument("topology", help="Topology JSON file")
    failure_parser.add_argument("--node", action="append", default=[], help="Failed router id (repeatable)")
    failure_parser.add_argument("--edge", action="append", default=[], help="Failed link or edge id (repeatable)")
    failure_parser.add_argument("--seed", type=int, default=None, help="Seed for flow sampling")

    serve_parser = subparsers.add_parser("serve", help="Start REST API server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to listen on")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the NetImpact CLI"""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = AnalysisConfig.from_env()
        if args.command == "serve":
            run_serve(args, config)
            return 0
        result = COMMANDS[args.command](args, config)
    except TopologyError as e:
        print(json.dumps(e.to_dict()), file=sys.stderr)
        return EXIT_ERROR
    except (OSError, ValueError) as e:
        print(json.dumps({"error": "invalid_input", "message": str(e)}), file=sys.stderr)
        return EXIT_ERROR

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
