"""
Analysis Constants

OSPF cost limits, convergence timing and traffic defaults shared by the
analysis components.
"""

# OSPF interface cost range (RFC 2328 Appendix C.3)
OSPF_COST_MIN = 1
OSPF_COST_MAX = 65535
OSPF_COST_DEFAULT = 10

# SPF convergence model (seconds)
SPF_DELAY_DEFAULT = 5.0            # spf-delay timer before a run starts
SPF_CALC_PER_NODE = 0.001          # Dijkstra cost per router in the area
LSA_PROPAGATION_FACTOR = 0.05      # Flooding time, scaled by log2(N)
MAX_CONVERGENCE_EVENTS = 3         # Simultaneous failures counted in estimates

# ECMP
DEFAULT_MAX_ECMP_PATHS = 10
DEFAULT_ECMP_SAMPLE_SIZE = 20
ECMP_IMBALANCE_RATIO = 2.0         # Warn when bottlenecks differ by more than 2x

# SPOF scan
DEFAULT_MAX_SPOFS = 20

# Batched work
DEFAULT_BATCH_SIZE = 50            # Node pairs per batch

# Link capacity / utilization
DEFAULT_CAPACITY_MBPS = 10000      # 10G when a link does not declare capacity
CONGESTION_THRESHOLD = 0.8
UNDERUTILIZED_THRESHOLD = 0.2

# Traffic matrix
DEFAULT_BASE_TRAFFIC_MBPS = 100.0
DEFAULT_POPULATION_MILLIONS = 10
SAME_COUNTRY_MULTIPLIER = 2.0
CROSS_COUNTRY_MULTIPLIER = 0.5

# Greedy cost optimizer
OPTIMIZER_MAX_ITERATIONS = 50
OPTIMIZER_COST_MULTIPLIER = 1.5

# Country populations in millions, used by the population traffic model
COUNTRY_POPULATIONS = {
    "GBR": 67,
    "USA": 331,
    "DEU": 83,
    "FRA": 67,
    "ZAF": 60,
    "LSO": 2,
    "ZWE": 15,
    "MOZ": 31,
    "AGO": 33,
    "PRT": 10,
    "NGA": 206,
    "KEN": 54,
    "CAN": 38,
    "MEX": 129,
    "BRA": 213,
    "ARG": 45,
    "CHN": 1400,
    "JPN": 126,
    "IND": 1380,
    "AUS": 26,
}

UNKNOWN_COUNTRY = "Unknown"

# Continent per country, used for path latency estimates
COUNTRY_CONTINENTS = {
    "GBR": "EU", "DEU": "EU", "FRA": "EU", "PRT": "EU",
    "USA": "NA", "CAN": "NA", "MEX": "NA",
    "BRA": "SA", "ARG": "SA",
    "ZAF": "AF", "LSO": "AF", "ZWE": "AF", "MOZ": "AF", "AGO": "AF",
    "NGA": "AF", "KEN": "AF",
    "CHN": "AS", "JPN": "AS", "IND": "AS",
    "AUS": "OC",
}

# Path latency model (milliseconds)
HOP_SWITCHING_MS = 1
SAME_COUNTRY_HOP_MS = 2
SAME_CONTINENT_HOP_MS = 10
INTERCONTINENTAL_HOP_MS = 50
