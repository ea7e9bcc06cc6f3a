"""
chargepulse: reliability scoring and anomaly detection for EV charging stations.
"""

from chargepulse.anomaly import AnomalyOrchestrator, AnomalyQueries
from chargepulse.data import InMemoryStore, load_snapshot
from chargepulse.reliability import ReliabilityCalculator, ReliabilityQueries

__version__ = "0.1.0"

__all__ = [
    "AnomalyOrchestrator",
    "AnomalyQueries",
    "InMemoryStore",
    "ReliabilityCalculator",
    "ReliabilityQueries",
    "load_snapshot",
]
