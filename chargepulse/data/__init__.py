"""
Data module: station history schema, collaborator interfaces, window
statistics and snapshot ingestion.

Pipeline:

    Provider observations (written by the ingestion service)
        ↓
    History store (chargepulse/data/store.py) → StatusEvent / ReportEvent
        ↓
    Window statistics (chargepulse/data/windows.py) → transitions, histograms, counts
        ↓
    Reliability scoring and anomaly detection
"""

from chargepulse.data.ingestion import load_snapshot, load_snapshot_data, read_snapshot
from chargepulse.data.schema import (
    Anomaly,
    AnomalyKey,
    AnomalySeverity,
    AnomalyType,
    Connector,
    ConnectorStatus,
    ReliabilityMetric,
    ReportEvent,
    Station,
    StatusEvent,
)
from chargepulse.data.store import AnalyticsSink, InMemoryStore, StatusHistoryAccess
from chargepulse.data.windows import (
    count_reports_by_type,
    count_station_transitions,
    count_transitions,
    group_by_connector,
    most_common_status,
    status_histogram,
    transitions_by_connector,
)

__all__ = [
    # Schema
    "Station",
    "Connector",
    "ConnectorStatus",
    "StatusEvent",
    "ReportEvent",
    "ReliabilityMetric",
    "Anomaly",
    "AnomalyKey",
    "AnomalyType",
    "AnomalySeverity",

    # Collaborators
    "StatusHistoryAccess",
    "AnalyticsSink",
    "InMemoryStore",

    # Window statistics
    "count_transitions",
    "count_station_transitions",
    "transitions_by_connector",
    "group_by_connector",
    "count_reports_by_type",
    "status_histogram",
    "most_common_status",

    # Ingestion
    "load_snapshot",
    "load_snapshot_data",
    "read_snapshot",
]
