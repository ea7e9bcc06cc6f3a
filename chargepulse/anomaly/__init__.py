"""
Anomaly module: station anomaly detection.

Implements the four detectors (status flapping, extended downtime, report
spikes, pattern deviation), severity scoring, the batch orchestrator with its
resolution sweep, and read-side queries.
"""

from chargepulse.data.schema import Anomaly, AnomalyKey, AnomalySeverity, AnomalyType

from .detectors import BaseDetector
from .downtime import ExtendedDowntimeDetector
from .engine import AnomalyOrchestrator
from .flapping import StatusFlappingDetector
from .pattern import PatternDeviationDetector
from .queries import AnomalyQueries
from .report_spike import ReportSpikeDetector, evaluate_spike
from .scoring import SeverityMapper, escalate, overall_severity

__all__ = [
	"AnomalyOrchestrator",
	"AnomalyQueries",
	"Anomaly",
	"AnomalyKey",
	"AnomalySeverity",
	"AnomalyType",
	"BaseDetector",
	"StatusFlappingDetector",
	"ExtendedDowntimeDetector",
	"ReportSpikeDetector",
	"PatternDeviationDetector",
	"SeverityMapper",
	"escalate",
	"evaluate_spike",
	"overall_severity",
]
