"""
Read-side anomaly queries for API and dashboard layers.

Filter values arrive as raw strings from outside the engine; invalid ones
produce an empty result and a warning rather than an exception.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import List, Tuple

from chargepulse.data.schema import Anomaly, AnomalySeverity, AnomalyType
from chargepulse.data.store import AnalyticsSink

logger = logging.getLogger(__name__)


def _newest_first(anomalies: List[Anomaly]) -> List[Anomaly]:
    return sorted(anomalies, key=lambda a: a.detected_at, reverse=True)


class AnomalyQueries:
    def __init__(self, sink: AnalyticsSink) -> None:
        self.sink = sink

    def all(self) -> List[Anomaly]:
        return _newest_first(self.sink.find_anomalies())

    def unresolved(self) -> List[Anomaly]:
        return _newest_first(self.sink.find_unresolved_anomalies())

    def for_station(self, station_id: str, unresolved_only: bool = False) -> List[Anomaly]:
        if unresolved_only:
            return _newest_first(self.sink.find_unresolved_anomalies(station_id))
        return _newest_first(self.sink.find_anomalies(station_id))

    def by_type(self, anomaly_type: str) -> List[Anomaly]:
        try:
            wanted = AnomalyType(anomaly_type.strip().upper())
        except (ValueError, AttributeError):
            logger.warning("Invalid anomaly type: %s", anomaly_type)
            return []
        return [a for a in self.all() if a.anomaly_type == wanted]

    def by_severity(self, severity: str) -> List[Anomaly]:
        try:
            wanted = AnomalySeverity(severity.strip().upper())
        except (ValueError, AttributeError):
            logger.warning("Invalid anomaly severity: %s", severity)
            return []
        return [a for a in self.all() if a.severity == wanted]

    def since(self, since: datetime) -> List[Anomaly]:
        return [a for a in self.all() if a.detected_at >= since]

    def stations_with_most_anomalies(self, limit: int = 10) -> List[Tuple[str, int]]:
        """Station id and unresolved anomaly count, busiest first."""
        counts = Counter(a.station_id for a in self.sink.find_unresolved_anomalies())
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:max(limit, 0)]
