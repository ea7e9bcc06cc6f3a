"""
Day-of-week pattern deviation detection.

Learns, per connector, which status is most common on each weekday over the
trailing window and flags connectors whose live status differs from the
expected one for today.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List

from chargepulse.data.schema import Anomaly, AnomalySeverity, AnomalyType, ConnectorStatus, Station
from chargepulse.data.windows import most_common_status, status_histogram

from .detectors import BaseDetector, referenced_connectors
from .scoring import to_score

logger = logging.getLogger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class PatternReading:
    connector_id: int
    weekday: int
    expected: ConnectorStatus
    actual: ConnectorStatus
    day_samples: int


class PatternDeviationDetector(BaseDetector):
    """
    Flags stations whose connectors are not in their usual status for today.

    Severity is fixed at MEDIUM and severity_score at `pattern.severity_score`;
    the size of the deviation is not measured yet.
    """

    anomaly_type = AnomalyType.PATTERN_DEVIATION

    def detect(self, station: Station) -> int:
        logger.debug("Checking for pattern deviations at station: %s", station.id)
        now = self.clock()
        readings = self.deviations(station.id, now)
        if not readings:
            return 0

        description = "; ".join(
            f"Unusual status pattern for connector {r.connector_id}: {r.actual.value} "
            f"while {r.expected.value} is usual on {WEEKDAYS[r.weekday]}"
            for r in readings
        )

        self.upsert(
            station.id,
            severity=AnomalySeverity.MEDIUM,
            severity_score=to_score(Decimal(str(self.settings.pattern.severity_score))),
            description=description,
            now=now,
            metadata={
                "connectors": [
                    {
                        "connector_id": r.connector_id,
                        "weekday": r.weekday,
                        "expected_status": r.expected.value,
                        "actual_status": r.actual.value,
                        "day_samples": r.day_samples,
                    }
                    for r in readings
                ],
            },
        )
        return 1

    def deviations(self, station_id: str, now: datetime) -> List[PatternReading]:
        """Connectors whose live status differs from today's expected status."""
        cfg = self.settings.pattern
        window_start = now - timedelta(days=cfg.window_days)
        weekday = now.weekday()

        readings = []
        for connector in self.store.get_connectors(station_id):
            history = self.store.get_status_history(station_id, window_start, now, connector_id=connector.id)
            if len(history) < cfg.min_history:
                continue

            today = status_histogram(history)[weekday]
            expected = most_common_status(today)
            samples = sum(today.values())

            if connector.status != expected and samples >= cfg.min_day_samples:
                readings.append(PatternReading(connector.id, weekday, expected, connector.status, samples))
        return readings

    def is_resolved(self, anomaly: Anomaly) -> bool:
        deviating = {r.connector_id for r in self.deviations(anomaly.station_id, self.clock())}
        connectors = referenced_connectors(anomaly)
        if not connectors:
            return not deviating
        return not connectors.intersection(deviating)
