"""
Extended downtime detection.

Finds connectors that are currently OFFLINE and have been for longer than the
downtime threshold. The offline start is the most recent transition into
OFFLINE inside the analysis window. Without one, the connector's live status
timestamp is used when no later history contradicts it; a connector with
neither is not flagged.

Thresholds and severity bands are compared against unrounded hours; only
severity_score is rounded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from chargepulse.data.schema import Anomaly, AnomalyType, Connector, ConnectorStatus, Station
from chargepulse.data.windows import latest_recorded_at, latest_with_status

from .detectors import BaseDetector, referenced_connectors
from .scoring import overall_severity, to_score

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = Decimal(3600)


@dataclass(frozen=True)
class DowntimeReading:
    connector_id: int
    offline_since: datetime
    hours: Decimal

    @property
    def rounded_hours(self) -> Decimal:
        return to_score(self.hours)


class ExtendedDowntimeDetector(BaseDetector):
    """
    Flags stations with connectors offline for `downtime.threshold_hours` or more.

    One anomaly per station; severity and severity_score follow the longest
    outage. Severity never drops when the anomaly is refreshed.
    """

    anomaly_type = AnomalyType.EXTENDED_DOWNTIME

    def detect(self, station: Station) -> int:
        logger.debug("Checking for extended downtime at station: %s", station.id)
        now = self.clock()
        readings = self.long_outages(station.id, now)
        if not readings:
            return 0

        readings.sort(key=lambda r: (-r.hours, r.connector_id))
        worst = readings[0]
        description = "; ".join(
            f"Connector {r.connector_id} has been offline for {r.hours:.1f} hours" for r in readings
        )

        self.upsert(
            station.id,
            severity=overall_severity(*(self.severity_mapper.downtime_severity(r.hours) for r in readings)),
            severity_score=worst.rounded_hours,
            description=description,
            now=now,
            metadata={
                "connectors": [
                    {
                        "connector_id": r.connector_id,
                        "hours_offline": float(r.rounded_hours),
                        "offline_since": r.offline_since.isoformat(),
                    }
                    for r in readings
                ],
            },
        )
        return 1

    def long_outages(self, station_id: str, now: datetime) -> List[DowntimeReading]:
        """Offline connectors whose downtime reaches the threshold."""
        cfg = self.settings.downtime
        window_start = now - timedelta(hours=cfg.window_hours)
        threshold = Decimal(str(cfg.threshold_hours))

        readings = []
        for connector in self.store.get_connectors(station_id):
            if connector.status != ConnectorStatus.OFFLINE:
                continue
            offline_since = self.offline_since(station_id, connector, window_start, now)
            if offline_since is None:
                continue
            hours = Decimal(str((now - offline_since).total_seconds())) / SECONDS_PER_HOUR
            if hours >= threshold:
                readings.append(DowntimeReading(connector.id, offline_since, hours))
        return readings

    def offline_since(
        self,
        station_id: str,
        connector: Connector,
        window_start: datetime,
        now: datetime,
    ) -> Optional[datetime]:
        history = self.store.get_status_history(station_id, window_start, now, connector_id=connector.id)

        went_offline = latest_with_status(history, ConnectorStatus.OFFLINE)
        if went_offline is not None:
            return went_offline.recorded_at

        # No OFFLINE record in the window: rely on the live status timestamp
        # unless history moved on after it.
        if connector.last_status_update is None:
            return None
        latest = latest_recorded_at(history)
        if latest is None or connector.last_status_update >= latest:
            return connector.last_status_update
        return None

    def is_resolved(self, anomaly: Anomaly) -> bool:
        connectors = referenced_connectors(anomaly)
        if not connectors:
            return not self.long_outages(anomaly.station_id, self.clock())

        offline = {
            c.id for c in self.store.get_connectors(anomaly.station_id)
            if c.status == ConnectorStatus.OFFLINE
        }
        return not connectors.intersection(offline)
