"""
Status flapping detection.

A connector flaps when its status changes too many times inside a short
trailing window (e.g. AVAILABLE/OFFLINE bouncing every hour). All flapping
connectors of a station are reported by a single anomaly.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict

from chargepulse.data.schema import Anomaly, AnomalyType, Station
from chargepulse.data.windows import transitions_by_connector

from .detectors import BaseDetector, referenced_connectors
from .scoring import to_score

logger = logging.getLogger(__name__)


class StatusFlappingDetector(BaseDetector):
    """
    Flags stations with connectors that change status at least
    `flapping.threshold` times within `flapping.window_hours`.

    Severity follows the busiest connector; severity_score is its change count.
    """

    anomaly_type = AnomalyType.STATUS_FLAPPING

    def detect(self, station: Station) -> int:
        logger.debug("Checking for status flapping at station: %s", station.id)
        now = self.clock()
        flapping = self.flapping_connectors(station.id, now)
        if not flapping:
            return 0

        worst = max(flapping.values())
        window_hours = self.settings.flapping.window_hours
        ordered = sorted(flapping.items(), key=lambda item: (-item[1], item[0]))
        parts = [f"connector {cid} changed status {count} times" for cid, count in ordered]

        self.upsert(
            station.id,
            severity=self.severity_mapper.flapping_severity(worst),
            severity_score=to_score(worst),
            description=f"Status flapping in the last {window_hours} hours: " + "; ".join(parts),
            now=now,
            metadata={
                "window_hours": window_hours,
                "connectors": [{"connector_id": cid, "transitions": count} for cid, count in ordered],
            },
        )
        return 1

    def flapping_connectors(self, station_id: str, now: datetime) -> Dict[int, int]:
        """Connector id -> transition count, for connectors at or above the threshold."""
        cfg = self.settings.flapping
        history = self.store.get_status_history(station_id, now - timedelta(hours=cfg.window_hours), now)
        counts = transitions_by_connector(history)
        return {cid: count for cid, count in counts.items() if count >= cfg.threshold}

    def is_resolved(self, anomaly: Anomaly) -> bool:
        flapping = self.flapping_connectors(anomaly.station_id, self.clock())
        connectors = referenced_connectors(anomaly)
        if not connectors:
            return not flapping
        return not connectors.intersection(flapping)
