"""
Shared detector plumbing.

Every detector reads a trailing window of history for one station, decides
whether its condition holds, and then upserts a single anomaly per key:
an open anomaly with the same (station, type, sub_key) is refreshed in place,
otherwise a new one is created. The find-or-create sequence runs under the
sink's per-key lock and is retried when the sink reports a conflict.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Set

from chargepulse.core.batch import Clock, utc_now
from chargepulse.core.config import Config, config
from chargepulse.core.exceptions import AnomalyConflictError
from chargepulse.data.schema import Anomaly, AnomalyKey, AnomalySeverity, AnomalyType, Station
from chargepulse.data.store import AnalyticsSink, StatusHistoryAccess

from .scoring import SeverityMapper, escalate

logger = logging.getLogger(__name__)


class BaseDetector(ABC):
    """
    Base class for station anomaly detectors.

    Subclasses implement `detect` (raise or refresh anomalies for a station)
    and `is_resolved` (the negation of the detection condition, evaluated
    against current history for an open anomaly).
    """

    anomaly_type: AnomalyType

    def __init__(
        self,
        store: StatusHistoryAccess,
        sink: Optional[AnalyticsSink] = None,
        settings: Optional[Config] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.sink = sink if sink is not None else store
        self.settings = settings or config
        self.clock = clock or utc_now
        self.severity_mapper = SeverityMapper(self.settings)

    @abstractmethod
    def detect(self, station: Station) -> int:
        """Run detection for a station and return the number of anomalies raised or refreshed."""

    @abstractmethod
    def is_resolved(self, anomaly: Anomaly) -> bool:
        """Return True when the condition behind an open anomaly no longer holds."""

    def find_open(self, key: AnomalyKey) -> Optional[Anomaly]:
        for anomaly in self.sink.find_unresolved_anomalies(key.station_id):
            if anomaly.key == key:
                return anomaly
        return None

    def upsert(
        self,
        station_id: str,
        *,
        severity: AnomalySeverity,
        severity_score: Decimal,
        description: str,
        now: datetime,
        metadata: Optional[Dict[str, Any]] = None,
        sub_key: Optional[str] = None,
    ) -> Anomaly:
        key = AnomalyKey(station_id, self.anomaly_type, sub_key)
        attempts = self.settings.batch.upsert_retries

        for attempt in range(1, attempts + 1):
            try:
                with self.sink.anomaly_lock(key):
                    existing = self.find_open(key)
                    if existing is None:
                        anomaly = Anomaly(
                            station_id=station_id,
                            anomaly_type=self.anomaly_type,
                            sub_key=sub_key,
                            description=description,
                            severity=severity,
                            severity_score=severity_score,
                            detected_at=now,
                            last_checked=now,
                            metadata=metadata or {},
                        )
                        saved = self.sink.save_anomaly(anomaly)
                        logger.info(
                            "Created new %s anomaly for station: %s", self.anomaly_type.value, station_id
                        )
                        return saved

                    existing.last_checked = now
                    existing.description = description
                    existing.severity_score = severity_score
                    existing.severity = escalate(existing.severity, severity)
                    existing.metadata = metadata or {}
                    saved = self.sink.save_anomaly(existing)
                    logger.debug(
                        "Updated %s anomaly %s for station: %s",
                        self.anomaly_type.value, existing.id, station_id,
                    )
                    return saved
            except AnomalyConflictError:
                if attempt >= attempts:
                    raise
                logger.warning(
                    "Conflict upserting %s anomaly for station %s (attempt %d/%d), retrying",
                    self.anomaly_type.value, station_id, attempt, attempts,
                )

        raise AnomalyConflictError(f"Could not upsert {self.anomaly_type.value} anomaly for {station_id}")


def referenced_connectors(anomaly: Anomaly) -> Set[int]:
    """
    Connector ids recorded in an anomaly's metadata.
    """

    return {
        int(entry["connector_id"])
        for entry in anomaly.metadata.get("connectors", [])
        if "connector_id" in entry
    }
