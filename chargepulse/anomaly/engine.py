"""
Anomaly detection engine.

Runs every detector against every station, aggregates the counts, and sweeps
open anomalies to close the ones whose condition has cleared.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from chargepulse.core.batch import BatchSummary, Clock, StationBatchRunner, utc_now
from chargepulse.core.config import Config, config
from chargepulse.data.schema import Anomaly, AnomalyType, Station
from chargepulse.data.store import AnalyticsSink, StatusHistoryAccess

from .detectors import BaseDetector
from .downtime import ExtendedDowntimeDetector
from .flapping import StatusFlappingDetector
from .pattern import PatternDeviationDetector
from .report_spike import ReportSpikeDetector

logger = logging.getLogger(__name__)


class AnomalyOrchestrator:
    """
    Entry point for scheduled anomaly jobs.

    Notes:
    - Detectors run in a fixed order per station: flapping, downtime,
      report spikes, pattern deviation.
    - A failing station is logged and counted; the batch always completes.
    - Resolution is decided by the detector that owns the anomaly type and
      never creates or re-opens anomalies.
    """

    def __init__(
        self,
        store: StatusHistoryAccess,
        sink: Optional[AnalyticsSink] = None,
        settings: Optional[Config] = None,
        clock: Optional[Clock] = None,
        detectors: Optional[Sequence[BaseDetector]] = None,
    ) -> None:
        self.store = store
        self.sink = sink if sink is not None else store
        self.settings = settings or config
        self.clock = clock or utc_now

        if detectors is None:
            args = (self.store, self.sink, self.settings, self.clock)
            detectors = [
                StatusFlappingDetector(*args),
                ExtendedDowntimeDetector(*args),
                ReportSpikeDetector(*args),
                PatternDeviationDetector(*args),
            ]
        self.detectors: List[BaseDetector] = list(detectors)
        self._by_type: Dict[AnomalyType, BaseDetector] = {d.anomaly_type: d for d in self.detectors}

    def detect_anomalies(self) -> BatchSummary:
        logger.info("Starting anomaly detection for all stations")
        stations = self.store.get_all_stations()

        runner = StationBatchRunner(
            job="anomaly_detection",
            max_workers=self.settings.batch.max_workers,
            timeout_seconds=self.settings.batch.station_timeout_seconds,
            clock=self.clock,
        )
        summary = runner.run(stations, self.detect_anomalies_for_station)

        logger.info(
            "Completed anomaly detection. Found %d anomalies across %d stations (%d failed)",
            summary.detected, summary.stations, summary.failed,
        )
        return summary

    def detect_anomalies_for_station(self, station: Station) -> int:
        logger.debug("Detecting anomalies for station: %s", station.id)
        return sum(detector.detect(station) for detector in self.detectors)

    def check_for_resolved_anomalies(self) -> int:
        unresolved = self.sink.find_unresolved_anomalies()
        logger.info("Checking %d unresolved anomalies for resolution", len(unresolved))

        resolved = 0
        for anomaly in unresolved:
            try:
                if self._resolve(anomaly):
                    resolved += 1
            except Exception:
                logger.exception(
                    "Error checking resolution of anomaly %s for station %s",
                    anomaly.id, anomaly.station_id,
                )

        logger.info("Marked %d anomalies as resolved", resolved)
        return resolved

    def is_anomaly_resolved(self, anomaly: Anomaly) -> bool:
        detector = self._by_type.get(anomaly.anomaly_type)
        if detector is None:
            logger.warning("No detector registered for anomaly type %s", anomaly.anomaly_type.value)
            return False
        if self.store.get_station(anomaly.station_id) is None:
            logger.warning("Anomaly %s refers to unknown station %s", anomaly.id, anomaly.station_id)
            return False
        return detector.is_resolved(anomaly)

    def _resolve(self, anomaly: Anomaly) -> bool:
        with self.sink.anomaly_lock(anomaly.key):
            if not self.is_anomaly_resolved(anomaly):
                return False
            now = self.clock()
            anomaly.is_resolved = True
            anomaly.resolved_at = now
            anomaly.last_checked = now
            self.sink.save_anomaly(anomaly)

        logger.info(
            "Resolved %s anomaly %s for station %s",
            anomaly.anomaly_type.value, anomaly.id, anomaly.station_id,
        )
        return True
