"""
Station reliability calculation.

Scores each station from its trailing status and report history and persists
the result: one ReliabilityMetric per station (upserted in place) and the
composite score on the station itself.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from chargepulse.core.batch import BatchSummary, Clock, StationBatchRunner, utc_now
from chargepulse.core.config import Config, config
from chargepulse.data.schema import ConnectorStatus, ReliabilityMetric, Station
from chargepulse.data.store import AnalyticsSink, StatusHistoryAccess
from chargepulse.data.windows import count_station_transitions, count_statuses, latest_recorded_at, latest_with_status

from .scoring import ReliabilityBreakdown, score_station

logger = logging.getLogger(__name__)


class ReliabilityCalculator:
    """
    Computes and stores reliability scores.

    Every figure for a station is computed before anything is written, so a
    station that fails mid-calculation leaves its previous metric untouched.
    """

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

    def calculate_all_station_reliability(self) -> BatchSummary:
        logger.info("Starting reliability calculation for all stations")
        stations = self.store.get_all_stations()

        runner = StationBatchRunner(
            job="reliability",
            max_workers=self.settings.batch.max_workers,
            timeout_seconds=self.settings.batch.station_timeout_seconds,
            clock=self.clock,
        )
        summary = runner.run(stations, self._calculate_for_batch)

        logger.info(
            "Completed reliability calculation for %d stations (%d failed)",
            summary.stations, summary.failed,
        )
        return summary

    def calculate_station_reliability(self, station: Station) -> ReliabilityMetric:
        cfg = self.settings.reliability
        now = self.clock()
        start = now - timedelta(days=cfg.window_days)

        history = self.store.get_status_history(station.id, start, now)
        breakdown = score_station(
            status_counts=count_statuses(history),
            transition_count=count_station_transitions(history),
            report_count=self.store.count_reports(station.id, start, now),
            cfg=cfg,
        )
        total_reports = self.store.count_reports(station.id)
        last_offline = latest_with_status(history, ConnectorStatus.OFFLINE)

        existing = self.sink.find_reliability_metric(station.id)
        metric = ReliabilityMetric(
            id=existing.id if existing else None,
            station_id=station.id,
            uptime_percentage=breakdown.uptime,
            report_count=total_reports,
            downtime_frequency=breakdown.downtime_frequency,
            sample_size=breakdown.sample_size,
            last_downtime=last_offline.recorded_at if last_offline else None,
            created_at=existing.created_at if existing and existing.created_at else now,
            updated_at=now,
        )

        saved = self.sink.record_reliability(metric, breakdown.score, latest_recorded_at(history))

        self._log_breakdown(station, breakdown)
        return saved

    def _calculate_for_batch(self, station: Station) -> int:
        self.calculate_station_reliability(station)
        return 0

    def _log_breakdown(self, station: Station, breakdown: ReliabilityBreakdown) -> None:
        logger.info("Calculated reliability score %s for station %s", breakdown.score, station.id)
        logger.debug(
            "Station %s: uptime=%s stability=%s reports=%s confidence=%s samples=%d",
            station.id, breakdown.uptime, breakdown.stability, breakdown.reports,
            breakdown.confidence, breakdown.sample_size,
        )
