"""
Report spike detection.

Compares the daily rate of user reports in the recent window with the rate
over the rest of the comparison window, per report type. A type with no
history at all spikes once it reaches twice the minimum report count.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from chargepulse.core.config import ReportSpikeConfig
from chargepulse.data.schema import Anomaly, AnomalyType, Station
from chargepulse.data.windows import count_reports_by_type

from .detectors import BaseDetector
from .scoring import to_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpikeReading:
    report_type: str
    recent_count: int
    baseline_count: int
    recent_rate: float
    baseline_rate: float

    @property
    def spike_factor(self) -> float:
        if self.baseline_rate > 0:
            return self.recent_rate / self.baseline_rate
        return float(self.recent_count)


def evaluate_spike(
    report_type: str,
    recent_count: int,
    baseline_count: int,
    cfg: ReportSpikeConfig,
) -> Optional[SpikeReading]:
    """
    Return a SpikeReading when the counts for one report type make a spike.

    Two conditions raise a spike once recent_count reaches min_reports:
    the recent daily rate is at least spike_threshold times a non-zero
    baseline rate, or there is no baseline at all and recent_count reaches
    twice min_reports.
    """

    if recent_count < cfg.min_reports:
        return None

    recent_rate = recent_count / cfg.recent_days
    baseline_days = cfg.comparison_days - cfg.recent_days
    baseline_rate = baseline_count / baseline_days if baseline_days > 0 else 0.0

    reading = SpikeReading(report_type, recent_count, baseline_count, recent_rate, baseline_rate)

    if baseline_rate > 0 and recent_rate >= cfg.spike_threshold * baseline_rate:
        return reading
    if baseline_count == 0 and recent_count >= cfg.min_reports * 2:
        return reading
    return None


class ReportSpikeDetector(BaseDetector):
    """
    Flags report types whose recent rate spikes against their own baseline.

    One anomaly per (station, report type); the report type is the anomaly's
    sub_key.
    """

    anomaly_type = AnomalyType.REPORT_SPIKE

    def detect(self, station: Station) -> int:
        logger.debug("Checking for report spikes at station: %s", station.id)
        now = self.clock()
        cfg = self.settings.report_spike

        detected = 0
        for reading in self.spikes(station.id, now).values():
            factor = reading.spike_factor
            self.upsert(
                station.id,
                sub_key=reading.report_type,
                severity=self.severity_mapper.spike_severity(factor),
                severity_score=to_score(factor),
                description=(
                    f"Spike in '{reading.report_type}' reports: {reading.recent_count} reports "
                    f"in last {cfg.recent_days} days ({reading.recent_rate:.1f} per day vs. "
                    f"historical {reading.baseline_rate:.1f} per day)"
                ),
                now=now,
                metadata={
                    "report_type": reading.report_type,
                    "recent_count": reading.recent_count,
                    "baseline_count": reading.baseline_count,
                    "recent_rate": round(reading.recent_rate, 4),
                    "baseline_rate": round(reading.baseline_rate, 4),
                },
            )
            detected += 1
        return detected

    def spikes(self, station_id: str, now: datetime) -> Dict[str, SpikeReading]:
        """Report type -> reading, for every type currently spiking."""
        cfg = self.settings.report_spike
        recent_start = now - timedelta(days=cfg.recent_days)
        baseline_start = now - timedelta(days=cfg.comparison_days)

        recent = self.store.get_report_history(station_id, recent_start, now)
        baseline = [
            r for r in self.store.get_report_history(station_id, baseline_start, recent_start)
            if r.created_at < recent_start
        ]

        recent_counts = count_reports_by_type(recent)
        baseline_counts = count_reports_by_type(baseline)

        readings = {}
        for report_type, recent_count in sorted(recent_counts.items()):
            reading = evaluate_spike(report_type, recent_count, baseline_counts.get(report_type, 0), cfg)
            if reading is not None:
                readings[report_type] = reading
        return readings

    def is_resolved(self, anomaly: Anomaly) -> bool:
        report_type = anomaly.sub_key or anomaly.metadata.get("report_type")
        return report_type not in self.spikes(anomaly.station_id, self.clock())
