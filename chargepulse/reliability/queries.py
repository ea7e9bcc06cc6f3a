"""
Read-side reliability queries.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union

from chargepulse.data.schema import ReliabilityMetric
from chargepulse.data.store import AnalyticsSink

logger = logging.getLogger(__name__)


class ReliabilityQueries:
    def __init__(self, sink: AnalyticsSink) -> None:
        self.sink = sink

    def station_reliability(self, station_id: str) -> Optional[ReliabilityMetric]:
        logger.debug("Fetching reliability metrics for station: %s", station_id)
        return self.sink.find_reliability_metric(station_id)

    def most_reliable(self, limit: int = 10) -> List[ReliabilityMetric]:
        logger.debug("Fetching top %d most reliable stations", limit)
        return self._by_uptime()[:max(limit, 0)]

    def with_minimum_uptime(self, minimum: Union[str, float, Decimal]) -> List[ReliabilityMetric]:
        logger.debug("Fetching stations with minimum reliability: %s", minimum)
        try:
            threshold = Decimal(str(minimum))
        except InvalidOperation:
            logger.warning("Invalid minimum uptime: %s", minimum)
            return []
        return [m for m in self._by_uptime() if m.uptime_percentage >= threshold]

    def _by_uptime(self) -> List[ReliabilityMetric]:
        return sorted(
            self.sink.list_reliability_metrics(),
            key=lambda m: (-m.uptime_percentage, m.station_id),
        )
