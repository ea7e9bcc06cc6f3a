"""
Scoring and severity mapping for anomalies.

Maps detector measurements to severity levels with configurable thresholds,
and provides the escalate-only rule used when an open anomaly is refreshed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from chargepulse.core.config import Config, config
from chargepulse.data.schema import AnomalySeverity

TWO_PLACES = Decimal("0.01")


@dataclass
class SeverityMapper:
    """
    Maps detector measurements to severity levels.
    """

    settings: Config = field(default_factory=lambda: config)

    def flapping_severity(self, transitions: int) -> AnomalySeverity:
        thresholds = self.settings.flapping
        if transitions >= thresholds.high_transitions:
            return AnomalySeverity.HIGH
        if transitions >= thresholds.medium_transitions:
            return AnomalySeverity.MEDIUM
        return AnomalySeverity.LOW

    def downtime_severity(self, hours: Union[float, Decimal]) -> AnomalySeverity:
        thresholds = self.settings.downtime
        h = float(hours)
        if h >= thresholds.high_hours:
            return AnomalySeverity.HIGH
        if h >= thresholds.medium_hours:
            return AnomalySeverity.MEDIUM
        return AnomalySeverity.LOW

    def spike_severity(self, spike_factor: float) -> AnomalySeverity:
        thresholds = self.settings.report_spike
        if spike_factor >= thresholds.high_factor:
            return AnomalySeverity.HIGH
        if spike_factor >= thresholds.medium_factor:
            return AnomalySeverity.MEDIUM
        return AnomalySeverity.LOW


def overall_severity(*severities: AnomalySeverity) -> AnomalySeverity:
    """
    Return the highest severity among inputs.
    """

    return max(severities, key=lambda s: s.rank)


def escalate(current: AnomalySeverity, candidate: AnomalySeverity) -> AnomalySeverity:
    """
    Severity after a repeated detection: the candidate only wins if higher.
    """

    return candidate if candidate.is_higher_than(current) else current


def to_score(value: Union[int, float, Decimal]) -> Decimal:
    """
    Severity score as a Decimal with two places (half-up).
    """

    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
