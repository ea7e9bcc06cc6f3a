"""
Reliability sub-scores and the composite score.

All arithmetic is done in Decimal; every published figure is rounded to two
places with ROUND_HALF_UP so recalculation with unchanged history always
reproduces the same value.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional

from chargepulse.core.config import ReliabilityConfig
from chargepulse.data.schema import ConnectorStatus

HUNDRED = Decimal(100)
TWO_PLACES = Decimal("0.01")


def _round(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def uptime_percentage(status_counts: Mapping[ConnectorStatus, int], neutral: float = 50.0) -> Decimal:
    """
    Share of AVAILABLE observations, in percent.

    Returns `neutral` (50.0 by default) when there are no observations.
    """

    total = sum(status_counts.values())
    if total == 0:
        return _round(Decimal(str(neutral)))
    available = status_counts.get(ConnectorStatus.AVAILABLE, 0)
    return _round(Decimal(available) * HUNDRED / Decimal(total))


def capped_inverse_score(count: int, cap: int) -> Decimal:
    """
    100 for a count of zero, falling linearly to 0 at `cap` and beyond.
    """

    capped = min(max(count, 0), cap)
    return _round(HUNDRED - Decimal(capped) * HUNDRED / Decimal(cap))


def stability_score(transition_count: int, max_transitions: int = 20) -> Decimal:
    return capped_inverse_score(transition_count, max_transitions)


def report_score(report_count: int, max_reports: int = 10) -> Decimal:
    return capped_inverse_score(report_count, max_reports)


def confidence_factor(sample_size: int, min_data_points: int = 10) -> Decimal:
    """
    Trust in a score given its sample size.

    1.0 once sample_size reaches min_data_points; below that
    0.5 + sample_size / min_data_points, never more than 1.0.
    """

    if sample_size >= min_data_points:
        return Decimal(1)
    partial = Decimal("0.5") + _round(Decimal(max(sample_size, 0)) / Decimal(min_data_points))
    return min(partial, Decimal(1))


@dataclass(frozen=True)
class ReliabilityBreakdown:
    """
    Inputs and result of one reliability calculation.
    """

    uptime: Decimal
    stability: Decimal
    reports: Decimal
    confidence: Decimal
    sample_size: int
    transition_count: int
    report_count: int
    score: Decimal

    @property
    def downtime_frequency(self) -> Decimal:
        return HUNDRED - self.stability


def weighted_score(
    uptime: Decimal,
    stability: Decimal,
    reports: Decimal,
    confidence: Decimal,
    cfg: Optional[ReliabilityConfig] = None,
) -> Decimal:
    """
    confidence x (w_uptime*uptime + w_stability*stability + w_reports*reports), 2 dp half-up.
    """

    cfg = cfg or ReliabilityConfig()
    weighted = (
        uptime * Decimal(str(cfg.weight_uptime))
        + stability * Decimal(str(cfg.weight_stability))
        + reports * Decimal(str(cfg.weight_reports))
    )
    return _round(weighted * confidence)


def score_station(
    status_counts: Mapping[ConnectorStatus, int],
    transition_count: int,
    report_count: int,
    cfg: Optional[ReliabilityConfig] = None,
) -> ReliabilityBreakdown:
    """
    Full reliability breakdown from window statistics.

    Args:
        status_counts: Status -> number of observations in the window
        transition_count: Status changes in the window
        report_count: Reports filed in the window

    Returns:
        ReliabilityBreakdown with every sub-score and the composite score
    """

    cfg = cfg or ReliabilityConfig()
    sample_size = sum(status_counts.values())

    uptime = uptime_percentage(status_counts, cfg.neutral_uptime)
    stability = stability_score(transition_count, cfg.max_transitions)
    reports = report_score(report_count, cfg.max_reports)
    confidence = confidence_factor(sample_size, cfg.min_data_points)

    return ReliabilityBreakdown(
        uptime=uptime,
        stability=stability,
        reports=reports,
        confidence=confidence,
        sample_size=sample_size,
        transition_count=transition_count,
        report_count=report_count,
        score=weighted_score(uptime, stability, reports, confidence, cfg),
    )
