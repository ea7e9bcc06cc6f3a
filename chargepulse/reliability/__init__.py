"""
Reliability module: per-station reliability scoring.

Combines uptime, status stability and user report sub-scores into a
confidence-weighted composite score (0-100).
"""

from .calculator import ReliabilityCalculator
from .queries import ReliabilityQueries
from .scoring import (
    ReliabilityBreakdown,
    confidence_factor,
    report_score,
    score_station,
    stability_score,
    uptime_percentage,
    weighted_score,
)

__all__ = [
    "ReliabilityCalculator",
    "ReliabilityQueries",
    "ReliabilityBreakdown",
    "confidence_factor",
    "report_score",
    "score_station",
    "stability_score",
    "uptime_percentage",
    "weighted_score",
]
