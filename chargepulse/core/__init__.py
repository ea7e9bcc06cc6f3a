"""
Core module: Configuration, logging, batch execution and exception handling.
"""

from .batch import BatchSummary, StationBatchRunner, utc_now
from .config import Config, config
from .exceptions import (
    AnalyticsError,
    AnomalyConflictError,
    ConfigurationError,
    DataValidationError,
    HistoryAccessError,
    SnapshotLoadError,
)

__all__ = [
    "Config",
    "config",
    "BatchSummary",
    "StationBatchRunner",
    "utc_now",
    "AnalyticsError",
    "AnomalyConflictError",
    "ConfigurationError",
    "DataValidationError",
    "HistoryAccessError",
    "SnapshotLoadError",
]
