"""
Custom exceptions for the charging station analytics engine.

These exceptions provide clear error semantics across the system.
Use them to distinguish between data access problems, persistence conflicts,
invalid input and configuration errors.
"""


class AnalyticsError(Exception):
    """Base exception for analytics failures."""
    pass


class HistoryAccessError(AnalyticsError):
    """Raised when status or report history cannot be read for a station."""
    pass


class AnomalyConflictError(AnalyticsError):
    """Raised when saving would create a second unresolved anomaly for the same key."""
    pass


class DataValidationError(AnalyticsError):
    """Raised when input data fails validation."""
    pass


class SnapshotLoadError(DataValidationError):
    """Raised when a history snapshot file cannot be read."""
    pass


class ConfigurationError(AnalyticsError):
    """Raised when configuration is invalid or missing."""
    pass
