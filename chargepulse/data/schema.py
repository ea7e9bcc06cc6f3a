"""
Canonical schema for station status history and analytics records.

This module defines the internal representation of everything the analytics
engine reads (stations, connectors, status events, user reports) and writes
(reliability metrics, anomalies). Collaborators that store this data convert
to and from these models at their boundary.

Design rationale:
- All timestamps are timezone-aware (AwareDatetime); naive values are rejected
- History events are immutable (frozen models); they are append-only facts
- Scores are Decimal so rounding follows a single, explicit rule
- Anomalies carry a structured key instead of relying on description text
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class ConnectorStatus(str, Enum):
    """
    Observed connector status.

    UNKNOWN is recorded when a provider reports a value that does not map to
    the other three.
    """
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    OFFLINE = "OFFLINE"
    UNKNOWN = "UNKNOWN"


class AnomalyType(str, Enum):
    """Kinds of abnormal station behaviour."""

    STATUS_FLAPPING = "STATUS_FLAPPING"
    EXTENDED_DOWNTIME = "EXTENDED_DOWNTIME"
    REPORT_SPIKE = "REPORT_SPIKE"
    PATTERN_DEVIATION = "PATTERN_DEVIATION"


class AnomalySeverity(str, Enum):
    """
    Ordered severity levels shared by all detectors.

    Use `rank` or `is_higher_than` for ordering; plain `<` on a str enum
    compares names alphabetically.
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def is_higher_than(self, other: "AnomalySeverity") -> bool:
        return self.rank > other.rank


_SEVERITY_RANK = {
    AnomalySeverity.LOW: 1,
    AnomalySeverity.MEDIUM: 2,
    AnomalySeverity.HIGH: 3,
}


class Station(BaseModel):
    """
    Charging station.

    Attributes:
        id: Provider-qualified station identifier
        name: Display name
        city: City, if known
        network_id: Owning charging network, if known
        reliability_score: Latest composite reliability score (0-100)
        last_status_update: Time of the latest status observation used for scoring
        created_at: Creation time of the station record
        updated_at: Last modification of the station record

    Notes:
        - Identity and descriptive fields are owned by ingestion
        - reliability_score and last_status_update are owned by the
          reliability calculator
    """

    id: str = Field(..., min_length=1, max_length=128)
    name: str = Field("", max_length=256)
    city: Optional[str] = None
    network_id: Optional[str] = None
    reliability_score: Optional[Decimal] = Field(default=None, ge=0, le=100)
    last_status_update: Optional[AwareDatetime] = None
    created_at: Optional[AwareDatetime] = None
    updated_at: Optional[AwareDatetime] = None


class Connector(BaseModel):
    """
    A single charge point connector on a station.

    `status` is the current live status; the history of how it got there is
    kept as StatusEvent records.
    """

    id: int
    station_id: str
    connector_type: str = "CCS"
    power_kw: Optional[Decimal] = Field(default=None, ge=0)
    status: ConnectorStatus = ConnectorStatus.UNKNOWN
    last_status_update: Optional[AwareDatetime] = None


class StatusEvent(BaseModel):
    """
    A recorded connector status change.

    Attributes:
        station_id: Station the connector belongs to
        connector_id: Connector whose status was observed
        status: Observed status
        source: Provider the observation came from
        recorded_at: UTC time of the observation

    Notes:
        - Created only when the observed status differs from the previous one
        - Ordering by recorded_at is significant for every detector
    """

    model_config = ConfigDict(frozen=True)

    station_id: str
    connector_id: int
    status: ConnectorStatus
    source: str = "unknown"
    recorded_at: AwareDatetime


class ReportEvent(BaseModel):
    """
    A user-submitted problem report for a station.

    report_type is free-form ("CONNECTOR_ISSUE", "PAYMENT_FAILURE", ...).
    """

    model_config = ConfigDict(frozen=True)

    station_id: str
    device_id: str
    report_type: str = Field(..., min_length=1, max_length=64)
    description: Optional[str] = None
    status: str = "pending"
    created_at: AwareDatetime


class ReliabilityMetric(BaseModel):
    """
    Reliability breakdown for a station (one record per station).

    Attributes:
        station_id: Station the metric describes
        uptime_percentage: Share of AVAILABLE observations in the window (0-100)
        report_count: Total reports ever filed for the station
        downtime_frequency: 100 minus the stability sub-score
        sample_size: Status events in the analysis window
        last_downtime: Most recent OFFLINE observation in the window
        created_at: First calculation time, preserved across recalculation
        updated_at: Latest calculation time
    """

    id: Optional[int] = None
    station_id: str
    uptime_percentage: Decimal = Field(..., ge=0, le=100)
    report_count: int = Field(0, ge=0)
    downtime_frequency: Decimal = Field(..., ge=0, le=100)
    sample_size: int = Field(0, ge=0)
    last_downtime: Optional[AwareDatetime] = None
    created_at: Optional[AwareDatetime] = None
    updated_at: Optional[AwareDatetime] = None


class AnomalyKey(NamedTuple):
    """Identity of an open anomaly: at most one unresolved anomaly per key."""

    station_id: str
    anomaly_type: AnomalyType
    sub_key: Optional[str] = None


class Anomaly(BaseModel):
    """
    Abnormal behaviour detected for a station.

    Fields:
    - anomaly_type: which detector raised it
    - sub_key: secondary key (report type for REPORT_SPIKE, otherwise None)
    - description: human-readable diagnostic text, refreshed on every update
    - severity / severity_score: categorical level and type-specific magnitude
      (hours offline, spike factor, change count, fixed 0.5 for patterns)
    - is_resolved / resolved_at: set only by the resolution sweep
    - last_checked: bumped every time a detector confirms the anomaly
    - metadata: structured diagnostic data (connector ids, counts, rates)
    """

    id: Optional[int] = None
    station_id: str
    anomaly_type: AnomalyType
    sub_key: Optional[str] = None
    description: str = ""
    severity: AnomalySeverity
    severity_score: Decimal = Decimal("0")
    is_resolved: bool = False
    detected_at: AwareDatetime
    resolved_at: Optional[AwareDatetime] = None
    last_checked: Optional[AwareDatetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> AnomalyKey:
        return AnomalyKey(self.station_id, self.anomaly_type, self.sub_key)
