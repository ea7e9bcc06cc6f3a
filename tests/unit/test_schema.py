"""
Unit tests for the station history schema.

Tests the Pydantic models and enum definitions.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import ValidationError

from chargepulse.data.schema import (
    Anomaly,
    AnomalySeverity,
    AnomalyType,
    Connector,
    ConnectorStatus,
    ReliabilityMetric,
    ReportEvent,
    Station,
    StatusEvent,
)

TS = datetime(2025, 2, 7, 10, 30, 45, tzinfo=timezone.utc)


class TestEnums:
    """Test enum values."""

    def test_connector_status(self):
        assert ConnectorStatus.AVAILABLE == "AVAILABLE"
        assert ConnectorStatus("OFFLINE") is ConnectorStatus.OFFLINE

    def test_anomaly_types(self):
        assert {t.value for t in AnomalyType} == {
            "STATUS_FLAPPING", "EXTENDED_DOWNTIME", "REPORT_SPIKE", "PATTERN_DEVIATION",
        }

    def test_severity_rank_is_not_alphabetical(self):
        assert AnomalySeverity.MEDIUM.rank > AnomalySeverity.LOW.rank
        assert AnomalySeverity.HIGH.is_higher_than(AnomalySeverity.MEDIUM)


class TestStation:
    """Test Station and Connector models."""

    def test_minimal_station(self):
        station = Station(id="st-1")

        assert station.name == ""
        assert station.reliability_score is None
        assert station.last_status_update is None

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            Station(id="")

    def test_score_out_of_range(self):
        with pytest.raises(ValidationError):
            Station(id="st-1", reliability_score=Decimal("100.01"))

    def test_connector_defaults(self):
        connector = Connector(id=7, station_id="st-1")

        assert connector.status == ConnectorStatus.UNKNOWN
        assert connector.connector_type == "CCS"


class TestEvents:
    """Test immutable history events."""

    def test_status_event_is_frozen(self):
        event = StatusEvent(station_id="st-1", connector_id=1, status=ConnectorStatus.OFFLINE, recorded_at=TS)

        with pytest.raises(ValidationError):
            event.status = ConnectorStatus.AVAILABLE

    def test_status_parsed_from_string(self):
        event = StatusEvent.model_validate(
            {"station_id": "st-1", "connector_id": 1, "status": "OCCUPIED", "recorded_at": "2025-02-07T10:30:45Z"}
        )

        assert event.status == ConnectorStatus.OCCUPIED
        assert event.recorded_at == TS
        assert event.source == "unknown"

    def test_report_defaults(self):
        report = ReportEvent(station_id="st-1", device_id="d-1", report_type="CONNECTOR_ISSUE", created_at=TS)

        assert report.status == "pending"
        assert report.description is None


class TestAnalyticsRecords:
    """Test ReliabilityMetric and Anomaly."""

    def test_metric_bounds(self):
        with pytest.raises(ValidationError):
            ReliabilityMetric(station_id="st-1", uptime_percentage=Decimal("101"), downtime_frequency=Decimal("0"))

    def test_naive_timestamps_rejected(self):
        with pytest.raises(ValidationError):
            StatusEvent(
                station_id="st-1",
                connector_id=1,
                status=ConnectorStatus.OFFLINE,
                recorded_at=datetime(2025, 2, 4, 10, 0),
            )
        with pytest.raises(ValidationError):
            Connector(id=1, station_id="st-1", last_status_update="2025-02-04T10:00:00")

    def test_anomaly_defaults(self):
        anomaly = Anomaly(
            station_id="st-1",
            anomaly_type=AnomalyType.PATTERN_DEVIATION,
            severity=AnomalySeverity.MEDIUM,
            detected_at=TS,
        )

        assert anomaly.is_resolved is False
        assert anomaly.resolved_at is None
        assert anomaly.metadata == {}
        assert anomaly.key.sub_key is None

    def test_anomaly_json_dump(self):
        anomaly = Anomaly(
            station_id="st-1",
            anomaly_type=AnomalyType.REPORT_SPIKE,
            sub_key="PAYMENT_FAILURE",
            severity=AnomalySeverity.HIGH,
            severity_score=Decimal("6.00"),
            detected_at=TS,
            metadata={"recent_count": 6},
        )

        dumped = anomaly.model_dump(mode="json")

        assert dumped["anomaly_type"] == "REPORT_SPIKE"
        assert dumped["severity"] == "HIGH"
        assert dumped["metadata"] == {"recent_count": 6}
