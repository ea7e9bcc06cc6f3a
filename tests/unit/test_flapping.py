"""
Unit tests for status flapping detection.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from chargepulse.anomaly import StatusFlappingDetector
from chargepulse.data.schema import AnomalySeverity, AnomalyType, ConnectorStatus

A = ConnectorStatus.AVAILABLE
O = ConnectorStatus.OFFLINE


@pytest.fixture
def detector(store, test_config, clock):
    return StatusFlappingDetector(store, settings=test_config, clock=clock)


def _alternating(n):
    return [A if i % 2 == 0 else O for i in range(n)]


def test_six_hourly_alternations_raise_one_anomaly(store, station_factory, record_history, detector, now):
    station = station_factory("st-1")
    record_history("st-1", 1, _alternating(6), [now - timedelta(hours=h) for h in range(6, 0, -1)])

    assert detector.detect(station) == 1

    anomalies = store.find_unresolved_anomalies("st-1")
    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.anomaly_type == AnomalyType.STATUS_FLAPPING
    assert anomaly.severity == AnomalySeverity.LOW
    assert anomaly.severity_score == Decimal("5.00")
    assert "connector 1 changed status 5 times" in anomaly.description
    assert anomaly.metadata["connectors"] == [{"connector_id": 1, "transitions": 5}]
    assert anomaly.detected_at == now


def test_few_changes_are_not_flapping(store, station_factory, record_history, detector, now):
    station = station_factory("st-1")
    record_history("st-1", 1, [A, O, A], [now - timedelta(hours=h) for h in (3, 2, 1)])

    assert detector.detect(station) == 0
    assert store.find_anomalies("st-1") == []


def test_changes_outside_window_ignored(store, station_factory, record_history, detector, now):
    station = station_factory("st-1")
    record_history("st-1", 1, _alternating(8), [now - timedelta(hours=30 + h) for h in range(8, 0, -1)])

    assert detector.detect(station) == 0


def test_severity_follows_busiest_connector(store, station_factory, record_history, detector, now):
    station = station_factory("st-1", connectors={1: A, 2: A})
    record_history("st-1", 1, _alternating(6), [now - timedelta(hours=h) for h in range(6, 0, -1)])
    record_history("st-1", 2, _alternating(16), [now - timedelta(minutes=60 * 20 - 60 * h) for h in range(16)])

    assert detector.detect(station) == 1

    anomaly = store.find_unresolved_anomalies("st-1")[0]
    assert anomaly.severity == AnomalySeverity.HIGH
    assert anomaly.severity_score == Decimal("15.00")
    assert [c["connector_id"] for c in anomaly.metadata["connectors"]] == [2, 1]


def test_repeat_detection_updates_in_place(store, station_factory, record_history, detector, now):
    station = station_factory("st-1")
    record_history("st-1", 1, _alternating(6), [now - timedelta(hours=h) for h in range(6, 0, -1)])

    detector.detect(station)
    detector.detect(station)

    assert len(store.find_anomalies("st-1")) == 1


def test_resolved_once_flapping_stops(store, station_factory, record_history, test_config, now):
    station = station_factory("st-1")
    record_history("st-1", 1, _alternating(6), [now - timedelta(hours=h) for h in range(6, 0, -1)])
    StatusFlappingDetector(store, settings=test_config, clock=lambda: now).detect(station)
    anomaly = store.find_unresolved_anomalies("st-1")[0]

    still = StatusFlappingDetector(store, settings=test_config, clock=lambda: now + timedelta(hours=2))
    later = StatusFlappingDetector(store, settings=test_config, clock=lambda: now + timedelta(hours=25))

    assert still.is_resolved(anomaly) is False
    assert later.is_resolved(anomaly) is True
