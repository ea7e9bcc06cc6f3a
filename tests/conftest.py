"""
Pytest configuration and shared fixtures.

Provides a fixed clock, an in-memory store and factories for deterministic
synthetic station history. Nothing here is random: every timestamp is an
offset from NOW.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from chargepulse.core.config import Config
from chargepulse.data.schema import Connector, ConnectorStatus, ReportEvent, Station, StatusEvent
from chargepulse.data.store import InMemoryStore

# Friday, so "today" in pattern tests is weekday 4
NOW = datetime(2025, 2, 7, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def test_config(tmp_path) -> Config:
    """
    Fixture providing test configuration with default thresholds.

    Logs go to a temporary directory so tests never write into the repo.
    """
    return Config(logs_dir=tmp_path / "logs", log_level="WARNING")


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def station_factory(store) -> Callable[..., Station]:
    """
    Factory creating a station with connectors in the store.

    Usage:
        station = station_factory("st-1", connectors={1: ConnectorStatus.AVAILABLE})
    """

    def _make(
        station_id: str = "test_station_001",
        connectors: Optional[dict] = None,
        name: str = "Test Station",
    ) -> Station:
        station = Station(id=station_id, name=name, city="Tallinn", created_at=NOW - timedelta(days=90))
        store.add_station(station)
        for connector_id, status in (connectors or {1: ConnectorStatus.AVAILABLE}).items():
            store.add_connector(
                Connector(
                    id=connector_id,
                    station_id=station_id,
                    status=status,
                    last_status_update=NOW - timedelta(days=60),
                )
            )
        return station

    return _make


@pytest.fixture
def record_history(store) -> Callable[..., List[StatusEvent]]:
    """
    Factory recording a status sequence for a connector.

    Each (status, time) pair becomes a StatusEvent; the last one becomes the
    connector's live status.
    """

    def _record(
        station_id: str,
        connector_id: int,
        statuses: Sequence[ConnectorStatus],
        times: Sequence[datetime],
    ) -> List[StatusEvent]:
        events = []
        for status, at in zip(statuses, times):
            event = StatusEvent(
                station_id=station_id,
                connector_id=connector_id,
                status=status,
                source="TEST",
                recorded_at=at,
            )
            store.record_status(event)
            events.append(event)
        return events

    return _record


@pytest.fixture
def add_reports(store) -> Callable[..., None]:
    """
    Factory adding `count` reports of one type at the given ages.
    """

    def _add(station_id: str, report_type: str, ages: Sequence[timedelta]) -> None:
        for i, age in enumerate(ages):
            store.add_report(
                ReportEvent(
                    station_id=station_id,
                    device_id=f"device-{i:03d}",
                    report_type=report_type,
                    description=f"{report_type} report {i}",
                    created_at=NOW - age,
                )
            )

    return _add


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (deferred CI)"
    )
