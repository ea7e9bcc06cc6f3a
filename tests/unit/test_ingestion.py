"""
Unit tests for snapshot ingestion.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from chargepulse.core.exceptions import DataValidationError, SnapshotLoadError
from chargepulse.data.ingestion import load_snapshot, load_snapshot_data, read_snapshot
from chargepulse.data.schema import ConnectorStatus
from chargepulse.data.store import InMemoryStore


def _snapshot() -> dict:
    return {
        "stations": [
            {
                "id": "st-1",
                "name": "Harbour Depot",
                "city": "Tallinn",
                "connectors": [
                    {"id": 1, "status": "OFFLINE", "last_status_update": "2025-02-05T10:00:00Z"},
                    {"id": 2, "status": "AVAILABLE"},
                ],
            },
            {"id": "st-2", "name": "Mall"},
        ],
        "connectors": [
            {"id": 3, "station_id": "st-2", "status": "OCCUPIED"},
        ],
        "status_history": [
            {"station_id": "st-1", "connector_id": 1, "status": "AVAILABLE",
             "source": "provider-a", "recorded_at": "2025-02-04T09:00:00Z"},
            {"station_id": "st-1", "connector_id": 1, "status": "OFFLINE",
             "source": "provider-a", "recorded_at": "2025-02-05T10:00:00Z"},
        ],
        "reports": [
            {"station_id": "st-1", "device_id": "d-1", "report_type": "CONNECTOR_ISSUE",
             "created_at": "2025-02-06T08:00:00Z"},
        ],
    }


class TestLoadSnapshotData:
    """Test loading a decoded snapshot."""

    def test_loads_all_sections(self):
        store, stats = load_snapshot_data(_snapshot())

        assert stats == {"stations": 2, "connectors": 3, "status_history": 2, "reports": 1, "skipped": 0}
        assert isinstance(store, InMemoryStore)
        assert [c.id for c in store.get_connectors("st-1")] == [1, 2]
        assert store.get_connectors("st-2")[0].status == ConnectorStatus.OCCUPIED

    def test_snapshot_status_is_live_status(self):
        store, _ = load_snapshot_data(_snapshot())

        connector = store.get_connectors("st-1")[0]
        assert connector.status == ConnectorStatus.OFFLINE
        assert connector.last_status_update == datetime(2025, 2, 5, 10, 0, tzinfo=timezone.utc)

    def test_history_is_queryable(self):
        store, _ = load_snapshot_data(_snapshot())
        end = datetime(2025, 2, 7, tzinfo=timezone.utc)

        history = store.get_status_history("st-1", end - timedelta(days=7), end)

        assert [e.status for e in history] == [ConnectorStatus.AVAILABLE, ConnectorStatus.OFFLINE]

    def test_invalid_rows_are_skipped(self):
        data = _snapshot()
        data["stations"].append({"name": "no id"})
        data["stations"].append("not a dict")
        data["connectors"].append({"id": 9, "station_id": "unknown"})
        data["status_history"].append({"station_id": "st-1", "connector_id": 1, "status": "EXPLODED",
                                       "recorded_at": "2025-02-05T11:00:00Z"})
        data["reports"].append({"station_id": "st-1", "device_id": "d-2", "report_type": "",
                                "created_at": "2025-02-06T08:00:00Z"})

        _, stats = load_snapshot_data(data)

        assert stats["skipped"] == 5
        assert stats["stations"] == 2

    def test_naive_timestamps_are_skipped(self):
        data = _snapshot()
        data["connectors"].append({"id": 4, "station_id": "st-2", "last_status_update": "2025-02-04T10:00:00"})
        data["status_history"].append({"station_id": "st-1", "connector_id": 1, "status": "OFFLINE",
                                       "recorded_at": "2025-02-04T10:00:00"})
        data["reports"].append({"station_id": "st-1", "device_id": "d-3", "report_type": "CONNECTOR_ISSUE",
                                "created_at": "2025-02-06T09:00:00"})

        store, stats = load_snapshot_data(data)

        assert stats["skipped"] == 3
        assert stats["status_history"] == 2
        end = datetime(2025, 2, 7, tzinfo=timezone.utc)
        assert len(store.get_status_history("st-1", end - timedelta(days=7), end)) == 2

    def test_fills_existing_store(self):
        store = InMemoryStore()
        returned, _ = load_snapshot_data(_snapshot(), store)
        assert returned is store


class TestReadSnapshot:
    """Test file-level loading."""

    def test_round_trip_from_file(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps(_snapshot()), encoding="utf-8")

        store, stats = load_snapshot(path)

        assert stats["stations"] == 2
        assert store.get_station("st-1").name == "Harbour Depot"

    def test_byte_order_mark_is_tolerated(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text("\ufeff" + json.dumps({"stations": []}), encoding="utf-8")

        assert read_snapshot(path) == {"stations": []}

    def test_missing_file(self, tmp_path):
        with pytest.raises(SnapshotLoadError):
            read_snapshot(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(SnapshotLoadError):
            read_snapshot(path)

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(SnapshotLoadError) as exc_info:
            read_snapshot(path)

        assert isinstance(exc_info.value, DataValidationError)
