"""
History snapshot ingestion.

Loads a JSON snapshot of stations, connectors, status history and user
reports into an InMemoryStore so the analytics jobs can run offline (CLI
runner, fixtures, reproductions of production incidents).

Snapshot format:
    {
        "stations": [
            {"id": "st-1", "name": "Depot", "connectors": [
                {"id": 1, "status": "OFFLINE", "last_status_update": "2025-02-05T10:00:00Z"}
            ]}
        ],
        "status_history": [
            {"station_id": "st-1", "connector_id": 1, "status": "OFFLINE",
             "source": "provider-a", "recorded_at": "2025-02-05T10:00:00Z"}
        ],
        "reports": [
            {"station_id": "st-1", "device_id": "d-1", "report_type": "CONNECTOR_ISSUE",
             "created_at": "2025-02-06T08:00:00Z"}
        ]
    }

Design:
- Validation is done by the pydantic models in chargepulse.data.schema
- Bad rows (including naive timestamps) are logged and skipped; they don't crash the load
- File-level problems (missing file, invalid JSON) raise SnapshotLoadError
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import ValidationError

from chargepulse.core.exceptions import DataValidationError, SnapshotLoadError
from chargepulse.data.schema import Connector, ReportEvent, Station, StatusEvent
from chargepulse.data.store import InMemoryStore

logger = logging.getLogger(__name__)


LoadStats = Dict[str, int]


def read_snapshot(filepath: Union[str, Path], encoding: str = "utf-8") -> Dict[str, Any]:
    """
    Read and decode a snapshot file.

    Args:
        filepath: Path to the JSON snapshot
        encoding: File encoding (default utf-8)

    Returns:
        Decoded snapshot dict

    Raises:
        SnapshotLoadError: If the file is missing, unreadable or not a JSON object
    """
    path = Path(filepath)
    if not path.exists():
        raise SnapshotLoadError(f"Snapshot file not found: {path}")

    try:
        with open(path, "r", encoding=encoding) as f:
            content = f.read().lstrip("\ufeff")
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise SnapshotLoadError(f"Invalid JSON snapshot {path}: {e}") from e
    except OSError as e:
        raise SnapshotLoadError(f"Failed to read snapshot {path}: {e}") from e

    if not isinstance(data, dict):
        raise SnapshotLoadError(f"Snapshot must be a JSON object, got {type(data).__name__}")
    return data


def load_snapshot_data(
    data: Dict[str, Any],
    store: Optional[InMemoryStore] = None,
) -> Tuple[InMemoryStore, LoadStats]:
    """
    Populate a store from an already decoded snapshot.

    Args:
        data: Snapshot dict (see module docstring)
        store: Store to fill (a new one is created when None)

    Returns:
        Tuple of (store, stats) where stats counts loaded/skipped rows

    Notes:
        - Connectors may be nested under their station or listed at the top
          level under "connectors" with an explicit station_id
        - Status history is appended without moving live connector status;
          the snapshot's connector status is taken as the live one
    """
    store = store or InMemoryStore()
    stats: LoadStats = {"stations": 0, "connectors": 0, "status_history": 0, "reports": 0, "skipped": 0}

    connectors = list(data.get("connectors", []))

    for idx, raw in enumerate(data.get("stations", [])):
        if not isinstance(raw, dict):
            logger.warning(f"Non-dict station at index {idx}: {type(raw)}")
            stats["skipped"] += 1
            continue
        raw = dict(raw)
        nested = raw.pop("connectors", []) or []
        try:
            station = Station.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping invalid station at index {idx}: {e.errors()[0]['msg']}")
            stats["skipped"] += 1
            continue
        store.add_station(station)
        stats["stations"] += 1
        for item in nested:
            if isinstance(item, dict):
                connectors.append({"station_id": station.id, **item})
            else:
                logger.warning(f"Non-dict connector under station {station.id}")
                stats["skipped"] += 1

    for idx, raw in enumerate(connectors):
        try:
            store.add_connector(Connector.model_validate(raw))
        except (ValidationError, DataValidationError, TypeError) as e:
            logger.warning(f"Skipping invalid connector at index {idx}: {e}")
            stats["skipped"] += 1
            continue
        stats["connectors"] += 1

    for idx, raw in enumerate(data.get("status_history", [])):
        try:
            store.add_status_event(StatusEvent.model_validate(raw))
        except (ValidationError, TypeError) as e:
            logger.warning(f"Skipping invalid status event at index {idx}: {e}")
            stats["skipped"] += 1
            continue
        stats["status_history"] += 1

    for idx, raw in enumerate(data.get("reports", [])):
        try:
            store.add_report(ReportEvent.model_validate(raw))
        except (ValidationError, TypeError) as e:
            logger.warning(f"Skipping invalid report at index {idx}: {e}")
            stats["skipped"] += 1
            continue
        stats["reports"] += 1

    logger.info(
        "Loaded snapshot: %d stations, %d connectors, %d status events, %d reports (%d skipped)",
        stats["stations"], stats["connectors"], stats["status_history"], stats["reports"], stats["skipped"],
    )
    return store, stats


def load_snapshot(
    filepath: Union[str, Path],
    store: Optional[InMemoryStore] = None,
) -> Tuple[InMemoryStore, LoadStats]:
    """
    Convenience function to load a snapshot file into a store.

    Args:
        filepath: Path to the JSON snapshot
        store: Store to fill (a new one is created when None)

    Returns:
        Tuple of (store, stats)

    Raises:
        SnapshotLoadError: If the file cannot be read

    Example:
        store, stats = load_snapshot("snapshots/2025-02-07.json")
        AnomalyOrchestrator(store).detect_anomalies()
    """
    return load_snapshot_data(read_snapshot(filepath), store)
