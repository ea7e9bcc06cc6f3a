"""
Collaborator interfaces for history access and analytics persistence.

The analytics engine never talks to a database directly. It reads history
through `StatusHistoryAccess` and writes results through `AnalyticsSink`.
`InMemoryStore` implements both and backs the CLI runner and the tests.

Design:
- Time windows are inclusive on both ends (start <= t <= end)
- History is always returned sorted ascending by time
- Returned records are copies; callers mutate and save explicitly
- At most one unresolved anomaly per AnomalyKey, enforced on save
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import ContextManager, Dict, Iterator, List, Optional

from chargepulse.core.exceptions import AnomalyConflictError, DataValidationError, HistoryAccessError
from chargepulse.data.schema import (
    Anomaly,
    AnomalyKey,
    Connector,
    ReliabilityMetric,
    ReportEvent,
    Station,
    StatusEvent,
)

logger = logging.getLogger(__name__)


def _in_window(ts: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is not None and ts < start:
        return False
    if end is not None and ts > end:
        return False
    return True


class StatusHistoryAccess(ABC):
    """
    Read-side collaborator: stations, connectors and their history.
    """

    @abstractmethod
    def get_all_stations(self) -> List[Station]:
        """Return every known station."""

    @abstractmethod
    def get_station(self, station_id: str) -> Optional[Station]:
        """Return a station by id, or None."""

    @abstractmethod
    def get_connectors(self, station_id: str) -> List[Connector]:
        """Return the station's connectors with their live status."""

    @abstractmethod
    def get_status_history(
        self,
        station_id: str,
        start: datetime,
        end: datetime,
        connector_id: Optional[int] = None,
    ) -> List[StatusEvent]:
        """
        Return status events in [start, end], oldest first.

        Args:
            station_id: Station to query
            start: Window start (inclusive)
            end: Window end (inclusive)
            connector_id: Restrict to one connector (None for all)

        Raises:
            HistoryAccessError: If the history cannot be read
        """

    @abstractmethod
    def get_report_history(self, station_id: str, start: datetime, end: datetime) -> List[ReportEvent]:
        """Return reports created in [start, end], oldest first."""

    @abstractmethod
    def count_reports(
        self,
        station_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        """Count reports, optionally bounded by a window (open ends when None)."""


class AnalyticsSink(ABC):
    """
    Write-side collaborator: reliability metrics, station scores and anomalies.
    """

    @abstractmethod
    def find_reliability_metric(self, station_id: str) -> Optional[ReliabilityMetric]:
        """Return the station's reliability metric, or None."""

    @abstractmethod
    def list_reliability_metrics(self) -> List[ReliabilityMetric]:
        """Return all reliability metrics."""

    @abstractmethod
    def upsert_reliability_metric(self, metric: ReliabilityMetric) -> ReliabilityMetric:
        """Insert or replace the single metric record for metric.station_id."""

    @abstractmethod
    def record_reliability(
        self,
        metric: ReliabilityMetric,
        score: Decimal,
        last_status_update: Optional[datetime] = None,
    ) -> ReliabilityMetric:
        """
        Store a station's metric together with its composite score.

        Both writes succeed or neither does: the station update is validated
        before the metric is upserted.

        Raises:
            DataValidationError: If the station is unknown
            pydantic.ValidationError: If the score is out of range
        """

    @abstractmethod
    def find_anomalies(self, station_id: Optional[str] = None) -> List[Anomaly]:
        """Return all anomalies, optionally for one station."""

    @abstractmethod
    def find_unresolved_anomalies(self, station_id: Optional[str] = None) -> List[Anomaly]:
        """Return unresolved anomalies, optionally for one station."""

    @abstractmethod
    def save_anomaly(self, anomaly: Anomaly) -> Anomaly:
        """
        Insert (id is None) or update an anomaly and return the stored copy.

        Raises:
            AnomalyConflictError: If another unresolved anomaly already holds
                the same key
        """

    @abstractmethod
    def anomaly_lock(self, key: AnomalyKey) -> ContextManager[None]:
        """Lock guarding the find-or-create sequence for one anomaly key."""


class InMemoryStore(StatusHistoryAccess, AnalyticsSink):
    """
    Thread-safe in-memory implementation of both collaborators.

    Recording a status event through `record_status` also moves the
    connector's live status, mirroring what ingestion does against a real
    database.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._key_locks: Dict[AnomalyKey, threading.Lock] = defaultdict(threading.Lock)
        self._stations: Dict[str, Station] = {}
        self._connectors: Dict[int, Connector] = {}
        self._status_events: Dict[str, List[StatusEvent]] = defaultdict(list)
        self._reports: Dict[str, List[ReportEvent]] = defaultdict(list)
        self._metrics: Dict[str, ReliabilityMetric] = {}
        self._anomalies: Dict[int, Anomaly] = {}
        self._next_metric_id = 1
        self._next_anomaly_id = 1

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def add_station(self, station: Station) -> Station:
        with self._lock:
            self._stations[station.id] = station.model_copy()
        return station

    def add_connector(self, connector: Connector) -> Connector:
        with self._lock:
            if connector.station_id not in self._stations:
                raise DataValidationError(f"Unknown station for connector {connector.id}: {connector.station_id}")
            self._connectors[connector.id] = connector.model_copy()
        return connector

    def add_status_event(self, event: StatusEvent) -> None:
        """Append a history record without touching the connector's live status."""
        with self._lock:
            events = self._status_events[event.station_id]
            events.append(event)
            events.sort(key=lambda e: e.recorded_at)

    def record_status(self, event: StatusEvent) -> None:
        """Append a history record and make it the connector's live status."""
        with self._lock:
            self.add_status_event(event)
            connector = self._connectors.get(event.connector_id)
            if connector is None:
                raise DataValidationError(f"Unknown connector: {event.connector_id}")
            if connector.last_status_update is None or event.recorded_at >= connector.last_status_update:
                connector.status = event.status
                connector.last_status_update = event.recorded_at

    def set_connector_status(self, connector_id: int, status, at: Optional[datetime] = None) -> None:
        with self._lock:
            connector = self._connectors.get(connector_id)
            if connector is None:
                raise DataValidationError(f"Unknown connector: {connector_id}")
            connector.status = status
            if at is not None:
                connector.last_status_update = at

    def add_report(self, report: ReportEvent) -> None:
        with self._lock:
            reports = self._reports[report.station_id]
            reports.append(report)
            reports.sort(key=lambda r: r.created_at)

    # ------------------------------------------------------------------
    # StatusHistoryAccess
    # ------------------------------------------------------------------

    def get_all_stations(self) -> List[Station]:
        with self._lock:
            return [s.model_copy() for s in self._stations.values()]

    def get_station(self, station_id: str) -> Optional[Station]:
        with self._lock:
            station = self._stations.get(station_id)
            return station.model_copy() if station else None

    def get_connectors(self, station_id: str) -> List[Connector]:
        with self._lock:
            self._require_station(station_id)
            return sorted(
                (c.model_copy() for c in self._connectors.values() if c.station_id == station_id),
                key=lambda c: c.id,
            )

    def get_status_history(
        self,
        station_id: str,
        start: datetime,
        end: datetime,
        connector_id: Optional[int] = None,
    ) -> List[StatusEvent]:
        with self._lock:
            self._require_station(station_id)
            return [
                e for e in self._status_events.get(station_id, [])
                if _in_window(e.recorded_at, start, end)
                and (connector_id is None or e.connector_id == connector_id)
            ]

    def get_report_history(self, station_id: str, start: datetime, end: datetime) -> List[ReportEvent]:
        with self._lock:
            self._require_station(station_id)
            return [r for r in self._reports.get(station_id, []) if _in_window(r.created_at, start, end)]

    def count_reports(
        self,
        station_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        with self._lock:
            self._require_station(station_id)
            return sum(1 for r in self._reports.get(station_id, []) if _in_window(r.created_at, start, end))

    def _require_station(self, station_id: str) -> None:
        if station_id not in self._stations:
            raise HistoryAccessError(f"No history for unknown station: {station_id}")

    # ------------------------------------------------------------------
    # AnalyticsSink
    # ------------------------------------------------------------------

    def find_reliability_metric(self, station_id: str) -> Optional[ReliabilityMetric]:
        with self._lock:
            metric = self._metrics.get(station_id)
            return metric.model_copy() if metric else None

    def list_reliability_metrics(self) -> List[ReliabilityMetric]:
        with self._lock:
            return [m.model_copy() for m in self._metrics.values()]

    def upsert_reliability_metric(self, metric: ReliabilityMetric) -> ReliabilityMetric:
        with self._lock:
            existing = self._metrics.get(metric.station_id)
            stored = metric.model_copy()
            if existing is not None:
                stored.id = existing.id
                stored.created_at = existing.created_at or metric.created_at
            elif stored.id is None:
                stored.id = self._next_metric_id
                self._next_metric_id += 1
            self._metrics[metric.station_id] = stored
            return stored.model_copy()

    def record_reliability(
        self,
        metric: ReliabilityMetric,
        score: Decimal,
        last_status_update: Optional[datetime] = None,
    ) -> ReliabilityMetric:
        with self._lock:
            station = self._stations.get(metric.station_id)
            if station is None:
                raise DataValidationError(f"Unknown station: {metric.station_id}")
            updated = Station.model_validate({
                **station.model_dump(),
                "reliability_score": score,
                "last_status_update": last_status_update or station.last_status_update,
            })
            saved = self.upsert_reliability_metric(metric)
            self._stations[station.id] = updated
            return saved

    def find_anomalies(self, station_id: Optional[str] = None) -> List[Anomaly]:
        with self._lock:
            return [
                a.model_copy(deep=True) for a in self._anomalies.values()
                if station_id is None or a.station_id == station_id
            ]

    def find_unresolved_anomalies(self, station_id: Optional[str] = None) -> List[Anomaly]:
        return [a for a in self.find_anomalies(station_id) if not a.is_resolved]

    def save_anomaly(self, anomaly: Anomaly) -> Anomaly:
        with self._lock:
            if not anomaly.is_resolved:
                for other in self._anomalies.values():
                    if other.id != anomaly.id and not other.is_resolved and other.key == anomaly.key:
                        raise AnomalyConflictError(
                            f"Unresolved {anomaly.anomaly_type.value} anomaly already exists "
                            f"for station {anomaly.station_id} (id={other.id})"
                        )
            stored = anomaly.model_copy(deep=True)
            if stored.id is None:
                stored.id = self._next_anomaly_id
                self._next_anomaly_id += 1
            self._anomalies[stored.id] = stored
            return stored.model_copy(deep=True)

    @contextmanager
    def anomaly_lock(self, key: AnomalyKey) -> Iterator[None]:
        with self._lock:
            key_lock = self._key_locks[key]
        with key_lock:
            yield
