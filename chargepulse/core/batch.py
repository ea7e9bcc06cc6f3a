"""
Per-station batch execution.

Both analytics jobs (reliability scoring and anomaly detection) walk every
station and run independent work for each one. Failures are isolated per
station: they are logged with the station id, counted, and the batch moves on.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BatchSummary(BaseModel):
    """
    Outcome of a batch run.

    Fields:
    - job: batch name ("reliability", "anomaly_detection", "resolution")
    - stations: number of stations visited
    - succeeded / failed: per-station outcomes
    - detected: anomalies raised or refreshed during the run
    - resolved: anomalies closed by the resolution sweep
    - failed_stations: ids of stations whose work raised
    """

    job: str
    stations: int = Field(0, ge=0)
    succeeded: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    detected: int = Field(0, ge=0)
    resolved: int = Field(0, ge=0)
    failed_stations: List[str] = Field(default_factory=list)
    started_at: datetime
    finished_at: Optional[datetime] = None


@dataclass
class StationBatchRunner:
    """
    Runs a per-station callable over a list of stations.

    Sequential when max_workers is 1, otherwise a bounded thread pool. The
    callable returns the number of anomalies it raised (0 for jobs that do not
    detect anything).

    timeout_seconds only applies to the pool. It is measured from when the
    runner starts waiting on a station's result, so time a station spends
    running while earlier results are collected does not count against it. A timed out
    station is counted as failed but its worker is not interrupted, and the
    pool still waits for it on shutdown. Sequential runs ignore the timeout.
    """

    job: str
    max_workers: int = 1
    timeout_seconds: Optional[float] = None
    clock: Clock = field(default=utc_now)

    def run(self, stations: Iterable, work: Callable[[object], int]) -> BatchSummary:
        station_list = list(stations)
        summary = BatchSummary(job=self.job, stations=len(station_list), started_at=self.clock())

        if self.max_workers <= 1:
            for station in station_list:
                try:
                    count = work(station)
                except Exception:
                    self._record_failure(summary, station)
                else:
                    self._record_success(summary, count)
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix=self.job) as pool:
                futures = [(station, pool.submit(work, station)) for station in station_list]
                for station, future in futures:
                    try:
                        count = future.result(timeout=self.timeout_seconds)
                    except FutureTimeoutError:
                        logger.error("Station %s timed out during %s", station.id, self.job)
                        summary.failed += 1
                        summary.failed_stations.append(station.id)
                    except Exception:
                        self._record_failure(summary, station)
                    else:
                        self._record_success(summary, count)

        summary.finished_at = self.clock()
        return summary

    def _record_success(self, summary: BatchSummary, count: Optional[int]) -> None:
        summary.succeeded += 1
        summary.detected += int(count or 0)

    def _record_failure(self, summary: BatchSummary, station) -> None:
        logger.exception("Error during %s for station %s", self.job, station.id)
        summary.failed += 1
        summary.failed_stations.append(station.id)
