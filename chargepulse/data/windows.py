"""
Time-window statistics over status and report history.

Turns raw history lists into the small derived figures the detectors and the
reliability model work with: transition counts, per-connector grouping,
per-type report counts and day-of-week status histograms.

Design:
- Pure functions over already-windowed history (the store does the slicing)
- Input order is not trusted; every function sorts by time where order matters
- Histograms cover AVAILABLE, OCCUPIED and OFFLINE; UNKNOWN is not a pattern
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pandas as pd

from chargepulse.data.schema import ConnectorStatus, ReportEvent, StatusEvent

logger = logging.getLogger(__name__)

PATTERN_STATUSES = (
    ConnectorStatus.AVAILABLE,
    ConnectorStatus.OCCUPIED,
    ConnectorStatus.OFFLINE,
)


def sort_by_time(events: Iterable[StatusEvent], newest_first: bool = False) -> List[StatusEvent]:
    """
    Sort status events by recorded_at.

    Args:
        events: Status events in any order
        newest_first: Sort descending when True

    Returns:
        New sorted list
    """
    return sorted(events, key=lambda e: e.recorded_at, reverse=newest_first)


def group_by_connector(events: Iterable[StatusEvent]) -> Dict[int, List[StatusEvent]]:
    """
    Group status events per connector, each group oldest first.

    Args:
        events: Status events for one station

    Returns:
        Dict mapping connector_id -> chronologically sorted events
    """
    grouped: Dict[int, List[StatusEvent]] = {}
    for event in sort_by_time(events):
        grouped.setdefault(event.connector_id, []).append(event)
    return grouped


def count_transitions(events: Iterable[StatusEvent]) -> int:
    """
    Count status changes in a single connector's history.

    A transition is a pair of consecutive events (by recorded_at) with
    different statuses. The status before the first event is unknown, so the
    first event never counts on its own.

    Args:
        events: Events for ONE connector

    Returns:
        Number of transitions (0 for fewer than two events)

    Example:
        AVAILABLE, OFFLINE, AVAILABLE, OFFLINE -> 3
    """
    ordered = sort_by_time(events)
    return sum(
        1 for previous, current in zip(ordered, ordered[1:])
        if previous.status != current.status
    )


def count_station_transitions(events: Iterable[StatusEvent]) -> int:
    """
    Count status changes across a station, connector by connector.

    Interleaved events from different connectors are never compared with
    each other.

    Args:
        events: Events for one station (any connectors)

    Returns:
        Sum of per-connector transition counts
    """
    return sum(count_transitions(group) for group in group_by_connector(events).values())


def transitions_by_connector(events: Iterable[StatusEvent]) -> Dict[int, int]:
    """
    Transition count per connector.

    Args:
        events: Events for one station

    Returns:
        Dict mapping connector_id -> transition count
    """
    return {cid: count_transitions(group) for cid, group in group_by_connector(events).items()}


def count_statuses(events: Iterable[StatusEvent]) -> Counter:
    """
    Count events per status.

    Args:
        events: Status events

    Returns:
        Counter keyed by ConnectorStatus
    """
    return Counter(event.status for event in events)


def latest_with_status(events: Iterable[StatusEvent], status: ConnectorStatus) -> Optional[StatusEvent]:
    """
    Most recent event with the given status.

    Args:
        events: Status events in any order
        status: Status to look for

    Returns:
        The newest matching event, or None
    """
    for event in sort_by_time(events, newest_first=True):
        if event.status == status:
            return event
    return None


def latest_recorded_at(events: Iterable[StatusEvent]) -> Optional[datetime]:
    """Time of the newest event, or None for empty history."""
    return max((e.recorded_at for e in events), default=None)


def count_reports_by_type(reports: Iterable[ReportEvent]) -> Dict[str, int]:
    """
    Count reports per report_type.

    Args:
        reports: Report events

    Returns:
        Dict mapping report_type -> count
    """
    return dict(Counter(report.report_type for report in reports))


def status_histogram(events: Iterable[StatusEvent]) -> Dict[int, Dict[ConnectorStatus, int]]:
    """
    Build a day-of-week x status histogram.

    Args:
        events: Status events for one connector

    Returns:
        Dict mapping weekday (Monday=0 ... Sunday=6) -> {status: count} for
        AVAILABLE, OCCUPIED and OFFLINE. Every weekday and status is present,
        with zero counts where nothing was observed.

    Notes:
        - Weekday is taken from recorded_at in its own timezone (UTC)
        - UNKNOWN observations are left out
    """
    histogram = {
        day: {status: 0 for status in PATTERN_STATUSES}
        for day in range(7)
    }

    rows = [
        {"weekday": e.recorded_at.weekday(), "status": e.status.value}
        for e in events
        if e.status in PATTERN_STATUSES
    ]
    if not rows:
        return histogram

    frame = pd.DataFrame(rows)
    counts = frame.groupby(["weekday", "status"]).size()

    for (weekday, status), count in counts.items():
        histogram[int(weekday)][ConnectorStatus(status)] = int(count)

    return histogram


def most_common_status(counts: Dict[ConnectorStatus, int]) -> ConnectorStatus:
    """
    Status with the highest count.

    Args:
        counts: Status -> count for one weekday

    Returns:
        The single most common status; AVAILABLE when the counts are empty,
        all zero, or the top count is shared by several statuses
    """
    if not counts:
        return ConnectorStatus.AVAILABLE

    top = max(counts.values())
    if top <= 0:
        return ConnectorStatus.AVAILABLE

    leaders = [status for status, count in counts.items() if count == top]
    if len(leaders) > 1:
        return ConnectorStatus.AVAILABLE
    return leaders[0]
