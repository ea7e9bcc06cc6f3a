"""
Command-line trigger for the analytics jobs.

Loads a history snapshot, runs the requested job(s) and prints a JSON summary.
Meant to be invoked by cron or any other external scheduler:

    chargepulse all --snapshot snapshots/latest.json
    chargepulse detect --snapshot snapshots/latest.json --output anomalies.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from chargepulse.anomaly import AnomalyOrchestrator
from chargepulse.core.config import Config
from chargepulse.core.exceptions import ConfigurationError, SnapshotLoadError
from chargepulse.core.logging_config import setup_logging
from chargepulse.data.ingestion import load_snapshot
from chargepulse.data.store import InMemoryStore
from chargepulse.reliability import ReliabilityCalculator

logger = logging.getLogger("chargepulse.runner")

JOBS = ("reliability", "detect", "resolve", "all")


def load_settings() -> Config:
    try:
        return Config()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def run_jobs(job: str, store: InMemoryStore, settings: Config) -> Dict[str, Any]:
    result: Dict[str, Any] = {"job": job}

    if job in ("reliability", "all"):
        summary = ReliabilityCalculator(store, settings=settings).calculate_all_station_reliability()
        result["reliability"] = summary.model_dump(mode="json")

    orchestrator = AnomalyOrchestrator(store, settings=settings)
    if job in ("detect", "all"):
        result["detection"] = orchestrator.detect_anomalies().model_dump(mode="json")
    if job in ("resolve", "all"):
        result["resolved"] = orchestrator.check_for_resolved_anomalies()

    return result


def export_results(store: InMemoryStore) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "stations": [s.model_dump(mode="json") for s in store.get_all_stations()],
        "reliability_metrics": [m.model_dump(mode="json") for m in store.list_reliability_metrics()],
        "anomalies": [a.model_dump(mode="json") for a in store.find_anomalies()],
    }


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description="EV charging station reliability and anomaly jobs")
    parser.add_argument("job", choices=JOBS)
    parser.add_argument("--snapshot", required=True, type=Path, help="JSON history snapshot to analyse")
    parser.add_argument("--output", type=Path, help="Write stations, metrics and anomalies to this file")
    parser.add_argument("--workers", type=int, help="Override batch.max_workers")
    parser.add_argument("--log-level", help="Override log level")
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(e, file=sys.stderr)
        return 2

    if args.log_level:
        settings.log_level = args.log_level.upper()
    if args.workers:
        settings.batch.max_workers = max(args.workers, 1)
    setup_logging("chargepulse", settings)

    try:
        store, stats = load_snapshot(args.snapshot)
    except SnapshotLoadError as e:
        logger.error("Cannot load snapshot: %s", e)
        return 2

    result = run_jobs(args.job, store, settings)
    result["snapshot"] = stats

    if args.output:
        args.output.write_text(json.dumps(export_results(store), indent=2), encoding="utf-8")
        logger.info("Wrote results to %s", args.output)

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
