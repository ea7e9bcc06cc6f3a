"""
Unit tests for the command-line runner.
"""

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from chargepulse import runner
from chargepulse.data.ingestion import load_snapshot_data


@pytest.fixture(autouse=True)
def isolated_logging(monkeypatch, tmp_path):
    monkeypatch.setenv("CHARGEPULSE_LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(runner, "load_dotenv", lambda: False)
    yield
    logger = logging.getLogger("chargepulse")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def _write_snapshot(path):
    recent = datetime.now(timezone.utc) - timedelta(hours=1)
    data = {
        "stations": [
            {"id": "st-1", "name": "Depot", "connectors": [
                {"id": 1, "status": "OFFLINE",
                 "last_status_update": (recent - timedelta(hours=40)).isoformat()},
            ]},
        ],
        "reports": [
            {"station_id": "st-1", "device_id": f"d-{i}", "report_type": "CONNECTOR_ISSUE",
             "created_at": (recent - timedelta(days=i)).isoformat()}
            for i in range(6)
        ],
    }
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_run_all_jobs(tmp_path, capsys):
    snapshot = _write_snapshot(tmp_path / "snapshot.json")
    output = tmp_path / "results.json"

    code = runner.main(["all", "--snapshot", str(snapshot), "--output", str(output)])

    assert code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["job"] == "all"
    assert summary["snapshot"]["stations"] == 1
    assert summary["reliability"]["succeeded"] == 1
    assert summary["detection"]["detected"] == 2
    assert summary["resolved"] == 0

    results = json.loads(output.read_text(encoding="utf-8"))
    assert len(results["reliability_metrics"]) == 1
    assert sorted(a["anomaly_type"] for a in results["anomalies"]) == ["EXTENDED_DOWNTIME", "REPORT_SPIKE"]


def test_missing_snapshot_exits_with_error(tmp_path):
    assert runner.main(["detect", "--snapshot", str(tmp_path / "missing.json")]) == 2


def test_unknown_job_rejected(tmp_path):
    with pytest.raises(SystemExit):
        runner.main(["compact", "--snapshot", str(tmp_path / "x.json")])


def test_run_jobs_reliability_only(test_config):
    store, _ = load_snapshot_data({"stations": [{"id": "st-1"}]})

    result = runner.run_jobs("reliability", store, test_config)

    assert "reliability" in result
    assert "detection" not in result
    assert store.find_anomalies() == []


def test_invalid_configuration_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.setenv("CHARGEPULSE_RELIABILITY__WEIGHT_UPTIME", "0.9")
    snapshot = _write_snapshot(tmp_path / "snapshot.json")

    assert runner.main(["reliability", "--snapshot", str(snapshot)]) == 2
