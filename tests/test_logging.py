from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from dirsum.logging_ import JsonFormatter, _format_ts, _resolve_tz
from dirsum.observability import RunStats


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("dirsum.verify", logging.INFO, __file__, 1, message, None, None)


def test_json_formatter_plain_message() -> None:
    formatter = JsonFormatter("run-1", command="verify")
    payload = json.loads(formatter.format(_record("verified manifest=a.md5")))
    assert payload["level"] == "INFO"
    assert payload["component"] == "dirsum.verify"
    assert payload["run_id"] == "run-1"
    assert payload["command"] == "verify"
    assert payload["event"] == "verified manifest=a.md5"


def test_json_formatter_lifts_run_stats() -> None:
    stats = RunStats("update")
    stats.inc("added", 2)
    payload = json.loads(JsonFormatter("run-2", include_run_id=False).format(_record(stats.to_json())))
    assert "run_id" not in payload
    assert payload["event"] == "update"
    assert payload["meta"] == {"event": "update", "added": 2}


def test_timezone_resolution() -> None:
    assert _resolve_tz("local") is None
    assert _resolve_tz("Not/AZone") is None
    assert _format_ts(0, _resolve_tz("UTC")) == "1970-01-01 00:00:00"
