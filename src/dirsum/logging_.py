import json
import logging
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class JsonFormatter(logging.Formatter):
    def __init__(
        self,
        run_id: str,
        tzinfo: Optional[timezone] = None,
        include_run_id: bool = True,
        command: Optional[str] = None,
    ) -> None:
        super().__init__()
        self._run_id = run_id
        self._command = command
        self._tzinfo = tzinfo
        self._include_run_id = include_run_id

    def format(self, record: logging.LogRecord) -> str:
        ts = _format_ts(record.created, self._tzinfo)
        payload: Dict[str, Any] = {
            "ts": ts,
            "level": record.levelname,
            "component": record.name,
        }
        if self._include_run_id:
            payload["run_id"] = self._run_id
        if self._command:
            payload["command"] = self._command

        message = record.getMessage()
        parsed = _parse_json(message)
        if parsed is not None:
            event = parsed.get("event")
            if event:
                payload["event"] = event
            payload["meta"] = parsed
        else:
            payload["event"] = getattr(record, "event", None) or message
            meta = getattr(record, "meta", None)
            if meta is not None:
                payload["meta"] = meta

        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)

        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def setup_logging(
    level: str = "WARNING",
    *,
    log_dir: Optional[Path] = None,
    log_file: str = "dirsum.log",
    max_mb: int = 5,
    backup_count: int = 3,
    use_json: bool = False,
    to_console: bool = True,
    timezone_name: str = "local",
    include_run_id: bool = True,
    prune_days: int = 0,
    run_id: Optional[str] = None,
    command: Optional[str] = None,
) -> str:
    run_id = run_id or uuid.uuid4().hex
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    tzinfo = _resolve_tz(timezone_name)
    if use_json:
        formatter = JsonFormatter(
            run_id, tzinfo=tzinfo, include_run_id=include_run_id, command=command
        )
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        if prune_days and prune_days > 0:
            _prune_logs(log_dir, prune_days)
        log_path = log_dir / log_file
        max_bytes = max(1, int(max_mb)) * 1024 * 1024
        file_handler = RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=max(1, int(backup_count))
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if to_console or not log_dir:
        # stderr, so manifest status lines on stdout stay clean
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    return run_id


def _parse_json(message: str) -> Optional[Dict[str, Any]]:
    if not message:
        return None
    try:
        parsed = json.loads(message)
    except (TypeError, ValueError, json.JSONDecodeError):
        return None
    if isinstance(parsed, dict):
        return parsed
    return None


def _resolve_tz(name: str) -> Optional[timezone]:
    if not name:
        return None
    if str(name).lower() in {"local", "system", "default"}:
        return None
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError):
        return None


def _format_ts(epoch_seconds: float, tzinfo: Optional[timezone]) -> str:
    if tzinfo is None:
        return (
            datetime.fromtimestamp(epoch_seconds)
            .astimezone()
            .strftime("%Y-%m-%d %H:%M:%S")
        )
    return (
        datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
        .astimezone(tzinfo)
        .strftime("%Y-%m-%d %H:%M:%S")
    )


def _prune_logs(log_dir: Path, prune_days: int) -> None:
    cutoff = datetime.now().timestamp() - (prune_days * 86400)
    for path in log_dir.glob("*.log*"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
        except OSError:
            continue
