from __future__ import annotations

import json
from collections import Counter
from typing import Any, Dict, Optional

from .models import EntryResult, ManifestReport


class RunObserver:
    """Hooks the core calls while it works. Every method is a no-op here."""

    def file_started(self, path: str) -> None:
        pass

    def file_progress(self, path: str, done: int, total: int) -> None:
        pass

    def file_hashed(self, path: str, digest: str) -> None:
        pass

    def entry_checked(self, result: EntryResult) -> None:
        pass

    def manifest_checked(self, report: ManifestReport) -> None:
        pass

    def traversal_error(self, path: str, error: str) -> None:
        pass


class RunStats(RunObserver):
    """Counts what a single command run did, for the closing log line."""

    def __init__(self, command: str, inner: Optional[RunObserver] = None) -> None:
        self.command = command
        self._inner = inner or RunObserver()
        self._counters: Counter[str] = Counter()

    def inc(self, name: str, count: int = 1) -> None:
        if not name:
            return
        self._counters[name] += count

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    def file_started(self, path: str) -> None:
        self._inner.file_started(path)

    def file_progress(self, path: str, done: int, total: int) -> None:
        self._inner.file_progress(path, done, total)

    def file_hashed(self, path: str, digest: str) -> None:
        self.inc("files_hashed")
        self._inner.file_hashed(path, digest)

    def entry_checked(self, result: EntryResult) -> None:
        self.inc(f"entries_{result.status.value}")
        self._inner.entry_checked(result)

    def manifest_checked(self, report: ManifestReport) -> None:
        self.inc("manifests_ok" if report.ok else "manifests_failed")
        if report.error is not None:
            self.inc("manifests_unreadable")
        self._inner.manifest_checked(report)

    def traversal_error(self, path: str, error: str) -> None:
        self.inc("traversal_errors")
        self._inner.traversal_error(path, error)

    def snapshot(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"event": self.command}
        payload.update(sorted(self._counters.items()))
        return payload

    def to_json(self) -> str:
        return json.dumps(self.snapshot(), separators=(",", ":"))
