from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

_HEX_DIGEST = re.compile(r"[0-9a-f]+")


@dataclass(frozen=True)
class ChecksumEntry:
    hash: str
    path: str

    def __post_init__(self) -> None:
        if not _HEX_DIGEST.fullmatch(self.hash):
            raise ValueError(f"checksum must be lowercase hex: {self.hash!r}")
        if not self.path:
            raise ValueError("checksum entry needs a path")


class ChecksumSet:
    """Checksum entries keyed by absolute path; later inserts replace earlier ones."""

    def __init__(self, entries: Iterable[ChecksumEntry] = ()) -> None:
        self._entries: Dict[str, ChecksumEntry] = {}
        for entry in entries:
            self.add(entry)

    def add(self, entry: ChecksumEntry) -> None:
        self._entries[entry.path] = entry

    def get(self, path: str) -> Optional[ChecksumEntry]:
        return self._entries.get(path)

    def discard(self, path: str) -> Optional[ChecksumEntry]:
        return self._entries.pop(path, None)

    def paths(self) -> List[str]:
        return list(self._entries)

    def entries(self) -> List[ChecksumEntry]:
        return list(self._entries.values())

    def as_dict(self) -> Dict[str, str]:
        return {path: entry.hash for path, entry in self._entries.items()}

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __iter__(self) -> Iterator[ChecksumEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ChecksumSet({len(self._entries)} entries)"


def sort_key(entry: ChecksumEntry) -> tuple[str, str]:
    return (os.path.dirname(entry.path).lower(), entry.path.lower())


def sorted_entries(entries: Iterable[ChecksumEntry]) -> List[ChecksumEntry]:
    return sorted(entries, key=sort_key)


class EntryStatus(str, Enum):
    OK = "ok"
    MISMATCHED = "mismatched"
    UNREADABLE = "unreadable"


@dataclass
class EntryResult:
    entry: ChecksumEntry
    status: EntryStatus
    actual_hash: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is EntryStatus.OK

    @property
    def path(self) -> str:
        return self.entry.path


@dataclass
class ManifestReport:
    manifest_path: str
    results: List[EntryResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and all(result.ok for result in self.results)

    @property
    def failures(self) -> List[EntryResult]:
        return [result for result in self.results if not result.ok]

    def count(self, status: EntryStatus) -> int:
        return sum(1 for result in self.results if result.status is status)


@dataclass
class TraversalError:
    path: str
    error: str


@dataclass
class VerifyRun:
    root: str
    reports: List[ManifestReport] = field(default_factory=list)
    traversal_errors: List[TraversalError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.traversal_errors and all(report.ok for report in self.reports)

    @property
    def failed_entries(self) -> int:
        return sum(len(report.failures) for report in self.reports)
