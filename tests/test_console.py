from __future__ import annotations

import io
import sys
from pathlib import Path

from rich.console import Console

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from dirsum.console import ConsoleReporter
from dirsum.models import ChecksumEntry, EntryResult, EntryStatus, ManifestReport


def _reporter() -> tuple[ConsoleReporter, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, no_color=True, width=120, soft_wrap=True)
    return ConsoleReporter(console), buffer


def _result(path: str, status: EntryStatus) -> EntryResult:
    return EntryResult(entry=ChecksumEntry("0" * 32, path), status=status)


def test_failed_manifest_lists_each_bad_entry() -> None:
    reporter, buffer = _reporter()
    report = ManifestReport(
        manifest_path="/data/sums.md5",
        results=[
            _result("/data/a.txt", EntryStatus.UNREADABLE),
            _result("/data/b.txt", EntryStatus.OK),
            _result("/data/c.txt", EntryStatus.MISMATCHED),
        ],
    )
    reporter.manifest_checked(report)
    reporter.close()
    assert buffer.getvalue().splitlines() == [
        " ER: /data/sums.md5",
        "   Error: /data/a.txt",
        "   Invalid: /data/c.txt",
    ]


def test_clean_and_unreadable_manifests() -> None:
    reporter, buffer = _reporter()
    reporter.manifest_checked(
        ManifestReport(manifest_path="/data/ok.md5", results=[_result("/data/a.txt", EntryStatus.OK)])
    )
    reporter.manifest_checked(ManifestReport(manifest_path="/data/gone.md5", error="no such file"))
    assert buffer.getvalue().splitlines() == [
        " OK: /data/ok.md5",
        " ER: /data/gone.md5",
        "   Error: no such file",
    ]


def test_progress_hooks_are_quiet_off_terminal() -> None:
    reporter, buffer = _reporter()
    reporter.file_started("/data/a.txt")
    reporter.file_progress("/data/a.txt", 1, 2)
    reporter.file_hashed("/data/a.txt", "0" * 32)
    reporter.close()
    assert buffer.getvalue() == ""
