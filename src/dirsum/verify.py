from __future__ import annotations

import logging
import os
from functools import partial
from typing import List, Optional

from .manifest import read_manifest_entries
from .models import (
    ChecksumEntry,
    EntryResult,
    EntryStatus,
    ManifestReport,
    TraversalError,
    VerifyRun,
)
from .observability import RunObserver
from .utils.hashing import Hasher

logger = logging.getLogger(__name__)


def verify_entry(
    entry: ChecksumEntry,
    hasher: Hasher,
    *,
    basic: bool = False,
    observer: Optional[RunObserver] = None,
) -> EntryResult:
    observer = observer or RunObserver()
    if basic:
        if os.path.isfile(entry.path):
            return EntryResult(entry=entry, status=EntryStatus.OK)
        return EntryResult(
            entry=entry, status=EntryStatus.UNREADABLE, error="file not found"
        )

    observer.file_started(entry.path)
    try:
        digest = hasher.hash_file(
            entry.path, on_progress=partial(observer.file_progress, entry.path)
        )
    except OSError as exc:
        logger.debug("unreadable path=%s error=%s", entry.path, exc)
        return EntryResult(entry=entry, status=EntryStatus.UNREADABLE, error=str(exc))
    observer.file_hashed(entry.path, digest)

    if digest == entry.hash:
        return EntryResult(entry=entry, status=EntryStatus.OK, actual_hash=digest)
    return EntryResult(entry=entry, status=EntryStatus.MISMATCHED, actual_hash=digest)


def verify_manifest(
    manifest_path: str | os.PathLike[str],
    hasher: Hasher,
    *,
    basic: bool = False,
    observer: Optional[RunObserver] = None,
) -> ManifestReport:
    """Re-check every entry of one manifest.

    A manifest that cannot be read yields a report carrying the error
    instead of raising, so callers walking many manifests keep going.
    """
    observer = observer or RunObserver()
    report = ManifestReport(manifest_path=os.path.abspath(manifest_path))
    try:
        entries = read_manifest_entries(
            report.manifest_path, hasher.hex_length, require_length=True
        )
    except (OSError, ValueError) as exc:
        logger.warning("cannot read manifest path=%s error=%s", report.manifest_path, exc)
        report.error = str(exc)
        observer.manifest_checked(report)
        return report

    for entry in entries:
        result = verify_entry(entry, hasher, basic=basic, observer=observer)
        report.results.append(result)
        observer.entry_checked(result)

    logger.info(
        "verified manifest=%s entries=%d failures=%d",
        report.manifest_path,
        len(report.results),
        len(report.failures),
    )
    observer.manifest_checked(report)
    return report


def find_manifests(
    root: str | os.PathLike[str],
    extension: str,
    run: Optional[VerifyRun] = None,
    observer: Optional[RunObserver] = None,
) -> List[str]:
    """Return every file under ``root`` whose name ends with ``extension``.

    Unreadable directories are recorded on ``run`` and skipped.
    """
    observer = observer or RunObserver()
    found: List[str] = []

    def _record(err: OSError) -> None:
        path = err.filename or str(root)
        logger.warning("traversal error path=%s error=%s", path, err)
        if run is not None:
            run.traversal_errors.append(TraversalError(path=str(path), error=str(err)))
        observer.traversal_error(str(path), str(err))

    for dirpath, dirnames, filenames in os.walk(os.path.abspath(root), onerror=_record):
        dirnames.sort()
        for name in sorted(filenames):
            if name.endswith(extension):
                found.append(os.path.join(dirpath, name))
    return found


def verify_path(
    path: str | os.PathLike[str],
    hasher: Hasher,
    *,
    extension: str,
    basic: bool = False,
    observer: Optional[RunObserver] = None,
) -> VerifyRun:
    target = os.path.abspath(path)
    # missing path is fatal
    os.stat(target)
    run = VerifyRun(root=target)

    if os.path.isdir(target):
        manifests = find_manifests(target, extension, run=run, observer=observer)
        if not manifests:
            logger.info("no %s manifests under %s", extension, target)
    else:
        manifests = [target]

    for manifest_path in manifests:
        run.reports.append(
            verify_manifest(manifest_path, hasher, basic=basic, observer=observer)
        )
    return run
