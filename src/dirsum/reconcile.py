from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from functools import partial
from typing import Iterable, List, Optional

from .manifest import read_manifest, write_manifest
from .models import ChecksumEntry, ChecksumSet
from .observability import RunObserver
from .scanner import scan_files
from .utils.hashing import Hasher

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    checksums: ChecksumSet
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def hash_entry(
    path: str,
    hasher: Hasher,
    observer: Optional[RunObserver] = None,
) -> ChecksumEntry:
    observer = observer or RunObserver()
    observer.file_started(path)
    digest = hasher.hash_file(path, on_progress=partial(observer.file_progress, path))
    observer.file_hashed(path, digest)
    return ChecksumEntry(hash=digest, path=path)


def reconcile(
    source_paths: Iterable[str],
    target: ChecksumSet,
    *,
    delete_missing: bool,
    hasher: Hasher,
    observer: Optional[RunObserver] = None,
) -> ReconcileResult:
    """Merge a scanned file list into ``target`` in place.

    New paths are hashed and added; with ``delete_missing`` entries whose
    file is gone are dropped. Entries for paths seen on both sides keep
    their recorded hash even if the file changed.
    """
    sources = list(dict.fromkeys(source_paths))
    source_set = set(sources)
    result = ReconcileResult(checksums=target)

    if delete_missing:
        for path in target.paths():
            if path not in source_set:
                target.discard(path)
                result.removed.append(path)

    for path in sources:
        if path in target:
            result.kept.append(path)
            continue
        target.add(hash_entry(path, hasher, observer))
        result.added.append(path)

    return result


def create_manifest(
    source: str | os.PathLike[str],
    output: str | os.PathLike[str],
    *,
    hasher: Hasher,
    observer: Optional[RunObserver] = None,
    atomic: bool = True,
) -> List[ChecksumEntry]:
    output_path = os.path.abspath(output)
    files = scan_files(source, exclude=output_path)
    entries = [hash_entry(path, hasher, observer) for path in files]
    write_manifest(entries, output_path, atomic=atomic)
    logger.info(
        json.dumps(
            {"event": "manifest_created", "path": output_path, "entries": len(entries)},
            separators=(",", ":"),
        )
    )
    return entries


def update_manifest(
    source: str | os.PathLike[str],
    target: str | os.PathLike[str],
    *,
    delete_missing: bool = False,
    hasher: Hasher,
    observer: Optional[RunObserver] = None,
    atomic: bool = True,
) -> ReconcileResult:
    target_path = os.path.abspath(target)
    files = scan_files(source, exclude=target_path)
    checksums = read_manifest(target_path, hasher.hex_length, require_length=True)
    result = reconcile(
        files,
        checksums,
        delete_missing=delete_missing,
        hasher=hasher,
        observer=observer,
    )
    write_manifest(result.checksums, target_path, atomic=atomic)
    logger.info(
        json.dumps(
            {
                "event": "manifest_updated",
                "path": target_path,
                "added": len(result.added),
                "removed": len(result.removed),
                "kept": len(result.kept),
            },
            separators=(",", ":"),
        )
    )
    return result
