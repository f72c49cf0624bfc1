from __future__ import annotations

import logging
import os
import re
import stat
import tempfile
from functools import lru_cache
from typing import Iterable, List

from .models import ChecksumEntry, ChecksumSet, sorted_entries

logger = logging.getLogger(__name__)

LEGACY_HASH_LENGTH = 32

_ENTRY_LIKE = re.compile(r"^([0-9a-fA-F]{8,}) \*.+$")


@lru_cache(maxsize=None)
def _line_pattern(hash_length: int) -> re.Pattern[str]:
    return re.compile(r"^([0-9a-fA-F]{%d}) \*(.+)$" % hash_length)


def parse_manifest(
    text: str,
    manifest_dir: str | os.PathLike[str],
    hash_length: int = LEGACY_HASH_LENGTH,
) -> List[ChecksumEntry]:
    """Parse manifest text into entries, in file order, duplicates kept.

    Lines that are not ``<hex> *<path>`` are skipped without notice. Relative
    paths are resolved against ``manifest_dir``, not the working directory.
    """
    base = os.path.abspath(manifest_dir)
    pattern = _line_pattern(hash_length)
    entries: List[ChecksumEntry] = []
    for line in text.replace("\r\n", "\n").split("\n"):
        if not line:
            continue
        match = pattern.match(line)
        if match is None:
            continue
        digest, path = match.group(1), match.group(2)
        if not os.path.isabs(path):
            path = os.path.join(base, path)
        entries.append(ChecksumEntry(hash=digest.lower(), path=os.path.normpath(path)))
    return entries


def read_manifest_entries(
    path: str | os.PathLike[str],
    hash_length: int = LEGACY_HASH_LENGTH,
    *,
    require_length: bool = False,
) -> List[ChecksumEntry]:
    manifest_path = os.path.abspath(path)
    with open(manifest_path, "rb") as f:
        data = f.read()
    text = data.decode("utf-8", errors="surrogateescape")
    if require_length:
        check_hash_length(text, hash_length, manifest_path)
    return parse_manifest(text, os.path.dirname(manifest_path), hash_length)


def read_manifest(
    path: str | os.PathLike[str],
    hash_length: int = LEGACY_HASH_LENGTH,
    *,
    require_length: bool = False,
) -> ChecksumSet:
    return ChecksumSet(
        read_manifest_entries(path, hash_length, require_length=require_length)
    )


def check_hash_length(text: str, hash_length: int, source: str = "manifest") -> None:
    """Raise ValueError if any entry-shaped line carries a digest of another length.

    Such lines would otherwise be skipped as malformed, and a rewrite of the
    manifest would silently drop them.
    """
    found = set()
    for line in text.replace("\r\n", "\n").split("\n"):
        match = _ENTRY_LIKE.match(line)
        if match is not None and len(match.group(1)) != hash_length:
            found.add(len(match.group(1)))
    if found:
        lengths = ", ".join(str(n) for n in sorted(found))
        raise ValueError(
            f"{source}: digest length {lengths} does not match the configured "
            f"algorithm ({hash_length} hex chars)"
        )


def serialize_manifest(
    entries: Iterable[ChecksumEntry],
    output_path: str | os.PathLike[str],
) -> bytes:
    out_dir = os.path.dirname(os.path.abspath(output_path))
    lines = []
    for entry in sorted_entries(entries):
        lines.append(f"{entry.hash} *{_manifest_path(entry.path, out_dir)}\n")
    return "".join(lines).encode("utf-8", errors="surrogateescape")


def write_manifest(
    entries: Iterable[ChecksumEntry],
    output_path: str | os.PathLike[str],
    *,
    atomic: bool = True,
) -> int:
    target = os.path.abspath(output_path)
    data = serialize_manifest(entries, target)
    # write through a symlinked manifest, keep the link
    target = os.path.realpath(target)
    if not atomic:
        with open(target, "wb") as f:
            f.write(data)
        return len(data)

    fd, tmp_path = tempfile.mkstemp(
        prefix=f".{os.path.basename(target)}.", suffix=".tmp", dir=os.path.dirname(target)
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, _target_mode(target))
        os.replace(tmp_path, target)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            logger.warning("could not remove temp manifest %s", tmp_path)
        raise
    logger.debug("manifest written path=%s bytes=%d", target, len(data))
    return len(data)


def _target_mode(target: str) -> int:
    try:
        return stat.S_IMODE(os.stat(target).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def _manifest_path(path: str, out_dir: str) -> str:
    try:
        return os.path.relpath(path, out_dir)
    except ValueError:
        # different drive on Windows
        return os.path.abspath(path)
