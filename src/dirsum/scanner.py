from __future__ import annotations

import logging
import os
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)


def iter_files(
    source: str | os.PathLike[str],
    exclude: Optional[str | os.PathLike[str]] = None,
) -> Iterator[str]:
    """Yield absolute paths of every file under ``source``, sorted per directory.

    Any error while walking is raised; a partial listing is never returned
    silently. ``exclude`` drops one exact path, the manifest being written.
    """
    root = os.path.abspath(source)
    skip = os.path.abspath(exclude) if exclude is not None else None

    if os.path.isfile(root):
        if root != skip:
            yield root
        return

    def _raise(err: OSError) -> None:
        raise err

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()
        for name in sorted(filenames):
            path = os.path.join(dirpath, name)
            if path == skip:
                logger.debug("skipping manifest %s", path)
                continue
            yield path


def scan_files(
    source: str | os.PathLike[str],
    exclude: Optional[str | os.PathLike[str]] = None,
) -> List[str]:
    files = list(iter_files(source, exclude))
    logger.info("scanned source=%s files=%d", os.path.abspath(source), len(files))
    return files
