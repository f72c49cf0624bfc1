from __future__ import annotations

import hashlib
import os
from typing import Callable, Optional

DEFAULT_ALGORITHM = "md5"
DEFAULT_CHUNK_SIZE = 1024 * 1024

ProgressCallback = Callable[[int, int], None]


class Hasher:
    """Streams files through a hashlib digest in bounded chunks."""

    def __init__(
        self,
        algorithm: str = DEFAULT_ALGORITHM,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.algorithm = normalize_algorithm(algorithm)
        self.chunk_size = max(1, int(chunk_size))
        self.hex_length = hex_length(self.algorithm)

    def hash_file(
        self,
        path: str | os.PathLike[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        h = hashlib.new(self.algorithm)
        with open(path, "rb") as f:
            total = os.fstat(f.fileno()).st_size if on_progress else 0
            done = 0
            for chunk in iter(lambda: f.read(self.chunk_size), b""):
                h.update(chunk)
                if on_progress is not None:
                    done += len(chunk)
                    on_progress(done, total)
        return h.hexdigest()


def normalize_algorithm(name: str) -> str:
    algorithm = str(name or "").strip().lower()
    if algorithm not in hashlib.algorithms_available:
        raise ValueError(f"unsupported hash algorithm: {name!r}")
    if hashlib.new(algorithm).digest_size == 0:
        raise ValueError(f"hash algorithm has no fixed digest size: {name!r}")
    return algorithm


def hex_length(algorithm: str) -> int:
    return hashlib.new(algorithm).digest_size * 2
