from __future__ import annotations

import hashlib
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from dirsum.utils.hashing import Hasher, hex_length, normalize_algorithm


def test_hash_file_matches_hashlib(tmp_path: Path) -> None:
    data = b"abc" * 1000
    target = tmp_path / "data.bin"
    target.write_bytes(data)
    hasher = Hasher("md5", chunk_size=7)
    assert hasher.hash_file(target) == hashlib.md5(data).hexdigest()
    assert hasher.hex_length == 32


def test_hash_file_reports_progress_in_chunks(tmp_path: Path) -> None:
    target = tmp_path / "data.bin"
    target.write_bytes(b"x" * 25)
    calls = []
    Hasher("md5", chunk_size=10).hash_file(target, on_progress=lambda d, t: calls.append((d, t)))
    assert calls == [(10, 25), (20, 25), (25, 25)]


def test_hash_file_missing_raises_oserror(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        Hasher().hash_file(tmp_path / "missing")


def test_algorithm_validation() -> None:
    assert normalize_algorithm(" SHA256 ") == "sha256"
    assert hex_length("sha256") == 64
    with pytest.raises(ValueError):
        normalize_algorithm("not-a-hash")
