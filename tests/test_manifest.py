from __future__ import annotations

import os
import stat
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from dirsum.manifest import (
    check_hash_length,
    parse_manifest,
    read_manifest,
    read_manifest_entries,
    serialize_manifest,
    write_manifest,
)
from dirsum.models import ChecksumEntry, ChecksumSet

HASH_A = "0cc175b9c0f1b6a831c399e269772661"
HASH_B = "92eb5ffee6ae2fec3ad71c777531578f"
HASH_C = "4a8a08f09d37b73795649038408b5f33"


def test_parse_skips_malformed_lines(tmp_path: Path) -> None:
    text = "\n".join(
        [
            "",
            "# generated by dirsum",
            "not a checksum line",
            f"{HASH_A[:-1]} *short.txt",
            f"{HASH_A}  two-spaces.txt",
            f"{HASH_A} *a.txt",
            "",
        ]
    )
    entries = parse_manifest(text, tmp_path)
    assert entries == [ChecksumEntry(hash=HASH_A, path=str(tmp_path / "a.txt"))]


def test_parse_normalizes_crlf_and_uppercase(tmp_path: Path) -> None:
    text = f"{HASH_A.upper()} *a.txt\r\n{HASH_B} *sub/b.txt\r\n"
    entries = parse_manifest(text, tmp_path)
    assert [entry.hash for entry in entries] == [HASH_A, HASH_B]
    assert entries[1].path == os.path.join(str(tmp_path), "sub", "b.txt")


def test_parse_keeps_absolute_paths_and_spaces(tmp_path: Path) -> None:
    absolute = str(tmp_path / "elsewhere" / "file with  spaces.txt")
    entries = parse_manifest(f"{HASH_A} *{absolute}\n", tmp_path / "manifests")
    assert entries[0].path == absolute


def test_read_manifest_resolves_against_manifest_dir(tmp_path: Path, monkeypatch) -> None:
    manifest_dir = tmp_path / "data"
    manifest_dir.mkdir()
    manifest = manifest_dir / "sums.md5"
    manifest.write_text(f"{HASH_A} *a.txt\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    checksums = read_manifest(Path("data") / "sums.md5")
    assert checksums.paths() == [os.path.join(os.getcwd(), "data", "a.txt")]


def test_read_manifest_duplicates_last_wins(tmp_path: Path) -> None:
    manifest = tmp_path / "sums.md5"
    manifest.write_text(f"{HASH_A} *a.txt\n{HASH_B} *./a.txt\n", encoding="utf-8")
    assert len(read_manifest_entries(manifest)) == 2
    checksums = read_manifest(manifest)
    assert checksums.as_dict() == {str(tmp_path / "a.txt"): HASH_B}


def test_serialize_sorts_by_directory_then_path(tmp_path: Path) -> None:
    output = tmp_path / "sums.md5"
    entries = [
        ChecksumEntry(HASH_C, str(tmp_path / "sub" / "c.txt")),
        ChecksumEntry(HASH_B, str(tmp_path / "B.txt")),
        ChecksumEntry(HASH_A, str(tmp_path / "a.txt")),
    ]
    data = serialize_manifest(entries, output)
    expected = (
        f"{HASH_A} *a.txt\n"
        f"{HASH_B} *B.txt\n"
        f"{HASH_C} *{os.path.join('sub', 'c.txt')}\n"
    )
    assert data == expected.encode("utf-8")
    assert serialize_manifest(list(reversed(entries)), output) == data


def test_serialize_paths_relative_to_output_dir(tmp_path: Path) -> None:
    output = tmp_path / "out" / "sums.md5"
    entry = ChecksumEntry(HASH_A, str(tmp_path / "data" / "a.txt"))
    data = serialize_manifest([entry], output)
    assert data == f"{HASH_A} *{os.path.join('..', 'data', 'a.txt')}\n".encode("utf-8")


def test_serialize_empty_set(tmp_path: Path) -> None:
    assert serialize_manifest([], tmp_path / "sums.md5") == b""


def test_write_then_read_round_trip(tmp_path: Path) -> None:
    output = tmp_path / "nested" / "sums.md5"
    output.parent.mkdir()
    checksums = ChecksumSet(
        [
            ChecksumEntry(HASH_A, str(tmp_path / "nested" / "a.txt")),
            ChecksumEntry(HASH_B, str(tmp_path / "b.txt")),
            ChecksumEntry(HASH_C, str(tmp_path / "nested" / "deep" / "c.txt")),
        ]
    )
    write_manifest(checksums, output)
    assert read_manifest(output).as_dict() == checksums.as_dict()
    assert [p.name for p in output.parent.iterdir()] == ["sums.md5"]


def test_write_manifest_direct_overwrite(tmp_path: Path) -> None:
    output = tmp_path / "sums.md5"
    output.write_text("old contents\n", encoding="utf-8")
    write_manifest([ChecksumEntry(HASH_A, str(tmp_path / "a.txt"))], output, atomic=False)
    assert output.read_text(encoding="utf-8") == f"{HASH_A} *a.txt\n"


def test_check_hash_length_flags_foreign_digests() -> None:
    check_hash_length(f"# note\n{HASH_A} *a.txt\n", 32)
    with pytest.raises(ValueError, match="64"):
        check_hash_length(f"{HASH_A} *a.txt\n{'a' * 64} *b.txt\n", 32)


@pytest.mark.skipif(os.name == "nt", reason="POSIX modes and symlinks")
def test_write_manifest_keeps_existing_mode(tmp_path: Path) -> None:
    output = tmp_path / "sums.md5"
    output.write_text("", encoding="utf-8")
    output.chmod(0o600)
    write_manifest([ChecksumEntry(HASH_A, str(tmp_path / "a.txt"))], output)
    assert stat.S_IMODE(output.stat().st_mode) == 0o600


@pytest.mark.skipif(os.name == "nt", reason="POSIX modes and symlinks")
def test_write_manifest_new_file_follows_umask(tmp_path: Path) -> None:
    old = os.umask(0o027)
    try:
        output = tmp_path / "sums.md5"
        write_manifest([ChecksumEntry(HASH_A, str(tmp_path / "a.txt"))], output)
    finally:
        os.umask(old)
    assert stat.S_IMODE(output.stat().st_mode) == 0o640


@pytest.mark.skipif(os.name == "nt", reason="POSIX modes and symlinks")
def test_write_manifest_through_symlink(tmp_path: Path) -> None:
    real = tmp_path / "store" / "sums.md5"
    real.parent.mkdir()
    real.write_text("", encoding="utf-8")
    link = tmp_path / "sums.md5"
    link.symlink_to(real)

    write_manifest([ChecksumEntry(HASH_A, str(tmp_path / "a.txt"))], link)

    assert link.is_symlink()
    assert real.read_text(encoding="utf-8") == f"{HASH_A} *a.txt\n"


def test_checksum_entry_rejects_bad_values() -> None:
    with pytest.raises(ValueError):
        ChecksumEntry("not-hex", "/data/a.txt")
    with pytest.raises(ValueError):
        ChecksumEntry(HASH_A.upper(), "/data/a.txt")
    with pytest.raises(ValueError):
        ChecksumEntry(HASH_A, "")
