from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .utils.hashing import DEFAULT_ALGORITHM, DEFAULT_CHUNK_SIZE, normalize_algorithm


@dataclass
class HashConfig:
    algorithm: str = DEFAULT_ALGORITHM
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass
class ManifestConfig:
    extension: str = ""
    atomic_write: bool = True


@dataclass
class OutputConfig:
    color: bool = True
    progress: bool = True


@dataclass
class LoggingConfig:
    dir: Optional[Path] = None
    file_name: str = "dirsum.log"
    max_mb: int = 5
    backup_count: int = 3
    json: bool = False
    to_console: bool = True
    timezone: str = "local"
    prune_days: int = 0


@dataclass
class Config:
    log_level: str = "WARNING"
    hash: HashConfig = field(default_factory=HashConfig)
    manifest: ManifestConfig = field(default_factory=ManifestConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def manifest_extension(self) -> str:
        if self.manifest.extension:
            return self.manifest.extension
        return f".{self.hash.algorithm}"


def load_config(path: str | Path | None = None) -> Config:
    if path is None:
        return Config()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("config root must be a mapping")
    base_dir = config_path.resolve().parent

    hash_raw = _as_dict(raw.get("hash"))
    hash_config = HashConfig(
        algorithm=normalize_algorithm(str(hash_raw.get("algorithm", DEFAULT_ALGORITHM))),
        chunk_size=max(1, int(hash_raw.get("chunk_size", DEFAULT_CHUNK_SIZE))),
    )

    manifest_raw = _as_dict(raw.get("manifest"))
    extension = manifest_raw.get("extension") or ""
    manifest = ManifestConfig(
        extension=_as_extension(str(extension)) if extension else "",
        atomic_write=bool(manifest_raw.get("atomic_write", True)),
    )

    output_raw = _as_dict(raw.get("output"))
    output = OutputConfig(
        color=bool(output_raw.get("color", True)),
        progress=bool(output_raw.get("progress", True)),
    )

    logging_raw = _as_dict(raw.get("logging"))
    log_dir = logging_raw.get("dir")
    logging_config = LoggingConfig(
        dir=_resolve_path(log_dir, base_dir) if log_dir else None,
        file_name=str(logging_raw.get("file_name", "dirsum.log")),
        max_mb=int(logging_raw.get("max_mb", 5)),
        backup_count=int(logging_raw.get("backup_count", 3)),
        json=bool(logging_raw.get("json", False)),
        to_console=bool(logging_raw.get("to_console", True)),
        timezone=str(logging_raw.get("timezone", "local")),
        prune_days=int(logging_raw.get("prune_days", 0)),
    )

    return Config(
        log_level=str(raw.get("log_level", "WARNING")),
        hash=hash_config,
        manifest=manifest,
        output=output,
        logging=logging_config,
    )


def _resolve_path(value: str, base_dir: Path) -> Path:
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return base_dir / path


def _as_extension(value: str) -> str:
    value = value.strip()
    if value and not value.startswith("."):
        return f".{value}"
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}
