from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config import Config, load_config
from .console import ConsoleReporter, build_console
from .logging_ import setup_logging
from .observability import RunStats
from .reconcile import create_manifest, update_manifest
from .utils.hashing import Hasher, normalize_algorithm
from .verify import verify_path

__version__ = "0.1.0"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_VERIFY_FAILED = 3

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dirsum",
        description="Create, update and verify checksum manifests for directory trees",
    )
    parser.add_argument(
        "-c", "--no-colors", action="store_true", help="disable colored output"
    )
    parser.add_argument("--config", default=None, help="path to config file")
    parser.add_argument("--log-level", default=None, help="override log level")
    parser.add_argument(
        "--algorithm", default=None, help="hash algorithm (default from config: md5)"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    commands = parser.add_subparsers(dest="command", metavar="<command>")
    commands.required = True

    new = commands.add_parser("new", aliases=["n"], help="create checksum file")
    new.add_argument("source", help="directory to checksum")
    new.add_argument("output", help="output file")
    new.set_defaults(handler=_cmd_new)

    update = commands.add_parser(
        "update", aliases=["u"], help="update existing checksum file with new entries"
    )
    update.add_argument("source", help="directory to checksum")
    update.add_argument("target", help="checksum file to update")
    update.add_argument(
        "-d",
        "--delete",
        action="store_true",
        help="also remove missing checksums from target",
    )
    update.set_defaults(handler=_cmd_update)

    verify = commands.add_parser("verify", aliases=["v"], help="verify checksum files")
    verify.add_argument(
        "path", help="file to verify (if directory, recursively find checksum files)"
    )
    verify.add_argument(
        "-b", "--basic", action="store_true", help="only check if the files exist"
    )
    verify.set_defaults(handler=_cmd_verify)

    return parser.parse_args(argv)


def _cmd_new(
    args: argparse.Namespace,
    config: Config,
    hasher: Hasher,
    reporter: ConsoleReporter,
) -> int:
    reporter.header(f"Hashing: {args.source}")
    stats = RunStats("new", reporter)
    create_manifest(
        args.source,
        args.output,
        hasher=hasher,
        observer=stats,
        atomic=config.manifest.atomic_write,
    )
    logger.info(stats.to_json())
    reporter.success(f"Wrote: {args.output}")
    reporter.blank()
    return EXIT_OK


def _cmd_update(
    args: argparse.Namespace,
    config: Config,
    hasher: Hasher,
    reporter: ConsoleReporter,
) -> int:
    reporter.header(f"Updating: {args.target}")
    stats = RunStats("update", reporter)
    result = update_manifest(
        args.source,
        args.target,
        delete_missing=args.delete,
        hasher=hasher,
        observer=stats,
        atomic=config.manifest.atomic_write,
    )
    stats.inc("added", len(result.added))
    stats.inc("removed", len(result.removed))
    logger.info(stats.to_json())
    reporter.success(f"Updated: {args.target}")
    reporter.blank()
    return EXIT_OK


def _cmd_verify(
    args: argparse.Namespace,
    config: Config,
    hasher: Hasher,
    reporter: ConsoleReporter,
) -> int:
    reporter.header(f"Verifying: {args.path}")
    stats = RunStats("verify", reporter)
    run = verify_path(
        args.path,
        hasher,
        extension=config.manifest_extension,
        basic=args.basic,
        observer=stats,
    )
    logger.info(stats.to_json())
    reporter.blank()
    if run.ok:
        return EXIT_OK
    return EXIT_VERIFY_FAILED


def run(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
        if args.algorithm:
            config.hash.algorithm = normalize_algorithm(args.algorithm)
    except (OSError, ValueError) as exc:
        print(f"dirsum: {exc}", file=sys.stderr)
        return EXIT_ERROR
    if args.no_colors:
        config.output.color = False

    setup_logging(
        args.log_level or config.log_level,
        log_dir=config.logging.dir,
        log_file=config.logging.file_name,
        max_mb=config.logging.max_mb,
        backup_count=config.logging.backup_count,
        use_json=config.logging.json,
        to_console=config.logging.to_console,
        timezone_name=config.logging.timezone,
        prune_days=config.logging.prune_days,
        command=args.command,
    )

    hasher = Hasher(config.hash.algorithm, config.hash.chunk_size)
    reporter = ConsoleReporter(build_console(config.output), config.output.progress)
    try:
        return args.handler(args, config, hasher, reporter)
    except (OSError, ValueError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        reporter.error(str(exc))
        reporter.blank()
        return EXIT_ERROR
    finally:
        reporter.close()


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
