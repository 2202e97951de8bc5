from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from treesum.manifest.builder import PATH_STYLE_RELATIVE, PATH_STYLES, BuildOptions, build_manifest
from treesum.manifest.errors import EXIT_OK, EXIT_UNEXPECTED, ManifestError, WriteError
from treesum.manifest.summary import build_run_summary, prepare_summary_target, write_run_summary

LOGGER_NAME = "treesum"


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    raw_norm = raw.strip().lower()
    if raw_norm in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if raw_norm in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {raw!r}") from exc
    if value < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return value


def _setup_logging(verbosity: int, log_file: Path | None) -> logging.Logger:
    """Configure the package logger: console on stderr, optional DEBUG log file."""

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)

    if verbosity >= 2:
        console_level = logging.DEBUG
    elif verbosity == 1:
        console_level = logging.INFO
    else:
        console_level = logging.WARNING

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S")
    )
    logger.addHandler(console_handler)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        except OSError as exc:
            raise WriteError(log_file, "open log file", exc) from exc
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="treesum",
        description=(
            "Write SHA-256 digests of every non-hidden regular file under DIRECTORY, "
            "sorted by filename, to DIRECTORY/.sha256sum-current.txt "
            "(lines: <sha256><TAB><path>). The file is replaced atomically."
        ),
    )
    p.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory to scan (default: current directory)",
    )
    p.add_argument(
        "--jobs",
        type=_positive_int,
        # A string default goes through _positive_int like the flag itself.
        default=_env("TREESUM_JOBS", "1"),
        help="Number of hashing threads (default: $TREESUM_JOBS or 1)",
    )
    p.add_argument(
        "--lenient",
        action="store_true",
        default=_env_bool("TREESUM_LENIENT"),
        help="Skip unreadable files with a warning instead of failing the run",
    )
    p.add_argument(
        "--path-style",
        choices=PATH_STYLES,
        default=PATH_STYLE_RELATIVE,
        help=(
            "How paths are listed: relative to DIRECTORY (default) or "
            "as discovered, i.e. prefixed with DIRECTORY"
        ),
    )
    p.add_argument(
        "--summary",
        default=None,
        help="Optional path of a JSON run summary to write after the manifest",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress (-v) or debug details (-vv) to stderr",
    )
    p.add_argument(
        "--log-file",
        default=_env("TREESUM_LOG_FILE"),
        help="Also write a DEBUG log to this file (default: $TREESUM_LOG_FILE)",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    log_file = Path(args.log_file) if args.log_file else None
    logger = logging.getLogger(LOGGER_NAME)

    options = BuildOptions(
        root=Path(args.directory),
        path_style=args.path_style,
        jobs=args.jobs,
        lenient=bool(args.lenient),
    )

    try:
        logger = _setup_logging(args.verbose, log_file)
        # Checked before the build so a bad target cannot fail the run after publish.
        summary_path = prepare_summary_target(args.summary) if args.summary else None
        result = build_manifest(options)
    except ManifestError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return exc.exit_code
    except OSError as exc:
        logger.debug("unexpected OS error", exc_info=True)
        print(f"ERROR: error_type={exc.__class__.__name__} error={exc}", file=sys.stderr)
        return EXIT_UNEXPECTED

    if summary_path is not None:
        try:
            write_run_summary(summary_path, build_run_summary(result))
        except (WriteError, OSError) as exc:
            logger.warning("run summary not written: %s", exc)
            print(f"WARN: run summary not written: {exc}", file=sys.stderr)
        else:
            logger.info("run summary written to %s", summary_path)

    if result.skipped_unreadable:
        print(
            f"WARN: {len(result.skipped_unreadable)} unreadable file(s) were skipped",
            file=sys.stderr,
        )
    print(f"Saved sha256s (sorted by filename) to: {result.manifest_path}")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
