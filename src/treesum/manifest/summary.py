from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any

from treesum.manifest.builder import BuildResult
from treesum.manifest.errors import WriteError
from treesum.manifest.hash_utils import DIGEST_ALGORITHM, sha256_file
from treesum.manifest.writer import atomic_write_bytes

RUN_SUMMARY_SCHEMA_VERSION = "1.0.0"


def build_run_summary(result: BuildResult) -> dict[str, Any]:
    """Describe a finished run without timestamps, so unchanged trees give identical summaries."""

    return {
        "schema_version": RUN_SUMMARY_SCHEMA_VERSION,
        "algorithm": DIGEST_ALGORITHM,
        "manifest_path": str(result.manifest_path),
        "manifest_sha256": sha256_file(result.manifest_path),
        "path_style": result.path_style,
        "file_count": result.file_count,
        "skipped_transient": sorted(result.skipped_transient),
        "skipped_unreadable": sorted(result.skipped_unreadable),
    }


def dumps_stable(data: Any) -> bytes:
    # ASCII escapes keep undecodable filenames (lone surrogates) valid UTF-8.
    text = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=True) + "\n"
    return text.encode("utf-8")


def prepare_summary_target(path: str | Path) -> Path:
    """Create the summary's parent directory and check it can take the file.

    Raises ``WriteError`` so a bad target is reported before anything is
    published.
    """

    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WriteError(p.parent, "create directory", exc) from exc

    if p.is_dir():
        raise WriteError(p, "write", IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR)))
    if not os.access(p.parent, os.W_OK):
        raise WriteError(p.parent, "write to", PermissionError(errno.EACCES, os.strerror(errno.EACCES)))
    return p


def write_run_summary(path: str | Path, summary: dict[str, Any], *, make_parents: bool = False) -> Path:
    p = prepare_summary_target(path) if make_parents else Path(path)
    return atomic_write_bytes(p, dumps_stable(summary))


__all__ = [
    "RUN_SUMMARY_SCHEMA_VERSION",
    "build_run_summary",
    "dumps_stable",
    "prepare_summary_target",
    "write_run_summary",
]
