from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from treesum.manifest.errors import ReadError, TransientEntryError
from treesum.manifest.hash_utils import digest_entry, ensure_digest_available
from treesum.manifest.ordering import sort_entries
from treesum.manifest.records import DigestRecord, FileEntry
from treesum.manifest.walker import iter_files
from treesum.manifest.writer import MANIFEST_NAME, AtomicManifestFile, ensure_safe_path

logger = logging.getLogger(__name__)

PATH_STYLE_RELATIVE = "relative"
PATH_STYLE_DISCOVERED = "discovered"
PATH_STYLES: tuple[str, ...] = (PATH_STYLE_RELATIVE, PATH_STYLE_DISCOVERED)


@dataclass(frozen=True, slots=True)
class BuildOptions:
    root: Path
    path_style: str = PATH_STYLE_RELATIVE
    jobs: int = 1
    lenient: bool = False
    manifest_name: str = MANIFEST_NAME

    def __post_init__(self) -> None:
        if self.path_style not in PATH_STYLES:
            raise ValueError(f"path_style must be one of {PATH_STYLES}, got {self.path_style!r}")
        if self.jobs < 1:
            raise ValueError("jobs must be >= 1")

    @property
    def manifest_path(self) -> Path:
        return self.root / self.manifest_name


@dataclass(slots=True)
class BuildResult:
    manifest_path: Path
    path_style: str
    records: list[DigestRecord] = field(default_factory=list)
    skipped_transient: list[str] = field(default_factory=list)
    skipped_unreadable: list[str] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.records)


def display_path(entry: FileEntry, path_style: str) -> str:
    if path_style == PATH_STYLE_DISCOVERED:
        return entry.path
    return entry.relpath


def _digest_or_skip(
    entry: FileEntry,
    path_style: str,
    lenient: bool,
) -> DigestRecord | ReadError:
    try:
        return digest_entry(entry, display_path(entry, path_style))
    except ReadError as exc:
        if not lenient:
            raise
        return exc


def _iter_digests(
    entries: Sequence[FileEntry],
    *,
    path_style: str,
    jobs: int,
    lenient: bool,
) -> Iterator[DigestRecord | ReadError]:
    if jobs == 1 or len(entries) < 2:
        for entry in entries:
            yield _digest_or_skip(entry, path_style, lenient)
        return

    # Executor.map yields results in input order, so the sorted order holds.
    with ThreadPoolExecutor(max_workers=jobs) as executor:
        yield from executor.map(
            lambda e: _digest_or_skip(e, path_style, lenient),
            entries,
        )


def build_manifest(options: BuildOptions) -> BuildResult:
    """Walk, sort, hash and atomically publish the manifest for ``options.root``.

    Precondition and root checks happen before anything is written. Unsafe
    paths are rejected before any file is hashed. On any failure after the
    temporary file was created it is removed and the previous manifest (if
    any) stays byte-identical.
    """

    ensure_digest_available()

    result = BuildResult(manifest_path=options.manifest_path, path_style=options.path_style)

    def _on_transient(error: TransientEntryError) -> None:
        result.skipped_transient.append(error.path)

    entries = sort_entries(iter_files(options.root, on_transient=_on_transient))
    logger.info("found %d file(s) under %s", len(entries), options.root)

    for entry in entries:
        ensure_safe_path(display_path(entry, options.path_style))

    with AtomicManifestFile(options.manifest_path) as out:
        for item in _iter_digests(
            entries,
            path_style=options.path_style,
            jobs=options.jobs,
            lenient=options.lenient,
        ):
            if isinstance(item, ReadError):
                logger.warning("%s (skipped)", item)
                result.skipped_unreadable.append(item.path)
                continue
            out.write_record(item)
            result.records.append(item)
        out.publish()

    logger.info(
        "wrote %d record(s) to %s",
        result.file_count,
        os.fspath(result.manifest_path),
    )
    return result


__all__ = [
    "BuildOptions",
    "BuildResult",
    "PATH_STYLES",
    "PATH_STYLE_DISCOVERED",
    "PATH_STYLE_RELATIVE",
    "build_manifest",
    "display_path",
]
