from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path

from treesum.manifest.errors import NotADirectory, ReadError, TransientEntryError
from treesum.manifest.records import FileEntry

logger = logging.getLogger(__name__)

TransientHandler = Callable[[TransientEntryError], None]


def is_hidden_name(name: str) -> bool:
    return name.startswith(".")


def _report_transient(
    path: str,
    exc: OSError,
    on_transient: TransientHandler | None,
) -> None:
    error = TransientEntryError(path, exc)
    logger.warning("%s", error)
    if on_transient is not None:
        on_transient(error)


def _scan(
    root: str,
    on_transient: TransientHandler | None,
) -> Iterator[FileEntry]:
    # (relative dir, absolute dir); the root has an empty relative part.
    pending: list[tuple[str, str]] = [("", root)]

    while pending:
        rel_dir, abs_dir = pending.pop()
        try:
            with os.scandir(abs_dir) as it:
                children = list(it)
        except OSError as exc:
            if not rel_dir:
                raise ReadError(abs_dir, exc) from exc
            _report_transient(abs_dir, exc, on_transient)
            continue

        # Deeper directories are visited after the files of this one; the
        # final order is decided by the sorter, not by the walk.
        subdirs: list[tuple[str, str]] = []
        for child in sorted(children, key=lambda c: os.fsencode(c.name)):
            if is_hidden_name(child.name):
                continue

            rel = f"{rel_dir}/{child.name}" if rel_dir else child.name
            try:
                if child.is_dir(follow_symlinks=False):
                    subdirs.append((rel, child.path))
                    continue
                is_regular = child.is_file(follow_symlinks=False)
            except OSError as exc:
                _report_transient(child.path, exc, on_transient)
                continue

            if is_regular:
                yield FileEntry(path=child.path, relpath=rel)
            else:
                logger.debug("not a regular file, skipping: %s", child.path)

        pending.extend(reversed(subdirs))


def iter_files(
    root: str | Path,
    *,
    on_transient: TransientHandler | None = None,
) -> Iterator[FileEntry]:
    """Lazily yield every visible regular file under ``root``.

    Any file or directory whose name starts with a dot is skipped, and hidden
    directories are never entered. The root's own name is not checked.
    Symbolic links are not followed and are not listed.

    ``NotADirectory`` is raised here, before the first entry is produced,
    when ``root`` is missing or not a directory. Entries that disappear or
    turn unreadable mid-walk are logged and passed to ``on_transient``.
    """

    root_str = os.fspath(root)
    if not os.path.isdir(root_str):
        raise NotADirectory(root_str)
    return _scan(root_str, on_transient)


def walk_tree(
    root: str | Path,
    *,
    on_transient: TransientHandler | None = None,
) -> list[FileEntry]:
    return list(iter_files(root, on_transient=on_transient))


__all__ = ["TransientHandler", "is_hidden_name", "iter_files", "walk_tree"]
