"""Byte-wise ordering of discovered files.

Files are ordered by basename first and by relative path second, both compared
as raw bytes (no locale collation, no case folding). Every entry of one walk
shares the same root prefix, so the relative-path tie-break gives the same
order as comparing the full discovered paths.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from treesum.manifest.records import FileEntry


def sort_key(entry: FileEntry) -> tuple[bytes, bytes]:
    return (entry.basename_bytes, entry.relpath_bytes)


def sort_entries(entries: Iterable[FileEntry]) -> list[FileEntry]:
    return sorted(entries, key=sort_key)


def is_sorted(entries: Sequence[FileEntry]) -> bool:
    keys = [sort_key(e) for e in entries]
    return all(a < b for a, b in zip(keys, keys[1:]))


__all__ = ["is_sorted", "sort_entries", "sort_key"]
