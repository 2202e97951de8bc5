from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FileEntry:
    """A regular file found by the walker.

    ``path`` is the root joined with ``relpath``; ``relpath`` uses ``/`` and
    never has a dot-leading component. Both are filesystem-decoded strings, so
    ``os.fsencode`` gives back the exact on-disk bytes.
    """

    path: str
    relpath: str

    @property
    def basename(self) -> str:
        return self.relpath.rsplit("/", 1)[-1]

    @property
    def basename_bytes(self) -> bytes:
        return os.fsencode(self.basename)

    @property
    def relpath_bytes(self) -> bytes:
        return os.fsencode(self.relpath)


@dataclass(frozen=True, slots=True)
class DigestRecord:
    digest: str
    path: str

    @property
    def path_bytes(self) -> bytes:
        return os.fsencode(self.path)


__all__ = ["DigestRecord", "FileEntry"]
