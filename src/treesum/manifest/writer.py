"""Manifest line format and crash-safe publication.

Format (one line per file, bytes written as-is):
    <sha256 hex><TAB><path><LF>

Publication writes a uniquely named temporary file next to the target, then
renames it over the target, so readers see either the previous manifest or
the complete new one.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from types import TracebackType

from treesum.manifest.errors import UnsafePathError, WriteError
from treesum.manifest.records import DigestRecord

logger = logging.getLogger(__name__)

MANIFEST_NAME = ".sha256sum-current.txt"
MANIFEST_MODE = 0o644

_FORBIDDEN_PATH_BYTES = (b"\t", b"\n")


def _reject_separators(raw: bytes, path: str) -> bytes:
    if any(sep in raw for sep in _FORBIDDEN_PATH_BYTES):
        raise UnsafePathError(path)
    return raw


def ensure_safe_path(path: str) -> bytes:
    return _reject_separators(os.fsencode(path), path)


def format_line(record: DigestRecord) -> bytes:
    raw = _reject_separators(record.path_bytes, record.path)
    return record.digest.encode("ascii") + b"\t" + raw + b"\n"


class AtomicFile:
    """Temporary file in the target's directory, renamed over the target on publish.

    Used as a context manager. Leaving the block without ``publish()`` (an
    exception, or simply not publishing) deletes the temporary file and leaves
    the target untouched.
    """

    def __init__(self, target: str | Path, *, mode: int = MANIFEST_MODE) -> None:
        self.target = Path(target)
        self.mode = mode
        self.temp_path: Path | None = None
        self._handle = None
        self._published = False

    def __enter__(self) -> AtomicFile:
        try:
            fd, name = tempfile.mkstemp(
                prefix=f".{self.target.name.lstrip('.')}.tmp.",
                dir=self.target.parent,
            )
        except OSError as exc:
            raise WriteError(self.target.parent, "create a temporary file in", exc) from exc

        self.temp_path = Path(name)
        self._handle = os.fdopen(fd, "wb")
        logger.debug("writing %s via %s", self.target, self.temp_path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._published:
            self._discard()

    def write(self, data: bytes) -> None:
        if self._handle is None:
            raise RuntimeError("AtomicFile must be entered before writing")
        try:
            self._handle.write(data)
        except OSError as exc:
            raise WriteError(self.temp_path, "write", exc) from exc

    def publish(self) -> Path:
        if self._handle is None or self.temp_path is None:
            raise RuntimeError("AtomicFile must be entered before publishing")

        try:
            self._handle.flush()
            os.fsync(self._handle.fileno())
            self._handle.close()
        except OSError as exc:
            raise WriteError(self.temp_path, "flush", exc) from exc

        try:
            os.chmod(self.temp_path, self.mode)
        except OSError as exc:
            raise WriteError(self.temp_path, "set permissions on", exc) from exc

        try:
            os.replace(self.temp_path, self.target)
        except OSError as exc:
            raise WriteError(self.target, "publish", exc) from exc

        self._published = True
        logger.debug("published %s", self.target)
        return self.target

    def _discard(self) -> None:
        if self._handle is not None and not self._handle.closed:
            try:
                self._handle.close()
            except OSError as exc:
                logger.warning("could not close temporary file %s: %s", self.temp_path, exc)
        if self.temp_path is None:
            return
        try:
            self.temp_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("could not remove temporary file %s: %s", self.temp_path, exc)
        else:
            logger.debug("discarded %s", self.temp_path)


class AtomicManifestFile(AtomicFile):
    def __init__(self, target: str | Path) -> None:
        super().__init__(target, mode=MANIFEST_MODE)
        self.record_count = 0

    def __enter__(self) -> AtomicManifestFile:
        super().__enter__()
        return self

    def write_record(self, record: DigestRecord) -> None:
        self.write(format_line(record))
        self.record_count += 1


def write_manifest(records: Iterable[DigestRecord], target: str | Path) -> Path:
    with AtomicManifestFile(target) as out:
        for record in records:
            out.write_record(record)
        return out.publish()


def atomic_write_bytes(target: str | Path, data: bytes, *, mode: int = MANIFEST_MODE) -> Path:
    with AtomicFile(target, mode=mode) as out:
        out.write(data)
        return out.publish()


__all__ = [
    "AtomicFile",
    "AtomicManifestFile",
    "MANIFEST_MODE",
    "MANIFEST_NAME",
    "atomic_write_bytes",
    "ensure_safe_path",
    "format_line",
    "write_manifest",
]
