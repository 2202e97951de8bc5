from __future__ import annotations

import hashlib
from pathlib import Path

from treesum.manifest.errors import PreconditionError, ReadError
from treesum.manifest.records import DigestRecord, FileEntry

DIGEST_ALGORITHM = "sha256"
DIGEST_HEX_LENGTH = 64
CHUNK_SIZE = 1024 * 1024


def ensure_digest_available(algorithm: str = DIGEST_ALGORITHM) -> None:
    if algorithm not in hashlib.algorithms_available:
        raise PreconditionError(
            f"{algorithm} is required but not provided by this Python's hashlib."
        )


def sha256_file(path: str | Path) -> str:
    file_path = Path(path)
    digest = hashlib.sha256()
    with file_path.open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def digest_entry(entry: FileEntry, display_path: str) -> DigestRecord:
    """Hash ``entry`` and pair the digest with the path to list in the manifest.

    Any OS-level failure (permission denied, file removed since the walk,
    I/O error) becomes ``ReadError``.
    """

    try:
        digest = sha256_file(entry.path)
    except OSError as exc:
        raise ReadError(entry.path, exc) from exc
    return DigestRecord(digest=digest, path=display_path)


__all__ = [
    "CHUNK_SIZE",
    "DIGEST_ALGORITHM",
    "DIGEST_HEX_LENGTH",
    "digest_entry",
    "ensure_digest_available",
    "sha256_file",
]
