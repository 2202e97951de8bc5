from __future__ import annotations

from pathlib import Path

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_USAGE = 2
EXIT_NOT_A_DIRECTORY = 3
EXIT_PRECONDITION = 4
EXIT_READ = 5
EXIT_WRITE = 6
EXIT_UNSAFE_PATH = 7


class ManifestError(Exception):
    """Base class for failures of a manifest run.

    Each subclass carries the process exit status the CLI reports for it, so
    automation can branch on the failure class.
    """

    exit_code: int = EXIT_UNEXPECTED


class PreconditionError(ManifestError):
    exit_code = EXIT_PRECONDITION


class NotADirectory(ManifestError):
    exit_code = EXIT_NOT_A_DIRECTORY

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"'{path}' is not a directory.")


class ReadError(ManifestError):
    exit_code = EXIT_READ

    def __init__(self, path: str | Path, cause: OSError) -> None:
        self.path = str(path)
        self.cause = cause
        reason = cause.strerror or cause.__class__.__name__
        super().__init__(f"cannot read {self.path}: {reason}")


class WriteError(ManifestError):
    exit_code = EXIT_WRITE

    def __init__(self, path: str | Path, action: str, cause: OSError) -> None:
        self.path = str(path)
        self.action = action
        self.cause = cause
        reason = cause.strerror or cause.__class__.__name__
        super().__init__(f"cannot {action} {self.path}: {reason}")


class UnsafePathError(ManifestError):
    """A path cannot be written to the tab/newline separated manifest format."""

    exit_code = EXIT_UNSAFE_PATH

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"path contains a tab or newline and cannot be listed in the manifest: {path!r}"
        )


class TransientEntryError(ManifestError):
    """An entry vanished or became unreadable while the tree was being walked.

    Never raised out of the walk: it is handed to the walker's callback and
    the entry is skipped.
    """

    def __init__(self, path: str, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        reason = cause.strerror or cause.__class__.__name__
        super().__init__(f"skipped {path}: {reason}")


__all__ = [
    "EXIT_NOT_A_DIRECTORY",
    "EXIT_OK",
    "EXIT_PRECONDITION",
    "EXIT_READ",
    "EXIT_UNEXPECTED",
    "EXIT_UNSAFE_PATH",
    "EXIT_USAGE",
    "EXIT_WRITE",
    "ManifestError",
    "NotADirectory",
    "PreconditionError",
    "ReadError",
    "TransientEntryError",
    "UnsafePathError",
    "WriteError",
]
