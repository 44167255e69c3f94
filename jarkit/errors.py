"""Exception hierarchy shared by the archive engine and the CLI."""

from __future__ import annotations

from pathlib import Path


class JarKitError(RuntimeError):
    """Base class for every failure jarkit reports to callers.

    ``path`` names the archive (or file) involved and ``entry`` the archive entry,
    when known, so callers can report where a failure happened.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Path | str | None = None,
        entry: str | None = None,
    ) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None
        self.entry = entry


class ArchiveUnreadable(JarKitError):
    """Raised when an archive container cannot be opened or parsed."""


class ClassFormatError(JarKitError):
    """Raised when a class file does not start with a valid header."""


class SignedArchive(JarKitError):
    """Raised when a mutation is attempted on a digitally signed archive."""


class NotFound(JarKitError):
    """Raised when a class, resource, file or classpath entry is absent."""


class Conflict(JarKitError):
    """Raised when an addition is already staged for the same target."""


class IOFailure(JarKitError):
    """Raised when the underlying storage fails during extract or pack."""


class ClassNotAnalyzable(JarKitError):
    """Raised by reference scanners that cannot analyse a class."""


class ConfigError(JarKitError):
    """Raised when the configuration file cannot be parsed."""


__all__ = [
    "ArchiveUnreadable",
    "ClassFormatError",
    "ClassNotAnalyzable",
    "ConfigError",
    "Conflict",
    "IOFailure",
    "JarKitError",
    "NotFound",
    "SignedArchive",
]
