"""Core data models shared across jarkit components."""

from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Tuple

META_INF = "META-INF/"
MANIFEST_NAME = "META-INF/MANIFEST.MF"
CLASS_SUFFIX = ".class"
SIGNATURE_SUFFIXES: Tuple[str, ...] = (".SF", ".DSA", ".EC", ".RSA")


@dataclass(frozen=True)
class EntryRecord:
    """One physical entry of an archive, in central-directory order."""

    name: str
    position: int
    size: int
    date_time: Tuple[int, int, int, int, int, int]


@dataclass(frozen=True)
class ClassEntry:
    """Summary of one class file inside an archive.

    ``locator`` is a position in the owning index's entry table, enough to
    re-extract the bytes on demand without keeping them in memory.
    """

    package: str
    simple_name: str
    fingerprint: str
    locator: int
    references: FrozenSet[str] = frozenset()

    @property
    def fqcn(self) -> str:
        if not self.package:
            return self.simple_name
        return f"{self.package}/{self.simple_name}"


@dataclass(frozen=True)
class ResourceEntry:
    """Any non-class, non-directory entry."""

    name: str
    fingerprint: str


@dataclass(frozen=True)
class ManifestClasspathEntry:
    """One token of the manifest ``Class-Path`` attribute."""

    full_path: str

    @property
    def jar_name(self) -> str:
        return self.full_path.rsplit("/", 1)[-1]

    def __str__(self) -> str:
        return self.jar_name


@dataclass(frozen=True)
class MetaInfResource:
    """A file under ``META-INF/`` whose content is read lazily from the archive."""

    name: str
    full_path: str
    archive: Path
    locator: int
    fingerprint: str | None = None

    def read_bytes(self) -> bytes:
        with zipfile.ZipFile(self.archive) as jar:
            info = jar.infolist()[self.locator]
            return jar.read(info)

    def read_text(self, encoding: str = "utf-8") -> str:
        return self.read_bytes().decode(encoding)


@dataclass(frozen=True)
class PendingAddition:
    """A file staged for inclusion under ``target_path`` on the next regeneration."""

    target_path: str
    source: Path

    @property
    def entry_name(self) -> str:
        prefix = self.target_path.strip("/")
        if not prefix:
            return self.source.name
        return f"{prefix}/{self.source.name}"


@dataclass(frozen=True)
class Unsupported:
    """Result returned by operations whose capability is not available."""

    operation: str
    reason: str

    def __bool__(self) -> bool:
        return False


@dataclass
class ComparisonResult:
    """Outcome of comparing two archives entry by entry."""

    identical: bool
    only_in_first: list[str] = field(default_factory=list)
    only_in_second: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)


def split_class_name(name: str) -> tuple[str, str]:
    """Split an entry name into ``(package, simple_name)`` at the final slash."""
    package, sep, simple_name = name.rpartition("/")
    if not sep:
        return "", name
    return package, simple_name


def as_class_key(fqcn: str) -> str:
    """Normalise ``com.x.Test``, ``com/x/Test`` or ``com/x/Test.class`` to an index key."""
    if fqcn.lower().endswith(CLASS_SUFFIX):
        stem, suffix = fqcn[: -len(CLASS_SUFFIX)], fqcn[-len(CLASS_SUFFIX) :]
        return stem.replace(".", "/") + suffix
    return fqcn.replace(".", "/") + CLASS_SUFFIX


def is_class_name(name: str) -> bool:
    return not name.endswith("/") and name.lower().endswith(CLASS_SUFFIX)


def is_signature_artifact(name: str) -> bool:
    upper = name.upper()
    return upper.startswith(META_INF) and upper.endswith(SIGNATURE_SUFFIXES)


__all__ = [
    "CLASS_SUFFIX",
    "ClassEntry",
    "ComparisonResult",
    "EntryRecord",
    "MANIFEST_NAME",
    "META_INF",
    "ManifestClasspathEntry",
    "MetaInfResource",
    "PendingAddition",
    "ResourceEntry",
    "SIGNATURE_SUFFIXES",
    "Unsupported",
    "as_class_key",
    "is_class_name",
    "is_signature_artifact",
    "split_class_name",
]
