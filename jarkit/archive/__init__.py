"""Archive indexing, mutation and regeneration."""

from .index import ArchiveIndex
from .mutator import ArchiveMutator
from .regenerator import ArchiveRegenerator
from .tools import check_signed, checksums, compare, decompile_class, extract_class, unsign

__all__ = [
    "ArchiveIndex",
    "ArchiveMutator",
    "ArchiveRegenerator",
    "check_signed",
    "checksums",
    "compare",
    "decompile_class",
    "extract_class",
    "unsign",
]
