"""Read-only views composed over several loaded archives."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .archive.index import ArchiveIndex
from .digest import Digester
from .external.scanner import ImportAccumulator, ReferenceScanner
from .logging import get_logger
from .models import ManifestClasspathEntry
from .products import ProductCatalog

logger = get_logger("classpath")


class ClasspathSet:
    """An ordered collection of archive indexes treated as one classpath."""

    def __init__(self, indexes: Iterable[ArchiveIndex] = ()) -> None:
        self._indexes: List[ArchiveIndex] = list(indexes)
        self.imports = ImportAccumulator()

    @classmethod
    def load(
        cls,
        paths: Sequence[Path | str],
        *,
        workers: Optional[int] = None,
        products: ProductCatalog | None = None,
        digester: Digester | None = None,
        scanner: ReferenceScanner | None = None,
    ) -> "ClasspathSet":
        """Load every archive in ``paths`` concurrently, keeping the given order.

        All loads share the set's :class:`ImportAccumulator`. The first failing
        load propagates its error once every worker has finished.
        """
        classpath = cls()
        if not paths:
            return classpath
        max_workers = workers or len(paths)
        logger.info("Loading %d archives with %d workers", len(paths), max_workers)
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [
                pool.submit(
                    ArchiveIndex.load,
                    path,
                    products=products,
                    digester=digester,
                    scanner=scanner,
                    accumulator=classpath.imports,
                )
                for path in paths
            ]
        for future in futures:
            classpath.add(future.result())
        return classpath

    # ------------------------------------------------------------------
    # Composition

    def add(self, index: ArchiveIndex) -> None:
        self._indexes.append(index)

    def __len__(self) -> int:
        return len(self._indexes)

    def __iter__(self):
        return iter(list(self._indexes))

    # ------------------------------------------------------------------
    # Queries

    def union(self) -> Set[str]:
        classes: Set[str] = set()
        for index in self._indexes:
            classes.update(index.classes)
        return classes

    @staticmethod
    def overlap(first: ArchiveIndex, second: ArchiveIndex) -> Set[str]:
        """Class keys present in both archives; empty when they share none."""
        return set(first.classes) & set(second.classes)

    def distinct_versions(self) -> Set[str]:
        return {index.class_file_version for index in self._indexes if index.class_file_version is not None}

    def find(self, fqcn: str) -> List[ArchiveIndex]:
        return [index for index in self._indexes if index.has_class(fqcn)]

    def signed_count(self) -> int:
        return sum(1 for index in self._indexes if index.signed)

    def duplicates(self) -> Dict[str, List[ArchiveIndex]]:
        """Map each class supplied by more than one archive to those archives."""
        owners: Dict[str, List[ArchiveIndex]] = {}
        for index in self._indexes:
            for key in index.classes:
                owners.setdefault(key, []).append(index)
        return {key: found for key, found in sorted(owners.items()) if len(found) > 1}

    def unresolved_classpath_entries(self) -> Dict[Path, List[ManifestClasspathEntry]]:
        """Manifest ``Class-Path`` entries naming archives that are not in this set."""
        loaded = {index.name for index in self._indexes}
        unresolved: Dict[Path, List[ManifestClasspathEntry]] = {}
        for index in self._indexes:
            missing = [entry for entry in index.manifest.entries if entry.jar_name not in loaded]
            if missing:
                logger.warning(
                    "%s declares %d classpath entries not present: %s",
                    index.name,
                    len(missing),
                    ", ".join(entry.full_path for entry in missing),
                )
                unresolved[index.path] = missing
        return unresolved


__all__ = ["ClasspathSet"]
