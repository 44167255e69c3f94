"""In-memory index of a single archive's classes, resources and manifest."""

from __future__ import annotations

import zipfile
import zlib
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from ..classfile import read_version
from ..digest import Digester
from ..errors import ArchiveUnreadable, IOFailure, NotFound
from ..external.scanner import ImportAccumulator, ReferenceScanner
from ..logging import get_logger
from ..manifest import AUTOMATIC_MODULE_NAME, Manifest, ManifestEditor
from ..models import (
    MANIFEST_NAME,
    META_INF,
    ClassEntry,
    EntryRecord,
    MetaInfResource,
    PendingAddition,
    ResourceEntry,
    is_class_name,
    is_signature_artifact,
    split_class_name,
)
from ..products import ProductCatalog

logger = get_logger("archive.index")

# Errors zipfile can surface while inflating a single entry.
ENTRY_READ_ERRORS = (OSError, EOFError, zipfile.BadZipFile, zlib.error)


class ArchiveIndex:
    """Structural index of one archive, built in a single pass by :meth:`load`.

    The index only changes through :class:`~jarkit.archive.mutator.ArchiveMutator`,
    which removes class keys or stages additions. Regenerated archives are never
    folded back in; load the new file to observe its state.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        products: ProductCatalog | None = None,
        digester: Digester | None = None,
    ) -> None:
        self.path = Path(path)
        self.products = products if products is not None else ProductCatalog.empty()
        self.digester = digester or Digester()
        self.entries: Tuple[EntryRecord, ...] = ()
        self.classes: Dict[str, ClassEntry] = {}
        self.resources: Dict[str, ResourceEntry] = {}
        self.packages: Set[str] = set()
        self.duplicate_keys: Set[str] = set()
        self.duplicate_count = 0
        self.signed = False
        self.class_file_version: Optional[str] = None
        self.fingerprint: Optional[str] = None
        self.automatic_module_name: Optional[str] = None
        self.pending_additions: Dict[str, List[PendingAddition]] = {}
        self.manifest = ManifestEditor()
        self.product_membership: Set[str] = set()
        self.imports: Set[str] = set()
        self.deep_scan = False

    @classmethod
    def load(
        cls,
        path: Path | str,
        *,
        products: ProductCatalog | None = None,
        digester: Digester | None = None,
        scanner: ReferenceScanner | None = None,
        accumulator: ImportAccumulator | None = None,
    ) -> "ArchiveIndex":
        """Read ``path`` once and return its index.

        Passing a ``scanner`` enables deep scanning: every class's references are
        recorded on its entry, on :attr:`imports`, and on ``accumulator`` when one
        is shared between concurrent loads.
        """
        index = cls(path, products=products, digester=digester)
        index._populate(scanner=scanner, accumulator=accumulator)
        return index

    # ------------------------------------------------------------------
    # Loading

    def _populate(
        self,
        *,
        scanner: ReferenceScanner | None,
        accumulator: ImportAccumulator | None,
    ) -> None:
        try:
            jar = zipfile.ZipFile(self.path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ArchiveUnreadable(f"Unable to open archive {self.path}: {exc}", path=self.path) from exc

        self.deep_scan = scanner is not None
        with jar:
            infos = jar.infolist()
            self.entries = tuple(
                EntryRecord(
                    name=info.filename,
                    position=position,
                    size=info.file_size,
                    date_time=info.date_time,
                )
                for position, info in enumerate(infos)
            )
            self.manifest = self._read_manifest(jar, infos)
            parsed = self.manifest.manifest
            signer_entries = parsed.entry_digests() if parsed is not None else {}
            self.automatic_module_name = self.manifest.get(AUTOMATIC_MODULE_NAME)

            for position, info in enumerate(infos):
                if info.is_dir():
                    continue
                name = info.filename
                if is_signature_artifact(name):
                    self.signed = True
                elif name in signer_entries:
                    self.signed = True

                if is_class_name(name):
                    fingerprint = self._index_class(jar, info, position, scanner, accumulator)
                else:
                    fingerprint = self._digest_entry(jar, info)
                    self.resources[name] = ResourceEntry(name=name, fingerprint=fingerprint)

                # Multi-release class files are META-INF resources as well as classes.
                if name.upper().startswith(META_INF):
                    self.manifest.record_resource(
                        MetaInfResource(
                            name=name.rsplit("/", 1)[-1],
                            full_path=name,
                            archive=self.path,
                            locator=position,
                            fingerprint=fingerprint,
                        )
                    )

        self.fingerprint = self._compute_fingerprint()
        if self.duplicate_keys:
            logger.warning(
                "%s contains %d duplicated class entries (%d extra copies)",
                self.path.name,
                len(self.duplicate_keys),
                self.duplicate_count,
            )
        logger.debug(
            "Loaded %s: %d classes, %d resources, %d packages, signed=%s",
            self.path,
            len(self.classes),
            len(self.resources),
            len(self.packages),
            self.signed,
        )

    def _read_manifest(self, jar: zipfile.ZipFile, infos: List[zipfile.ZipInfo]) -> ManifestEditor:
        manifest_info = None
        for info in infos:
            if info.filename.upper() == MANIFEST_NAME:
                manifest_info = info
        if manifest_info is None:
            return ManifestEditor()
        raw = self._read_entry(jar, manifest_info)
        return ManifestEditor(Manifest.parse(raw), raw=raw, entry_name=manifest_info.filename)

    def _index_class(
        self,
        jar: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        position: int,
        scanner: ReferenceScanner | None,
        accumulator: ImportAccumulator | None,
    ) -> str:
        name = info.filename
        package, simple_name = split_class_name(name)
        if name in self.classes:
            # Malformed archive: the last physical copy wins.
            self.duplicate_keys.add(name)
            self.duplicate_count += 1

        data = self._read_entry(jar, info)
        references: frozenset[str] = frozenset()
        if scanner is not None:
            references = frozenset(scanner.scan(data, name))
            self.imports.update(references)
            if accumulator is not None:
                accumulator.add_all(references)

        fingerprint = self.digester.digest(data)
        self.classes[name] = ClassEntry(
            package=package,
            simple_name=simple_name,
            fingerprint=fingerprint,
            locator=position,
            references=references,
        )
        self.packages.add(package)
        for product in self.products.belongs(package):
            self.product_membership.add(product.description)

        if self.class_file_version is None:
            self.class_file_version = read_version(data, name=name)
        return fingerprint

    def _read_entry(self, jar: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes:
        try:
            return jar.read(info)
        except ENTRY_READ_ERRORS as exc:
            raise IOFailure(
                f"Unable to read {info.filename} from {self.path}: {exc}",
                path=self.path,
                entry=info.filename,
            ) from exc

    def _digest_entry(self, jar: zipfile.ZipFile, info: zipfile.ZipInfo) -> str:
        try:
            with jar.open(info) as handle:
                return self.digester.digest_stream(handle)
        except ENTRY_READ_ERRORS as exc:
            raise IOFailure(
                f"Unable to read {info.filename} from {self.path}: {exc}",
                path=self.path,
                entry=info.filename,
            ) from exc

    def _compute_fingerprint(self) -> str:
        keys = [*self.classes.keys(), *(resource.fingerprint for resource in self.resources.values())]
        keys.sort()
        return self.digester.digest_text("\n".join(keys))

    # ------------------------------------------------------------------
    # Queries

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def class_count(self) -> int:
        return len(self.classes)

    @property
    def contains_classes(self) -> bool:
        return bool(self.classes)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicate_keys)

    def has_class(self, fqcn: str) -> bool:
        return fqcn in self.classes

    def has_resource(self, name: str) -> bool:
        return name in self.resources

    def list_classes(self) -> List[str]:
        return sorted(entry.fqcn for entry in self.classes.values())

    def list_resources(self) -> List[str]:
        return sorted(self.resources)

    def class_summary(self) -> List[Tuple[str, str]]:
        """Return ``(fqcn, fingerprint)`` pairs sorted by class name."""
        return sorted((entry.fqcn, entry.fingerprint) for entry in self.classes.values())

    def is_same_file(self, other: "ArchiveIndex") -> bool:
        return self.path.resolve() == other.path.resolve()

    def read_entry(self, locator: int) -> bytes:
        """Re-extract the bytes of the entry at ``locator`` from the archive on disk."""
        try:
            with zipfile.ZipFile(self.path) as jar:
                info = jar.infolist()[locator]
                return self._read_entry(jar, info)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ArchiveUnreadable(f"Unable to open archive {self.path}: {exc}", path=self.path) from exc
        except IndexError as exc:
            raise NotFound(f"No entry at position {locator} in {self.path}", path=self.path) from exc

    def class_bytes(self, fqcn: str) -> bytes:
        entry = self.classes.get(fqcn)
        if entry is None:
            raise NotFound(f"{fqcn} does not exist in the jar file.", path=self.path, entry=fqcn)
        return self.read_entry(entry.locator)

    def snapshot(self) -> "ArchiveIndex":
        """Return an independent copy; no mutable collection is shared with ``self``."""
        clone = ArchiveIndex(self.path, products=self.products, digester=self.digester)
        clone.entries = self.entries
        clone.classes = dict(self.classes)
        clone.resources = dict(self.resources)
        clone.packages = set(self.packages)
        clone.duplicate_keys = set(self.duplicate_keys)
        clone.duplicate_count = self.duplicate_count
        clone.signed = self.signed
        clone.class_file_version = self.class_file_version
        clone.fingerprint = self.fingerprint
        clone.automatic_module_name = self.automatic_module_name
        clone.pending_additions = {target: list(staged) for target, staged in self.pending_additions.items()}
        clone.manifest = self.manifest.snapshot()
        clone.product_membership = set(self.product_membership)
        clone.imports = set(self.imports)
        clone.deep_scan = self.deep_scan
        return clone

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArchiveIndex):
            return NotImplemented
        return self.fingerprint == other.fingerprint

    def __hash__(self) -> int:
        return hash(self.fingerprint)

    def __repr__(self) -> str:
        return f"ArchiveIndex({str(self.path)!r}, classes={len(self.classes)})"

    def __str__(self) -> str:
        return self.name


__all__ = ["ArchiveIndex"]
