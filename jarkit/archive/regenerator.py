"""Rebuild an archive from its index: extract, apply mutations, repack."""

from __future__ import annotations

import os
import shutil
import tempfile
import time
import zipfile
from pathlib import Path
from typing import List, Optional, Tuple

from ..errors import IOFailure
from ..logging import get_logger
from ..models import MANIFEST_NAME, PendingAddition, is_class_name
from .index import ENTRY_READ_ERRORS, ArchiveIndex

logger = get_logger("archive.regenerator")


class ArchiveRegenerator:
    """Write a new archive reflecting the mutations applied to ``index``.

    Unchanged entries are copied through a staging directory so their content
    (and therefore their fingerprints) survive the round trip. The output is
    assembled next to the destination and moved into place only once complete,
    which also makes regenerating over the source archive safe.
    """

    def __init__(self, index: ArchiveIndex) -> None:
        self.index = index

    def regenerate(self, destination: Path | str | None = None) -> Path:
        target = Path(destination) if destination is not None else self.index.path
        additions = [addition for staged in self.index.pending_additions.values() for addition in staged]
        logger.info("Regenerating %s into %s", self.index.path, target)

        with tempfile.TemporaryDirectory(prefix="jarkit-stage-") as scratch:
            staging = Path(scratch)
            extracted = self._extract(staging)
            manifest = self._write_manifest(staging)
            self._copy_additions(staging, additions)
            self._pack(staging, target, manifest)

        self.index.pending_additions.clear()
        logger.debug(
            "Wrote %s: %d entries kept, %d additions, manifest %s",
            target,
            extracted,
            len(additions),
            "rewritten" if self.index.manifest.dirty else "preserved",
        )
        return target

    # ------------------------------------------------------------------
    # Staging

    def _extract(self, staging: Path) -> int:
        written = 0
        try:
            jar = zipfile.ZipFile(self.index.path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise IOFailure(f"Unable to open archive {self.index.path}: {exc}", path=self.index.path) from exc

        with jar:
            for position, info in enumerate(jar.infolist()):
                name = info.filename
                if name.upper() == MANIFEST_NAME:
                    continue
                if is_class_name(name):
                    entry = self.index.classes.get(name)
                    # Removed classes are skipped; for duplicated keys only the indexed copy is kept.
                    if entry is None or entry.locator != position:
                        continue
                target = _staged_path(staging, name)
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                try:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with jar.open(info) as source, target.open("wb") as sink:
                        shutil.copyfileobj(source, sink)
                    stamp = time.mktime(info.date_time + (0, 0, -1))
                    os.utime(target, (stamp, stamp))
                except ENTRY_READ_ERRORS as exc:
                    raise IOFailure(
                        f"Unable to extract {name} from {self.index.path}: {exc}",
                        path=self.index.path,
                        entry=name,
                    ) from exc
                written += 1
        return written

    def _write_manifest(self, staging: Path) -> Optional[Path]:
        data = self.index.manifest.manifest_bytes()
        if data is None:
            return None
        target = _staged_path(staging, self.index.manifest.entry_name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise IOFailure(f"Unable to stage manifest: {exc}", path=target) from exc
        return target

    def _copy_additions(self, staging: Path, additions: List[PendingAddition]) -> None:
        for addition in additions:
            target = _staged_path(staging, addition.entry_name)
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(addition.source, target)
            except OSError as exc:
                raise IOFailure(
                    f"Unable to stage {addition.source}: {exc}",
                    path=addition.source,
                    entry=addition.entry_name,
                ) from exc
            logger.debug("Added %s", addition.entry_name)

    # ------------------------------------------------------------------
    # Packing

    def _pack(self, staging: Path, destination: Path, manifest: Optional[Path]) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent)
        os.close(fd)
        temp_path = Path(temp_name)
        try:
            with zipfile.ZipFile(
                temp_path, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
            ) as archive:
                manifest_names: Tuple[str, ...] = ()
                if manifest is not None:
                    # Readers that stream archives expect the manifest up front.
                    entry_name = self.index.manifest.entry_name
                    manifest_names = (entry_name.rpartition("/")[0] + "/", entry_name)
                    archive.write(manifest.parent, manifest_names[0])
                    archive.write(manifest, entry_name)
                for path in _sorted_walk(staging):
                    arcname = path.relative_to(staging).as_posix()
                    if path.is_dir():
                        arcname += "/"
                    if arcname in manifest_names:
                        continue
                    archive.write(path, arcname)
            os.replace(temp_path, destination)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise IOFailure(f"Unable to write {destination}: {exc}", path=destination) from exc
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise


def _staged_path(staging: Path, name: str) -> Path:
    """Map an entry name into ``staging``, rejecting names that escape it."""
    root = staging.resolve()
    candidate = (root / name).resolve()
    if candidate != root and root not in candidate.parents:
        raise IOFailure(f"Entry {name!r} escapes the extraction directory.", entry=name)
    return candidate


def _sorted_walk(root: Path) -> List[Path]:
    paths: List[Path] = []
    for path in sorted(root.iterdir(), key=lambda item: item.name):
        paths.append(path)
        if path.is_dir():
            paths.extend(_sorted_walk(path))
    return paths


__all__ = ["ArchiveRegenerator"]
