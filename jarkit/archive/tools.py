"""Whole-archive utilities: comparison, class extraction and signature removal."""

from __future__ import annotations

import os
import tempfile
import zipfile
from pathlib import Path
from typing import Dict

from ..digest import Digester
from ..errors import ArchiveUnreadable, Conflict, IOFailure
from ..external.decompiler import Decompiler
from ..logging import get_logger
from ..manifest import Manifest
from ..models import (
    MANIFEST_NAME,
    ComparisonResult,
    Unsupported,
    as_class_key,
    is_signature_artifact,
    split_class_name,
)
from .index import ENTRY_READ_ERRORS, ArchiveIndex

logger = get_logger("archive.tools")


def checksums(path: Path | str, *, digester: Digester | None = None) -> Dict[str, str]:
    """Return ``entry name -> fingerprint`` for every file entry of ``path``.

    Unlike :class:`ArchiveIndex`, a duplicated entry name is an error here since
    a comparison over such an archive would be ambiguous.
    """
    archive = Path(path)
    digester = digester or Digester()
    result: Dict[str, str] = {}
    with _open(archive) as jar:
        for info in jar.infolist():
            if info.is_dir():
                continue
            if info.filename in result:
                raise ArchiveUnreadable(
                    f"JAR file contains a duplicate: {info.filename}", path=archive, entry=info.filename
                )
            try:
                with jar.open(info) as handle:
                    result[info.filename] = digester.digest_stream(handle)
            except ENTRY_READ_ERRORS as exc:
                raise IOFailure(
                    f"Unable to read {info.filename} from {archive}: {exc}", path=archive, entry=info.filename
                ) from exc
    return result


def compare(first: Path | str, second: Path | str, *, digester: Digester | None = None) -> ComparisonResult:
    first_path = Path(first).resolve()
    second_path = Path(second).resolve()
    if first_path == second_path:
        raise Conflict(f"Comparing same exact file: {first_path} to {second_path}", path=first_path)

    left = checksums(first_path, digester=digester)
    right = checksums(second_path, digester=digester)
    only_in_first = sorted(set(left) - set(right))
    only_in_second = sorted(set(right) - set(left))
    changed = sorted(name for name in set(left) & set(right) if left[name] != right[name])
    return ComparisonResult(
        identical=not (only_in_first or only_in_second or changed),
        only_in_first=only_in_first,
        only_in_second=only_in_second,
        changed=changed,
    )


def extract_class(index: ArchiveIndex, fqcn: str, destination: Path | str) -> Path:
    """Copy the raw bytes of ``fqcn`` to ``destination/<package>/<Simple>.class``."""
    key = as_class_key(fqcn)
    data = index.class_bytes(key)
    package, simple_name = split_class_name(key)
    directory = Path(destination) / package if package else Path(destination)
    target = directory / simple_name
    try:
        directory.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as exc:
        raise IOFailure(f"Unable to create: {target}: {exc}", path=target, entry=key) from exc
    logger.info("Extracted %s to %s", key, target)
    return target


def decompile_class(
    index: ArchiveIndex,
    fqcn: str,
    destination: Path | str,
    decompiler: Decompiler | None = None,
) -> Path | Unsupported:
    """Decompile ``fqcn`` into ``destination``; :class:`Unsupported` without a decompiler."""
    if decompiler is None:
        return Unsupported(
            operation="decompile",
            reason="No decompiler configured; set decompiler.cfr_jar or use --raw.",
        )
    output = Path(destination)
    with tempfile.TemporaryDirectory(prefix="jarkit-decompile-") as scratch:
        class_file = extract_class(index, fqcn, scratch)
        decompiler.decompile(class_file, output)
    return output


def check_signed(path: Path | str) -> bool:
    """Return True when ``path`` carries signature files or per-entry digests."""
    archive = Path(path)
    with _open(archive) as jar:
        infos = jar.infolist()
        if any(is_signature_artifact(info.filename) for info in infos):
            return True
        for info in infos:
            if info.filename.upper() == MANIFEST_NAME:
                manifest = Manifest.parse(jar.read(info))
                return bool(manifest.entry_digests())
    return False


def unsign(path: Path | str, *, overwrite: bool = False) -> Path:
    """Write a copy of ``path`` without signature files or per-entry digests.

    The copy is ``<stem>_unsigned.jar`` next to the source unless ``overwrite``
    is set, in which case the source is replaced.
    """
    source = Path(path)
    target = source if overwrite else source.with_name(f"{source.stem}_unsigned.jar")
    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    os.close(fd)
    temp_path = Path(temp_name)
    dropped = 0
    try:
        with _open(source) as jar, zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED) as out:
            for info in jar.infolist():
                if is_signature_artifact(info.filename):
                    dropped += 1
                    continue
                try:
                    data = jar.read(info)
                except ENTRY_READ_ERRORS as exc:
                    raise IOFailure(
                        f"Unable to read {info.filename} from {source}: {exc}", path=source, entry=info.filename
                    ) from exc
                if info.filename.upper() == MANIFEST_NAME:
                    data = Manifest.parse(data).without_digests().to_bytes()
                out.writestr(info, data)
        os.replace(temp_path, target)
    except OSError as exc:
        temp_path.unlink(missing_ok=True)
        raise IOFailure(f"Unable to write {target}: {exc}", path=target) from exc
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    logger.info("Unsigned %s -> %s (%d signature files removed)", source, target, dropped)
    return target


def _open(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path)
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveUnreadable(f"Unable to open archive {path}: {exc}", path=path) from exc


__all__ = [
    "check_signed",
    "checksums",
    "compare",
    "decompile_class",
    "extract_class",
    "unsign",
]
