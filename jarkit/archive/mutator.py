"""Index-level mutations: class removal and staged file additions."""

from __future__ import annotations

from pathlib import Path
from typing import List

from ..errors import Conflict, NotFound, SignedArchive
from ..logging import get_logger
from ..models import ClassEntry, PendingAddition
from .index import ArchiveIndex

logger = get_logger("archive.mutator")

SIGNED_MESSAGE = "This JAR file is digitally signed."


class ArchiveMutator:
    """Apply removals and additions to an :class:`ArchiveIndex`.

    Every operation checks its preconditions before touching the index, so a
    failed call leaves it exactly as it was. Nothing is written to disk until
    :class:`~jarkit.archive.regenerator.ArchiveRegenerator` runs.
    """

    def __init__(self, index: ArchiveIndex) -> None:
        self.index = index

    def remove_class(self, fqcn: str) -> ClassEntry:
        self._ensure_unsigned()
        if fqcn not in self.index.classes:
            raise NotFound(f"{fqcn} not found.", path=self.index.path, entry=fqcn)
        removed = self.index.classes.pop(fqcn)
        logger.debug("Removed %s from %s", fqcn, self.index.name)
        return removed

    def stage_addition(self, target_path: str, source_file: Path | str) -> PendingAddition:
        self._ensure_unsigned()
        source = Path(source_file)
        target = target_path.strip("/")
        staged = self.index.pending_additions.get(target, [])
        if any(existing.source.name == source.name for existing in staged):
            raise Conflict(
                f"{source.name} is already staged for {target or '/'}.",
                path=self.index.path,
                entry=f"{target}/{source.name}" if target else source.name,
            )
        if not source.is_file():
            raise NotFound(f"{source} not found.", path=source)

        addition = PendingAddition(target_path=target, source=source)
        self.index.pending_additions.setdefault(target, []).append(addition)
        logger.debug("Staged %s as %s in %s", source, addition.entry_name, self.index.name)
        return addition

    def pending(self) -> List[PendingAddition]:
        return [addition for staged in self.index.pending_additions.values() for addition in staged]

    def _ensure_unsigned(self) -> None:
        if self.index.signed:
            logger.warning("Refusing to modify signed archive %s", self.index.path)
            raise SignedArchive(SIGNED_MESSAGE, path=self.index.path)


__all__ = ["ArchiveMutator", "SIGNED_MESSAGE"]
