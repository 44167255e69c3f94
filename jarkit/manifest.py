"""Manifest parsing, rendering and ``Class-Path`` editing."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import NotFound
from .logging import get_logger
from .models import MANIFEST_NAME, ManifestClasspathEntry, MetaInfResource

CLASS_PATH = "Class-Path"
MANIFEST_VERSION = "Manifest-Version"
AUTOMATIC_MODULE_NAME = "Automatic-Module-Name"

_MAX_LINE_BYTES = 72
_NEWLINE = b"\r\n"
_BOM = b"\xef\xbb\xbf"
_LINE_BREAK = re.compile(rb"\r\n|\r|\n")

logger = get_logger("manifest")


def _lookup(attributes: Mapping[str, str], key: str) -> Optional[str]:
    """Case-insensitive attribute lookup, as attribute names are case-insensitive."""
    if key in attributes:
        return attributes[key]
    lowered = key.lower()
    for name, value in attributes.items():
        if name.lower() == lowered:
            return value
    return None


@dataclass
class Manifest:
    """A parsed ``META-INF/MANIFEST.MF``: main attributes plus per-entry sections."""

    main: Dict[str, str] = field(default_factory=dict)
    sections: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @classmethod
    def parse(cls, data: bytes) -> "Manifest":
        if data.startswith(_BOM):
            data = data[len(_BOM) :]

        # Continuations are joined before decoding: writers split lines at 72
        # bytes, which can fall inside a multi-byte character.
        blocks: List[List[bytes]] = [[]]
        for line in _LINE_BREAK.split(data):
            if not line:
                if blocks[-1]:
                    blocks.append([])
                continue
            if line.startswith(b" ") and blocks[-1]:
                blocks[-1][-1] += line[1:]
                continue
            blocks[-1].append(line)

        manifest = cls()
        for position, block in enumerate(blocks):
            if not block:
                continue
            attributes = _parse_block([line.decode("utf-8", errors="replace") for line in block])
            if position == 0 and _lookup(attributes, "Name") is None:
                manifest.main = attributes
                continue
            name = _lookup(attributes, "Name")
            if name is None:
                # Stray section without a Name header; nothing can refer to it.
                continue
            body = {key: value for key, value in attributes.items() if key.lower() != "name"}
            manifest.sections.setdefault(name, {}).update(body)
        return manifest

    def get(self, key: str) -> Optional[str]:
        return _lookup(self.main, key)

    def set(self, key: str, value: str) -> None:
        existing = self._main_key(key)
        self.main[existing or key] = value

    def remove(self, key: str) -> None:
        existing = self._main_key(key)
        if existing is not None:
            del self.main[existing]

    def entry_digests(self) -> Dict[str, Dict[str, str]]:
        """Return per-entry sections carrying ``*-Digest`` attributes (signer data)."""
        digests: Dict[str, Dict[str, str]] = {}
        for name, attributes in self.sections.items():
            found = {key: value for key, value in attributes.items() if key.lower().endswith("-digest")}
            if found:
                digests[name] = found
        return digests

    def without_digests(self) -> "Manifest":
        """Return a copy with per-entry digest attributes (and emptied sections) removed."""
        sections: Dict[str, Dict[str, str]] = {}
        for name, attributes in self.sections.items():
            kept = {key: value for key, value in attributes.items() if not key.lower().endswith("-digest")}
            if kept:
                sections[name] = kept
        return Manifest(main=dict(self.main), sections=sections)

    def copy(self) -> "Manifest":
        return Manifest(
            main=dict(self.main),
            sections={name: dict(attributes) for name, attributes in self.sections.items()},
        )

    def to_bytes(self) -> bytes:
        lines: List[bytes] = []
        main = dict(self.main)
        version_key = self._main_key(MANIFEST_VERSION)
        version = main.pop(version_key, None) if version_key else None
        lines.extend(_encode_attribute(MANIFEST_VERSION, version or "1.0"))
        for key, value in main.items():
            lines.extend(_encode_attribute(key, value))
        lines.append(b"")
        for name, attributes in self.sections.items():
            lines.extend(_encode_attribute("Name", name))
            for key, value in attributes.items():
                lines.extend(_encode_attribute(key, value))
            lines.append(b"")
        return _NEWLINE.join(lines) + _NEWLINE

    def _main_key(self, key: str) -> Optional[str]:
        lowered = key.lower()
        for name in self.main:
            if name.lower() == lowered:
                return name
        return None


def _parse_block(lines: Sequence[str]) -> Dict[str, str]:
    attributes: Dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        if not sep or not key.strip():
            logger.debug("Ignoring malformed manifest line: %r", line)
            continue
        attributes[key.strip()] = value[1:] if value.startswith(" ") else value
    return attributes


def _encode_attribute(key: str, value: str) -> List[bytes]:
    """Encode ``key: value`` as 72-byte lines with single-space continuations."""
    chunks: List[bytes] = []
    current = bytearray()
    limit = _MAX_LINE_BYTES
    for char in f"{key}: {value}":
        encoded = char.encode("utf-8")
        if len(current) + len(encoded) > limit:
            chunks.append(bytes(current))
            current = bytearray(b" ")
            limit = _MAX_LINE_BYTES
        current.extend(encoded)
    chunks.append(bytes(current))
    return chunks


def parse_classpath(attributes: Mapping[str, str] | None) -> List[ManifestClasspathEntry]:
    """Split the ``Class-Path`` attribute into ordered entries; absent means empty."""
    if not attributes:
        return []
    value = _lookup(attributes, CLASS_PATH)
    if not value:
        return []
    return [ManifestClasspathEntry(token) for token in value.split()]


def render_classpath(entries: Iterable[ManifestClasspathEntry]) -> str:
    """Join entries with single spaces, in their current order."""
    return " ".join(entry.full_path for entry in entries)


class ManifestEditor:
    """Edits the ordered ``Class-Path`` entries of one archive's manifest.

    The editor is owned by the :class:`~jarkit.archive.index.ArchiveIndex` that
    loaded it. Nothing here touches disk: the regenerator asks for
    :meth:`manifest_bytes` when it rebuilds the archive. While no edit has been
    made, the original manifest bytes are returned untouched.
    """

    def __init__(
        self,
        manifest: Manifest | None = None,
        *,
        raw: bytes | None = None,
        entry_name: str = MANIFEST_NAME,
    ) -> None:
        self._manifest = manifest
        self._raw = raw
        # Lookup is case-insensitive; the archive's own spelling is written back.
        self.entry_name = entry_name
        self._entries: List[ManifestClasspathEntry] = parse_classpath(
            manifest.main if manifest is not None else None
        )
        self._resources: List[MetaInfResource] = []
        self._dirty = False

    @classmethod
    def from_bytes(cls, data: bytes) -> "ManifestEditor":
        return cls(Manifest.parse(data), raw=data)

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> "ManifestEditor":
        return cls(manifest.copy(), raw=manifest.to_bytes())

    # ------------------------------------------------------------------
    # Queries

    @property
    def entries(self) -> List[ManifestClasspathEntry]:
        return list(self._entries)

    @property
    def resources(self) -> List[MetaInfResource]:
        return list(self._resources)

    @property
    def main_attributes(self) -> Dict[str, str]:
        if self._manifest is None:
            return {}
        return dict(self._manifest.main)

    @property
    def manifest(self) -> Optional[Manifest]:
        return self._manifest.copy() if self._manifest is not None else None

    @property
    def dirty(self) -> bool:
        return self._dirty

    def get(self, key: str) -> Optional[str]:
        if self._manifest is None:
            return None
        return self._manifest.get(key)

    def render(self) -> str:
        return render_classpath(self._entries)

    # ------------------------------------------------------------------
    # Mutations

    def add_entry(self, token: str) -> None:
        self._entries.append(ManifestClasspathEntry(token))
        self._dirty = True

    def add_entries(self, tokens: Iterable[str]) -> None:
        for token in tokens:
            self.add_entry(token)

    def remove_entry(self, jar_name: str) -> None:
        self._entries = _without_first(self._entries, jar_name)
        self._dirty = True

    def remove_entries(self, jar_names: Iterable[str]) -> None:
        """Remove each named jar; a miss raises before any removal is applied."""
        remaining = self._entries
        for jar_name in jar_names:
            remaining = _without_first(remaining, jar_name)
        self._entries = remaining
        self._dirty = True

    def clear(self) -> None:
        self._entries.clear()
        self._dirty = True

    def record_resource(self, resource: MetaInfResource) -> None:
        self._resources.append(resource)

    # ------------------------------------------------------------------
    # Regeneration support

    def build_manifest(self) -> Manifest:
        """Return the manifest to write: original attributes with the current classpath."""
        manifest = self._manifest.copy() if self._manifest is not None else Manifest()
        if self._entries:
            manifest.set(CLASS_PATH, self.render())
        else:
            manifest.remove(CLASS_PATH)
        return manifest

    def manifest_bytes(self) -> Optional[bytes]:
        if not self._dirty:
            return self._raw
        return self.build_manifest().to_bytes()

    def snapshot(self) -> "ManifestEditor":
        clone = ManifestEditor(self.manifest, raw=self._raw, entry_name=self.entry_name)
        clone._entries = list(self._entries)
        clone._resources = list(self._resources)
        clone._dirty = self._dirty
        return clone


def _without_first(
    entries: Sequence[ManifestClasspathEntry], jar_name: str
) -> List[ManifestClasspathEntry]:
    for position, entry in enumerate(entries):
        if entry.jar_name == jar_name:
            return [*entries[:position], *entries[position + 1 :]]
    raise NotFound(f"{jar_name} not present in classpath manifest.")


__all__ = [
    "AUTOMATIC_MODULE_NAME",
    "CLASS_PATH",
    "Manifest",
    "ManifestEditor",
    "parse_classpath",
    "render_classpath",
]
