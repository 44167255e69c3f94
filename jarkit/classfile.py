"""Class-file header parsing (magic number and version only)."""

from __future__ import annotations

import struct

from .errors import ClassFormatError

CLASS_MAGIC = 0xCAFEBABE
_HEADER = struct.Struct(">IHH")


def read_version(data: bytes, *, name: str | None = None) -> str:
    """Return the ``"major.minor"`` version from the first 8 bytes of a class file."""
    if len(data) < _HEADER.size:
        raise ClassFormatError("Invalid Java class: truncated header", entry=name)
    magic, minor, major = _HEADER.unpack_from(data)
    if magic != CLASS_MAGIC:
        raise ClassFormatError("Invalid Java class", entry=name)
    return f"{major}.{minor}"


__all__ = ["CLASS_MAGIC", "read_version"]
