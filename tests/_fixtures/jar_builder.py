"""Helper utilities for constructing throwaway archives in tests."""

from __future__ import annotations

import struct
import zipfile
from pathlib import Path
from typing import Iterable, Mapping, Tuple


def class_bytes(major: int = 55, minor: int = 0, body: bytes = b"") -> bytes:
    """Return a class file with a valid header; only the header is ever parsed."""
    return struct.pack(">IHH", 0xCAFEBABE, minor, major) + body


def manifest_text(class_path: str | None = None, *, extra: Mapping[str, str] | None = None) -> str:
    lines = ["Manifest-Version: 1.0", "Created-By: jar-builder"]
    if class_path is not None:
        lines.append(f"Class-Path: {class_path}")
    for key, value in (extra or {}).items():
        lines.append(f"{key}: {value}")
    return "\r\n".join(lines) + "\r\n\r\n"


class JarBuilder:
    """Utility for writing archives under the pytest tmp_path and loading them."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "jars"
        self.root.mkdir()

    def write(
        self,
        name: str,
        entries: Mapping[str, bytes | str] | Iterable[Tuple[str, bytes | str]],
        *,
        manifest: str | None = None,
    ) -> Path:
        """Write ``entries`` (in order, duplicates allowed) into ``<root>/<name>``."""
        path = self.root / name
        items = list(entries.items()) if isinstance(entries, Mapping) else list(entries)
        if manifest is not None:
            items.insert(0, ("META-INF/MANIFEST.MF", manifest))
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as jar:
            for entry_name, content in items:
                data = content.encode("utf-8") if isinstance(content, str) else content
                jar.writestr(entry_name, data)
        return path

    def write_duplicates(self, name: str, entries: Iterable[Tuple[str, bytes | str]]) -> Path:
        """Write entries that may repeat names; zipfile only warns about those."""
        path = self.root / name
        with zipfile.ZipFile(path, "w") as jar:
            for entry_name, content in entries:
                data = content.encode("utf-8") if isinstance(content, str) else content
                info = zipfile.ZipInfo(entry_name, date_time=(2020, 1, 1, 0, 0, 0))
                jar.writestr(info, data)
        return path

    def signed(self, name: str = "signed.jar") -> Path:
        return self.write(
            name,
            {
                "com/x/Test.class": class_bytes(),
                "META-INF/SIGNER.SF": "Signature-Version: 1.0\r\n",
                "META-INF/SIGNER.RSA": b"\x30\x82",
            },
            manifest=manifest_text()
            + "Name: com/x/Test.class\r\nSHA-256-Digest: AAAA\r\n\r\n",
        )


__all__ = ["JarBuilder", "class_bytes", "manifest_text"]
