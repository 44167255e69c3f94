"""Bytecode reference scanning backed by the JDK ``javap`` tool."""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Protocol, Set

from ..errors import ClassNotAnalyzable

_CLASS_CONSTANT = re.compile(r"^\s*#\d+\s*=\s*Class\s+#\d+\s*//\s*(?P<name>\S+)\s*$")


class ReferenceScanner(Protocol):
    """Extracts the fully-qualified names a class refers to."""

    def scan(self, data: bytes, fqcn: str) -> FrozenSet[str]:
        ...


def find_java_tool(tool: str) -> Optional[str]:
    """Locate a JDK tool on PATH or under ``JAVA_HOME/bin``."""
    if shutil.which(tool):
        return tool
    java_home = os.environ.get("JAVA_HOME")
    if java_home:
        candidate = Path(java_home) / "bin" / (tool + (".exe" if os.name == "nt" else ""))
        if candidate.exists():
            return str(candidate)
    return None


class JavapReferenceScanner:
    """Reads ``Class`` constant-pool entries from ``javap -v`` output."""

    def __init__(self, *, executable: str | None = None) -> None:
        self.executable = executable or find_java_tool("javap") or "javap"

    def scan(self, data: bytes, fqcn: str) -> FrozenSet[str]:
        own_name = _dotted(fqcn)
        simple = fqcn.rsplit("/", 1)[-1]
        if not simple.lower().endswith(".class"):
            simple = f"{simple}.class"
        with tempfile.TemporaryDirectory(prefix="jarkit-scan-") as scratch:
            class_file = Path(scratch) / simple
            class_file.write_bytes(data)
            output = self._run(class_file, fqcn)
        return frozenset(name for name in parse_class_constants(output.splitlines()) if name != own_name)

    def _run(self, class_file: Path, fqcn: str) -> str:
        try:
            completed = subprocess.run(
                [self.executable, "-v", str(class_file)],
                check=True,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise ClassNotAnalyzable(
                f"Unable to locate javap executable '{self.executable}'.", entry=fqcn
            ) from exc
        except subprocess.CalledProcessError as exc:
            message = (exc.stderr or "").strip() or (exc.stdout or "").strip() or str(exc.returncode)
            raise ClassNotAnalyzable(f"javap failed for {fqcn}: {message}", entry=fqcn) from exc
        return completed.stdout


def parse_class_constants(lines: Iterable[str]) -> Set[str]:
    """Return dotted class names from ``javap -v`` constant-pool lines."""
    names: Set[str] = set()
    for line in lines:
        match = _CLASS_CONSTANT.match(line)
        if not match:
            continue
        name = match.group("name").strip('"')
        if name.startswith("["):
            name = name.lstrip("[")
            if not (name.startswith("L") and name.endswith(";")):
                # Primitive array descriptor.
                continue
            name = name[1:-1]
        names.add(_dotted(name))
    return names


def _dotted(name: str) -> str:
    if name.lower().endswith(".class"):
        name = name[: -len(".class")]
    return name.replace("/", ".")


class ImportAccumulator:
    """Append-only set of referenced class names, safe to share across threads."""

    def __init__(self) -> None:
        self._names: Set[str] = set()
        self._lock = threading.Lock()

    def add_all(self, names: Iterable[str]) -> None:
        with self._lock:
            self._names.update(names)

    def snapshot(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._names)

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)


__all__ = [
    "ImportAccumulator",
    "JavapReferenceScanner",
    "ReferenceScanner",
    "find_java_tool",
    "parse_class_constants",
]
