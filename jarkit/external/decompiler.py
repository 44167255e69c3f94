"""Adapter running the CFR decompiler as an external process."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Protocol

from ..errors import ClassNotAnalyzable, NotFound
from .scanner import find_java_tool


class Decompiler(Protocol):
    """Writes ``.java`` sources for one class file under ``destination``."""

    def decompile(self, class_file: Path, destination: Path) -> None:
        ...


class CfrDecompiler:
    """Executes ``java -jar cfr.jar`` with the output directory set to ``destination``."""

    def __init__(self, *, cfr_jar: Path | str, java: str | None = None) -> None:
        self.cfr_jar = self._validate_jar(cfr_jar)
        self.java = java or find_java_tool("java") or "java"

    def decompile(self, class_file: Path, destination: Path) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        args = [
            self.java,
            "-jar",
            str(self.cfr_jar),
            str(class_file),
            "--outputdir",
            str(destination),
        ]
        try:
            subprocess.run(args, check=True, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise ClassNotAnalyzable(f"Unable to locate java executable '{self.java}'.") from exc
        except subprocess.CalledProcessError as exc:
            message = (exc.stderr or "").strip() or (exc.stdout or "").strip() or str(exc.returncode)
            raise ClassNotAnalyzable(
                f"CFR failed to decompile {class_file.name}: {message}", path=class_file
            ) from exc

    @staticmethod
    def _validate_jar(cfr_jar: Path | str) -> Path:
        path = Path(cfr_jar).expanduser().resolve()
        if not path.is_file():
            raise NotFound(f"CFR decompiler jar not found at {path}", path=path)
        return path


__all__ = ["CfrDecompiler", "Decompiler"]
