"""Tests for the javap-backed reference scanner."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from jarkit.errors import ClassNotAnalyzable
from jarkit.external.scanner import ImportAccumulator, JavapReferenceScanner, parse_class_constants

JAVAP_OUTPUT = """\
Classfile /tmp/Test.class
  Compiled from "Test.java"
public class com.x.Test
Constant pool:
   #1 = Methodref          #2.#3          // java/lang/Object."<init>":()V
   #2 = Class              #4             // java/lang/Object
   #5 = Class              #6             // com/x/Test
   #7 = Class              #8             // java/util/List
   #9 = Class              #10            // "[Ljava/lang/String;"
  #11 = Class              #12            // "[I"
  #13 = Utf8               java/util/Map
"""


def test_parse_class_constants_collects_dotted_names() -> None:
    names = parse_class_constants(JAVAP_OUTPUT.splitlines())

    assert names == {"java.lang.Object", "com.x.Test", "java.util.List", "java.lang.String"}


def test_scanner_runs_javap_and_excludes_own_class(monkeypatch, tmp_path: Path) -> None:
    recorded: list[list[str]] = []

    def fake_run(args, check, capture_output, text):  # type: ignore[no-untyped-def]
        recorded.append(list(args))
        assert Path(args[-1]).name == "Test.class"
        assert Path(args[-1]).read_bytes() == b"\xca\xfe\xba\xbe"

        class _Completed:
            stdout = JAVAP_OUTPUT

        return _Completed()

    monkeypatch.setattr("jarkit.external.scanner.subprocess.run", fake_run)

    scanner = JavapReferenceScanner(executable="javap-binary")
    references = scanner.scan(b"\xca\xfe\xba\xbe", "com/x/Test.class")

    assert recorded[0][:2] == ["javap-binary", "-v"]
    assert references == frozenset({"java.lang.Object", "java.util.List", "java.lang.String"})


def test_scanner_reports_javap_failure(monkeypatch) -> None:
    def fake_run(args, check, capture_output, text):  # type: ignore[no-untyped-def]
        raise subprocess.CalledProcessError(1, args, output="", stderr="bad class")

    monkeypatch.setattr("jarkit.external.scanner.subprocess.run", fake_run)

    with pytest.raises(ClassNotAnalyzable) as excinfo:
        JavapReferenceScanner(executable="javap").scan(b"", "com/x/Test.class")

    assert "bad class" in str(excinfo.value)
    assert excinfo.value.entry == "com/x/Test.class"


def test_scanner_reports_missing_executable(monkeypatch) -> None:
    def fake_run(args, check, capture_output, text):  # type: ignore[no-untyped-def]
        raise FileNotFoundError(args[0])

    monkeypatch.setattr("jarkit.external.scanner.subprocess.run", fake_run)

    with pytest.raises(ClassNotAnalyzable):
        JavapReferenceScanner(executable="no-such-javap").scan(b"", "Test.class")


def test_import_accumulator_merges_sets() -> None:
    accumulator = ImportAccumulator()

    accumulator.add_all({"a.A", "b.B"})
    accumulator.add_all(["b.B", "c.C"])

    assert accumulator.snapshot() == frozenset({"a.A", "b.B", "c.C"})
    assert len(accumulator) == 3
