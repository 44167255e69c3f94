"""Tests for rebuilding archives from an index."""

from __future__ import annotations

import os
import zipfile
from pathlib import Path

import pytest

from jarkit.archive import ArchiveIndex, ArchiveMutator, ArchiveRegenerator
from jarkit.archive.tools import checksums
from jarkit.errors import IOFailure
from jarkit.manifest import Manifest
from tests._fixtures.jar_builder import JarBuilder, class_bytes, manifest_text


def _fingerprints(index: ArchiveIndex) -> tuple[dict[str, str], dict[str, str]]:
    classes = {key: entry.fingerprint for key, entry in index.classes.items()}
    resources = {key: entry.fingerprint for key, entry in index.resources.items()}
    return classes, resources


def test_round_trip_preserves_every_fingerprint(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write(
        "app.jar",
        {
            "com/x/Test.class": class_bytes(body=b"test"),
            "com/x/util/Helper.class": class_bytes(body=b"helper"),
            "Root.class": class_bytes(body=b"root"),
            "config/app.properties": "key=value\n",
            "META-INF/services/com.x.Spi": "com.x.Impl\n",
        },
        manifest=manifest_text("lib/a.jar"),
    )
    original = ArchiveIndex.load(source)

    output = ArchiveRegenerator(original).regenerate(tmp_path / "out" / "copy.jar")
    regenerated = ArchiveIndex.load(output)

    assert _fingerprints(regenerated) == _fingerprints(original)
    assert regenerated.fingerprint == original.fingerprint
    with zipfile.ZipFile(output) as jar:
        names = jar.namelist()
    assert names[:2] == ["META-INF/", "META-INF/MANIFEST.MF"]
    assert "com/x/util/" in names


def test_round_trip_keeps_lowercase_manifest_name(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write(
        "lower.jar",
        [
            ("meta-inf/manifest.mf", manifest_text("lib/a.jar")),
            ("com/x/Test.class", class_bytes()),
        ],
    )

    output = ArchiveRegenerator(ArchiveIndex.load(source)).regenerate(tmp_path / "lower-copy.jar")

    assert checksums(output) == checksums(source)


def test_classpath_edit_rewrites_manifest_under_original_name(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write(
        "lower-edit.jar",
        [("meta-inf/manifest.mf", manifest_text("lib/a.jar")), ("com/x/Test.class", class_bytes())],
    )
    index = ArchiveIndex.load(source)
    index.manifest.add_entry("lib/b.jar")

    output = ArchiveRegenerator(index).regenerate(tmp_path / "lower-edited.jar")

    with zipfile.ZipFile(output) as jar:
        names = jar.namelist()
        manifest = Manifest.parse(jar.read("meta-inf/manifest.mf"))
    assert "META-INF/MANIFEST.MF" not in names
    assert manifest.get("Class-Path") == "lib/a.jar lib/b.jar"


def test_remove_then_regenerate_drops_class(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write("single.jar", {"com/x/Test.class": class_bytes()})
    index = ArchiveIndex.load(source)
    assert index.class_count == 1

    ArchiveMutator(index).remove_class("com/x/Test.class")
    output = ArchiveRegenerator(index).regenerate(tmp_path / "removed.jar")

    reloaded = ArchiveIndex.load(output)
    assert reloaded.class_count == 0
    assert ArchiveIndex.load(source).class_count == 1


def test_staged_addition_appears_after_reload(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write("single.jar", {"com/x/Test.class": class_bytes()})
    index = ArchiveIndex.load(source)
    added = tmp_path / "notes.txt"
    added.write_text("notes", encoding="utf-8")
    added_class = tmp_path / "Extra.class"
    added_class.write_bytes(class_bytes(body=b"extra"))
    mutator = ArchiveMutator(index)
    mutator.stage_addition("com/x/foo", added)
    mutator.stage_addition("com/x", added_class)

    output = ArchiveRegenerator(index).regenerate(tmp_path / "added.jar")

    reloaded = ArchiveIndex.load(output)
    assert reloaded.has_resource("com/x/foo/notes.txt")
    assert reloaded.has_class("com/x/Extra.class")
    assert reloaded.has_class("com/x/Test.class")
    assert index.pending_additions == {}


def test_regenerate_in_place_replaces_source(jar_builder: JarBuilder) -> None:
    source = jar_builder.write(
        "inplace.jar",
        {"com/x/Keep.class": class_bytes(body=b"keep"), "com/x/Drop.class": class_bytes(body=b"drop")},
    )
    index = ArchiveIndex.load(source)
    ArchiveMutator(index).remove_class("com/x/Drop.class")

    output = ArchiveRegenerator(index).regenerate()

    assert output == source
    reloaded = ArchiveIndex.load(source)
    assert reloaded.list_classes() == ["com/x/Keep.class"]
    assert [p.name for p in source.parent.iterdir() if p.name.endswith(".tmp")] == []


def test_manifest_edits_are_written_and_other_attributes_kept(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write(
        "manifest.jar",
        {"com/x/Test.class": class_bytes()},
        manifest=manifest_text("lib/a.jar lib/b.jar", extra={"Main-Class": "com.x.Test"}),
    )
    index = ArchiveIndex.load(source)
    index.manifest.remove_entry("a.jar")
    index.manifest.add_entry("lib/c.jar")

    output = ArchiveRegenerator(index).regenerate(tmp_path / "edited.jar")

    reloaded = ArchiveIndex.load(output)
    assert reloaded.manifest.render() == "lib/b.jar lib/c.jar"
    assert reloaded.manifest.get("Main-Class") == "com.x.Test"


def test_cleared_classpath_removes_attribute(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write("clear.jar", {"a.txt": "a"}, manifest=manifest_text("lib/a.jar"))
    index = ArchiveIndex.load(source)
    index.manifest.clear()

    output = ArchiveRegenerator(index).regenerate(tmp_path / "cleared.jar")

    with zipfile.ZipFile(output) as jar:
        manifest = Manifest.parse(jar.read("META-INF/MANIFEST.MF"))
    assert manifest.get("Class-Path") is None
    assert ArchiveIndex.load(output).manifest.entries == []


def test_unmodified_manifest_bytes_are_preserved(jar_builder: JarBuilder, tmp_path: Path) -> None:
    raw = manifest_text("lib/a.jar", extra={"X-Odd-Case": "value"})
    source = jar_builder.write("raw.jar", {"a.txt": "a"}, manifest=raw)

    output = ArchiveRegenerator(ArchiveIndex.load(source)).regenerate(tmp_path / "raw-copy.jar")

    with zipfile.ZipFile(output) as jar:
        assert jar.read("META-INF/MANIFEST.MF") == raw.encode("utf-8")


def test_archive_without_manifest_gains_none(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write("bare.jar", {"com/x/Test.class": class_bytes()})

    output = ArchiveRegenerator(ArchiveIndex.load(source)).regenerate(tmp_path / "bare-copy.jar")

    with zipfile.ZipFile(output) as jar:
        assert "META-INF/MANIFEST.MF" not in jar.namelist()


def test_entry_timestamps_survive_round_trip(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write_duplicates("dated.jar", [("com/x/Test.class", class_bytes())])

    output = ArchiveRegenerator(ArchiveIndex.load(source)).regenerate(tmp_path / "dated-copy.jar")

    with zipfile.ZipFile(output) as jar:
        info = jar.getinfo("com/x/Test.class")
    assert info.date_time[:3] == (2020, 1, 1)


def test_entries_escaping_staging_are_rejected(tmp_path: Path) -> None:
    source = tmp_path / "slip.jar"
    with zipfile.ZipFile(source, "w") as jar:
        jar.writestr("../evil.txt", "boom")
        jar.writestr("ok.txt", "fine")
    index = ArchiveIndex.load(source)
    destination = tmp_path / "out.jar"

    with pytest.raises(IOFailure):
        ArchiveRegenerator(index).regenerate(destination)

    assert not destination.exists()
    assert not (tmp_path / "evil.txt").exists()


def test_failed_regeneration_keeps_pending_additions(jar_builder: JarBuilder, tmp_path: Path) -> None:
    source = jar_builder.write("pending.jar", {"com/x/Test.class": class_bytes()})
    index = ArchiveIndex.load(source)
    added = tmp_path / "notes.txt"
    added.write_text("notes", encoding="utf-8")
    ArchiveMutator(index).stage_addition("docs", added)
    os.remove(added)

    with pytest.raises(IOFailure):
        ArchiveRegenerator(index).regenerate(tmp_path / "never.jar")

    assert list(index.pending_additions) == ["docs"]
    assert not (tmp_path / "never.jar").exists()
