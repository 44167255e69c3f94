"""CLI entrypoints for jarkit commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from .archive import (
    ArchiveIndex,
    ArchiveMutator,
    ArchiveRegenerator,
    compare,
    decompile_class,
    extract_class,
    unsign,
)
from .archive.mutator import SIGNED_MESSAGE
from .classpath import ClasspathSet
from .config import JarKitConfig, load_config
from .errors import JarKitError, SignedArchive
from .external import CfrDecompiler, JavapReferenceScanner
from .logging import configure_logging
from .models import Unsupported, as_class_key


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_output_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--output",
        help="Write the regenerated archive here instead of replacing the input.",
    )


def _split_names(value: str) -> List[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jarkit",
        description="Inspect, index and rewrite Java archive files.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        default=".",
        help="Path to .jarkit.yml or the directory holding it (defaults to current directory).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    info_parser = subparsers.add_parser("info", help="Query the classes and resources of an archive.")
    _add_verbose_option(info_parser, suppress_default=True)
    info_parser.add_argument("jar", help="Archive to inspect.")
    info_parser.add_argument("--count", action="store_true", help="Print the number of classes.")
    info_parser.add_argument("--version", action="store_true", help="Print the class file version.")
    info_parser.add_argument("--list", action="store_true", help="List every class.")
    info_parser.add_argument(
        "--fingerprints",
        action="store_true",
        help="Include class fingerprints when listing classes.",
    )
    info_parser.add_argument("--resources", action="store_true", help="List every resource.")
    info_parser.add_argument("--packages", action="store_true", help="List every package.")
    info_parser.add_argument(
        "--imports",
        action="store_true",
        help="List referenced classes (runs javap on every class).",
    )
    info_parser.add_argument(
        "--products",
        action="store_true",
        help="List the product families whose packages the archive contains.",
    )

    extract_parser = subparsers.add_parser("extract", help="Extract or decompile a single class.")
    _add_verbose_option(extract_parser, suppress_default=True)
    extract_parser.add_argument("fqcn", help="Class to extract, e.g. com/x/Test or com.x.Test.")
    extract_parser.add_argument("jar", help="Archive holding the class.")
    extract_parser.add_argument("dest", help="Destination directory.")
    extract_parser.add_argument(
        "--raw",
        action="store_true",
        help="Copy the class file instead of decompiling it.",
    )

    insert_parser = subparsers.add_parser("insert", help="Add a file to an archive.")
    _add_verbose_option(insert_parser, suppress_default=True)
    insert_parser.add_argument("path", help="Directory inside the archive to place the file under.")
    insert_parser.add_argument("jar", help="Archive to modify.")
    insert_parser.add_argument("file", help="File to add.")
    _add_output_option(insert_parser)

    remove_parser = subparsers.add_parser("remove", help="Remove a class from an archive.")
    _add_verbose_option(remove_parser, suppress_default=True)
    remove_parser.add_argument("fqcn", help="Class to remove.")
    remove_parser.add_argument("jar", help="Archive to modify.")
    _add_output_option(remove_parser)

    manifest_parser = subparsers.add_parser("manifest", help="Edit the manifest Class-Path.")
    _add_verbose_option(manifest_parser, suppress_default=True)
    manifest_parser.add_argument("jar", help="Archive to modify.")
    manifest_parser.add_argument("-a", "--add", type=_split_names, help="Comma separated jars to add.")
    manifest_parser.add_argument(
        "-r", "--remove", type=_split_names, help="Comma separated jars to remove."
    )
    manifest_parser.add_argument("-c", "--clear", action="store_true", help="Clear the classpath.")
    manifest_parser.add_argument("-n", "--name", help="Name of the new archive to write.")

    unsign_parser = subparsers.add_parser("unsign", help="Remove digital signatures from an archive.")
    _add_verbose_option(unsign_parser, suppress_default=True)
    unsign_parser.add_argument("jar", help="Signed archive.")
    unsign_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace the archive instead of writing <name>_unsigned.jar.",
    )

    compare_parser = subparsers.add_parser("compare", help="Compare the entries of two archives.")
    _add_verbose_option(compare_parser, suppress_default=True)
    compare_parser.add_argument("first", help="First archive.")
    compare_parser.add_argument("second", help="Second archive.")

    classpath_parser = subparsers.add_parser("classpath", help="Analyse several archives together.")
    _add_verbose_option(classpath_parser, suppress_default=True)
    classpath_parser.add_argument("jars", nargs="+", help="Archives forming the classpath.")
    classpath_parser.add_argument("--find", metavar="FQCN", help="List archives containing a class.")
    classpath_parser.add_argument(
        "--overlaps",
        action="store_true",
        help="Report classes shared between archives.",
    )
    classpath_parser.add_argument(
        "--versions",
        action="store_true",
        help="Print the distinct class file versions.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for jarkit commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(Path(args.config))
    except (JarKitError, OSError) as exc:
        parser.exit(1, f"{exc}\n")
    configure_logging(verbose=bool(args.verbose), log_file=config.log_file)

    handlers = {
        "info": _run_info,
        "extract": _run_extract,
        "insert": _run_insert,
        "remove": _run_remove,
        "manifest": _run_manifest,
        "unsign": _run_unsign,
        "compare": _run_compare,
        "classpath": _run_classpath,
    }
    handler = handlers.get(args.command)
    if handler is None:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")
    try:
        status = handler(args, config)
    except (JarKitError, OSError) as exc:
        parser.exit(1, f"{exc}\n")
    if status:
        parser.exit(status)


# ----------------------------------------------------------------------
# Commands


def _load(path: str, config: JarKitConfig, *, deep: bool = False) -> ArchiveIndex:
    scanner = None
    if deep or config.scan.deep:
        scanner = JavapReferenceScanner(executable=config.scan.javap)
    return ArchiveIndex.load(
        path,
        products=config.product_catalog(),
        digester=config.digester(),
        scanner=scanner,
    )


def _run_info(args: argparse.Namespace, config: JarKitConfig) -> int:
    index = _load(args.jar, config, deep=args.imports)
    flags = (
        args.count,
        args.version,
        args.list,
        args.fingerprints,
        args.resources,
        args.packages,
        args.imports,
        args.products,
    )
    if not any(flags):
        _print_summary(index)
        return 0

    if args.count:
        print(f"Class count: {index.class_count}")
    if args.version:
        print(f"Class version: {index.class_file_version or 'n/a'}")
    if args.list or args.fingerprints:
        print("Classes:")
        if not index.contains_classes:
            print("No class files")
        elif args.fingerprints:
            for fqcn, fingerprint in index.class_summary():
                print(f"{fqcn} {fingerprint}")
        else:
            for fqcn in index.list_classes():
                print(fqcn)
    if args.resources:
        print("Resources:")
        for name in index.list_resources():
            print(name)
    if args.packages:
        print("Packages:")
        for package in sorted(index.packages):
            print(package or "(default)")
    if args.imports:
        print("Imports:")
        for name in sorted(index.imports):
            print(name)
    if args.products:
        print("Products:")
        for product in sorted(index.product_membership):
            print(product)
    return 0


def _print_summary(index: ArchiveIndex) -> None:
    print(f"Archive: {index.path}")
    print(f"Fingerprint: {index.fingerprint}")
    print(f"Classes: {index.class_count}")
    print(f"Resources: {len(index.resources)}")
    print(f"Packages: {len(index.packages)}")
    print(f"Class version: {index.class_file_version or 'n/a'}")
    print(f"Signed: {'yes' if index.signed else 'no'}")
    if index.automatic_module_name:
        print(f"Automatic module: {index.automatic_module_name}")
    if index.has_duplicates:
        print(f"Duplicate classes: {len(index.duplicate_keys)} ({index.duplicate_count} extra copies)")
    classpath = index.manifest.render()
    if classpath:
        print(f"Class-Path: {classpath}")


def _run_extract(args: argparse.Namespace, config: JarKitConfig) -> int:
    index = _load(args.jar, config)
    destination = Path(args.dest)
    if args.raw:
        target = extract_class(index, args.fqcn, destination)
        print(f"Extracted {as_class_key(args.fqcn)} to {_relativize(target)}")
        return 0

    decompiler = None
    if config.decompiler.cfr_jar is not None:
        decompiler = CfrDecompiler(cfr_jar=config.decompiler.cfr_jar, java=config.decompiler.java)
    result = decompile_class(index, args.fqcn, destination, decompiler)
    if isinstance(result, Unsupported):
        print(f"{result.operation} unavailable: {result.reason}", file=sys.stderr)
        return 1
    print(f"Decompiled {as_class_key(args.fqcn)} into {_relativize(result)}")
    return 0


def _run_insert(args: argparse.Namespace, config: JarKitConfig) -> int:
    index = _load(args.jar, config)
    addition = ArchiveMutator(index).stage_addition(args.path, Path(args.file))
    target = ArchiveRegenerator(index).regenerate(args.output or args.jar)
    print(f"Added {addition.entry_name} to {_relativize(target)}")
    return 0


def _run_remove(args: argparse.Namespace, config: JarKitConfig) -> int:
    index = _load(args.jar, config)
    key = as_class_key(args.fqcn)
    ArchiveMutator(index).remove_class(key)
    target = ArchiveRegenerator(index).regenerate(args.output or args.jar)
    print(f"Removed {key} from {_relativize(target)}")
    return 0


def _run_manifest(args: argparse.Namespace, config: JarKitConfig) -> int:
    index = _load(args.jar, config)
    editor = index.manifest
    if not (args.clear or args.add or args.remove):
        for entry in editor.entries:
            print(entry.full_path)
        return 0
    if index.signed:
        raise SignedArchive(SIGNED_MESSAGE, path=index.path)

    output = Path(args.name) if args.name else Path(args.jar)
    if args.name and output.exists():
        print(f"Unable to create file {output.resolve()}", file=sys.stderr)
        return 1

    if args.clear:
        editor.clear()
    if args.add:
        editor.add_entries(args.add)
    if args.remove:
        editor.remove_entries(args.remove)
    target = ArchiveRegenerator(index).regenerate(output)
    print(f"Class-Path of {_relativize(target)}: {editor.render() or '(empty)'}")
    return 0


def _run_unsign(args: argparse.Namespace, config: JarKitConfig) -> int:
    target = unsign(Path(args.jar), overwrite=args.overwrite)
    print(f"Unsigned archive written to {_relativize(target)}")
    return 0


def _run_compare(args: argparse.Namespace, config: JarKitConfig) -> int:
    result = compare(Path(args.first), Path(args.second), digester=config.digester())
    if result.identical:
        print("Archives are identical")
        return 0
    for name in result.only_in_first:
        print(f"- {name}")
    for name in result.only_in_second:
        print(f"+ {name}")
    for name in result.changed:
        print(f"~ {name}")
    return 1


def _run_classpath(args: argparse.Namespace, config: JarKitConfig) -> int:
    scanner = JavapReferenceScanner(executable=config.scan.javap) if config.scan.deep else None
    classpath = ClasspathSet.load(
        [Path(jar) for jar in args.jars],
        workers=config.classpath.workers,
        products=config.product_catalog(),
        digester=config.digester(),
        scanner=scanner,
    )
    print(f"Archives: {len(classpath)}")
    print(f"Classes: {len(classpath.union())}")
    print(f"Signed: {classpath.signed_count()}")

    if args.find:
        key = as_class_key(args.find)
        hits = classpath.find(key)
        if not hits:
            print(f"{key} not found.")
        for index in hits:
            print(f"{key}: {index.path}")
    if args.versions:
        print("Versions:")
        for version in sorted(classpath.distinct_versions()):
            print(version)
    if args.overlaps:
        print("Overlaps:")
        for fqcn, owners in classpath.duplicates().items():
            print(f"{fqcn}: {', '.join(index.name for index in owners)}")
    for path, missing in classpath.unresolved_classpath_entries().items():
        print(f"Unresolved in {path.name}: {', '.join(entry.full_path for entry in missing)}")
    return 0


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
