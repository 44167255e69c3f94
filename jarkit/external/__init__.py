"""Adapters for the JDK tools jarkit delegates to."""

from .decompiler import CfrDecompiler, Decompiler
from .scanner import ImportAccumulator, JavapReferenceScanner, ReferenceScanner

__all__ = [
    "CfrDecompiler",
    "Decompiler",
    "ImportAccumulator",
    "JavapReferenceScanner",
    "ReferenceScanner",
]
