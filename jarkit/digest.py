"""Content fingerprints used as equality keys for entries and archives."""

from __future__ import annotations

import hashlib
from typing import BinaryIO

DEFAULT_ALGORITHM = "sha256"
_CHUNK_SIZE = 1024 * 1024


class Digester:
    """Computes uppercase hex digests with a fixed ``hashlib`` algorithm."""

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM) -> None:
        try:
            hasher = hashlib.new(algorithm)
        except ValueError as exc:
            raise ValueError(f"Unsupported digest algorithm: {algorithm}") from exc
        # shake_* report digest_size 0 and need an explicit hexdigest length.
        if hasher.digest_size == 0:
            raise ValueError(f"Variable-length digest algorithm not supported: {algorithm}")
        self.algorithm = algorithm

    def digest(self, data: bytes) -> str:
        hasher = hashlib.new(self.algorithm)
        hasher.update(data)
        return hasher.hexdigest().upper()

    def digest_stream(self, handle: BinaryIO) -> str:
        hasher = hashlib.new(self.algorithm)
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
        return hasher.hexdigest().upper()

    def digest_text(self, text: str) -> str:
        return self.digest(text.encode("utf-8"))

    def __repr__(self) -> str:
        return f"Digester(algorithm={self.algorithm!r})"


_DEFAULT = Digester()


def digest(data: bytes) -> str:
    """Return the default fingerprint of ``data``."""
    return _DEFAULT.digest(data)


def digest_stream(handle: BinaryIO) -> str:
    """Return the default fingerprint of everything left in ``handle``."""
    return _DEFAULT.digest_stream(handle)


__all__ = ["DEFAULT_ALGORITHM", "Digester", "digest", "digest_stream"]
