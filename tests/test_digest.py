"""Tests for jarkit.digest."""

from __future__ import annotations

import hashlib
import io

import pytest

from jarkit.digest import Digester, digest, digest_stream


def test_digest_is_uppercase_hex_of_sha256() -> None:
    expected = hashlib.sha256(b"payload").hexdigest().upper()

    assert digest(b"payload") == expected
    assert digest(b"payload") == digest(b"payload")


def test_digest_stream_matches_in_memory_digest() -> None:
    data = b"x" * (3 * 1024 * 1024 + 17)

    assert digest_stream(io.BytesIO(data)) == digest(data)


def test_digester_honours_configured_algorithm() -> None:
    digester = Digester("md5")

    assert digester.digest(b"abc") == hashlib.md5(b"abc").hexdigest().upper()
    assert len(digester.digest_text("abc")) == 32


def test_digester_rejects_unknown_algorithm() -> None:
    with pytest.raises(ValueError):
        Digester("not-a-hash")


@pytest.mark.parametrize("algorithm", ["shake_128", "shake_256"])
def test_digester_rejects_variable_length_algorithms(algorithm: str) -> None:
    with pytest.raises(ValueError, match="Variable-length"):
        Digester(algorithm)
