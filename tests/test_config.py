"""Tests for jarkit.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from jarkit.config import JarKitConfig, load_config
from jarkit.errors import ConfigError
from jarkit.products import DEFAULT_PRODUCTS


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, JarKitConfig)
    assert config.root == tmp_path.resolve()
    assert config.digest.algorithm == "sha256"
    assert config.scan.deep is False
    assert config.scan.javap is None
    assert config.decompiler.cfr_jar is None
    assert config.classpath.workers is None
    assert set(config.products) == set(DEFAULT_PRODUCTS)
    assert config.log_file is None


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".jarkit.yml"
    config_file.write_text(
        """
digest:
  algorithm: md5
scan:
  deep: "yes"
  javap: /opt/jdk/bin/javap
decompiler:
  java: /opt/jdk/bin/java
  cfr_jar: tools/cfr.jar
classpath:
  workers: 4
products:
  Acme:
    - acme/core
    - acme/web
log_file: logs/jarkit.log
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.digest.algorithm == "md5"
    assert config.digester().digest(b"x") == "9DD4E461268C8034F5C8564E155C67A6"
    assert config.scan.deep is True
    assert config.scan.javap == "/opt/jdk/bin/javap"
    assert config.decompiler.java == "/opt/jdk/bin/java"
    assert config.decompiler.cfr_jar == (tmp_path / "tools" / "cfr.jar").resolve()
    assert config.classpath.workers == 4
    assert config.products == {"Acme": ["acme/core", "acme/web"]}
    assert [p.description for p in config.product_catalog().belongs("acme/web")] == ["Acme"]
    assert config.log_file == tmp_path.resolve() / "logs" / "jarkit.log"


def test_load_config_accepts_explicit_file_name(tmp_path: Path) -> None:
    config_file = tmp_path / "custom.yml"
    config_file.write_text("classpath:\n  workers: 2\n", encoding="utf-8")

    assert load_config(config_file).classpath.workers == 2


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / ".jarkit.yml").write_text("\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.digest.algorithm == "sha256"


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "digest:\n  algorithm: not-a-hash\n",
        "digest:\n  algorithm: shake_128\n",
        "classpath:\n  workers: 0\n",
        "products: [a, b]\n",
        "digest: [unclosed\n",
    ],
)
def test_load_config_rejects_invalid_content(tmp_path: Path, content: str) -> None:
    (tmp_path / ".jarkit.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
